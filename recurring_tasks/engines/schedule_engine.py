"""Schedule Engine for recurring tasks.

Pure calendar logic for recurring task templates:
- `calculate_next_occurrence`: one step of a recurrence rule
- `first_occurrence`: align a start date onto the rule's anchors
- `RecurrenceEngine`: walks a template's occurrences over a date window
- `generate_instances`: window enumeration for a stored template
- `describe_recurrence`: human-readable summary of a rule

Month/year arithmetic uses `dateutil.relativedelta` with explicit clamping
(Jan 31 + 1 month = Feb 29 in 2024, Feb 28 otherwise; never skipped).

IMPORTANT: This module must NOT import from managers or store.py.
Only import from const.py, type_defs.py, and utils.
"""

from __future__ import annotations

from datetime import MAXYEAR, date, timedelta
from typing import TYPE_CHECKING, ClassVar

from .. import const
from ..utils.dt_utils import (
    DAYS_PER_WEEK,
    add_months,
    add_years,
    clamp_day,
    dt_parse_date,
    shift_to_weekday,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ..type_defs import RecurrenceRuleData, RecurringTemplateData


class SafetyLoopAbort(Exception):
    """Raised when a rule stops advancing the occurrence cursor.

    Attributes:
        cursor: The last date the cursor reached
        next_date: The date the rule produced from the cursor (None when the
            iteration ceiling was hit instead)
        template_id: Template being generated, if known
    """

    def __init__(
        self,
        cursor: date,
        next_date: date | None = None,
        template_id: str | None = None,
    ) -> None:
        """Initialize SafetyLoopAbort."""
        self.cursor = cursor
        self.next_date = next_date
        self.template_id = template_id
        if next_date is None:
            reason = "iteration ceiling reached"
        else:
            reason = f"cursor did not advance ({cursor} -> {next_date})"
        super().__init__(
            f"Occurrence generation aborted for template {template_id}: {reason}"
        )


# =============================================================================
# Occurrence calculation (single step)
# =============================================================================


def calculate_next_occurrence(current: date, rule: RecurrenceRuleData) -> date:
    """Return the next occurrence after `current` for a validated rule.

    - daily: current + interval days
    - weekly: current + interval*7 days, then forward 0-6 days onto
      day_of_week when set
    - monthly: + interval months on day_of_month (or current's day), clamped
    - yearly: + interval years, month_of_year when set, day_of_month (or
      current's day), clamped

    An unknown type returns `current` unchanged so the generator's advance
    check stops the run.
    """
    rule_type = rule.get(const.DATA_RULE_TYPE)
    interval = rule.get(const.DATA_RULE_INTERVAL, 1)

    if rule_type == const.RECURRENCE_DAILY:
        return current + timedelta(days=interval)

    if rule_type == const.RECURRENCE_WEEKLY:
        result = current + timedelta(days=interval * DAYS_PER_WEEK)
        day_of_week = rule.get(const.DATA_RULE_DAY_OF_WEEK)
        if day_of_week is not None:
            result = shift_to_weekday(result, day_of_week)
        return result

    if rule_type == const.RECURRENCE_MONTHLY:
        return add_months(
            current, interval, day=rule.get(const.DATA_RULE_DAY_OF_MONTH)
        )

    if rule_type == const.RECURRENCE_YEARLY:
        return add_years(
            current,
            interval,
            month=rule.get(const.DATA_RULE_MONTH_OF_YEAR),
            day=rule.get(const.DATA_RULE_DAY_OF_MONTH),
        )

    const.LOGGER.warning("Unknown recurrence type: %s", rule_type)
    return current


def first_occurrence(start: date, rule: RecurrenceRuleData) -> date:
    """Return the earliest date on/after `start` that satisfies the anchors.

    Without anchors this is `start` itself.

    Examples:
        weekly day_of_week=3, start Mon 2024-01-01 -> Wed 2024-01-03
        monthly day_of_month=15, start 2024-01-20 -> 2024-02-15
        yearly month_of_year=3 day_of_month=1, start 2024-06-01 -> 2025-03-01
    """
    rule_type = rule.get(const.DATA_RULE_TYPE)
    day_of_week = rule.get(const.DATA_RULE_DAY_OF_WEEK)
    day_of_month = rule.get(const.DATA_RULE_DAY_OF_MONTH)
    month_of_year = rule.get(const.DATA_RULE_MONTH_OF_YEAR)

    if rule_type == const.RECURRENCE_WEEKLY and day_of_week is not None:
        return shift_to_weekday(start, day_of_week)

    if rule_type == const.RECURRENCE_MONTHLY and day_of_month is not None:
        candidate = clamp_day(start.year, start.month, day_of_month)
        if candidate < start:
            candidate = add_months(start, 1, day=day_of_month)
        return candidate

    if rule_type == const.RECURRENCE_YEARLY and (
        day_of_month is not None or month_of_year is not None
    ):
        month = start.month if month_of_year is None else month_of_year
        day = start.day if day_of_month is None else day_of_month
        candidate = clamp_day(start.year, month, day)
        if candidate < start:
            candidate = add_years(start, 1, month=month, day=day)
        return candidate

    return start


def anchor_rule(rule: RecurrenceRuleData, start: date) -> RecurrenceRuleData:
    """Pin implicit monthly/yearly anchors to the series start.

    A monthly series started on Jan 31 without day_of_month keeps landing on
    the 31st (clamped), instead of drifting to the 29th after February.
    """
    anchored: RecurrenceRuleData = {
        "type": rule[const.DATA_RULE_TYPE],
        "interval": rule.get(const.DATA_RULE_INTERVAL, 1),
        "day_of_week": rule.get(const.DATA_RULE_DAY_OF_WEEK),
        "day_of_month": rule.get(const.DATA_RULE_DAY_OF_MONTH),
        "month_of_year": rule.get(const.DATA_RULE_MONTH_OF_YEAR),
    }
    if (
        anchored["type"] in (const.RECURRENCE_MONTHLY, const.RECURRENCE_YEARLY)
        and anchored["day_of_month"] is None
    ):
        anchored["day_of_month"] = start.day
    return anchored


# =============================================================================
# Window enumeration
# =============================================================================


class RecurrenceEngine:
    """Walks the occurrences of one recurring series.

    The cursor starts at the first occurrence on/after `start_date` and is
    advanced with `calculate_next_occurrence` until it passes the requested
    window or the series end date. Each advance must move strictly forward;
    otherwise `SafetyLoopAbort` is raised.

    Daily and weekly cadences have a fixed length once aligned, so the
    cursor is fast-forwarded to the window start instead of stepping from
    `start_date` one occurrence at a time.

    `max_iterations` bounds the cursor positions visited per enumeration,
    which makes it a window-size limit. Monthly and yearly series count every
    occurrence since `start_date`, so with the default of 50,000 a monthly
    series can be enumerated about 4,000 years past its start. A series that
    would run past `date.max` simply ends there.
    """

    FIXED_STEP_TYPES: ClassVar[set[str]] = {
        const.RECURRENCE_DAILY,
        const.RECURRENCE_WEEKLY,
    }

    def __init__(
        self,
        rule: RecurrenceRuleData,
        start_date: date,
        end_date: date | None = None,
        *,
        template_id: str | None = None,
        max_iterations: int = const.MAX_OCCURRENCE_ITERATIONS,
    ) -> None:
        """Initialize the engine for a series.

        Args:
            rule: Validated recurrence rule
            start_date: First possible occurrence
            end_date: Last possible occurrence (inclusive), or None
            template_id: Used for log and error context only
            max_iterations: Ceiling on cursor positions per enumeration
        """
        self._rule = anchor_rule(rule, start_date)
        self._start_date = start_date
        self._end_date = end_date
        self._template_id = template_id
        self._max_iterations = max_iterations
        self._first = first_occurrence(start_date, self._rule)

    @property
    def rule(self) -> RecurrenceRuleData:
        """Return the anchored rule the engine steps with."""
        return self._rule

    @property
    def first(self) -> date:
        """Return the first occurrence of the series."""
        return self._first

    def get_next_occurrence(self, current: date) -> date:
        """Return the occurrence following `current` (ignores end_date)."""
        return calculate_next_occurrence(current, self._rule)

    def iter_occurrences(self, window_start: date, window_end: date) -> Iterator[date]:
        """Yield occurrences in [window_start, window_end], bounded by end_date.

        Raises:
            SafetyLoopAbort: If the rule fails to advance the cursor or the
                iteration ceiling is reached. Dates yielded before the abort
                remain valid.
        """
        if window_end < window_start:
            return
        if self._end_date is not None and self._end_date < self._start_date:
            return

        for cursor in self._iter_cursor(window_start):
            if cursor > window_end:
                return
            if self._end_date is not None and cursor > self._end_date:
                return
            if cursor >= window_start:
                yield cursor

    def get_occurrences(self, window_start: date, window_end: date) -> list[date]:
        """Return occurrences in the window as a list (see iter_occurrences)."""
        return list(self.iter_occurrences(window_start, window_end))

    def get_occurrence_on_or_after(self, after: date) -> date | None:
        """Return the first occurrence on/after `after`, or None if the series ended."""
        if self._end_date is not None and self._end_date < self._start_date:
            return None
        for cursor in self._iter_cursor(after):
            if self._end_date is not None and cursor > self._end_date:
                return None
            if cursor >= after:
                return cursor
        return None

    # =========================================================================
    # Private
    # =========================================================================

    def _fixed_step_days(self) -> int | None:
        """Return the cadence length in days for daily/weekly rules."""
        rule_type = self._rule["type"]
        if rule_type not in self.FIXED_STEP_TYPES:
            return None
        step = self._rule["interval"]
        if rule_type == const.RECURRENCE_WEEKLY:
            step *= DAYS_PER_WEEK
        return step if step > 0 else None

    def _iter_cursor(self, target: date) -> Iterator[date]:
        """Yield cursor positions, starting as close to `target` as possible."""
        cursor = self._first
        step = self._fixed_step_days()
        if step and cursor < target:
            skipped = (target - cursor).days // step
            cursor += timedelta(days=skipped * step)

        iteration = 0
        while True:
            yield cursor
            iteration += 1
            if iteration >= self._max_iterations:
                raise SafetyLoopAbort(cursor, template_id=self._template_id)
            try:
                next_date = self.get_next_occurrence(cursor)
            except (OverflowError, ValueError):
                # Only the end of the calendar ends the series quietly
                if cursor.year + self._rule["interval"] <= MAXYEAR:
                    raise
                return
            if next_date <= cursor:
                raise SafetyLoopAbort(
                    cursor, next_date, template_id=self._template_id
                )
            cursor = next_date


def engine_for_template(
    template: RecurringTemplateData,
    max_iterations: int = const.MAX_OCCURRENCE_ITERATIONS,
) -> RecurrenceEngine | None:
    """Build a RecurrenceEngine from a stored template.

    Returns None when the template has no usable start date.
    """
    start_date = dt_parse_date(template.get(const.DATA_TEMPLATE_START_DATE))
    if start_date is None:
        const.LOGGER.warning(
            "Template %s has no valid start_date",
            template.get(const.DATA_TEMPLATE_INTERNAL_ID),
        )
        return None
    return RecurrenceEngine(
        template[const.DATA_TEMPLATE_RULE],
        start_date,
        dt_parse_date(template.get(const.DATA_TEMPLATE_END_DATE)),
        template_id=template.get(const.DATA_TEMPLATE_INTERNAL_ID),
        max_iterations=max_iterations,
    )


def generate_instances(
    template: RecurringTemplateData,
    window_start: date,
    window_end: date,
    max_iterations: int = const.MAX_OCCURRENCE_ITERATIONS,
) -> list[date]:
    """Enumerate a template's occurrence dates inside a window.

    Stateless: identical inputs always return an equal, freshly built list.
    Inactive templates yield nothing. On SafetyLoopAbort the dates found so
    far are returned and the abort is logged at warning level.

    Windows wider than `max_iterations` cursor positions are truncated this
    way. Callers that need every date of a very wide window should split it
    or raise the ceiling.

    Args:
        template: Stored recurring template
        window_start: First date of the window (inclusive)
        window_end: Last date of the window (inclusive)
        max_iterations: Ceiling on cursor positions visited (see
            RecurrenceEngine)

    Returns:
        Strictly increasing list of occurrence dates.
    """
    if not template.get(const.DATA_TEMPLATE_IS_ACTIVE, True):
        return []

    engine = engine_for_template(template, max_iterations)
    if engine is None:
        return []

    occurrences: list[date] = []
    try:
        for occurrence in engine.iter_occurrences(window_start, window_end):
            occurrences.append(occurrence)
    except SafetyLoopAbort as err:
        const.LOGGER.warning(
            "Stopped generation after %s occurrence(s): %s", len(occurrences), err
        )
    return occurrences


# =============================================================================
# Description
# =============================================================================


def describe_recurrence(rule: RecurrenceRuleData) -> str:
    """Return a human-readable summary of a rule.

    Examples:
        "Daily", "Every 3 days", "Weekly on Monday", "Every 2 weeks on Monday",
        "Monthly on day 15", "Every 3 months", "Yearly on 25 December"
    """
    rule_type = rule.get(const.DATA_RULE_TYPE)
    if rule_type not in const.RECURRENCE_TYPES:
        return const.LABEL_RECURRING_FALLBACK

    interval = rule.get(const.DATA_RULE_INTERVAL, 1)
    if interval == 1:
        base = const.LABEL_RECURRENCE_SINGLE[rule_type]
    else:
        base = f"Every {interval} {const.LABEL_RECURRENCE_UNIT[rule_type]}"

    day_of_week = rule.get(const.DATA_RULE_DAY_OF_WEEK)
    day_of_month = rule.get(const.DATA_RULE_DAY_OF_MONTH)
    month_of_year = rule.get(const.DATA_RULE_MONTH_OF_YEAR)

    if rule_type == const.RECURRENCE_WEEKLY and day_of_week is not None:
        return f"{base} on {const.WEEKDAY_NAMES[day_of_week]}"

    if rule_type == const.RECURRENCE_MONTHLY and day_of_month is not None:
        return f"{base} on day {day_of_month}"

    if rule_type == const.RECURRENCE_YEARLY:
        if month_of_year is not None and day_of_month is not None:
            month_name = const.MONTH_NAMES[month_of_year - 1]
            return f"{base} on {day_of_month} {month_name}"
        if month_of_year is not None:
            return f"{base} in {const.MONTH_NAMES[month_of_year - 1]}"
        if day_of_month is not None:
            return f"{base} on day {day_of_month}"

    return base
