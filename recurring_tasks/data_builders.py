"""Entity building and validation helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Recurrence rule validation
- Recurring template field defaults and structure
- Template -> task instance field copying

### Build Functions
Each entity type has a `build_<entity>()` function that:
- Takes user_input with DATA_* keys (create) plus `existing` (update)
- Generates internal_id (UUID) for new entities
- Sets timestamps (created_at, updated_at)
- Applies field defaults
- Returns a complete entity dict ready for storage

### Validation Functions
`validate_*()` functions return a dict of errors ({field: reason}); an empty
dict means validation passed. Callers turn a non-empty result into
RecurrenceValidationError before any store I/O happens.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any
import uuid

from . import const
from .type_defs import (
    RecurrenceRuleData,
    RecurringTemplateData,
    SubtaskData,
    TaskInstanceData,
)
from .utils.dt_utils import dt_format_date, dt_now_iso, dt_parse_date, dt_today

_RULE_ANCHOR_LIMITS: dict[str, tuple[int, int, str]] = {
    const.DATA_RULE_DAY_OF_WEEK: (
        const.MIN_DAY_OF_WEEK,
        const.MAX_DAY_OF_WEEK,
        const.ERROR_INVALID_DAY_OF_WEEK,
    ),
    const.DATA_RULE_DAY_OF_MONTH: (
        const.MIN_DAY_OF_MONTH,
        const.MAX_DAY_OF_MONTH,
        const.ERROR_INVALID_DAY_OF_MONTH,
    ),
    const.DATA_RULE_MONTH_OF_YEAR: (
        const.MIN_MONTH_OF_YEAR,
        const.MAX_MONTH_OF_YEAR,
        const.ERROR_INVALID_MONTH_OF_YEAR,
    ),
}


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class RecurrenceValidationError(Exception):
    """Raised when a rule or template fails validation, before any generation.

    Attributes:
        errors: {field: reason} for every failed check
    """

    def __init__(self, errors: dict[str, str]) -> None:
        """Initialize RecurrenceValidationError.

        Args:
            errors: Non-empty dict of field -> human-readable reason
        """
        self.errors = dict(errors)
        details = "; ".join(f"{field}: {reason}" for field, reason in errors.items())
        super().__init__(f"Invalid recurring task settings ({details})")

    @property
    def reason(self) -> str:
        """Return the first failure reason (for single-line UI messages)."""
        return next(iter(self.errors.values()), "")


def _is_int(value: Any) -> bool:
    """Return True for real integers (bool excluded)."""
    return isinstance(value, int) and not isinstance(value, bool)


# ==============================================================================
# RECURRENCE RULES
# ==============================================================================


def validate_recurrence_settings(
    rule: Mapping[str, Any],
    end_date: str | date | None = None,
    *,
    today: date | None = None,
    max_interval: int = const.MAX_INTERVAL,
) -> dict[str, str]:
    """Validate a recurrence rule (and optional series end date).

    Validation Rules:
        1. type is one of daily/weekly/monthly/yearly
        2. interval is an integer in [1, max_interval]
        3. day_of_week in [0, 6], weekly only
        4. day_of_month in [1, 31], monthly/yearly only
        5. month_of_year in [1, 12], yearly only
        6. end_date, if present, parses and is strictly after today

    Args:
        rule: Rule data with DATA_RULE_* keys
        end_date: Optional series end date (ISO string or date)
        today: Validation date (defaults to the current date)
        max_interval: Upper bound for interval

    Returns:
        Dict of errors: {field: reason}. Empty dict means validation passed.
    """
    errors: dict[str, str] = {}

    # === 1. Type ===
    rule_type = rule.get(const.DATA_RULE_TYPE)
    if rule_type not in const.RECURRENCE_TYPES:
        errors[const.DATA_RULE_TYPE] = const.ERROR_INVALID_TYPE
        # Anchor applicability depends on the type; nothing more to check
        return errors

    # === 2. Interval ===
    interval = rule.get(const.DATA_RULE_INTERVAL, 1)
    if not _is_int(interval) or not const.MIN_INTERVAL <= interval <= max_interval:
        errors[const.DATA_RULE_INTERVAL] = const.ERROR_INVALID_INTERVAL.format(
            min=const.MIN_INTERVAL, max=max_interval
        )

    # === 3-5. Anchors ===
    for field, (low, high, reason) in _RULE_ANCHOR_LIMITS.items():
        value = rule.get(field)
        if value is None:
            continue
        if rule_type not in const.RECURRENCE_ANCHOR_TYPES[field]:
            errors[field] = const.ERROR_ANCHOR_NOT_APPLICABLE.format(
                field=field, type=rule_type
            )
        elif not _is_int(value) or not low <= value <= high:
            errors[field] = reason

    # === 6. End date ===
    errors.update(_validate_end_date(end_date, today))

    return errors


def _validate_end_date(
    end_date: str | date | None, today: date | None
) -> dict[str, str]:
    """Check that an optional end date parses and is strictly in the future."""
    if end_date is None or end_date == "":
        return {}
    parsed_end = dt_parse_date(end_date)
    if parsed_end is None:
        return {const.DATA_TEMPLATE_END_DATE: const.ERROR_INVALID_END_DATE}
    if parsed_end <= (today or dt_today()):
        return {const.DATA_TEMPLATE_END_DATE: const.ERROR_END_DATE_NOT_FUTURE}
    return {}


def build_recurrence_rule(
    user_input: Mapping[str, Any],
    existing: RecurrenceRuleData | None = None,
) -> RecurrenceRuleData:
    """Build a complete rule for create (existing=None) or update.

    Missing anchors become None; a missing interval defaults to 1. Does not
    validate - call validate_recurrence_settings() on the result.
    """

    def get_field(data_key: str, default: Any) -> Any:
        """Get field value: user_input > existing > default."""
        if data_key in user_input:
            return user_input[data_key]
        if existing is not None:
            return existing.get(data_key, default)
        return default

    return RecurrenceRuleData(
        type=get_field(const.DATA_RULE_TYPE, None),
        interval=get_field(const.DATA_RULE_INTERVAL, 1),
        day_of_week=get_field(const.DATA_RULE_DAY_OF_WEEK, None),
        day_of_month=get_field(const.DATA_RULE_DAY_OF_MONTH, None),
        month_of_year=get_field(const.DATA_RULE_MONTH_OF_YEAR, None),
    )


# ==============================================================================
# RECURRING TEMPLATES
# ==============================================================================


def _normalize_subtasks(value: Any) -> list[SubtaskData]:
    """Normalize a subtask list, generating ids for entries without one."""
    if not value:
        return []
    subtasks: list[SubtaskData] = []
    for entry in value:
        if isinstance(entry, str):
            entry = {const.DATA_SUBTASK_TEXT: entry}
        subtasks.append(
            SubtaskData(
                id=str(entry.get(const.DATA_SUBTASK_ID) or uuid.uuid4()),
                text=str(entry.get(const.DATA_SUBTASK_TEXT, "")),
                done=bool(entry.get(const.DATA_SUBTASK_DONE, False)),
            )
        )
    return subtasks


def validate_template_data(
    data: Mapping[str, Any],
    *,
    is_update: bool = False,
    today: date | None = None,
    max_interval: int = const.MAX_INTERVAL,
) -> dict[str, str]:
    """Validate recurring template business rules.

    On update, only fields present in `data` are checked; the end date is
    only required to be in the future when it is being changed.

    Returns:
        Dict of errors: {field: reason}. Empty dict means validation passed.
    """
    errors: dict[str, str] = {}

    if not is_update and not str(data.get(const.DATA_TEMPLATE_OWNER_ID) or "").strip():
        errors[const.DATA_TEMPLATE_OWNER_ID] = const.ERROR_OWNER_REQUIRED

    if not is_update or const.DATA_TEMPLATE_TITLE in data:
        if not str(data.get(const.DATA_TEMPLATE_TITLE) or "").strip():
            errors[const.DATA_TEMPLATE_TITLE] = const.ERROR_TITLE_REQUIRED

    if not is_update or const.DATA_TEMPLATE_START_DATE in data:
        if dt_parse_date(data.get(const.DATA_TEMPLATE_START_DATE)) is None:
            errors[const.DATA_TEMPLATE_START_DATE] = const.ERROR_INVALID_START_DATE

    if not is_update or const.DATA_TEMPLATE_RULE in data:
        errors.update(
            validate_recurrence_settings(
                data.get(const.DATA_TEMPLATE_RULE) or {},
                max_interval=max_interval,
            )
        )

    if const.DATA_TEMPLATE_END_DATE in data:
        errors.update(_validate_end_date(data[const.DATA_TEMPLATE_END_DATE], today))

    return errors


def build_recurring_template(
    user_input: Mapping[str, Any],
    existing: RecurringTemplateData | None = None,
) -> RecurringTemplateData:
    """Build recurring template data for create or update operations.

    One function handles both create (existing=None) and update.

    Args:
        user_input: Data with DATA_TEMPLATE_* keys (may have missing fields).
            The DATA_TEMPLATE_RULE entry may be partial on update.
        existing: None for create, existing template for update

    Returns:
        Complete RecurringTemplateData ready for storage. next_occurrence is
        left as-is (None on create); the manager computes it.
    """
    now_iso = dt_now_iso()

    def get_field(data_key: str, default: Any) -> Any:
        """Get field value: user_input > existing > default."""
        if data_key in user_input:
            return user_input[data_key]
        if existing is not None:
            return existing.get(data_key, default)
        return default

    if existing is None:
        internal_id = str(uuid.uuid4())
        created_at = now_iso
    else:
        internal_id = existing[const.DATA_TEMPLATE_INTERNAL_ID]
        created_at = existing.get(const.DATA_TEMPLATE_CREATED_AT, now_iso)

    rule = build_recurrence_rule(
        user_input.get(const.DATA_TEMPLATE_RULE) or {},
        existing.get(const.DATA_TEMPLATE_RULE) if existing is not None else None,
    )

    raw_project = get_field(const.DATA_TEMPLATE_PROJECT_ID, None)

    return RecurringTemplateData(
        internal_id=internal_id,
        owner_id=str(get_field(const.DATA_TEMPLATE_OWNER_ID, "")),
        title=str(get_field(const.DATA_TEMPLATE_TITLE, "")).strip(),
        description=str(
            get_field(const.DATA_TEMPLATE_DESCRIPTION, None)
            or const.DEFAULT_DESCRIPTION
        ),
        priority=str(
            get_field(const.DATA_TEMPLATE_PRIORITY, None) or const.DEFAULT_PRIORITY
        ),
        tag=str(get_field(const.DATA_TEMPLATE_TAG, None) or const.DEFAULT_TAG),
        subtasks=_normalize_subtasks(get_field(const.DATA_TEMPLATE_SUBTASKS, [])),
        project_id=str(raw_project) if raw_project else None,
        rule=rule,
        start_date=dt_format_date(
            dt_parse_date(get_field(const.DATA_TEMPLATE_START_DATE, None))
        )
        or "",
        end_date=dt_format_date(
            dt_parse_date(get_field(const.DATA_TEMPLATE_END_DATE, None))
        ),
        is_active=bool(get_field(const.DATA_TEMPLATE_IS_ACTIVE, True)),
        next_occurrence=get_field(const.DATA_TEMPLATE_NEXT_OCCURRENCE, None),
        created_at=created_at,
        updated_at=now_iso,
    )


# ==============================================================================
# TASK INSTANCES
# ==============================================================================


def build_task_instance(
    template: RecurringTemplateData,
    occurrence: date,
    position: int,
) -> TaskInstanceData:
    """Build a new task instance for one occurrence of a template.

    Every propagated field is listed explicitly. Task fields are snapshots:
    subtasks are copied entry by entry so later template edits never reach
    the instance.
    """
    return TaskInstanceData(
        internal_id=str(uuid.uuid4()),
        template_id=template[const.DATA_TEMPLATE_INTERNAL_ID],
        owner_id=template[const.DATA_TEMPLATE_OWNER_ID],
        date=occurrence.isoformat(),
        position=position,
        title=template[const.DATA_TEMPLATE_TITLE],
        description=template.get(
            const.DATA_TEMPLATE_DESCRIPTION, const.DEFAULT_DESCRIPTION
        ),
        priority=template.get(const.DATA_TEMPLATE_PRIORITY, const.DEFAULT_PRIORITY),
        tag=template.get(const.DATA_TEMPLATE_TAG, const.DEFAULT_TAG),
        subtasks=[
            SubtaskData(
                id=subtask[const.DATA_SUBTASK_ID],
                text=subtask[const.DATA_SUBTASK_TEXT],
                done=bool(subtask.get(const.DATA_SUBTASK_DONE, False)),
            )
            for subtask in template.get(const.DATA_TEMPLATE_SUBTASKS, [])
        ],
        project_id=template.get(const.DATA_TEMPLATE_PROJECT_ID),
        status=const.INSTANCE_STATUS_OPEN,
        created_at=dt_now_iso(),
    )
