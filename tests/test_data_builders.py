"""Tests for data_builders.py validation and entity construction.

Validation tests freeze the clock because end dates must be in the future.
"""

from datetime import date

from freezegun import freeze_time
import pytest

from recurring_tasks import const, data_builders as db
from tests.conftest import make_rule

# =============================================================================
# validate_recurrence_settings
# =============================================================================


class TestValidateRecurrenceSettings:
    """Rule validation collects every failed check."""

    @pytest.mark.parametrize(
        "rule",
        [
            make_rule(const.RECURRENCE_DAILY),
            make_rule(const.RECURRENCE_DAILY, 999),
            make_rule(const.RECURRENCE_WEEKLY, 2, day_of_week=0),
            make_rule(const.RECURRENCE_WEEKLY, day_of_week=6),
            make_rule(const.RECURRENCE_MONTHLY, day_of_month=31),
            make_rule(const.RECURRENCE_YEARLY, month_of_year=2, day_of_month=29),
            make_rule(const.RECURRENCE_YEARLY, day_of_month=1),
        ],
    )
    def test_valid_rules(self, rule) -> None:
        """Valid rules produce no errors."""
        assert db.validate_recurrence_settings(rule) == {}

    def test_invalid_type_stops_further_checks(self) -> None:
        """An unknown type is reported alone."""
        rule = make_rule("hourly", 0, day_of_week=9)
        assert db.validate_recurrence_settings(rule) == {
            const.DATA_RULE_TYPE: const.ERROR_INVALID_TYPE
        }

    def test_missing_type(self) -> None:
        """A rule without a type is invalid."""
        errors = db.validate_recurrence_settings({const.DATA_RULE_INTERVAL: 1})
        assert errors == {const.DATA_RULE_TYPE: const.ERROR_INVALID_TYPE}

    @pytest.mark.parametrize("interval", [0, -1, 1000, "2", 1.5, True, None])
    def test_invalid_interval(self, interval) -> None:
        """Interval must be an integer in [1, 999]."""
        rule = make_rule(const.RECURRENCE_DAILY)
        rule[const.DATA_RULE_INTERVAL] = interval
        errors = db.validate_recurrence_settings(rule)
        assert errors == {
            const.DATA_RULE_INTERVAL: "Interval must be between 1 and 999",
        }

    def test_custom_max_interval(self) -> None:
        """The interval ceiling is configurable."""
        rule = make_rule(const.RECURRENCE_DAILY, 50)
        errors = db.validate_recurrence_settings(rule, max_interval=30)
        assert errors[const.DATA_RULE_INTERVAL] == "Interval must be between 1 and 30"

    @pytest.mark.parametrize(
        ("rule", "field", "reason"),
        [
            (
                make_rule(const.RECURRENCE_WEEKLY, day_of_week=7),
                const.DATA_RULE_DAY_OF_WEEK,
                const.ERROR_INVALID_DAY_OF_WEEK,
            ),
            (
                make_rule(const.RECURRENCE_WEEKLY, day_of_week=-1),
                const.DATA_RULE_DAY_OF_WEEK,
                const.ERROR_INVALID_DAY_OF_WEEK,
            ),
            (
                make_rule(const.RECURRENCE_MONTHLY, day_of_month=0),
                const.DATA_RULE_DAY_OF_MONTH,
                const.ERROR_INVALID_DAY_OF_MONTH,
            ),
            (
                make_rule(const.RECURRENCE_MONTHLY, day_of_month=32),
                const.DATA_RULE_DAY_OF_MONTH,
                const.ERROR_INVALID_DAY_OF_MONTH,
            ),
            (
                make_rule(const.RECURRENCE_YEARLY, month_of_year=13),
                const.DATA_RULE_MONTH_OF_YEAR,
                const.ERROR_INVALID_MONTH_OF_YEAR,
            ),
        ],
    )
    def test_anchor_out_of_range(self, rule, field: str, reason: str) -> None:
        """Anchors outside their range are rejected."""
        assert db.validate_recurrence_settings(rule) == {field: reason}

    @pytest.mark.parametrize(
        ("rule", "field"),
        [
            (
                make_rule(const.RECURRENCE_MONTHLY, day_of_week=1),
                const.DATA_RULE_DAY_OF_WEEK,
            ),
            (
                make_rule(const.RECURRENCE_DAILY, day_of_month=1),
                const.DATA_RULE_DAY_OF_MONTH,
            ),
            (
                make_rule(const.RECURRENCE_MONTHLY, month_of_year=3),
                const.DATA_RULE_MONTH_OF_YEAR,
            ),
        ],
    )
    def test_anchor_not_applicable(self, rule, field: str) -> None:
        """Anchors on a type they do not apply to are rejected."""
        errors = db.validate_recurrence_settings(rule)
        assert list(errors) == [field]
        assert "does not apply to" in errors[field]

    def test_collects_multiple_errors(self) -> None:
        """Interval and anchor errors are reported together."""
        rule = make_rule(const.RECURRENCE_WEEKLY, 0, day_of_week=9)
        errors = db.validate_recurrence_settings(rule)
        assert set(errors) == {const.DATA_RULE_INTERVAL, const.DATA_RULE_DAY_OF_WEEK}

    @freeze_time("2024-06-15")
    def test_end_date_today_rejected(self) -> None:
        """end_date must be strictly after today."""
        rule = make_rule(const.RECURRENCE_DAILY)
        assert db.validate_recurrence_settings(rule, "2024-06-15") == {
            const.DATA_TEMPLATE_END_DATE: const.ERROR_END_DATE_NOT_FUTURE
        }

    @freeze_time("2024-06-15")
    def test_end_date_tomorrow_accepted(self) -> None:
        """Tomorrow is a valid end date."""
        rule = make_rule(const.RECURRENCE_DAILY)
        assert db.validate_recurrence_settings(rule, "2024-06-16") == {}
        assert db.validate_recurrence_settings(rule, date(2024, 6, 16)) == {}

    def test_end_date_unparseable(self) -> None:
        """Garbage end dates are reported as invalid."""
        rule = make_rule(const.RECURRENCE_DAILY)
        assert db.validate_recurrence_settings(rule, "someday") == {
            const.DATA_TEMPLATE_END_DATE: const.ERROR_INVALID_END_DATE
        }

    def test_explicit_today(self) -> None:
        """The reference date can be passed in."""
        rule = make_rule(const.RECURRENCE_DAILY)
        errors = db.validate_recurrence_settings(
            rule, "2024-01-01", today=date(2024, 1, 1)
        )
        assert errors == {const.DATA_TEMPLATE_END_DATE: const.ERROR_END_DATE_NOT_FUTURE}
        assert (
            db.validate_recurrence_settings(rule, "2024-01-02", today=date(2024, 1, 1))
            == {}
        )


class TestRecurrenceValidationError:
    """Error object exposes every reason."""

    def test_errors_and_reason(self) -> None:
        """errors holds all failures; reason is the first one."""
        err = db.RecurrenceValidationError(
            {
                "interval": "Interval must be between 1 and 999",
                "title": "Title is required",
            }
        )
        assert err.errors["title"] == "Title is required"
        assert err.reason == "Interval must be between 1 and 999"
        assert "interval" in str(err)


# =============================================================================
# Templates
# =============================================================================


class TestValidateTemplateData:
    """Template-level checks on create and update."""

    def test_create_requires_core_fields(self) -> None:
        """Owner, title, start date and rule are required on create."""
        errors = db.validate_template_data({})
        assert set(errors) == {
            const.DATA_TEMPLATE_OWNER_ID,
            const.DATA_TEMPLATE_TITLE,
            const.DATA_TEMPLATE_START_DATE,
            const.DATA_RULE_TYPE,
        }

    def test_create_valid(self) -> None:
        """A complete template passes."""
        errors = db.validate_template_data(
            {
                const.DATA_TEMPLATE_OWNER_ID: "user-1",
                const.DATA_TEMPLATE_TITLE: "Pay rent",
                const.DATA_TEMPLATE_START_DATE: "2024-01-01",
                const.DATA_TEMPLATE_RULE: make_rule(const.RECURRENCE_MONTHLY),
            }
        )
        assert errors == {}

    def test_blank_title_rejected(self) -> None:
        """Whitespace-only titles are rejected."""
        errors = db.validate_template_data(
            {const.DATA_TEMPLATE_TITLE: "   "}, is_update=True
        )
        assert errors == {const.DATA_TEMPLATE_TITLE: const.ERROR_TITLE_REQUIRED}

    def test_update_checks_only_present_fields(self) -> None:
        """An empty update is valid."""
        assert db.validate_template_data({}, is_update=True) == {}

    def test_update_end_date_in_past(self) -> None:
        """Changing end_date to the past is rejected."""
        errors = db.validate_template_data(
            {const.DATA_TEMPLATE_END_DATE: "2024-01-01"},
            is_update=True,
            today=date(2024, 6, 1),
        )
        assert errors == {const.DATA_TEMPLATE_END_DATE: const.ERROR_END_DATE_NOT_FUTURE}

    def test_clearing_end_date_allowed(self) -> None:
        """end_date=None removes the end of the series."""
        errors = db.validate_template_data(
            {const.DATA_TEMPLATE_END_DATE: None}, is_update=True
        )
        assert errors == {}


class TestBuildRecurringTemplate:
    """Template construction and defaults."""

    @freeze_time("2024-01-01 09:00:00")
    def test_create_defaults(self) -> None:
        """Missing task fields get their defaults."""
        template = db.build_recurring_template(
            {
                const.DATA_TEMPLATE_OWNER_ID: "user-1",
                const.DATA_TEMPLATE_TITLE: "  Stretch  ",
                const.DATA_TEMPLATE_RULE: make_rule(const.RECURRENCE_DAILY),
                const.DATA_TEMPLATE_START_DATE: "03/15/2024",
            }
        )
        assert template[const.DATA_TEMPLATE_INTERNAL_ID]
        assert template[const.DATA_TEMPLATE_TITLE] == "Stretch"
        assert template[const.DATA_TEMPLATE_DESCRIPTION] == const.DEFAULT_DESCRIPTION
        assert template[const.DATA_TEMPLATE_PRIORITY] == const.DEFAULT_PRIORITY
        assert template[const.DATA_TEMPLATE_TAG] == const.DEFAULT_TAG
        assert template[const.DATA_TEMPLATE_SUBTASKS] == []
        assert template[const.DATA_TEMPLATE_PROJECT_ID] is None
        assert template[const.DATA_TEMPLATE_START_DATE] == "2024-03-15"
        assert template[const.DATA_TEMPLATE_END_DATE] is None
        assert template[const.DATA_TEMPLATE_IS_ACTIVE] is True
        assert template[const.DATA_TEMPLATE_NEXT_OCCURRENCE] is None
        assert template[const.DATA_TEMPLATE_CREATED_AT] == "2024-01-01T09:00:00+00:00"
        assert template[const.DATA_TEMPLATE_UPDATED_AT] == "2024-01-01T09:00:00+00:00"

    def test_subtasks_normalized(self) -> None:
        """String subtasks become dicts with generated ids."""
        template = db.build_recurring_template(
            {
                const.DATA_TEMPLATE_OWNER_ID: "user-1",
                const.DATA_TEMPLATE_TITLE: "Pack",
                const.DATA_TEMPLATE_RULE: make_rule(const.RECURRENCE_WEEKLY),
                const.DATA_TEMPLATE_START_DATE: "2024-01-01",
                const.DATA_TEMPLATE_SUBTASKS: [
                    "Passport",
                    {"id": "s2", "text": "Charger", "done": True},
                ],
            }
        )
        first, second = template[const.DATA_TEMPLATE_SUBTASKS]
        assert first["text"] == "Passport"
        assert first["id"]
        assert first["done"] is False
        assert second == {"id": "s2", "text": "Charger", "done": True}

    def test_update_merges_partial_rule(self, make_template) -> None:
        """A partial rule keeps the existing type and anchors."""
        with freeze_time("2024-01-01"):
            existing = make_template(
                make_rule(const.RECURRENCE_MONTHLY, day_of_month=15),
                "2024-01-01",
                description="Monthly review",
            )
        with freeze_time("2024-02-01"):
            updated = db.build_recurring_template(
                {const.DATA_TEMPLATE_RULE: {const.DATA_RULE_INTERVAL: 2}},
                existing=existing,
            )
        assert updated[const.DATA_TEMPLATE_INTERNAL_ID] == existing["internal_id"]
        assert updated[const.DATA_TEMPLATE_CREATED_AT] == existing["created_at"]
        assert updated[const.DATA_TEMPLATE_UPDATED_AT] != existing["updated_at"]
        assert updated[const.DATA_TEMPLATE_DESCRIPTION] == "Monthly review"
        assert updated[const.DATA_TEMPLATE_RULE] == make_rule(
            const.RECURRENCE_MONTHLY, 2, day_of_month=15
        )


# =============================================================================
# Task instances
# =============================================================================


class TestBuildTaskInstance:
    """Template -> instance field copying."""

    def test_copies_every_task_field(self, make_template) -> None:
        """Each task field is carried over and the instance starts open."""
        template = make_template(
            make_rule(const.RECURRENCE_DAILY),
            "2024-01-01",
            description="Front and back",
            priority="high",
            tag="home",
            project_id="proj-9",
            subtasks=[{"id": "s1", "text": "Fill can", "done": True}],
        )
        instance = db.build_task_instance(template, date(2024, 1, 5), 2)

        assert instance[const.DATA_INSTANCE_INTERNAL_ID] != template["internal_id"]
        assert instance[const.DATA_INSTANCE_TEMPLATE_ID] == template["internal_id"]
        assert instance[const.DATA_INSTANCE_OWNER_ID] == "user-1"
        assert instance[const.DATA_INSTANCE_DATE] == "2024-01-05"
        assert instance[const.DATA_INSTANCE_POSITION] == 2
        assert instance[const.DATA_INSTANCE_TITLE] == "Water plants"
        assert instance[const.DATA_INSTANCE_DESCRIPTION] == "Front and back"
        assert instance[const.DATA_INSTANCE_PRIORITY] == "high"
        assert instance[const.DATA_INSTANCE_TAG] == "home"
        assert instance[const.DATA_INSTANCE_PROJECT_ID] == "proj-9"
        assert instance[const.DATA_INSTANCE_SUBTASKS] == [
            {"id": "s1", "text": "Fill can", "done": True}
        ]
        assert instance[const.DATA_INSTANCE_STATUS] == const.INSTANCE_STATUS_OPEN

    def test_subtasks_are_independent(self, make_template) -> None:
        """Editing either side's subtasks never affects the other."""
        template = make_template(
            make_rule(const.RECURRENCE_DAILY),
            "2024-01-01",
            subtasks=[{"id": "s1", "text": "Fill can", "done": False}],
        )
        instance = db.build_task_instance(template, date(2024, 1, 1), 0)

        template[const.DATA_TEMPLATE_SUBTASKS][0]["text"] = "Changed"
        template[const.DATA_TEMPLATE_SUBTASKS].append(
            {"id": "s2", "text": "New", "done": False}
        )
        assert instance[const.DATA_INSTANCE_SUBTASKS] == [
            {"id": "s1", "text": "Fill can", "done": False}
        ]

        instance[const.DATA_INSTANCE_SUBTASKS][0]["done"] = True
        assert template[const.DATA_TEMPLATE_SUBTASKS][0]["done"] is False
