"""Type definitions for recurring task data structures.

Entities are stored as plain dicts; TypedDict gives them static structure
without a runtime cost. Keys match the DATA_* constants in const.py.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime checks (.get() defaults,
validation) live in data_builders.py and the engines.

IMPORTANT: This file must NOT import from managers or engines to avoid
circular dependencies.
"""

from typing import Literal, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

TemplateId = str  # UUID string
InstanceId = str  # UUID string
OwnerId = str
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"

RecurrenceType = Literal["daily", "weekly", "monthly", "yearly"]


# =============================================================================
# Recurrence
# =============================================================================


class RecurrenceRuleData(TypedDict):
    """How often and on which calendar anchors a template repeats.

    Anchors are None when unset:
    - day_of_week: 0=Sunday ... 6=Saturday (weekly only)
    - day_of_month: 1-31 (monthly/yearly)
    - month_of_year: 1-12 (yearly only)
    """

    type: RecurrenceType
    interval: int
    day_of_week: int | None
    day_of_month: int | None
    month_of_year: int | None


class SubtaskData(TypedDict):
    """Checklist entry copied from template to instance."""

    id: str
    text: str
    done: bool


# =============================================================================
# Entities
# =============================================================================


class RecurringTemplateData(TypedDict):
    """Recurring task definition from which instances are materialized."""

    internal_id: TemplateId
    owner_id: OwnerId
    title: str
    description: str
    priority: str
    tag: str
    subtasks: list[SubtaskData]
    project_id: str | None
    rule: RecurrenceRuleData
    start_date: ISODate
    end_date: ISODate | None
    is_active: bool
    next_occurrence: ISODate | None
    created_at: ISODatetime
    updated_at: ISODatetime


class TaskInstanceData(TypedDict):
    """Concrete, dated task row.

    template_id is None for standalone (non-recurring) tasks. Task fields are
    a snapshot of the template at creation time and are independent afterwards.
    """

    internal_id: InstanceId
    template_id: TemplateId | None
    owner_id: OwnerId
    date: ISODate
    position: int
    title: str
    description: str
    priority: str
    tag: str
    subtasks: list[SubtaskData]
    project_id: str | None
    status: str
    created_at: ISODatetime


# =============================================================================
# Configuration
# =============================================================================


class ScheduleOptions(TypedDict, total=False):
    """Tunables for RecurringTaskManager (merged over const.DEFAULT_OPTIONS)."""

    generation_horizon_days: int
    max_occurrence_iterations: int
    max_interval: int
