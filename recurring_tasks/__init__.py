# File: __init__.py
"""Recurring task scheduling engine for the personal productivity suite.

Computes occurrence dates for recurring task templates and materializes them
as idempotent, non-duplicated task instances.

Key Features:
- Calendar arithmetic with month-end and leap-year clamping.
- Window generation that is safe to re-run over overlapping ranges.
- Async store contracts with in-memory reference implementations.
"""

from __future__ import annotations

from .data_builders import (
    RecurrenceValidationError,
    build_task_instance,
    validate_recurrence_settings,
)
from .engines import (
    RecurrenceEngine,
    SafetyLoopAbort,
    calculate_next_occurrence,
    describe_recurrence,
    generate_instances,
)
from .managers import (
    RecurringGenerationError,
    RecurringTaskManager,
    TemplateNotFoundError,
)
from .store import (
    DuplicateInstanceError,
    MemoryInstanceStore,
    MemoryTemplateStore,
    RecurringTemplateStore,
    StoreUnavailableError,
    TaskInstanceStore,
)

__version__ = "0.1.0"

__all__ = [
    "DuplicateInstanceError",
    "MemoryInstanceStore",
    "MemoryTemplateStore",
    "RecurrenceEngine",
    "RecurrenceValidationError",
    "RecurringGenerationError",
    "RecurringTaskManager",
    "RecurringTemplateStore",
    "SafetyLoopAbort",
    "StoreUnavailableError",
    "TaskInstanceStore",
    "TemplateNotFoundError",
    "build_task_instance",
    "calculate_next_occurrence",
    "describe_recurrence",
    "generate_instances",
    "validate_recurrence_settings",
]
