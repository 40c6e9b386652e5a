"""Manager modules for recurring tasks.

Managers orchestrate workflows between the pure engines and the stores.
They own async I/O, logging and the error policy.
"""

from .recurring_task_manager import (
    RecurringGenerationError,
    RecurringTaskManager,
    TemplateNotFoundError,
)

__all__ = [
    "RecurringGenerationError",
    "RecurringTaskManager",
    "TemplateNotFoundError",
]
