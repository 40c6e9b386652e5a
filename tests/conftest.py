"""Shared fixtures for the recurring task tests.

Stores are the in-memory implementations; nothing touches a real database.
Async tests run under pytest-asyncio (asyncio_mode = "auto").
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import pytest

from recurring_tasks import const, data_builders as db
from recurring_tasks.managers import RecurringTaskManager
from recurring_tasks.store import MemoryInstanceStore, MemoryTemplateStore
from recurring_tasks.type_defs import (
    RecurrenceRuleData,
    RecurringTemplateData,
    TaskInstanceData,
)

OWNER_ID = "user-1"
OTHER_OWNER_ID = "user-2"


def make_rule(rule_type: str, interval: int = 1, **anchors: Any) -> RecurrenceRuleData:
    """Build a complete rule dict (anchors default to None)."""
    return db.build_recurrence_rule(
        {const.DATA_RULE_TYPE: rule_type, const.DATA_RULE_INTERVAL: interval, **anchors}
    )


@pytest.fixture
def make_template() -> Callable[..., RecurringTemplateData]:
    """Return a factory for stored-shape templates (no validation applied)."""

    def _make(
        rule: RecurrenceRuleData,
        start_date: str,
        *,
        end_date: str | None = None,
        is_active: bool = True,
        owner_id: str = OWNER_ID,
        title: str = "Water plants",
        **fields: Any,
    ) -> RecurringTemplateData:
        return db.build_recurring_template(
            {
                const.DATA_TEMPLATE_OWNER_ID: owner_id,
                const.DATA_TEMPLATE_TITLE: title,
                const.DATA_TEMPLATE_RULE: rule,
                const.DATA_TEMPLATE_START_DATE: start_date,
                const.DATA_TEMPLATE_END_DATE: end_date,
                const.DATA_TEMPLATE_IS_ACTIVE: is_active,
                **fields,
            }
        )

    return _make


@pytest.fixture
def make_standalone_task() -> Callable[..., TaskInstanceData]:
    """Return a factory for non-recurring task rows (template_id None)."""

    def _make(
        task_id: str,
        occurrence: date,
        position: int,
        owner_id: str = OWNER_ID,
    ) -> TaskInstanceData:
        return TaskInstanceData(
            internal_id=task_id,
            template_id=None,
            owner_id=owner_id,
            date=occurrence.isoformat(),
            position=position,
            title=f"Standalone {task_id}",
            description="",
            priority=const.DEFAULT_PRIORITY,
            tag="",
            subtasks=[],
            project_id=None,
            status=const.INSTANCE_STATUS_OPEN,
            created_at=f"2024-01-01T00:00:0{position}+00:00",
        )

    return _make


@pytest.fixture
def template_store() -> MemoryTemplateStore:
    """Return an empty in-memory template store."""
    return MemoryTemplateStore()


@pytest.fixture
def instance_store() -> MemoryInstanceStore:
    """Return an empty in-memory instance store."""
    return MemoryInstanceStore()


@pytest.fixture
def manager(
    template_store: MemoryTemplateStore, instance_store: MemoryInstanceStore
) -> RecurringTaskManager:
    """Return a manager wired to the in-memory stores."""
    return RecurringTaskManager(template_store, instance_store)
