# File: store.py
"""Storage contracts for recurring templates and task instances.

The relational storage engine is an external collaborator. This module
defines what the engine needs from it as abstract async interfaces, plus
in-memory implementations used by tests and embedders without a database.

STORAGE CONTRACT:
    A TaskInstanceStore MUST enforce uniqueness of (template_id, date) for
    instances whose template_id is not None, and report a violation by
    raising DuplicateInstanceError for that key. Concurrent materialize()
    calls rely on this to stay duplicate-free.

    Any I/O failure (connection lost, timeout) MUST be raised as
    StoreUnavailableError. Timeouts are owned by the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
from datetime import date
from typing import TYPE_CHECKING

from . import const

if TYPE_CHECKING:
    from .type_defs import RecurringTemplateData, TaskInstanceData


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class StoreUnavailableError(Exception):
    """Raised by a store when it cannot complete an I/O operation."""


class DuplicateInstanceError(Exception):
    """Raised on a (template_id, date) uniqueness violation.

    Attributes:
        template_id: Template of the conflicting row, if the store reported it
        date: ISO date of the conflicting row, if the store reported it
    """

    def __init__(
        self,
        template_id: str | None = None,
        date: str | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize DuplicateInstanceError.

        Args:
            template_id: Template id from the violated constraint, if known
            date: ISO date from the violated constraint, if known
            message: Optional override for the error message
        """
        self.template_id = template_id
        self.date = date
        super().__init__(
            message
            or f"Instance already exists for template {template_id} on {date}"
        )

    def matches(self, template_id: str, occurrence: date | str) -> bool:
        """Return True when the violation is for exactly this key."""
        if self.template_id is None or self.date is None:
            return False
        if isinstance(occurrence, date):
            occurrence = occurrence.isoformat()
        return self.template_id == template_id and self.date == occurrence


# ==============================================================================
# CONTRACTS
# ==============================================================================


class RecurringTemplateStore(ABC):
    """CRUD persistence for recurring templates, keyed by owner."""

    @abstractmethod
    async def async_get(self, template_id: str) -> RecurringTemplateData | None:
        """Return a template by id, or None."""

    @abstractmethod
    async def async_list(
        self, owner_id: str, include_inactive: bool = False
    ) -> list[RecurringTemplateData]:
        """Return an owner's templates, newest first."""

    @abstractmethod
    async def async_insert(
        self, template: RecurringTemplateData
    ) -> RecurringTemplateData:
        """Store a new template and return the stored row."""

    @abstractmethod
    async def async_update(
        self, template: RecurringTemplateData
    ) -> RecurringTemplateData:
        """Replace an existing template and return the stored row."""

    @abstractmethod
    async def async_delete(self, template_id: str) -> None:
        """Delete a template (instances are deleted by the caller first)."""


class TaskInstanceStore(ABC):
    """Persistence for dated task instances."""

    @abstractmethod
    async def async_find_instance(
        self, template_id: str, occurrence: date
    ) -> TaskInstanceData | None:
        """Return the instance for (template_id, date), or None."""

    @abstractmethod
    async def async_get_instance(self, instance_id: str) -> TaskInstanceData | None:
        """Return an instance by id, or None."""

    @abstractmethod
    async def async_insert(self, instance: TaskInstanceData) -> TaskInstanceData:
        """Insert an instance.

        Raises:
            DuplicateInstanceError: (template_id, date) already exists.
            StoreUnavailableError: The store could not be reached.
        """

    @abstractmethod
    async def async_list_instances_on_date(
        self, owner_id: str, occurrence: date
    ) -> list[TaskInstanceData]:
        """Return an owner's instances on a date (recurring and standalone)."""

    @abstractmethod
    async def async_list_template_instances(
        self, template_id: str
    ) -> list[TaskInstanceData]:
        """Return all instances materialized from a template."""

    @abstractmethod
    async def async_set_position(self, instance_id: str, position: int) -> None:
        """Move an instance to a new position within its date."""

    @abstractmethod
    async def async_delete_instance(self, instance_id: str) -> None:
        """Delete a single instance."""

    @abstractmethod
    async def async_delete_template_instances(self, template_id: str) -> int:
        """Delete every instance of a template and return how many were removed."""

    async def async_count_instances_on_date(
        self, owner_id: str, occurrence: date
    ) -> int:
        """Return how many instances an owner has on a date."""
        return len(await self.async_list_instances_on_date(owner_id, occurrence))

    async def async_count_template_instances(self, template_id: str) -> int:
        """Return how many instances a template has."""
        return len(await self.async_list_template_instances(template_id))


# ==============================================================================
# IN-MEMORY IMPLEMENTATIONS
# ==============================================================================


class MemoryTemplateStore(RecurringTemplateStore):
    """Dict-backed template store.

    Rows are deep-copied in and out so callers never share state with the
    store, matching how a database round-trip behaves.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._templates: dict[str, RecurringTemplateData] = {}

    @property
    def data(self) -> dict[str, RecurringTemplateData]:
        """Retrieve the in-memory rows (for inspection in tests)."""
        return self._templates

    async def async_get(self, template_id: str) -> RecurringTemplateData | None:
        """Return a template by id, or None."""
        template = self._templates.get(template_id)
        return copy.deepcopy(template) if template is not None else None

    async def async_list(
        self, owner_id: str, include_inactive: bool = False
    ) -> list[RecurringTemplateData]:
        """Return an owner's templates, newest first."""
        templates = [
            copy.deepcopy(template)
            for template in self._templates.values()
            if template[const.DATA_TEMPLATE_OWNER_ID] == owner_id
            and (include_inactive or template[const.DATA_TEMPLATE_IS_ACTIVE])
        ]
        templates.sort(key=lambda t: t[const.DATA_TEMPLATE_CREATED_AT], reverse=True)
        return templates

    async def async_insert(
        self, template: RecurringTemplateData
    ) -> RecurringTemplateData:
        """Store a new template and return the stored row."""
        template_id = template[const.DATA_TEMPLATE_INTERNAL_ID]
        self._templates[template_id] = copy.deepcopy(template)
        const.LOGGER.debug("MemoryTemplateStore: Inserted template %s", template_id)
        return copy.deepcopy(template)

    async def async_update(
        self, template: RecurringTemplateData
    ) -> RecurringTemplateData:
        """Replace an existing template and return the stored row."""
        template_id = template[const.DATA_TEMPLATE_INTERNAL_ID]
        if template_id not in self._templates:
            raise KeyError(template_id)
        self._templates[template_id] = copy.deepcopy(template)
        return copy.deepcopy(template)

    async def async_delete(self, template_id: str) -> None:
        """Delete a template if present."""
        self._templates.pop(template_id, None)


class MemoryInstanceStore(TaskInstanceStore):
    """Dict-backed instance store enforcing the (template_id, date) constraint."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._instances: dict[str, TaskInstanceData] = {}
        # Unique index: (template_id, ISO date) -> instance id
        self._template_date_index: dict[tuple[str, str], str] = {}

    @property
    def data(self) -> dict[str, TaskInstanceData]:
        """Retrieve the in-memory rows (for inspection in tests)."""
        return self._instances

    async def async_find_instance(
        self, template_id: str, occurrence: date
    ) -> TaskInstanceData | None:
        """Return the instance for (template_id, date), or None."""
        instance_id = self._template_date_index.get(
            (template_id, occurrence.isoformat())
        )
        if instance_id is None:
            return None
        return copy.deepcopy(self._instances[instance_id])

    async def async_get_instance(self, instance_id: str) -> TaskInstanceData | None:
        """Return an instance by id, or None."""
        instance = self._instances.get(instance_id)
        return copy.deepcopy(instance) if instance is not None else None

    async def async_insert(self, instance: TaskInstanceData) -> TaskInstanceData:
        """Insert an instance, enforcing the unique (template_id, date) index."""
        template_id = instance.get(const.DATA_INSTANCE_TEMPLATE_ID)
        iso_date = instance[const.DATA_INSTANCE_DATE]
        if template_id is not None:
            key = (template_id, iso_date)
            if key in self._template_date_index:
                raise DuplicateInstanceError(template_id, iso_date)
            self._template_date_index[key] = instance[const.DATA_INSTANCE_INTERNAL_ID]
        self._instances[instance[const.DATA_INSTANCE_INTERNAL_ID]] = copy.deepcopy(
            instance
        )
        return copy.deepcopy(instance)

    async def async_list_instances_on_date(
        self, owner_id: str, occurrence: date
    ) -> list[TaskInstanceData]:
        """Return an owner's instances on a date, ordered by position."""
        iso_date = occurrence.isoformat()
        instances = [
            copy.deepcopy(instance)
            for instance in self._instances.values()
            if instance[const.DATA_INSTANCE_OWNER_ID] == owner_id
            and instance[const.DATA_INSTANCE_DATE] == iso_date
        ]
        instances.sort(key=lambda inst: inst[const.DATA_INSTANCE_POSITION])
        return instances

    async def async_list_template_instances(
        self, template_id: str
    ) -> list[TaskInstanceData]:
        """Return all instances of a template, ordered by date."""
        instances = [
            copy.deepcopy(instance)
            for instance in self._instances.values()
            if instance.get(const.DATA_INSTANCE_TEMPLATE_ID) == template_id
        ]
        instances.sort(key=lambda inst: inst[const.DATA_INSTANCE_DATE])
        return instances

    async def async_set_position(self, instance_id: str, position: int) -> None:
        """Move an instance to a new position within its date."""
        if instance_id in self._instances:
            self._instances[instance_id][const.DATA_INSTANCE_POSITION] = position

    async def async_delete_instance(self, instance_id: str) -> None:
        """Delete a single instance and its index entry."""
        instance = self._instances.pop(instance_id, None)
        if instance is None:
            return
        template_id = instance.get(const.DATA_INSTANCE_TEMPLATE_ID)
        if template_id is not None:
            self._template_date_index.pop(
                (template_id, instance[const.DATA_INSTANCE_DATE]), None
            )

    async def async_delete_template_instances(self, template_id: str) -> int:
        """Delete every instance of a template and return how many were removed."""
        doomed = [
            instance_id
            for instance_id, instance in self._instances.items()
            if instance.get(const.DATA_INSTANCE_TEMPLATE_ID) == template_id
        ]
        for instance_id in doomed:
            await self.async_delete_instance(instance_id)
        return len(doomed)
