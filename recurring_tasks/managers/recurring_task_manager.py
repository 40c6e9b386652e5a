"""Recurring Task Manager - Template lifecycle and instance materialization.

This manager handles every stateful operation of the recurring task engine:
- Creating, updating and deleting recurring templates
- Materializing occurrence dates into stored task instances
- Generating instances for all of an owner's templates over a window

ARCHITECTURE:
- RecurringTaskManager = "The Job" (async store I/O, logging, error policy)
- schedule_engine = Pure occurrence calculation and window enumeration
- InstanceEngine = Pure per-date position logic
- data_builders = Validation and explicit entity construction

Store calls are awaited sequentially. Nothing is cached between calls, so
every duplicate check sees the store's current state. Exclusivity under
concurrent callers comes from the store's (template_id, date) constraint.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from .. import const, data_builders as db
from ..engines.instance_engine import InstanceEngine
from ..engines.schedule_engine import (
    SafetyLoopAbort,
    engine_for_template,
    generate_instances,
)
from ..store import DuplicateInstanceError, StoreUnavailableError
from ..utils.dt_utils import dt_format_date, dt_parse_date, dt_today

if TYPE_CHECKING:
    import asyncio

    from ..store import RecurringTemplateStore, TaskInstanceStore
    from ..type_defs import RecurringTemplateData, ScheduleOptions


__all__ = [
    "RecurringGenerationError",
    "RecurringTaskManager",
    "TemplateNotFoundError",
]

# Fields update_recurring_template() accepts
_UPDATABLE_FIELDS = frozenset(
    (
        *const.TEMPLATE_TASK_FIELDS,
        const.DATA_TEMPLATE_RULE,
        const.DATA_TEMPLATE_END_DATE,
        const.DATA_TEMPLATE_IS_ACTIVE,
    )
)


class TemplateNotFoundError(Exception):
    """Raised when a template id does not exist in the store."""

    def __init__(self, template_id: str) -> None:
        """Initialize TemplateNotFoundError."""
        self.template_id = template_id
        super().__init__(f"Recurring template {template_id} not found")


class RecurringGenerationError(Exception):
    """Raised after a multi-template run when one or more templates failed.

    Instances for the other templates were still created.

    Attributes:
        failed_template_ids: Templates whose materialization raised
        created: Instances created across the successful templates
    """

    def __init__(self, failed_template_ids: list[str], created: int) -> None:
        """Initialize RecurringGenerationError."""
        self.failed_template_ids = list(failed_template_ids)
        self.created = created
        super().__init__(
            f"{const.ERROR_GENERATION_FAILED} "
            f"(failed templates: {', '.join(failed_template_ids)}; "
            f"created: {created})"
        )


class RecurringTaskManager:
    """Manager for recurring templates and their task instances.

    Responsibilities:
    - Validate and persist template changes
    - Turn computed occurrence dates into stored instances, idempotently
    - Cascade template deletion to instances

    NOT responsible for:
    - Calendar arithmetic (delegated to schedule_engine)
    - Uniqueness enforcement (the instance store's constraint)
    - Retrying failed windows (left to the caller)
    """

    def __init__(
        self,
        template_store: RecurringTemplateStore,
        instance_store: TaskInstanceStore,
        options: ScheduleOptions | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            template_store: Persistence for recurring templates
            instance_store: Persistence for task instances
            options: Overrides for const.DEFAULT_OPTIONS
        """
        self._templates = template_store
        self._instances = instance_store
        self._options: dict[str, Any] = {**const.DEFAULT_OPTIONS, **(options or {})}

    @property
    def options(self) -> dict[str, Any]:
        """Return the effective options."""
        return self._options

    # =========================================================================
    # §1 TEMPLATE CRUD
    # =========================================================================

    async def create_recurring_template(
        self,
        owner_id: str,
        fields: Mapping[str, Any],
        rule: Mapping[str, Any],
        start_date: str | date,
        *,
        today: date | None = None,
    ) -> RecurringTemplateData:
        """Validate, build and store a new recurring template.

        Args:
            owner_id: Owning user
            fields: Task fields (title, description, priority, tag, subtasks,
                project_id) and optionally end_date / is_active
            rule: Recurrence rule with DATA_RULE_* keys
            start_date: First possible occurrence
            today: Reference date for end-date validation and next_occurrence

        Returns:
            The stored template.

        Raises:
            RecurrenceValidationError: Invalid rule or fields (no I/O done).
            StoreUnavailableError: The template store failed.
        """
        data: dict[str, Any] = {
            **fields,
            const.DATA_TEMPLATE_OWNER_ID: owner_id,
            const.DATA_TEMPLATE_RULE: dict(rule),
            const.DATA_TEMPLATE_START_DATE: start_date,
        }
        errors = db.validate_template_data(
            data, today=today, max_interval=self._options[const.CONF_MAX_INTERVAL]
        )
        if errors:
            const.LOGGER.debug("Rejected recurring template: %s", errors)
            raise db.RecurrenceValidationError(errors)

        template = db.build_recurring_template(data)
        template[const.DATA_TEMPLATE_NEXT_OCCURRENCE] = dt_format_date(
            self.get_next_occurrence(template, today or dt_today())
        )
        stored = await self._templates.async_insert(template)

        const.LOGGER.info(
            "Created recurring template '%s' (ID: %s)",
            stored[const.DATA_TEMPLATE_TITLE],
            stored[const.DATA_TEMPLATE_INTERNAL_ID],
        )
        return stored

    async def update_recurring_template(
        self,
        template_id: str,
        changes: Mapping[str, Any],
        *,
        today: date | None = None,
    ) -> RecurringTemplateData:
        """Apply changes to a template; affects future generation only.

        Editable: task fields, rule interval/anchors (partial rule dict),
        end_date, is_active. The rule type is fixed after creation. Existing
        instances are never touched.

        Raises:
            TemplateNotFoundError: Unknown template id.
            RecurrenceValidationError: Invalid or non-editable change.
            StoreUnavailableError: The template store failed.
        """
        existing = await self._templates.async_get(template_id)
        if existing is None:
            raise TemplateNotFoundError(template_id)

        errors: dict[str, str] = {
            field: const.ERROR_UNKNOWN_FIELD
            for field in changes
            if field not in _UPDATABLE_FIELDS
        }

        data: dict[str, Any] = {
            field: value
            for field, value in changes.items()
            if field in _UPDATABLE_FIELDS
        }
        if const.DATA_TEMPLATE_RULE in changes:
            rule_changes = changes[const.DATA_TEMPLATE_RULE] or {}
            existing_rule = existing[const.DATA_TEMPLATE_RULE]
            new_type = rule_changes.get(const.DATA_RULE_TYPE, existing_rule["type"])
            if new_type != existing_rule["type"]:
                errors[const.DATA_RULE_TYPE] = const.ERROR_RULE_TYPE_IMMUTABLE
            data[const.DATA_TEMPLATE_RULE] = db.build_recurrence_rule(
                rule_changes, existing_rule
            )

        errors.update(
            db.validate_template_data(
                data,
                is_update=True,
                today=today,
                max_interval=self._options[const.CONF_MAX_INTERVAL],
            )
        )
        if errors:
            const.LOGGER.debug(
                "Rejected update for recurring template %s: %s", template_id, errors
            )
            raise db.RecurrenceValidationError(errors)

        updated = db.build_recurring_template(data, existing=existing)
        updated[const.DATA_TEMPLATE_NEXT_OCCURRENCE] = dt_format_date(
            self.get_next_occurrence(updated, today or dt_today())
        )
        stored = await self._templates.async_update(updated)

        const.LOGGER.debug(
            "Updated recurring template '%s' (ID: %s), fields: %s",
            stored[const.DATA_TEMPLATE_TITLE],
            template_id,
            sorted(data),
        )
        return stored

    async def delete_recurring_template(self, template_id: str) -> None:
        """Delete a template and cascade to all of its instances.

        Instances go first, then positions on the affected dates are
        re-packed, then the template itself is removed.

        Raises:
            TemplateNotFoundError: Unknown template id.
            StoreUnavailableError: A store failed (partial deletes remain).
        """
        existing = await self._templates.async_get(template_id)
        if existing is None:
            raise TemplateNotFoundError(template_id)

        instances = await self._instances.async_list_template_instances(template_id)
        removed = await self._instances.async_delete_template_instances(template_id)
        for owner_id, iso_date in InstanceEngine.group_by_owner_date(instances):
            await self._compact_date(owner_id, date.fromisoformat(iso_date))

        await self._templates.async_delete(template_id)

        const.LOGGER.info(
            "Deleted recurring template '%s' (ID: %s) and %s instance(s)",
            existing[const.DATA_TEMPLATE_TITLE],
            template_id,
            removed,
        )

    async def get_recurring_template(
        self, template_id: str
    ) -> RecurringTemplateData | None:
        """Return a template by id, or None."""
        return await self._templates.async_get(template_id)

    async def list_recurring_templates(
        self, owner_id: str, include_inactive: bool = False
    ) -> list[RecurringTemplateData]:
        """Return an owner's templates, newest first (active only by default)."""
        return await self._templates.async_list(owner_id, include_inactive)

    # =========================================================================
    # §2 INSTANCES
    # =========================================================================

    async def count_template_instances(self, template_id: str) -> int:
        """Return how many instances a template currently has."""
        return await self._instances.async_count_template_instances(template_id)

    async def delete_task_instance(self, instance_id: str) -> None:
        """Delete one occurrence, leaving the template and other instances.

        The date's remaining instances are re-packed. The template keeps
        generating, so a later window covering this date recreates it.
        """
        instance = await self._instances.async_get_instance(instance_id)
        if instance is None:
            const.LOGGER.debug("Task instance %s already deleted", instance_id)
            return
        await self._instances.async_delete_instance(instance_id)
        await self._compact_date(
            instance[const.DATA_INSTANCE_OWNER_ID],
            date.fromisoformat(instance[const.DATA_INSTANCE_DATE]),
        )
        const.LOGGER.debug(
            "Deleted task instance %s on %s",
            instance_id,
            instance[const.DATA_INSTANCE_DATE],
        )

    async def _compact_date(self, owner_id: str, occurrence: date) -> None:
        """Re-pack positions on a date so they are contiguous from 0."""
        remaining = await self._instances.async_list_instances_on_date(
            owner_id, occurrence
        )
        for instance_id, position in InstanceEngine.compact_positions(
            remaining
        ).items():
            await self._instances.async_set_position(instance_id, position)

    # =========================================================================
    # §3 MATERIALIZATION
    # =========================================================================

    async def materialize(
        self,
        template: RecurringTemplateData,
        window_start: date,
        window_end: date,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Ensure an instance exists for every occurrence of a template in a window.

        Each insert is its own commit. Re-running the same window is a no-op,
        and re-running after a partial failure fills in only what is missing.
        Occurrences past the `max_occurrence_iterations` option are not
        generated; the truncation is logged as a warning.

        Args:
            template: Stored template to materialize
            window_start: First date of the window (inclusive)
            window_end: Last date of the window (inclusive)
            cancel_event: When set, no further inserts are issued; inserts
                already committed are kept

        Returns:
            Number of newly created instances.

        Raises:
            RecurrenceValidationError: The stored rule is invalid (no I/O done).
            StoreUnavailableError: The instance store failed.
            DuplicateInstanceError: The store reported a uniqueness violation
                for a key other than the one being inserted.
        """
        template_id = template[const.DATA_TEMPLATE_INTERNAL_ID]
        owner_id = template[const.DATA_TEMPLATE_OWNER_ID]

        if not template.get(const.DATA_TEMPLATE_IS_ACTIVE, True):
            const.LOGGER.debug(
                "Template %s is inactive, nothing to generate", template_id
            )
            return 0

        # Stored rows come from the store, not only from this manager
        errors = db.validate_recurrence_settings(
            template.get(const.DATA_TEMPLATE_RULE) or {},
            max_interval=self._options[const.CONF_MAX_INTERVAL],
        )
        if errors:
            const.LOGGER.warning(
                "Template %s has an invalid rule, not generating: %s",
                template_id,
                errors,
            )
            raise db.RecurrenceValidationError(errors)

        occurrences = generate_instances(
            template,
            window_start,
            window_end,
            self._options[const.CONF_MAX_OCCURRENCE_ITERATIONS],
        )

        created = 0
        for occurrence in occurrences:
            if cancel_event is not None and cancel_event.is_set():
                const.LOGGER.info(
                    "Materialization of template %s cancelled after %s insert(s)",
                    template_id,
                    created,
                )
                break

            if await self._instances.async_find_instance(template_id, occurrence):
                continue

            on_date = await self._instances.async_list_instances_on_date(
                owner_id, occurrence
            )
            instance = db.build_task_instance(
                template, occurrence, InstanceEngine.next_position(on_date)
            )
            try:
                await self._instances.async_insert(instance)
            except DuplicateInstanceError as err:
                if not err.matches(template_id, occurrence):
                    raise
                const.LOGGER.warning(
                    "Instance for template %s on %s was created concurrently",
                    template_id,
                    occurrence,
                )
                continue
            created += 1

        const.LOGGER.debug(
            "Materialized template %s for %s..%s: %s occurrence(s), %s created",
            template_id,
            window_start,
            window_end,
            len(occurrences),
            created,
        )
        return created

    async def generate_tasks_for_date_range(
        self,
        owner_id: str,
        window_start: date,
        window_end: date,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Materialize every active template of an owner over a window.

        A template that fails is logged and skipped; the others still run.

        Returns:
            Total number of newly created instances.

        Raises:
            StoreUnavailableError: The templates could not be listed.
            RecurringGenerationError: One or more templates failed; carries the
                failed ids and the number of instances that were created.
        """
        templates = await self._templates.async_list(owner_id)

        created = 0
        failed: list[str] = []
        for template in templates:
            if cancel_event is not None and cancel_event.is_set():
                break
            template_id = template[const.DATA_TEMPLATE_INTERNAL_ID]
            try:
                created += await self.materialize(
                    template, window_start, window_end, cancel_event=cancel_event
                )
            except (
                StoreUnavailableError,
                DuplicateInstanceError,
                db.RecurrenceValidationError,
            ):
                const.LOGGER.exception(
                    "Could not generate instances for template %s (%s..%s)",
                    template_id,
                    window_start,
                    window_end,
                )
                failed.append(template_id)

        const.LOGGER.info(
            "Generated %s task instance(s) for owner %s from %s template(s)",
            created,
            owner_id,
            len(templates),
        )
        if failed:
            raise RecurringGenerationError(failed, created)
        return created

    async def ensure_upcoming_instances(
        self,
        owner_id: str,
        today: date | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Generate instances from today through the configured horizon."""
        start = today or dt_today()
        horizon = self._options[const.CONF_GENERATION_HORIZON_DAYS]
        end = start + timedelta(days=horizon)
        return await self.generate_tasks_for_date_range(
            owner_id, start, end, cancel_event=cancel_event
        )

    # =========================================================================
    # §4 QUERIES
    # =========================================================================

    def get_next_occurrence(
        self, template: RecurringTemplateData, after: date | str
    ) -> date | None:
        """Return the template's first occurrence on/after `after`.

        None when the template is inactive, has ended, or its rule cannot
        advance.
        """
        if not template.get(const.DATA_TEMPLATE_IS_ACTIVE, True):
            return None
        reference = dt_parse_date(after)
        engine = engine_for_template(
            template, self._options[const.CONF_MAX_OCCURRENCE_ITERATIONS]
        )
        if engine is None or reference is None:
            return None
        try:
            return engine.get_occurrence_on_or_after(reference)
        except SafetyLoopAbort as err:
            const.LOGGER.warning("Could not compute next occurrence: %s", err)
            return None
