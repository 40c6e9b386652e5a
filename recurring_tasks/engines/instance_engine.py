"""Instance Engine - Pure logic for per-date task ordering.

Stateless helpers used while materializing and deleting task instances:
- Next position for a new instance on a date
- Re-packing positions after deletions so they stay contiguous from 0
- Grouping instances by (owner, date)

ARCHITECTURE: Pure logic, no store access. The caller passes in the
instances it read from the store and applies the returned changes.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from .. import const

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import TaskInstanceData


class InstanceEngine:
    """Pure logic engine for task instance positions.

    All methods are static - no instance state.
    """

    @staticmethod
    def next_position(instances_on_date: list[TaskInstanceData]) -> int:
        """Return the position for a new instance appended to a date.

        Positions are contiguous from 0, so the next slot equals the number
        of instances already on that date.
        """
        return len(instances_on_date)

    @staticmethod
    def compact_positions(instances_on_date: list[TaskInstanceData]) -> dict[str, int]:
        """Return {instance_id: new_position} needed to re-pack a date.

        Instances keep their relative order; only those whose position
        changes are returned.
        """
        ordered = sorted(
            instances_on_date,
            key=lambda inst: (
                inst.get(const.DATA_INSTANCE_POSITION, 0),
                inst.get(const.DATA_INSTANCE_CREATED_AT, ""),
            ),
        )
        changes: dict[str, int] = {}
        for new_position, instance in enumerate(ordered):
            if instance.get(const.DATA_INSTANCE_POSITION) != new_position:
                changes[instance[const.DATA_INSTANCE_INTERNAL_ID]] = new_position
        return changes

    @staticmethod
    def group_by_owner_date(
        instances: Iterable[TaskInstanceData],
    ) -> dict[tuple[str, str], list[TaskInstanceData]]:
        """Group instances by (owner_id, ISO date)."""
        grouped: dict[tuple[str, str], list[TaskInstanceData]] = defaultdict(list)
        for instance in instances:
            key = (
                instance[const.DATA_INSTANCE_OWNER_ID],
                instance[const.DATA_INSTANCE_DATE],
            )
            grouped[key].append(instance)
        return dict(grouped)
