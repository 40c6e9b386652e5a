"""Engine modules for recurring tasks.

Contains pure computation engines:
- schedule_engine: Occurrence calculation, window enumeration, descriptions
- instance_engine: Per-date position assignment and re-packing
"""

from .instance_engine import InstanceEngine
from .schedule_engine import (
    RecurrenceEngine,
    SafetyLoopAbort,
    calculate_next_occurrence,
    describe_recurrence,
    first_occurrence,
    generate_instances,
)

__all__ = [
    "InstanceEngine",
    "RecurrenceEngine",
    "SafetyLoopAbort",
    "calculate_next_occurrence",
    "describe_recurrence",
    "first_occurrence",
    "generate_instances",
]
