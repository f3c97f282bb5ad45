from .batch import (
    BatchRun,
    BatchScheduler,
    CommitError,
    SchedulingPreconditionError,
    schedule_all,
    summarize,
    validate_run,
)
from .models import (
    BusySet,
    Interval,
    Placed,
    PlacementResult,
    SchedulingRequest,
    Unplaced,
    UnplacedReason,
    WorkingHoursPolicy,
)
from .slot_finder import find_earliest_slot, next_working_day_start

__all__ = [
    "BatchRun",
    "BatchScheduler",
    "BusySet",
    "CommitError",
    "Interval",
    "Placed",
    "PlacementResult",
    "SchedulingPreconditionError",
    "SchedulingRequest",
    "Unplaced",
    "UnplacedReason",
    "WorkingHoursPolicy",
    "find_earliest_slot",
    "next_working_day_start",
    "schedule_all",
    "summarize",
    "validate_run",
]
