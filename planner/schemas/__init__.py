from .schedule import (
    PlacementRead,
    RunCollection,
    RunRead,
    SchedulePreviewRequest,
    ScheduleRunRequest,
    ScheduleRunResponse,
    SubtaskIn,
)

__all__ = [
    "PlacementRead",
    "RunCollection",
    "RunRead",
    "SchedulePreviewRequest",
    "ScheduleRunRequest",
    "ScheduleRunResponse",
    "SubtaskIn",
]
