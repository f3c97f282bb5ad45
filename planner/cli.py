from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Sequence

from pydantic import TypeAdapter

from planner.core.config import get_settings
from planner.core.logging import configure_logging
from planner.scheduler import Interval, Placed, SchedulingRequest
from planner.schemas import SubtaskIn
from planner.services.scheduling import ScheduleOutcome, SchedulingService

_SUBTASKS = TypeAdapter(list[SubtaskIn])


def load_subtasks(path: Path) -> list[SchedulingRequest]:
    """Read a JSON array of ``{"subtask": ..., "duration_minutes": ...}`` objects."""

    items = _SUBTASKS.validate_json(path.read_text(encoding="utf-8"))
    return [SchedulingRequest(label=item.subtask, duration_minutes=item.duration_minutes) for item in items]


def load_busy(path: Path) -> list[Interval]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    return [
        Interval(start=datetime.fromisoformat(item["start"]), end=datetime.fromisoformat(item["end"]))
        for item in payload
    ]


def format_outcome(outcome: ScheduleOutcome) -> list[str]:
    lines = [f"Plan for: {outcome.title}"]
    for result in outcome.results:
        if isinstance(result, Placed):
            start, end = result.interval.start, result.interval.end
            lines.append(f"  {start:%a %Y-%m-%d %H:%M}-{end:%H:%M}  {result.request.label}")
        else:
            lines.append(f"  {'unscheduled':<25}  {result.request.label} ({result.reason.value})")
    lines.append(outcome.summary)
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="planner", description="Earliest-fit task planner")
    commands = parser.add_subparsers(dest="command", required=True)

    preview = commands.add_parser("preview", help="Place subtasks without touching any calendar")
    preview.add_argument("subtasks", type=Path, help="JSON file with the decomposed subtasks")
    preview.add_argument("--title", default="Preview")
    preview.add_argument("--start", type=datetime.fromisoformat, default=None, help="ISO window start")
    preview.add_argument("--days", type=int, default=None, help="Window length in days")
    preview.add_argument("--busy", type=Path, default=None, help="JSON file with busy intervals")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)

    service = SchedulingService(None)
    outcome = service.preview(
        title=args.title,
        subtasks=load_subtasks(args.subtasks),
        window_start=args.start,
        window_days=args.days,
        initial_busy=load_busy(args.busy) if args.busy else [],
    )
    for line in format_outcome(outcome):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
