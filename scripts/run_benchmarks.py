from __future__ import annotations

import csv
import os
import random
import sys
import time
from datetime import datetime, timedelta
from pathlib import Path

import psutil

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from planner.scheduler import BatchScheduler, Interval, SchedulingRequest, WorkingHoursPolicy

ITERATIONS = 1000
TASKS_PER_RUN = 20
BUSY_PER_RUN = 40
OUTPUT = Path("benchmarks_batch.csv")
WINDOW_START = datetime(2025, 1, 6, 9, 0)
WINDOW_END = WINDOW_START + timedelta(days=14)


def _random_busy(rng: random.Random) -> list[Interval]:
    intervals = []
    for _ in range(BUSY_PER_RUN):
        start = WINDOW_START + timedelta(minutes=rng.randrange(0, 14 * 24 * 60, 15))
        intervals.append(Interval(start=start, end=start + timedelta(minutes=rng.choice([30, 45, 60, 90]))))
    return intervals


def _random_requests(rng: random.Random) -> list[SchedulingRequest]:
    return [
        SchedulingRequest(label=f"Task {index + 1}", duration_minutes=rng.choice([15, 30, 45, 60, 90, 120]))
        for index in range(TASKS_PER_RUN)
    ]


def main() -> None:
    rng = random.Random(1234)
    scheduler = BatchScheduler(WorkingHoursPolicy(), buffer_minutes=15)
    process = psutil.Process(os.getpid())
    rows: list[tuple[int, float, float, float, int]] = []

    for run_id in range(1, ITERATIONS + 1):
        requests = _random_requests(rng)
        busy = _random_busy(rng)

        cpu_before = process.cpu_times()
        started = time.perf_counter()
        run = scheduler.run(requests, busy, WINDOW_START, WINDOW_END, lambda request, slot: None)
        runtime_ms = (time.perf_counter() - started) * 1000
        cpu_after = process.cpu_times()

        cpu_time_ms = (
            (cpu_after.user + cpu_after.system)
            - (cpu_before.user + cpu_before.system)
        ) * 1000.0
        rss_mb = process.memory_info().rss / (1024 * 1024)
        rows.append((run_id, runtime_ms, cpu_time_ms, rss_mb, len(run.placed)))

    with OUTPUT.open("w", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["run_id", "runtime_ms", "cpu_time_ms", "rss_mb", "placed"])
        writer.writerows(rows)

    print(f"Batch scheduler benchmark written to {OUTPUT}")


if __name__ == "__main__":
    main()
