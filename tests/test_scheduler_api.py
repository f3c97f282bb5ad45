from __future__ import annotations

from datetime import datetime, timezone

from planner.scheduler import Interval


def _utc(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, day, hour, minute, tzinfo=timezone.utc)


RUN_PAYLOAD = {
    "title": "Write quarterly report",
    "window_start": "2025-01-06T09:00:00+00:00",
    "window_days": 7,
    "subtasks": [
        {"subtask": "Outline", "duration_minutes": 30},
        {"subtask": "Draft", "duration_minutes": 60},
    ],
}


def test_health(client) -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_scheduler_run_endpoint(client, fake_calendar, fake_documents) -> None:
    fake_calendar.busy = [Interval(_utc(6, 9), _utc(6, 10))]

    response = client.post("/api/v1/scheduler/run", json=RUN_PAYLOAD)
    assert response.status_code == 202, response.text
    result = response.json()

    assert result["summary"] == "2/2 scheduled"
    assert result["scheduled_count"] == 2
    assert result["total_count"] == 2
    assert result["document_url"] == "https://docs.example.com/document/1"
    assert result["runtime_ms"] >= 0

    outline, draft = result["placements"]
    assert outline["subtask"] == "Outline"
    assert datetime.fromisoformat(outline["start"]) == _utc(6, 10)
    assert datetime.fromisoformat(outline["end"]) == _utc(6, 10, 30)
    assert datetime.fromisoformat(draft["start"]) == _utc(6, 10, 45)
    assert draft["event_url"] == "https://calendar.example.com/event/2"
    assert [summary for summary, _ in fake_calendar.events] == ["Outline", "Draft"]

    response = client.get(f"/api/v1/scheduler/runs/{result['run_id']}")
    assert response.status_code == 200, response.text
    stored = response.json()
    assert stored["title"] == "Write quarterly report"
    assert stored["summary"] == "2/2 scheduled"
    assert [item["subtask"] for item in stored["placements"]] == ["Outline", "Draft"]
    assert [item["status"] for item in stored["placements"]] == ["placed", "placed"]

    response = client.get("/api/v1/scheduler/runs")
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == [result["run_id"]]


def test_scheduler_run_reports_partial_success(client, fake_calendar) -> None:
    fake_calendar.failing_labels = {"Outline"}
    payload = dict(RUN_PAYLOAD, create_document=False)
    payload["subtasks"] = RUN_PAYLOAD["subtasks"] + [{"subtask": "Marathon", "duration_minutes": 600}]

    response = client.post("/api/v1/scheduler/run", json=payload)
    assert response.status_code == 202, response.text
    result = response.json()

    assert result["document_url"] is None
    assert [item["status"] for item in result["placements"]] == ["unplaced", "placed", "unplaced"]
    assert result["placements"][0]["reason"] == "downstream_commit_failed"
    assert result["placements"][2]["reason"] == "no_slot_in_window"
    assert datetime.fromisoformat(result["placements"][1]["start"]) == _utc(6, 9, 1)
    assert result["summary"] == (
        "1/3 scheduled; unscheduled: Outline (calendar commit failed), Marathon (no slot found)"
    )


def test_preview_does_not_create_events(client, fake_calendar) -> None:
    response = client.post("/api/v1/scheduler/preview", json={"subtasks": RUN_PAYLOAD["subtasks"], "window_start": RUN_PAYLOAD["window_start"]})
    assert response.status_code == 200, response.text
    assert response.json()["run_id"] is None
    assert fake_calendar.events == []


def test_free_busy_failure_is_bad_gateway(client, fake_calendar) -> None:
    fake_calendar.fail_busy_query = True
    response = client.post("/api/v1/scheduler/run", json=RUN_PAYLOAD)
    assert response.status_code == 502
    assert "free/busy" in response.json()["detail"]


def test_inverted_window_is_rejected(client) -> None:
    payload = dict(RUN_PAYLOAD, window_start="2025-01-06T18:00:00+00:00", window_days=0)
    response = client.post("/api/v1/scheduler/run", json=payload)
    assert response.status_code == 422


def test_non_positive_duration_is_rejected(client) -> None:
    payload = dict(RUN_PAYLOAD, subtasks=[{"subtask": "Nothing", "duration_minutes": 0}])
    response = client.post("/api/v1/scheduler/run", json=payload)
    assert response.status_code == 422


def test_unknown_run_returns_404(client) -> None:
    response = client.get("/api/v1/scheduler/runs/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


def test_run_requires_connected_google_account(unconnected_client) -> None:
    response = unconnected_client.post("/api/v1/scheduler/run", json=RUN_PAYLOAD)
    assert response.status_code == 400
    assert response.json()["detail"] == "Google account is not connected"


def test_network_error_on_one_event_still_returns_run(client, fake_calendar) -> None:
    fake_calendar.raising_labels = {"Outline": OSError("network unreachable")}
    response = client.post("/api/v1/scheduler/run", json=dict(RUN_PAYLOAD, create_document=False))
    assert response.status_code == 202, response.text
    result = response.json()

    assert [item["status"] for item in result["placements"]] == ["unplaced", "placed"]
    assert result["placements"][0]["reason"] == "downstream_commit_failed"
    assert result["summary"] == "1/2 scheduled; unscheduled: Outline (calendar commit failed)"
