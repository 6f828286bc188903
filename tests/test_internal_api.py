"""Worker-to-API event relay."""

from fastapi.testclient import TestClient

from helpdesk.services.bulk_delete_processor import process_bulk_delete
from helpdesk.services.event_bridge import INTERNAL_TOKEN_HEADER, HttpEventBridge
from helpdesk.services.events import ADMIN_CHANNEL, user_channel

from conftest import USER_ID

TOKEN_HEADERS = {INTERNAL_TOKEN_HEADER: "test-internal-token"}


def test_relay_requires_internal_token(client, make_job):
    job = make_job([1])
    body = {"job_id": job.id, "progress": 10, "processed_items": 1}

    assert client.post("/internal/jobs/progress", json=body).status_code == 401
    assert (
        client.post(
            "/internal/jobs/progress", json=body, headers={INTERNAL_TOKEN_HEADER: "guess"}
        ).status_code
        == 401
    )


def test_progress_is_pushed_to_submitter_and_admin(client, make_job, sink):
    job = make_job([1, 2], submitter_id=USER_ID)

    response = client.post(
        "/internal/jobs/progress",
        json={"job_id": job.id, "progress": 50, "processed_items": 1},
        headers=TOKEN_HEADERS,
    )

    assert response.status_code == 200
    expected = ("jobs:progress", {"job_id": job.id, "progress": 50, "processed_items": 1})
    assert sink.events_on(user_channel(USER_ID)) == [expected]
    assert sink.events_on(ADMIN_CHANNEL) == [expected]


def test_unknown_job_is_404(client, sink):
    response = client.post(
        "/internal/jobs/failed",
        json={"job_id": "ghost", "error": "boom"},
        headers=TOKEN_HEADERS,
    )

    assert response.status_code == 404
    assert sink.published == []


def test_completed_without_snapshot_uses_stored_job(client, make_job, sink):
    job = make_job([1], submitter_id=USER_ID)

    client.post("/internal/jobs/completed", json={"job_id": job.id}, headers=TOKEN_HEADERS)

    event, data = sink.events_on(user_channel(USER_ID))[0]
    assert event == "jobs:completed"
    assert data["job"]["id"] == job.id
    assert data["job"]["status"] == "queued"


def test_worker_events_reach_subscribers_end_to_end(app, db, make_tickets, make_job, sink):
    make_tickets([5, 6], deleted={6})
    job = make_job([5, 6], submitter_id=USER_ID)
    api = TestClient(app, headers=TOKEN_HEADERS)

    with HttpEventBridge("http://testserver", "test-internal-token", client=api) as bridge:
        process_bulk_delete(db, job.id, [5, 6], bridge, chunk_size=2)

    events = sink.events_on(user_channel(USER_ID))
    assert [event for event, _ in events] == [
        "jobs:progress",
        "jobs:item",
        "jobs:item",
        "jobs:progress",
        "jobs:completed",
    ]
    assert events[2][1] == {
        "job_id": job.id,
        "item_id": 6,
        "outcome": "failed",
        "error": "Ticket already deleted",
    }
    assert events[3][1]["progress"] == 100
    assert events[4][1]["job"]["status"] == "succeeded"
