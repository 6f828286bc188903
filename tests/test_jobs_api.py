"""HTTP surface for bulk jobs."""

import json

from helpdesk.api.routers.jobs import format_sse_frame
from helpdesk.db.models.job import JobStatus
from helpdesk.db.models.job_item import ItemOutcome
from helpdesk.services import job_store, outcome_log

from conftest import ADMIN_ID, OTHER_USER_ID, USER_ID, bearer


def test_submit_returns_201_then_200_on_replay(client, admin_headers, fake_task, sink):
    body = {"ticket_ids": [1, 2, 3], "idempotency_key": "ui-click-1"}

    first = client.post("/api/jobs/", json=body, headers=admin_headers)
    replay = client.post("/api/jobs/", json={**body, "ticket_ids": [8]}, headers=admin_headers)

    assert first.status_code == 201
    data = first.json()
    assert data["status"] == "queued"
    assert data["type"] == "bulk_delete"
    assert data["total_items"] == 3
    assert data["processed_items"] == 0
    assert data["progress"] == 0
    assert data["submitter_id"] == ADMIN_ID
    assert replay.status_code == 200
    assert replay.json()["id"] == data["id"]
    assert len(fake_task.calls) == 1
    assert [event for _, event, _ in sink.published] == ["jobs:created", "jobs:created"]


def test_submit_rejects_empty_ticket_list(client, admin_headers, fake_task):
    response = client.post("/api/jobs/", json={"ticket_ids": []}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "ticket_ids must be a non-empty array"
    assert fake_task.calls == []


def test_submit_reports_queue_outage_as_503(client, admin_headers, fake_task):
    fake_task.error = ConnectionError("broker unreachable")

    response = client.post("/api/jobs/", json={"ticket_ids": [1]}, headers=admin_headers)

    assert response.status_code == 503


def test_submit_requires_admin(client, user_headers):
    response = client.post("/api/jobs/", json={"ticket_ids": [1]}, headers=user_headers)
    assert response.status_code == 403


def test_requests_without_token_are_rejected(client):
    assert client.get("/api/jobs/").status_code == 401
    assert client.get("/api/jobs/", headers={"Authorization": "Bearer nonsense"}).status_code == 401


def test_users_only_list_their_own_jobs(client, make_job, user_headers, admin_headers):
    make_job([1], submitter_id=USER_ID)
    make_job([2], submitter_id=OTHER_USER_ID)
    make_job([3], submitter_id=ADMIN_ID)

    mine = client.get("/api/jobs/", headers=user_headers).json()
    everyone = client.get("/api/jobs/", headers=admin_headers).json()

    assert [job["submitter_id"] for job in mine["jobs"]] == [USER_ID]
    assert mine["pagination"] == {"page": 1, "limit": 10, "total": 1, "total_pages": 1}
    assert everyone["pagination"]["total"] == 3


def test_list_filters_by_status_and_paginates(client, db, make_job, admin_headers):
    jobs = [make_job([n]) for n in range(1, 6)]
    job_store.transition(db, jobs[0].id, JobStatus.CANCELED)
    db.commit()

    canceled = client.get("/api/jobs/?status=canceled", headers=admin_headers).json()
    page = client.get("/api/jobs/?type=bulk_delete&page=2&limit=2", headers=admin_headers).json()

    assert [job["status"] for job in canceled["jobs"]] == ["canceled"]
    assert len(page["jobs"]) == 2
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "total_pages": 3}


def test_job_detail_includes_outcomes_in_order(client, db, make_job, user_headers):
    job = make_job([5, 6], submitter_id=USER_ID)
    job_store.transition(db, job.id, JobStatus.RUNNING)
    outcome_log.record_outcome(db, job.id, 5, ItemOutcome.SUCCEEDED)
    outcome_log.record_outcome(db, job.id, 6, ItemOutcome.FAILED, "Ticket already deleted")
    db.commit()

    response = client.get(f"/api/jobs/{job.id}", headers=user_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "running"
    assert [(i["item_id"], i["outcome"], i["error"]) for i in data["items"]] == [
        (5, "succeeded", None),
        (6, "failed", "Ticket already deleted"),
    ]


def test_job_detail_hides_other_users_jobs(client, make_job, other_user_headers, admin_headers):
    job = make_job([1], submitter_id=USER_ID)

    assert client.get(f"/api/jobs/{job.id}", headers=other_user_headers).status_code == 403
    assert client.get(f"/api/jobs/{job.id}", headers=admin_headers).status_code == 200


def test_job_detail_unknown_job(client, admin_headers):
    assert client.get("/api/jobs/nope", headers=admin_headers).status_code == 404


def test_cancel_lifecycle(client, make_job, admin_headers):
    job = make_job([1, 2])

    canceled = client.post(f"/api/jobs/{job.id}/cancel", headers=admin_headers)
    again = client.post(f"/api/jobs/{job.id}/cancel", headers=admin_headers)

    assert canceled.status_code == 200
    assert canceled.json()["status"] == "canceled"
    assert canceled.json()["completed_at"] is not None
    assert again.status_code == 409
    assert again.json()["detail"] == "Job cannot be canceled"


def test_cancel_unknown_job(client, admin_headers):
    assert client.post("/api/jobs/nope/cancel", headers=admin_headers).status_code == 404


def test_cancel_requires_admin(client, make_job):
    job = make_job([1], submitter_id=USER_ID)
    response = client.post(f"/api/jobs/{job.id}/cancel", headers=bearer(USER_ID))
    assert response.status_code == 403


def test_sse_frame_from_published_envelope():
    raw = json.dumps({"event": "jobs:progress", "data": {"job_id": "j1", "progress": 50}})

    assert format_sse_frame(raw) == (
        'event: jobs:progress\ndata: {"job_id": "j1", "progress": 50}\n\n'
    )


def test_sse_frame_skips_malformed_messages():
    assert format_sse_frame("not json") is None
    assert format_sse_frame(json.dumps({"data": {}})) is None
    assert format_sse_frame(json.dumps(["jobs:progress"])) is None
