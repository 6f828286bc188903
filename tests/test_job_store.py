"""Job record persistence, guarded transitions and progress bookkeeping."""

import pytest

from helpdesk.db.models.job import JobStatus, JobType
from helpdesk.services import job_store

from conftest import OTHER_USER_ID, USER_ID


@pytest.mark.parametrize(
    "processed,total,expected",
    [
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (1, 200, 1),
        (3, 3, 100),
        (0, 0, 0),
    ],
)
def test_compute_progress_rounds_half_up(processed, total, expected):
    assert job_store.compute_progress(processed, total) == expected


def test_create_job_starts_queued(db, make_job):
    job = make_job([4, 5, 4, 6])

    assert job.status == JobStatus.QUEUED.value
    assert job.type == JobType.BULK_DELETE.value
    assert job.total_items == 3
    assert job.processed_items == 0
    assert job.progress == 0
    assert job.payload == {"type": "bulk_delete", "ticket_ids": [4, 5, 6]}
    assert job.completed_at is None


def test_transition_follows_lifecycle(db, make_job):
    job = make_job([1])

    assert job_store.transition(db, job.id, JobStatus.RUNNING) is True
    assert job_store.transition(db, job.id, JobStatus.SUCCEEDED) is True
    db.commit()

    job = job_store.get_job(db, job.id, refresh=True)
    assert job.job_status is JobStatus.SUCCEEDED
    assert job.completed_at is not None


def test_terminal_jobs_cannot_move(db, make_job):
    job = make_job([1])
    job_store.transition(db, job.id, JobStatus.CANCELED)
    db.commit()
    canceled_at = job_store.get_job(db, job.id, refresh=True).completed_at

    for target in (JobStatus.RUNNING, JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.CANCELED):
        assert job_store.transition(db, job.id, target) is False
    db.commit()

    job = job_store.get_job(db, job.id, refresh=True)
    assert job.job_status is JobStatus.CANCELED
    assert job.completed_at == canceled_at


def test_queued_job_cannot_succeed_directly(db, make_job):
    job = make_job([1])
    assert job_store.transition(db, job.id, JobStatus.SUCCEEDED) is False


def test_failed_transition_records_error(db, make_job):
    job = make_job([1])
    job_store.transition(db, job.id, JobStatus.RUNNING)
    job_store.transition(db, job.id, JobStatus.FAILED, error="broker exploded")
    db.commit()

    job = job_store.get_job(db, job.id, refresh=True)
    assert job.status == "failed"
    assert job.error == "broker exploded"
    assert job.completed_at is not None


def test_transition_on_missing_job_returns_false(db):
    assert job_store.transition(db, "does-not-exist", JobStatus.RUNNING) is False


def test_update_progress_never_decreases(db, make_job):
    job = make_job([1, 2, 3, 4])
    job_store.transition(db, job.id, JobStatus.RUNNING)

    assert job_store.update_progress(db, job.id, 3, 4) == 75
    job_store.update_progress(db, job.id, 1, 4)
    db.commit()

    job = job_store.get_job(db, job.id, refresh=True)
    assert job.processed_items == 3
    assert job.progress == 75


def test_update_progress_ignores_finished_jobs(db, make_job):
    job = make_job([1, 2])
    job_store.transition(db, job.id, JobStatus.RUNNING)
    job_store.update_progress(db, job.id, 2, 2)
    job_store.transition(db, job.id, JobStatus.SUCCEEDED)
    job_store.update_progress(db, job.id, 5, 2)
    db.commit()

    job = job_store.get_job(db, job.id, refresh=True)
    assert job.processed_items == 2
    assert job.progress == 100


def test_list_jobs_filters_and_paginates(db, make_job):
    for _ in range(3):
        make_job([1], submitter_id=USER_ID)
    other = make_job([2], submitter_id=OTHER_USER_ID)
    job_store.transition(db, other.id, JobStatus.CANCELED)
    db.commit()

    jobs, total = job_store.list_jobs(db, submitter_id=USER_ID, page=1, limit=2)
    assert total == 3
    assert len(jobs) == 2
    assert {job.submitter_id for job in jobs} == {USER_ID}

    jobs, total = job_store.list_jobs(db, submitter_id=USER_ID, page=2, limit=2)
    assert total == 3
    assert len(jobs) == 1

    jobs, total = job_store.list_jobs(db, status=JobStatus.CANCELED)
    assert total == 1
    assert jobs[0].id == other.id
