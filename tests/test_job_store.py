"""Tests for the file-backed job store."""

from datetime import timedelta

from autocontent.jobs.criteria import JobFilterCriteria
from autocontent.jobs.models import JobPriority, JobStatus, TERMINAL_STATUSES
from autocontent.utils import utcnow


def test_create_get_and_update_roundtrip(job_store, make_job):
    job = make_job("u1", JobStatus.QUEUED, content_type="blog", request_params={"content": "x"})
    loaded = job_store.get(job.job_id)
    assert loaded is not None
    assert loaded.request_params == {"content": "x"}

    loaded.status = JobStatus.PROCESSING
    job_store.update(loaded)
    assert job_store.get(job.job_id).status == JobStatus.PROCESSING
    assert job_store.get("job_missing") is None


def test_update_if_status_only_writes_from_expected_status(job_store, make_job):
    job = make_job("u1", JobStatus.CANCELLED)
    finished = job.model_copy(update={"status": JobStatus.COMPLETED, "result_content": "late"})

    assert not job_store.update_if_status(finished, JobStatus.PROCESSING)
    assert job_store.get(job.job_id).status == JobStatus.CANCELLED

    assert job_store.update_if_status(finished, JobStatus.CANCELLED)
    assert job_store.get(job.job_id).result_content == "late"
    missing = finished.model_copy(update={"job_id": "job_missing"})
    assert not job_store.update_if_status(missing, JobStatus.COMPLETED)
    assert job_store.get("job_missing") is None


def test_list_jobs_filters_by_owner_and_paginates(job_store, make_job):
    for i in range(5):
        make_job("u1", minutes_ago=i)
    make_job("u2")

    page = job_store.list_jobs(JobFilterCriteria(user_id="u1"), page=1, size=2)
    assert page.total_elements == 5
    assert page.total_pages == 3
    assert page.number_of_elements == 2
    assert page.has_next and page.has_previous
    assert all(j.user_id == "u1" for j in page.items)


def test_list_jobs_default_order_is_newest_first(job_store, make_job):
    old = make_job("u1", minutes_ago=30)
    new = make_job("u1", minutes_ago=1)
    page = job_store.list_jobs(JobFilterCriteria(user_id="u1"), 0, 10)
    assert [j.job_id for j in page.items] == [new.job_id, old.job_id]


def test_list_jobs_status_and_search(job_store, make_job):
    make_job("u1", JobStatus.FAILED, error_message="Rate limit from provider")
    make_job("u1", JobStatus.COMPLETED, result_content="Summer sale blog post")
    make_job("u1", JobStatus.QUEUED)

    failed = job_store.list_jobs(JobFilterCriteria(user_id="u1", statuses=[JobStatus.FAILED]), 0, 10)
    assert failed.total_elements == 1

    found = job_store.list_jobs(JobFilterCriteria(user_id="u1", search_text="SUMMER"), 0, 10)
    assert [j.status for j in found.items] == [JobStatus.COMPLETED]


def test_page_past_the_end_is_empty(job_store, make_job):
    make_job("u1")
    page = job_store.list_jobs(JobFilterCriteria(user_id="u1"), page=3, size=10)
    assert page.items == []
    assert page.total_elements == 1
    assert page.last


def test_statistics_and_content_types(job_store, make_job):
    make_job("u1", JobStatus.COMPLETED, content_type="blog", processing_time_ms=1000, tokens_used=100)
    make_job("u1", JobStatus.COMPLETED, content_type="email", processing_time_ms=3000, tokens_used=50)
    make_job("u1", JobStatus.FAILED, content_type="blog")
    make_job("u1", JobStatus.QUEUED, content_type=None)
    make_job("u2", JobStatus.COMPLETED, content_type="ads")

    stats = job_store.statistics("u1")
    assert stats.total_jobs == 4
    assert stats.completed_jobs == 2
    assert stats.failed_jobs == 1
    assert stats.queued_jobs == 1
    assert stats.average_processing_time_ms == 2000
    assert stats.total_tokens_used == 150
    assert stats.success_rate_percentage == 50.0
    assert stats.has_active_jobs

    assert job_store.distinct_content_types("u1") == ["blog", "email"]
    assert job_store.count_active("u1") == 1


def test_queue_order_and_position_follow_priority_then_age(job_store, make_job):
    low = make_job("u1", JobStatus.QUEUED, priority=JobPriority.LOW, minutes_ago=10)
    normal = make_job("u1", JobStatus.QUEUED, priority=JobPriority.NORMAL, minutes_ago=5)
    high = make_job("u1", JobStatus.QUEUED, priority=JobPriority.HIGH, minutes_ago=1)
    done = make_job("u1", JobStatus.COMPLETED)

    assert [j.job_id for j in job_store.next_queued(10)] == [high.job_id, normal.job_id, low.job_id]
    assert job_store.queue_position(high.job_id) == 1
    assert job_store.queue_position(low.job_id) == 3
    assert job_store.queue_position(done.job_id) == 0


def test_expired_and_timed_out(job_store, make_job):
    now = utcnow()
    stale = make_job("u1", JobStatus.QUEUED, expires_at=now - timedelta(minutes=1))
    make_job("u1", JobStatus.QUEUED, expires_at=now + timedelta(hours=1))
    stuck = make_job("u1", JobStatus.PROCESSING, started_at=now - timedelta(hours=2))
    make_job("u1", JobStatus.PROCESSING, started_at=now)

    assert [j.job_id for j in job_store.expired(now)] == [stale.job_id]
    assert [j.job_id for j in job_store.timed_out(now - timedelta(minutes=30))] == [stuck.job_id]


def test_old_job_ids_and_delete_many(job_store, make_job):
    now = utcnow()
    old = make_job("u1", JobStatus.COMPLETED, completed_at=now - timedelta(days=40))
    make_job("u1", JobStatus.COMPLETED, completed_at=now - timedelta(days=1))
    make_job("u1", JobStatus.QUEUED)

    ids = job_store.old_job_ids(TERMINAL_STATUSES, now - timedelta(days=30))
    assert ids == [old.job_id]
    assert job_store.delete_many(ids + ["job_missing"]) == 1
    assert job_store.get(old.job_id) is None


def test_hourly_statistics_groups_by_hour_and_status(job_store, make_job):
    make_job("u1", JobStatus.COMPLETED, processing_time_ms=100, tokens_used=10)
    make_job("u2", JobStatus.COMPLETED, processing_time_ms=300, tokens_used=30)
    make_job("u1", JobStatus.FAILED)
    make_job("u1", JobStatus.COMPLETED, minutes_ago=60 * 48)

    stats = job_store.hourly_statistics(utcnow() - timedelta(hours=24))
    by_status = {s.status: s for s in stats}
    assert sum(s.job_count for s in stats) == 3
    assert by_status[JobStatus.COMPLETED].total_tokens == 40
    assert by_status[JobStatus.COMPLETED].avg_processing_time_ms == 200
