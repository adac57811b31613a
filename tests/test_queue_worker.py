"""Tests for queue admission, background processing and maintenance sweeps."""

from datetime import timedelta

import pytest

from autocontent.cache import USER_JOBS
from autocontent.content.generator import ContentGenerator
from autocontent.errors import AccessDeniedError, BusinessError, GenerationError, NotFoundError
from autocontent.jobs.models import JobPriority, JobStatus
from autocontent.jobs.worker import process_job, process_next_batch
from autocontent.llm.routing import ProviderRouter
from autocontent.schemas.job_schemas import QueueJobRequest
from autocontent.utils import utcnow


def _request(user_id="u1", **fields) -> QueueJobRequest:
    fields.setdefault("request_params", {"content": "Spring promotion for our bakery"})
    return QueueJobRequest(user_id=user_id, content_type="blog", **fields)


def test_queue_job_creates_queued_job_with_expiry(queue, job_store, settings):
    response = queue.queue_job(_request(priority=JobPriority.HIGH))
    job = job_store.get(response.job_id)
    assert response.status == JobStatus.QUEUED
    assert response.queue_position == 1
    assert response.websocket_channel == "/topic/jobs/u1"
    assert job.priority == JobPriority.HIGH
    assert job.max_retries == settings.ac_job_max_retries
    expected = job.created_at + timedelta(hours=settings.ac_job_expiration_hours)
    assert abs((job.expires_at - expected).total_seconds()) < 1


def test_queue_job_enforces_active_limit(queue, make_job, settings):
    for _ in range(settings.ac_max_active_jobs_per_user):
        make_job("u1", JobStatus.QUEUED)
    with pytest.raises(BusinessError, match="Too many active jobs"):
        queue.queue_job(_request())
    # Other users are unaffected
    queue.queue_job(_request(user_id="u2"))


def test_queue_job_invalidates_owner_cache(queue, job_cache):
    before = job_cache.key(USER_JOBS, "u1", "x")
    queue.queue_job(_request())
    assert job_cache.key(USER_JOBS, "u1", "x") != before


def test_cancel_distinguishes_missing_and_foreign_jobs(queue, make_job):
    job = make_job("u2", JobStatus.QUEUED)
    with pytest.raises(NotFoundError):
        queue.cancel_job("job_missing", "u1")
    with pytest.raises(AccessDeniedError):
        queue.cancel_job(job.job_id, "u1")


def test_mark_failed_truncates_message_and_records_type(queue, make_job):
    job = make_job("u1", JobStatus.PROCESSING, started_at=utcnow() - timedelta(seconds=2))
    failed = queue.mark_failed(job, "x" * 5000, "RuntimeError")
    assert failed.status == JobStatus.FAILED
    assert len(failed.error_message) == 1000
    assert failed.error_details == {"exception_type": "RuntimeError"}
    assert failed.processing_time_ms >= 2000


def test_process_job_completes_with_generation_result(queue, job_store, generator):
    queued = queue.queue_job(_request())
    job = process_job(queued.job_id, generator=generator, queue=queue)

    assert job.status == JobStatus.COMPLETED
    assert job.result_content.startswith("Generated by openai.")
    assert job.ai_provider == "openai"
    assert job.tokens_used == 1000
    assert job.generation_cost == pytest.approx(0.002)
    assert job.started_at is not None and job.completed_at is not None
    assert job_store.get(queued.job_id).status == JobStatus.COMPLETED


def test_process_job_records_failure_without_retrying(queue, job_store, settings, provider_factory):
    failing = ContentGenerator(
        ProviderRouter(settings, factory=provider_factory(failing=("openai", "anthropic"))), settings
    )
    queued = queue.queue_job(_request())
    job = process_job(queued.job_id, generator=failing, queue=queue)

    assert job.status == JobStatus.FAILED
    assert "All AI providers failed" in job.error_message
    assert job.error_details == {"exception_type": "GenerationError"}
    assert job.retry_count == 0


def test_process_job_rejects_invalid_stored_params(queue, generator):
    queued = queue.queue_job(_request(request_params={}))
    job = process_job(queued.job_id, generator=generator, queue=queue)
    assert job.status == JobStatus.FAILED
    assert job.error_details == {"exception_type": "ValidationError"}


def test_process_job_skips_jobs_that_are_not_queued(queue, make_job, generator):
    done = make_job("u1", JobStatus.COMPLETED)
    assert process_job(done.job_id, generator=generator, queue=queue).status == JobStatus.COMPLETED
    assert process_job("job_missing", generator=generator, queue=queue) is None


def test_process_next_batch_runs_in_priority_order(queue, generator):
    low = queue.queue_job(_request(priority=JobPriority.LOW))
    high = queue.queue_job(_request(priority=JobPriority.HIGH))
    processed = process_next_batch(limit=1, generator=generator)
    assert [j.job_id for j in processed] == [high.job_id]
    assert processed[0].status == JobStatus.COMPLETED

    rest = process_next_batch(limit=10, generator=generator)
    assert [j.job_id for j in rest] == [low.job_id]


def test_maintenance_expires_fails_and_cleans_up(queue, job_store, make_job):
    now = utcnow()
    stale = make_job("u1", JobStatus.QUEUED, expires_at=now - timedelta(minutes=5))
    stuck = make_job("u1", JobStatus.PROCESSING, started_at=now - timedelta(hours=3))
    old = make_job("u1", JobStatus.COMPLETED, completed_at=now - timedelta(days=90))

    assert queue.expire_jobs(now) == 1
    assert job_store.get(stale.job_id).status == JobStatus.EXPIRED

    assert queue.fail_timed_out_jobs(now) == 1
    timed_out = job_store.get(stuck.job_id)
    assert timed_out.status == JobStatus.FAILED
    assert timed_out.error_message == "Processing timed out"

    assert queue.cleanup_old_jobs(30, now) == 1
    assert job_store.get(old.job_id) is None


class _InterruptedGenerator:
    """Runs ``interrupt`` while the provider call is in flight, then succeeds or fails."""

    def __init__(self, inner, interrupt, fail=False):
        self._inner = inner
        self._interrupt = interrupt
        self._fail = fail

    def generate(self, request):
        self._interrupt()
        if self._fail:
            raise GenerationError("All AI providers failed. Last error: upstream timeout")
        return self._inner.generate(request)


def test_cancel_during_failing_generation_stays_cancelled(queue, job_store, generator):
    queued = queue.queue_job(_request())
    busy = _InterruptedGenerator(generator, lambda: queue.cancel_job(queued.job_id, "u1"), fail=True)

    job = process_job(queued.job_id, generator=busy, queue=queue)

    stored = job_store.get(queued.job_id)
    assert job.status == stored.status == JobStatus.CANCELLED
    assert stored.error_message is None


def test_cancel_during_successful_generation_discards_result(queue, job_store, generator):
    queued = queue.queue_job(_request())
    busy = _InterruptedGenerator(generator, lambda: queue.cancel_job(queued.job_id, "u1"))

    process_job(queued.job_id, generator=busy, queue=queue)

    stored = job_store.get(queued.job_id)
    assert stored.status == JobStatus.CANCELLED
    assert stored.result_content is None


def test_timeout_sweep_during_generation_is_not_overwritten(queue, job_store, generator):
    queued = queue.queue_job(_request())
    sweep = lambda: queue.fail_timed_out_jobs(utcnow() + timedelta(days=1))  # noqa: E731

    job = process_job(queued.job_id, generator=_InterruptedGenerator(generator, sweep), queue=queue)

    stored = job_store.get(queued.job_id)
    assert job.status == stored.status == JobStatus.FAILED
    assert stored.error_message == "Processing timed out"
    assert stored.result_content is None


def test_expiry_sweep_during_generation_is_not_overwritten(queue, job_store, generator):
    queued = queue.queue_job(_request())
    sweep = lambda: queue.expire_jobs(utcnow() + timedelta(days=30))  # noqa: E731

    process_job(queued.job_id, generator=_InterruptedGenerator(generator, sweep, fail=True), queue=queue)

    stored = job_store.get(queued.job_id)
    assert stored.status == JobStatus.EXPIRED
    assert stored.error_message is None


def test_mark_processing_refuses_a_job_cancelled_since_it_was_read(queue, job_store, make_job):
    stale = make_job("u1", JobStatus.QUEUED)
    queue.cancel_job(stale.job_id, "u1")

    assert queue.mark_processing(job_store.get(stale.job_id).model_copy(update={"status": JobStatus.QUEUED})) is None
    assert job_store.get(stale.job_id).status == JobStatus.CANCELLED
