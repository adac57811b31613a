"""Queue management: admission, lifecycle transitions and maintenance sweeps.

Every write goes through this module so the owner's cached listings are
invalidated on each status change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from autocontent.cache import JobCache
from autocontent.config import Settings
from autocontent.errors import AccessDeniedError, BusinessError, NotFoundError
from autocontent.jobs.models import ACTIVE_STATUSES, TERMINAL_STATUSES, GenerationJob, JobStatus
from autocontent.jobs.store import JobStore, new_job_id
from autocontent.schemas.job_schemas import QueueJobRequest, QueueJobResponse
from autocontent.utils import ensure_aware, utcnow

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE = 1000


def websocket_channel(user_id: str) -> str:
    return f"/topic/jobs/{user_id}"


class QueueService:
    def __init__(self, store: JobStore, cache: JobCache, settings: Settings):
        self._store = store
        self._cache = cache
        self._settings = settings

    # -- admission ------------------------------------------------------------

    def queue_job(self, request: QueueJobRequest) -> QueueJobResponse:
        active = self._store.count_active(request.user_id)
        if active >= self._settings.ac_max_active_jobs_per_user:
            raise BusinessError(
                f"Too many active jobs ({active}). Wait for running jobs to finish before queueing more."
            )

        now = utcnow()
        hours = request.expiration_hours or self._settings.ac_job_expiration_hours
        job = GenerationJob(
            job_id=new_job_id(),
            user_id=request.user_id,
            content_type=request.content_type,
            status=JobStatus.QUEUED,
            priority=request.priority,
            request_params=request.request_params,
            retry_count=request.retry_count,
            max_retries=(
                request.max_retries if request.max_retries is not None
                else self._settings.ac_job_max_retries
            ),
            original_job_id=request.original_job_id,
            expires_at=now + timedelta(hours=hours),
            metadata=request.metadata,
            created_at=now,
            updated_at=now,
        )
        self._store.create(job)
        self._cache.invalidate_user(job.user_id)
        logger.info("Queued job %s for user %s (priority %s)", job.job_id, job.user_id, job.priority.value)
        return QueueJobResponse(
            job_id=job.job_id,
            status=job.status,
            queue_position=self._store.queue_position(job.job_id),
            websocket_channel=websocket_channel(job.user_id),
            created_at=job.created_at,
        )

    # -- transitions ----------------------------------------------------------

    def _transition(self, job: GenerationJob, expected: JobStatus) -> bool:
        """Commit ``job`` if the stored row is still ``expected``; a concurrent change wins."""
        job.updated_at = utcnow()
        if not self._store.update_if_status(job, expected):
            return False
        self._cache.invalidate_user(job.user_id)
        return True

    def _finish(self, job: GenerationJob) -> GenerationJob | None:
        if self._transition(job, JobStatus.PROCESSING):
            return job
        current = self._store.get(job.job_id)
        logger.info(
            "Job %s left PROCESSING before it finished (now %s); outcome discarded",
            job.job_id, current.status.value if current else "deleted",
        )
        return current

    def mark_processing(self, job: GenerationJob) -> GenerationJob | None:
        """Claim a queued job. Returns None if it is no longer QUEUED."""
        job.status = JobStatus.PROCESSING
        job.started_at = utcnow()
        return job if self._transition(job, JobStatus.QUEUED) else None

    def mark_completed(self, job: GenerationJob, result: dict[str, Any]) -> GenerationJob | None:
        job.status = JobStatus.COMPLETED
        job.result_content = result.get("generated_content")
        job.ai_provider = result.get("ai_provider")
        job.ai_model = result.get("ai_model")
        job.tokens_used = result.get("tokens_used")
        job.generation_cost = result.get("generation_cost")
        job.processing_time_ms = result.get("processing_time_ms")
        job.error_message = None
        job.error_details = None
        job.completed_at = utcnow()
        return self._finish(job)

    def mark_failed(
        self, job: GenerationJob, message: str, exception_type: str | None = None
    ) -> GenerationJob | None:
        now = utcnow()
        job.status = JobStatus.FAILED
        job.error_message = message[:MAX_ERROR_MESSAGE]
        job.error_details = {"exception_type": exception_type} if exception_type else None
        job.completed_at = now
        if job.started_at is not None and job.processing_time_ms is None:
            job.processing_time_ms = int((now - ensure_aware(job.started_at)).total_seconds() * 1000)
        return self._finish(job)

    def cancel_job(self, job_id: str, user_id: str) -> GenerationJob:
        job = self._store.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        if job.user_id != user_id:
            raise AccessDeniedError(f"Access denied to job: {job_id}")
        # Statuses only move forward, so this settles once the job is terminal
        while job.status in ACTIVE_STATUSES:
            previous = job.status
            job.status = JobStatus.CANCELLED
            job.completed_at = utcnow()
            if self._transition(job, previous):
                logger.info("Cancelled job %s", job_id)
                return job
            job = self._store.get(job_id)
            if job is None:
                raise NotFoundError(f"Job not found: {job_id}")
        raise BusinessError(f"Job cannot be cancelled. Status: {job.status.value}")

    # -- maintenance ----------------------------------------------------------

    def expire_jobs(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        count = 0
        for job in self._store.expired(now):
            previous = job.status
            job.status = JobStatus.EXPIRED
            job.completed_at = now
            if self._transition(job, previous):
                count += 1
        if count:
            logger.info("Expired %d job(s)", count)
        return count

    def fail_timed_out_jobs(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        threshold = now - timedelta(minutes=self._settings.ac_job_timeout_minutes)
        count = 0
        for job in self._store.timed_out(threshold):
            if self.mark_failed(job, "Processing timed out", "TimeoutError") is job:
                count += 1
        if count:
            logger.warning("Failed %d timed-out job(s)", count)
        return count

    def cleanup_old_jobs(self, older_than_days: int, now: datetime | None = None) -> int:
        cutoff = (now or utcnow()) - timedelta(days=older_than_days)
        ids = self._store.old_job_ids(TERMINAL_STATUSES, cutoff)
        owners = {job.user_id for job in self._store.get_many(ids)}
        deleted = self._store.delete_many(ids)
        for user_id in owners:
            self._cache.invalidate_user(user_id)
        logger.info("Deleted %d job(s) finished before %s", deleted, cutoff.isoformat())
        return deleted
