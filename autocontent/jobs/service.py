"""Job listing, details, retry and download for the signed-in user.

Reads go through ``JobCache``; writes go through ``QueueService`` which
invalidates the owner's cached views.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from pydantic import TypeAdapter

from autocontent.cache import (
    ACTIVE_JOB_COUNT,
    HOURLY_JOB_STATS,
    JOB_DETAILS,
    SEARCH_RESULTS,
    USER_CONTENT_TYPES,
    USER_JOB_STATISTICS,
    USER_JOBS,
    JobCache,
)
from autocontent.errors import AccessDeniedError, BusinessError, NotFoundError, service_errors
from autocontent.jobs.criteria import JobFilterCriteria
from autocontent.jobs.models import GenerationJob, HourlyJobStat, JobStatistics
from autocontent.jobs.queue import QueueService, websocket_channel
from autocontent.jobs.store import JobStore
from autocontent.schemas.job_schemas import (
    DownloadPayload,
    JobDetails,
    JobListResponse,
    JobSummary,
    QueueJobRequest,
    RetryJobResponse,
    pagination_from_page,
)
from autocontent.utils import utcnow

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
RETRY_EXPIRATION_HOURS = 24

_LIST_ADAPTER = TypeAdapter(JobListResponse)
_DETAILS_ADAPTER = TypeAdapter(JobDetails)
_STATS_ADAPTER = TypeAdapter(JobStatistics)
_TYPES_ADAPTER = TypeAdapter(list[str])
_COUNT_ADAPTER = TypeAdapter(int)
_HOURLY_ADAPTER = TypeAdapter(list[HourlyJobStat])

_MEDIA_TYPES = {"json": "application/json", "pdf": "application/pdf"}


class JobQueueService:
    """Job queries on behalf of ``current_user_id``."""

    def __init__(self, store: JobStore, queue: QueueService, cache: JobCache, current_user_id: str):
        self._store = store
        self._queue = queue
        self._cache = cache
        self._current_user_id = current_user_id

    def _check_user_access(self, user_id: str) -> None:
        if user_id != self._current_user_id:
            raise AccessDeniedError("Access denied to user jobs")

    def _owned_job(self, job_id: str, user_id: str) -> GenerationJob:
        job = self._store.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        if job.user_id != user_id:
            raise AccessDeniedError(f"Access denied to job: {job_id}")
        return job

    # -- listing --------------------------------------------------------------

    @service_errors("Failed to retrieve user jobs")
    def get_jobs(
        self, user_id: str, page: int, size: int, criteria: JobFilterCriteria | None = None
    ) -> JobListResponse:
        self._check_user_access(user_id)
        if page < 0:
            raise BusinessError("Page index must not be negative")
        if size < 1 or size > MAX_PAGE_SIZE:
            raise BusinessError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

        criteria = (criteria or JobFilterCriteria()).model_copy(update={"user_id": user_id})
        cache_name = SEARCH_RESULTS if criteria.has_text_search() else USER_JOBS
        suffix = f"{criteria.cache_key()}:p{page}:s{size}"

        def load() -> JobListResponse:
            result = self._store.list_jobs(criteria, page, size)
            return JobListResponse(
                jobs=[JobSummary.from_job(j) for j in result.items],
                pagination=pagination_from_page(result),
                statistics=self.get_statistics(user_id),
            )

        return self._cache.get_or_load(cache_name, user_id, suffix, load, _LIST_ADAPTER)

    @service_errors("Failed to retrieve job details")
    def get_job_details(self, job_id: str, user_id: str) -> JobDetails:
        self._check_user_access(user_id)
        return self._cache.get_or_load(
            JOB_DETAILS,
            user_id,
            job_id,
            lambda: JobDetails.from_job(self._owned_job(job_id, user_id)),
            _DETAILS_ADAPTER,
        )

    @service_errors("Failed to retrieve content types")
    def get_available_content_types(self, user_id: str) -> list[str]:
        self._check_user_access(user_id)
        return self._cache.get_or_load(
            USER_CONTENT_TYPES,
            user_id,
            "all",
            lambda: self._store.distinct_content_types(user_id),
            _TYPES_ADAPTER,
        )

    @service_errors("Failed to retrieve job statistics")
    def get_statistics(self, user_id: str) -> JobStatistics:
        self._check_user_access(user_id)
        return self._cache.get_or_load(
            USER_JOB_STATISTICS,
            user_id,
            "all",
            lambda: self._store.statistics(user_id),
            _STATS_ADAPTER,
        )

    def get_active_job_count(self, user_id: str) -> int:
        self._check_user_access(user_id)

        def load() -> int:
            try:
                return self._store.count_active(user_id)
            except Exception as e:
                logger.warning("Active job count failed for user %s (%s)", user_id, e)
                return 0

        return self._cache.get_or_load(ACTIVE_JOB_COUNT, user_id, "count", load, _COUNT_ADAPTER)

    @service_errors("Failed to retrieve jobs")
    def get_jobs_batch(self, job_ids: list[str]) -> list[JobSummary]:
        if not job_ids:
            return []
        jobs = self._store.get_many(list(dict.fromkeys(job_ids)))
        return [JobSummary.from_job(j) for j in jobs if j.user_id == self._current_user_id]

    @service_errors("Failed to retrieve hourly statistics")
    def get_hourly_statistics(self, since: datetime) -> list[HourlyJobStat]:
        """Per-hour, per-status aggregate across all users (admin analytics)."""
        bucket = since.replace(minute=0, second=0, microsecond=0)
        return self._cache.get_or_load(
            HOURLY_JOB_STATS,
            None,
            bucket.isoformat(),
            lambda: self._store.hourly_statistics(bucket),
            _HOURLY_ADAPTER,
        )

    # -- writes ---------------------------------------------------------------

    @service_errors("Failed to retry job")
    def retry_job(self, job_id: str, user_id: str) -> RetryJobResponse:
        """Queue a fresh copy of a failed or cancelled job; the original row is left as is."""
        self._check_user_access(user_id)
        job = self._owned_job(job_id, user_id)
        if not job.can_retry():
            raise BusinessError(
                f"Job cannot be retried. Status: {job.status.value}, "
                f"Retry count: {job.retry_count}/{job.max_retries}"
            )

        initiated_at = utcnow()
        queued = self._queue.queue_job(QueueJobRequest(
            user_id=user_id,
            content_type=job.content_type,
            request_params=dict(job.request_params),
            priority=job.priority,
            max_retries=job.max_retries,
            expiration_hours=RETRY_EXPIRATION_HOURS,
            retry_count=job.retry_count + 1,
            original_job_id=job.job_id,
            metadata={
                **job.metadata,
                "original_job_id": job.job_id,
                "retry_of": job.job_id,
                "retry_initiated_at": initiated_at.isoformat(),
            },
        ))
        logger.info("Retry of job %s queued as %s", job_id, queued.job_id)
        return RetryJobResponse(
            original_job_id=job.job_id,
            new_job_id=queued.job_id,
            new_job_status=queued.status,
            retry_initiated_at=initiated_at,
            queue_position=queued.queue_position,
            websocket_channel=websocket_channel(user_id),
        )

    @service_errors("Failed to cancel job")
    def cancel_job(self, job_id: str, user_id: str) -> JobSummary:
        self._check_user_access(user_id)
        return JobSummary.from_job(self._queue.cancel_job(job_id, user_id))

    # -- download -------------------------------------------------------------

    @service_errors("Failed to download job content")
    def download_job_content(self, job_id: str, user_id: str, fmt: str = "txt") -> DownloadPayload:
        self._check_user_access(user_id)
        job = self._owned_job(job_id, user_id)
        if not job.has_content():
            raise BusinessError("Job does not have downloadable content")

        fmt = (fmt or "txt").strip().lower()
        if fmt == "txt":
            content = format_as_text(job)
        elif fmt == "json":
            content = format_as_json(job)
        else:
            content = job.result_content or ""
        stamp = utcnow().strftime("%Y%m%d_%H%M%S")
        return DownloadPayload(
            content=content,
            filename=f"job_{job.job_id}_content_{stamp}.{fmt}",
            media_type=_MEDIA_TYPES.get(fmt, "text/plain"),
        )


def format_as_text(job: GenerationJob) -> str:
    lines = [
        "# Generated Content",
        "",
        f"Job ID: {job.job_id}",
        f"Content Type: {job.content_type or 'N/A'}",
        f"Created: {job.created_at.isoformat()}",
        f"Completed: {job.completed_at.isoformat() if job.completed_at else 'N/A'}",
    ]
    if job.tokens_used is not None:
        lines.append(f"Tokens Used: {job.tokens_used}")
    if job.processing_time_ms is not None:
        lines.append(f"Processing Time: {job.processing_time_ms} ms")
    return "\n".join(lines) + "\n\n---\n\n" + (job.result_content or "")


def format_as_json(job: GenerationJob) -> str:
    document = {
        "job_id": job.job_id,
        "content_type": job.content_type,
        "status": job.status.value,
        "created_at": job.created_at.isoformat(),
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
        "ai_provider": job.ai_provider,
        "ai_model": job.ai_model,
        "tokens_used": job.tokens_used,
        "processing_time_ms": job.processing_time_ms,
        "content": job.result_content,
        "parameters": job.request_params,
        "metadata": job.metadata,
    }
    return json.dumps(document, indent=2, ensure_ascii=False, default=str)
