"""API views of generation jobs: list rows, details, retry and queue responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from autocontent.jobs.models import GenerationJob, JobPage, JobPriority, JobStatistics, JobStatus
from autocontent.schemas.common import PaginationMetadata
from autocontent.utils import format_duration_ms


class JobSummary(BaseModel):
    """One row of the job list."""

    job_id: str
    content_type: str | None = None
    status: JobStatus
    created_at: datetime
    completed_at: datetime | None = None
    retry_count: int = 0
    execution_time_ms: int | None = None
    formatted_execution_time: str = "N/A"
    can_retry: bool = False
    can_generate_video: bool = False
    error_message: str | None = None

    @classmethod
    def from_job(cls, job: GenerationJob) -> JobSummary:
        return cls(
            job_id=job.job_id,
            content_type=job.content_type,
            status=job.status,
            created_at=job.created_at,
            completed_at=job.completed_at,
            retry_count=job.retry_count,
            execution_time_ms=job.processing_time_ms,
            formatted_execution_time=format_duration_ms(job.processing_time_ms),
            can_retry=job.can_retry(),
            can_generate_video=job.has_content(),
            error_message=job.error_message,
        )


class JobListResponse(BaseModel):
    jobs: list[JobSummary] = Field(default_factory=list)
    pagination: PaginationMetadata
    statistics: JobStatistics | None = None


def pagination_from_page(page: JobPage) -> PaginationMetadata:
    return PaginationMetadata(
        page=page.page,
        size=page.size,
        total_elements=page.total_elements,
        total_pages=page.total_pages,
        first=page.first,
        last=page.last,
        has_next=page.has_next,
        has_previous=page.has_previous,
        number_of_elements=page.number_of_elements,
    )


class JobDetails(BaseModel):
    """Full job view with derived progress and a readable execution log."""

    job_id: str
    user_id: str
    content_type: str | None = None
    status: JobStatus
    priority: JobPriority
    request_params: dict[str, Any] = Field(default_factory=dict)
    result_content: str | None = None
    error_message: str | None = None
    error_details: dict[str, Any] | None = None
    ai_provider: str | None = None
    ai_model: str | None = None
    tokens_used: int | None = None
    generation_cost: float | None = None
    processing_time_ms: int | None = None
    formatted_duration: str = "N/A"
    retry_count: int = 0
    max_retries: int = 0
    original_job_id: str | None = None
    can_retry: bool = False
    progress_percentage: int = 0
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None
    execution_logs: list[str] = Field(default_factory=list)

    @classmethod
    def from_job(cls, job: GenerationJob) -> JobDetails:
        data = job.model_dump()
        data.update(
            formatted_duration=format_duration_ms(job.processing_time_ms),
            can_retry=job.can_retry(),
            progress_percentage=job.progress_percentage(),
            execution_logs=execution_logs(job),
        )
        return cls.model_validate(data)


def execution_logs(job: GenerationJob) -> list[str]:
    """Human-readable timeline reconstructed from the job's timestamps."""
    logs = [f"{job.created_at.isoformat()} Job created (status: QUEUED)"]
    if job.original_job_id:
        logs.append(f"Retry of job {job.original_job_id}")
    if job.started_at:
        logs.append(f"{job.started_at.isoformat()} Processing started")
    if job.completed_at:
        logs.append(f"{job.completed_at.isoformat()} Job finished with status {job.status.value}")
    if job.retry_count > 0:
        logs.append(f"Retried {job.retry_count} time(s)")
    if job.error_message:
        logs.append(f"Error: {job.error_message}")
    return logs


class QueueJobRequest(BaseModel):
    """Internal request to place a job on the queue."""

    user_id: str
    content_type: str | None = None
    request_params: dict[str, Any] = Field(default_factory=dict)
    priority: JobPriority = JobPriority.NORMAL
    max_retries: int | None = None
    expiration_hours: int | None = None
    retry_count: int = 0
    original_job_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class QueueJobResponse(BaseModel):
    job_id: str
    status: JobStatus
    queue_position: int
    websocket_channel: str
    created_at: datetime


class RetryJobResponse(BaseModel):
    original_job_id: str
    new_job_id: str
    new_job_status: JobStatus = JobStatus.QUEUED
    message: str = "Job retry initiated successfully"
    retry_initiated_at: datetime
    queue_position: int = 0
    websocket_channel: str


class DownloadPayload(BaseModel):
    content: str
    filename: str
    media_type: str


class BatchJobsRequest(BaseModel):
    job_ids: list[str] = Field(default_factory=list, max_length=100)
