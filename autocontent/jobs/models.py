"""Generation job schema, status and aggregate views."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field

from autocontent.utils import format_duration_ms, utcnow


class JobStatus(str, Enum):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.EXPIRED}
)
ACTIVE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.PROCESSING})
RETRYABLE_STATUSES = frozenset({JobStatus.FAILED, JobStatus.CANCELLED})


class JobPriority(str, Enum):
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Lower rank is processed first."""
        return {"HIGH": 1, "NORMAL": 5, "LOW": 10}[self.value]


class GenerationJob(BaseModel):
    """Content generation job persisted for async processing and listing."""

    job_id: str = ""
    user_id: str = ""
    content_type: str | None = None
    status: JobStatus = JobStatus.QUEUED
    priority: JobPriority = JobPriority.NORMAL
    request_params: dict[str, Any] = Field(default_factory=dict)
    result_content: str | None = None
    error_message: str | None = None
    error_details: dict[str, Any] | None = None
    ai_provider: str | None = None
    ai_model: str | None = None
    tokens_used: int | None = None
    generation_cost: float | None = None
    processing_time_ms: int | None = None
    retry_count: int = 0
    max_retries: int = 3
    original_job_id: str | None = None
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime = Field(default_factory=utcnow)

    def can_retry(self) -> bool:
        return self.status in RETRYABLE_STATUSES and self.retry_count < self.max_retries

    def has_content(self) -> bool:
        return self.status == JobStatus.COMPLETED and bool(
            self.result_content and self.result_content.strip()
        )

    def progress_percentage(self) -> int:
        return {JobStatus.QUEUED: 0, JobStatus.PROCESSING: 50, JobStatus.COMPLETED: 100}.get(
            self.status, 0
        )


class JobStatistics(BaseModel):
    """Per-user aggregate over all of a user's jobs."""

    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    processing_jobs: int = 0
    queued_jobs: int = 0
    cancelled_jobs: int = 0
    average_processing_time_ms: float | None = None
    total_processing_time_ms: int = 0
    total_tokens_used: int = 0
    total_generation_cost: float = 0.0

    @computed_field
    @property
    def success_rate(self) -> float:
        finished = self.completed_jobs + self.failed_jobs + self.cancelled_jobs
        if finished == 0:
            return 0.0
        return self.completed_jobs / finished

    @computed_field
    @property
    def success_rate_percentage(self) -> float:
        if self.total_jobs == 0:
            return 0.0
        return self.completed_jobs * 100.0 / self.total_jobs

    @computed_field
    @property
    def formatted_average_processing_time(self) -> str:
        return format_duration_ms(self.average_processing_time_ms)

    @computed_field
    @property
    def has_active_jobs(self) -> bool:
        return self.processing_jobs > 0 or self.queued_jobs > 0

    @classmethod
    def from_jobs(cls, jobs: list[GenerationJob]) -> JobStatistics:
        counts = {status: 0 for status in JobStatus}
        times: list[int] = []
        tokens = 0
        cost = 0.0
        for job in jobs:
            counts[job.status] += 1
            if job.processing_time_ms is not None:
                times.append(job.processing_time_ms)
            tokens += job.tokens_used or 0
            cost += job.generation_cost or 0.0
        return cls(
            total_jobs=len(jobs),
            completed_jobs=counts[JobStatus.COMPLETED],
            failed_jobs=counts[JobStatus.FAILED],
            processing_jobs=counts[JobStatus.PROCESSING],
            queued_jobs=counts[JobStatus.QUEUED],
            cancelled_jobs=counts[JobStatus.CANCELLED],
            average_processing_time_ms=(sum(times) / len(times)) if times else None,
            total_processing_time_ms=sum(times),
            total_tokens_used=tokens,
            total_generation_cost=round(cost, 6),
        )


class JobPage(BaseModel):
    """One page of jobs plus the total number of matches."""

    items: list[GenerationJob] = Field(default_factory=list)
    page: int = 0
    size: int = 10
    total_elements: int = 0

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total_elements / self.size)

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page >= self.total_pages - 1

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def number_of_elements(self) -> int:
        return len(self.items)


class HourlyJobStat(BaseModel):
    hour: datetime
    status: JobStatus
    job_count: int = 0
    avg_processing_time_ms: float | None = None
    total_tokens: int = 0
