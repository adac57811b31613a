"""Job queue API: filtered listing, details, retry, cancel, download and analytics.

GET  /api/v1/jobs?page=&size=&status=&contentType=&createdAfter=&createdBefore=&search=&sortBy=&sortDirection=
POST /api/v1/jobs/{job_id}/retry   → 202, new job processed in the background
GET  /api/v1/jobs/{job_id}/download?format=txt|json|md
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import Response

from autocontent.auth.models import User
from autocontent.jobs.criteria import JobFilterCriteria
from autocontent.jobs.models import HourlyJobStat, JobStatistics
from autocontent.jobs.service import JobQueueService
from autocontent.jobs.worker import process_job
from autocontent.schemas.common import BaseResponse
from autocontent.schemas.job_schemas import (
    BatchJobsRequest,
    JobDetails,
    JobListResponse,
    JobSummary,
    RetryJobResponse,
)
from autocontent.utils import utcnow
from backend.auth import require_admin, require_auth
from backend.deps import get_job_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/jobs", response_model=BaseResponse[JobListResponse])
def list_jobs(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    status_filter: str | None = Query(None, alias="status"),
    content_type: str | None = Query(None, alias="contentType"),
    created_after: str | None = Query(None, alias="createdAfter"),
    created_before: str | None = Query(None, alias="createdBefore"),
    search: str | None = Query(None, max_length=500),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_direction: str = Query("DESC", alias="sortDirection"),
    user: User = Depends(require_auth),
    jobs: JobQueueService = Depends(get_job_service),
):
    """List the current user's jobs with filters, pagination and statistics."""
    criteria = JobFilterCriteria.from_query(
        status=status_filter,
        content_type=content_type,
        created_after=created_after,
        created_before=created_before,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    return BaseResponse.ok(jobs.get_jobs(user.user_id, page, size, criteria), "Jobs retrieved successfully")


@router.get("/jobs/statistics", response_model=BaseResponse[JobStatistics])
def job_statistics(user: User = Depends(require_auth), jobs: JobQueueService = Depends(get_job_service)):
    return BaseResponse.ok(jobs.get_statistics(user.user_id))


@router.get("/jobs/content-types", response_model=BaseResponse[list[str]])
def content_types(user: User = Depends(require_auth), jobs: JobQueueService = Depends(get_job_service)):
    return BaseResponse.ok(jobs.get_available_content_types(user.user_id))


@router.get("/jobs/active-count", response_model=BaseResponse[int])
def active_count(user: User = Depends(require_auth), jobs: JobQueueService = Depends(get_job_service)):
    return BaseResponse.ok(jobs.get_active_job_count(user.user_id))


@router.post("/jobs/batch", response_model=BaseResponse[list[JobSummary]])
def jobs_batch(request: BatchJobsRequest, jobs: JobQueueService = Depends(get_job_service)):
    """Summaries for up to 100 job ids; ids the caller does not own are omitted."""
    return BaseResponse.ok(jobs.get_jobs_batch(request.job_ids))


@router.get("/jobs/analytics/hourly", response_model=BaseResponse[list[HourlyJobStat]])
def hourly_analytics(
    hours: int = Query(24, ge=1, le=24 * 30),
    _admin: User = Depends(require_admin),
    jobs: JobQueueService = Depends(get_job_service),
):
    return BaseResponse.ok(jobs.get_hourly_statistics(utcnow() - timedelta(hours=hours)))


@router.get("/jobs/{job_id}/details", response_model=BaseResponse[JobDetails])
def job_details(job_id: str, user: User = Depends(require_auth), jobs: JobQueueService = Depends(get_job_service)):
    return BaseResponse.ok(jobs.get_job_details(job_id, user.user_id))


@router.post(
    "/jobs/{job_id}/retry",
    response_model=BaseResponse[RetryJobResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
def retry_job(
    job_id: str,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_auth),
    jobs: JobQueueService = Depends(get_job_service),
):
    """Queue a new job from a failed or cancelled one and process it in the background."""
    result = jobs.retry_job(job_id, user.user_id)
    background_tasks.add_task(process_job, result.new_job_id)
    return BaseResponse.ok(result, result.message)


@router.post("/jobs/{job_id}/cancel", response_model=BaseResponse[JobSummary])
def cancel_job(job_id: str, user: User = Depends(require_auth), jobs: JobQueueService = Depends(get_job_service)):
    return BaseResponse.ok(jobs.cancel_job(job_id, user.user_id), "Job cancelled")


@router.get("/jobs/{job_id}/download")
def download_job(
    job_id: str,
    format: str = Query("txt", max_length=10),
    user: User = Depends(require_auth),
    jobs: JobQueueService = Depends(get_job_service),
):
    """Download generated content as an attachment."""
    payload = jobs.download_job_content(job_id, user.user_id, format)
    return Response(
        content=payload.content.encode("utf-8"),
        media_type=payload.media_type,
        headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
    )
