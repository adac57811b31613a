"""Content generation API: sync generate-and-save, async queueing, manual save, workflow."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from autocontent.auth.models import User
from autocontent.content.service import ContentService
from autocontent.content.workflow import WorkflowService
from autocontent.jobs.worker import process_job
from autocontent.schemas.common import BaseResponse, PaginationMetadata
from autocontent.schemas.content_schemas import (
    ContentGenerateRequest,
    ContentGenerateResponse,
    ContentListResponse,
    ContentSaveRequest,
    SavedContent,
    WorkflowRequest,
    WorkflowResult,
)
from autocontent.schemas.job_schemas import QueueJobResponse
from backend.auth import require_auth
from backend.deps import get_content_service, get_workflow_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/content/generate", response_model=BaseResponse[ContentGenerateResponse])
def generate_content(
    request: ContentGenerateRequest,
    user: User = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    """Generate content synchronously and save it to the user's library."""
    response = content.generate(request, user)
    return BaseResponse.ok(response, "Content generated successfully")


@router.post(
    "/content/generate-async",
    response_model=BaseResponse[QueueJobResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
def generate_content_async(
    request: ContentGenerateRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    """Queue a generation job; progress is visible through /jobs."""
    queued = content.queue(request, user)
    background_tasks.add_task(process_job, queued.job_id)
    return BaseResponse.ok(queued, "Content generation job queued")


@router.post("/content/save", response_model=BaseResponse[SavedContent], status_code=status.HTTP_201_CREATED)
def save_content(
    request: ContentSaveRequest,
    user: User = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    return BaseResponse.ok(content.save(request, user), "Content saved successfully")


@router.get("/content", response_model=BaseResponse[ContentListResponse])
def list_content(
    page: int = Query(0, ge=0),
    size: int = Query(10, ge=1, le=100),
    user: User = Depends(require_auth),
    content: ContentService = Depends(get_content_service),
):
    items, total = content.list_contents(user, page, size)
    return BaseResponse.ok(ContentListResponse(
        contents=items,
        pagination=PaginationMetadata.of(page, size, total, len(items)),
    ))


@router.post("/content/workflow", response_model=BaseResponse[WorkflowResult])
def trigger_workflow(
    request: WorkflowRequest,
    user: User = Depends(require_auth),
    workflow: WorkflowService = Depends(get_workflow_service),
):
    """Hand generated content to the automation webhook. Webhook failures are reported, not raised."""
    result = workflow.trigger(request, user)
    return BaseResponse.ok(result, result.message)
