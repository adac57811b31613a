"""Background processing of queued generation jobs."""

from __future__ import annotations

import logging

from autocontent.cache import get_job_cache
from autocontent.config import get_settings
from autocontent.content.generator import ContentGenerator
from autocontent.errors import AppError
from autocontent.jobs.models import GenerationJob, JobStatus
from autocontent.jobs.queue import QueueService
from autocontent.jobs.store import JobStore, get_job_store
from autocontent.llm.routing import ProviderRouter
from autocontent.schemas.content_schemas import ContentGenerateRequest

logger = logging.getLogger(__name__)


def build_generator() -> ContentGenerator:
    settings = get_settings()
    return ContentGenerator(ProviderRouter(settings), settings)


def build_queue(store: JobStore | None = None) -> QueueService:
    return QueueService(store or get_job_store(), get_job_cache(), get_settings())


def process_job(
    job_id: str,
    generator: ContentGenerator | None = None,
    queue: QueueService | None = None,
) -> GenerationJob | None:
    """Run one queued job to completion. Failures are recorded on the job, never retried here."""
    store = get_job_store()
    queue = queue or build_queue(store)
    job = store.get(job_id)
    if job is None or job.status != JobStatus.QUEUED:
        logger.info("Skipping job %s (not queued)", job_id)
        return job

    if queue.mark_processing(job) is None:
        logger.info("Skipping job %s (claimed or cancelled concurrently)", job_id)
        return store.get(job_id)
    # A cancel, expiry or timeout sweep during generation wins over the outcome here
    try:
        request = ContentGenerateRequest.model_validate(job.request_params)
        result = (generator or build_generator()).generate(request)
    except AppError as e:
        logger.warning("Job %s failed: %s", job_id, e.message)
        return queue.mark_failed(job, e.message, type(e).__name__)
    except Exception as e:
        logger.exception("Job %s failed unexpectedly", job_id)
        return queue.mark_failed(job, str(e) or "Content generation failed", type(e).__name__)

    logger.info("Job %s generated in %d ms", job_id, result.processing_time_ms)
    return queue.mark_completed(job, result.model_dump())


def process_next_batch(limit: int = 10, generator: ContentGenerator | None = None) -> list[GenerationJob]:
    """Process up to ``limit`` queued jobs in priority order."""
    store = get_job_store()
    queue = build_queue(store)
    generator = generator or build_generator()
    processed = []
    for job in store.next_queued(limit):
        result = process_job(job.job_id, generator=generator, queue=queue)
        if result is not None:
            processed.append(result)
    return processed
