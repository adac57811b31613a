"""Generation job model, filter criteria, storage and queue."""

from autocontent.jobs.criteria import JobFilterCriteria
from autocontent.jobs.models import GenerationJob, JobPriority, JobStatistics, JobStatus
from autocontent.jobs.store import get_job_store, new_job_id

__all__ = [
    "GenerationJob",
    "JobFilterCriteria",
    "JobPriority",
    "JobStatistics",
    "JobStatus",
    "get_job_store",
    "new_job_id",
]
