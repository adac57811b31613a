"""Service wiring for route handlers."""

from fastapi import Depends

from autocontent.auth.models import User
from autocontent.auth.store import get_user_store
from autocontent.cache import get_job_cache
from autocontent.config import get_settings
from autocontent.configs.service import ConfigService
from autocontent.configs.store import get_config_store
from autocontent.content.generator import ContentGenerator
from autocontent.content.service import ContentService
from autocontent.content.store import get_content_store
from autocontent.content.workflow import WorkflowService
from autocontent.jobs.queue import QueueService
from autocontent.jobs.service import JobQueueService
from autocontent.jobs.store import get_job_store
from autocontent.llm.routing import ProviderRouter
from autocontent.presets.service import PresetService
from autocontent.presets.store import get_preset_store
from backend.auth import require_auth


def get_queue_service() -> QueueService:
    return QueueService(get_job_store(), get_job_cache(), get_settings())


def get_job_service(
    user: User = Depends(require_auth),
    queue: QueueService = Depends(get_queue_service),
) -> JobQueueService:
    return JobQueueService(get_job_store(), queue, get_job_cache(), user.user_id)


def get_config_service() -> ConfigService:
    return ConfigService(get_config_store(), get_user_store())


def get_preset_service() -> PresetService:
    return PresetService(get_preset_store())


def get_generator() -> ContentGenerator:
    settings = get_settings()
    return ContentGenerator(ProviderRouter(settings), settings)


def get_content_service(
    configs: ConfigService = Depends(get_config_service),
    presets: PresetService = Depends(get_preset_service),
    queue: QueueService = Depends(get_queue_service),
    generator: ContentGenerator = Depends(get_generator),
) -> ContentService:
    return ContentService(get_content_store(), configs, presets, queue, generator)


def get_workflow_service() -> WorkflowService:
    return WorkflowService(get_settings())
