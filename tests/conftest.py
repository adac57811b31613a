"""Pytest configuration and shared fixtures."""

import os
import tempfile
from datetime import timedelta

import pytest

# Settings are read from the environment at import time by backend.main
os.environ.setdefault("AC_DATA_DIR", tempfile.mkdtemp(prefix="autocontent-tests-"))
os.environ["AC_JWT_SECRET"] = "test-secret-key-with-at-least-32-bytes!!"
os.environ["AC_SEED_DEMO_DATA"] = "false"
os.environ["RATE_LIMIT_MAX"] = "100000"
os.environ.pop("AC_DATABASE_URL", None)
os.environ.pop("AC_REDIS_URL", None)

from autocontent import cache as cache_module  # noqa: E402
from autocontent.auth import store as user_store_module  # noqa: E402
from autocontent.auth.models import Role  # noqa: E402
from autocontent.auth.service import AuthService  # noqa: E402
from autocontent.cache import JobCache, MemoryCache  # noqa: E402
from autocontent.config import Settings  # noqa: E402
from autocontent.configs import store as config_store_module  # noqa: E402
from autocontent.content import store as content_store_module  # noqa: E402
from autocontent.content.generator import ContentGenerator  # noqa: E402
from autocontent.jobs import store as job_store_module  # noqa: E402
from autocontent.jobs.models import GenerationJob, JobStatus  # noqa: E402
from autocontent.jobs.queue import QueueService  # noqa: E402
from autocontent.llm.base import Completion  # noqa: E402
from autocontent.llm.routing import ProviderRouter  # noqa: E402
from autocontent.presets import store as preset_store_module  # noqa: E402
from autocontent.seed import seed_catalog  # noqa: E402
from autocontent.utils import new_id, utcnow  # noqa: E402


class FakeProvider:
    """Stand-in LLM: echoes the first brief line, or raises when ``fail`` is set."""

    calls: list[tuple[str, str]] = []

    def __init__(self, name: str, model: str, fail: bool = False):
        self.name = name
        self.model = model
        self.fail = fail

    def complete(self, prompt: str, **kwargs) -> str:
        return self.complete_with_usage(prompt).text

    def complete_with_usage(self, prompt: str, **kwargs) -> Completion:
        FakeProvider.calls.append((self.name, self.model))
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        brief = next((line for line in prompt.splitlines() if line.startswith("Brief: ")), "Brief: ")
        return Completion(
            text=f"Generated by {self.name}. {brief[len('Brief: '):]}",
            model=self.model,
            prompt_tokens=400,
            completion_tokens=600,
        )


def fake_factory(failing: tuple[str, ...] = ()):
    def factory(name: str, api_key: str | None = None, model: str | None = None):
        return FakeProvider(name, model or "", fail=name in failing)
    return factory


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    """Every test gets fresh file stores under tmp_path and an empty in-process cache."""
    monkeypatch.setenv("AC_DATA_DIR", str(tmp_path))
    monkeypatch.setattr(job_store_module, "_store", job_store_module.FileJobStore(tmp_path))
    monkeypatch.setattr(user_store_module, "_store", user_store_module.FileUserStore(tmp_path))
    monkeypatch.setattr(config_store_module, "_store", config_store_module.FileConfigStore(tmp_path))
    monkeypatch.setattr(preset_store_module, "_store", preset_store_module.FilePresetStore(tmp_path))
    monkeypatch.setattr(content_store_module, "_store", content_store_module.FileContentStore(tmp_path))
    monkeypatch.setattr(cache_module, "_cache", MemoryCache())
    FakeProvider.calls = []
    yield


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ac_data_dir=str(tmp_path),
        ac_jwt_secret="test-secret-key-with-at-least-32-bytes!!",
        openai_api_key="sk-test",
        anthropic_api_key="sk-ant-test",
        ac_llm_provider="openai",
        ac_llm_fallback_providers="anthropic",
    )


@pytest.fixture
def job_store():
    return job_store_module.get_job_store()


@pytest.fixture
def user_store():
    return user_store_module.get_user_store()


@pytest.fixture
def config_store():
    return config_store_module.get_config_store()


@pytest.fixture
def preset_store():
    return preset_store_module.get_preset_store()


@pytest.fixture
def job_cache(settings):
    return JobCache(cache_module.get_cache(), settings)


@pytest.fixture
def queue(job_store, job_cache, settings):
    return QueueService(job_store, job_cache, settings)


@pytest.fixture
def generator(settings):
    return ContentGenerator(ProviderRouter(settings, factory=fake_factory()), settings)


@pytest.fixture
def auth_service(user_store, settings):
    return AuthService(user_store, settings)


@pytest.fixture
def admin(auth_service):
    return auth_service.create_user("admin", "admin@example.com", "admin123", role=Role.ADMIN)


@pytest.fixture
def user(auth_service):
    return auth_service.create_user("alice", "alice@example.com", "alice123")


@pytest.fixture
def other_user(auth_service):
    return auth_service.create_user("bob", "bob@example.com", "bob12345")


@pytest.fixture
def catalog(config_store):
    seed_catalog(config_store)
    return config_store


@pytest.fixture
def make_job(job_store):
    """Insert a job directly into the store; ``minutes_ago`` offsets created_at."""

    def _make(user_id: str, status: JobStatus = JobStatus.COMPLETED, minutes_ago: int = 0, **fields) -> GenerationJob:
        created = utcnow() - timedelta(minutes=minutes_ago)
        job = GenerationJob(
            job_id=fields.pop("job_id", new_id("job")),
            user_id=user_id,
            status=status,
            created_at=created,
            updated_at=created,
            **fields,
        )
        if status == JobStatus.COMPLETED:
            job.result_content = job.result_content or "Some generated content"
            job.completed_at = job.completed_at or created + timedelta(seconds=5)
        if status in (JobStatus.FAILED, JobStatus.CANCELLED):
            job.completed_at = job.completed_at or created + timedelta(seconds=5)
        job_store.create(job)
        return job

    return _make


@pytest.fixture
def provider_factory():
    """``provider_factory(failing=("openai",))`` builds a router factory with failing providers."""
    return fake_factory
