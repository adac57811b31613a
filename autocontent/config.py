"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root .env, independent of CWD
_THIS_DIR = Path(__file__).resolve().parent          # autocontent/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM provider: openai | anthropic
    ac_llm_provider: str = "openai"
    # Comma-separated failover order tried after the primary provider
    ac_llm_fallback_providers: str = "anthropic"

    # OpenAI
    openai_api_key: str | None = None
    ac_openai_model: str = "gpt-4o-mini"

    # Anthropic
    anthropic_api_key: str | None = None
    ac_anthropic_model: str = "claude-3-5-sonnet-20241022"

    # Data directory for file-based stores
    ac_data_dir: str = "./data"

    # Postgres URL; file stores are used when unset
    ac_database_url: str | None = None

    # Redis URL for the job listing cache; in-process cache when unset
    ac_redis_url: str | None = None

    # JWT
    ac_jwt_secret: str = "change-me-in-production"
    ac_jwt_algorithm: str = "HS256"
    ac_access_token_ttl_seconds: int = 3600
    ac_refresh_token_ttl_seconds: int = 604800

    # Login lockout
    ac_max_failed_logins: int = 5
    ac_lock_duration_minutes: int = 30

    # Job queue
    ac_job_max_retries: int = 3
    ac_job_expiration_hours: int = 24
    ac_job_timeout_minutes: int = 30
    ac_max_active_jobs_per_user: int = 10

    # Cache TTLs (seconds)
    ac_cache_ttl_jobs_seconds: int = 600
    ac_cache_ttl_stats_seconds: int = 3600
    ac_cache_ttl_realtime_seconds: int = 120
    ac_cache_ttl_search_seconds: int = 900

    # Generation cost per 1k tokens (USD)
    ac_token_cost_per_1k: float = 0.002

    # n8n (or compatible) webhook that receives finished content
    ac_workflow_webhook_url: str | None = None
    ac_workflow_timeout_seconds: float = 30.0

    # Seed admin/user accounts and the option catalog on startup
    ac_seed_demo_data: bool = True

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origin_regex: str | None = None

    # Rate limit for mutating requests, per client IP
    rate_limit_max: int = 30
    rate_limit_window_seconds: int = 60

    port: int = 8000

    @property
    def data_dir(self) -> Path:
        """Data directory as Path.

        Relative paths are resolved against the project root, not CWD.
        """
        p = Path(self.ac_data_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def jobs_dir(self) -> Path:
        return self.data_dir / "jobs"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def fallback_provider_list(self) -> list[str]:
        return [p.strip().lower() for p in self.ac_llm_fallback_providers.split(",") if p.strip()]

    def ensure_dirs(self) -> None:
        """Ensure all data directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.jobs_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_dirs()
    return settings
