import socket
from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres
    DATABASE_URL: str = "postgresql://localhost:5432/clientpulse"

    # Redis settings (native URL wins over Upstash REST credentials)
    REDIS_URL: str | None = None
    UPSTASH_REDIS_REST_URL: str | None = None
    UPSTASH_REDIS_REST_TOKEN: str | None = None

    # Primary inference backend (any OpenAI-compatible chat completions host)
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_MAX_TOKENS: int = 1024
    OPENAI_TEMPERATURE: float = 0.2

    # Fallback inference backend
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    INFERENCE_TIMEOUT_SECONDS: float = 45.0

    # =================================================================
    # NOTE PROCESSING QUEUE
    # =================================================================
    NOTE_QUEUE_PREFIX: str = "clientpulse:note_ai"
    NOTE_QUEUE_POLL_SECONDS: int = 5
    NOTE_WORKER_ID: str = socket.gethostname()
    NOTE_WORKER_CONCURRENCY: int = 4

    # Short-lived per-note lease guarding concurrent delivery of the same note
    NOTE_LEASE_ENABLED: bool = True
    NOTE_LEASE_SECONDS: int = 300
    NOTE_LEASE_RETRY_DELAY_SECONDS: int = 30

    # Redelivery delay for a message whose handler raised
    NOTE_CRASH_RETRY_DELAY_SECONDS: int = 60

    HEALTH_SNAPSHOTS_ENABLED: bool = True

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def redis_url(self) -> str:
        """
        Resolve the Redis connection URL.

        Upstash REST credentials are converted to the native protocol,
        e.g. https://eu1-xyz.upstash.io -> rediss://default:<token>@eu1-xyz.upstash.io:6379
        """
        if self.REDIS_URL:
            return self.REDIS_URL

        if self.UPSTASH_REDIS_REST_URL and self.UPSTASH_REDIS_REST_TOKEN:
            rest_url = self.UPSTASH_REDIS_REST_URL.strip()
            parsed = urlparse(rest_url)
            host = parsed.hostname
            if not host:
                host = urlparse(f"https://{rest_url}").hostname
            if not host:
                raise ValueError("UPSTASH_REDIS_REST_URL does not include a valid hostname")
            return f"rediss://default:{self.UPSTASH_REDIS_REST_TOKEN}@{host}:6379"

        return "redis://localhost:6379/0"

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            # Workers run fewer concurrent jobs locally
            config.update({"min_size": 1, "max_size": 4, "timeout": 15.0})

        return config


settings = Settings()
