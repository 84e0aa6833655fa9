"""Process settings for the tracing demo server and client."""

import json
import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_EXTERNAL_URLS = [
    "https://example.com/1",
    "https://example.com/2",
    "https://example.com/3",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env"), env_file_encoding="utf-8")

    # App
    APP_NAME: str = "otel-distributed"
    ENVIRONMENT: str = "development"  # development | production | test

    # Sentry (error reporting + trace backend)
    SENTRY_DSN: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 1.0
    SENTRY_DEBUG: bool = False

    # Also print finished spans to stdout
    OTEL_CONSOLE_EXPORT: bool = False

    # Server
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 3001
    SIMULATE_LATENCY: bool = True

    # Client
    LOCAL_SERVICE_URL: str = "http://localhost:3001/hello"
    # Accept list or CSV/JSON string from env; normalized to list[str] by validators
    EXTERNAL_URLS: list[str] | str = DEFAULT_EXTERNAL_URLS
    HTTP_TIMEOUT_SECONDS: float = 10.0

    @field_validator("EXTERNAL_URLS", mode="before")
    @classmethod
    def assemble_external_urls(cls, v: object) -> list[str]:
        """Allow list, CSV string, or JSON array string for external URLs."""
        if isinstance(v, list):
            return [str(i).strip() for i in v]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        "EXTERNAL_URLS must be a CSV list or JSON array string"
                    ) from e
                if not isinstance(parsed, list):
                    raise ValueError("EXTERNAL_URLS JSON must be a list")
                return [str(i).strip() for i in parsed]
            # CSV fallback
            return [i.strip() for i in s.split(",") if i.strip()]
        raise ValueError("Invalid EXTERNAL_URLS type; expected str or list[str]")

    @field_validator("SENTRY_TRACES_SAMPLE_RATE")
    @classmethod
    def check_sample_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("SENTRY_TRACES_SAMPLE_RATE must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def _normalize(self) -> "Settings":
        """Normalize stray string values and empty DSNs."""
        if isinstance(self.EXTERNAL_URLS, str):
            self.EXTERNAL_URLS = self.assemble_external_urls(self.EXTERNAL_URLS)
        if self.SENTRY_DSN is not None and not self.SENTRY_DSN.strip():
            self.SENTRY_DSN = None
        return self


@lru_cache
def get_settings() -> Settings:
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env not in {"development", "production", "test"}:
        raise ValueError("ENVIRONMENT must be 'development', 'production', or 'test'")

    if env == "production":
        env_file = ".env.prod"
    elif env == "development":
        env_file = ".env.dev"
    else:
        # test environment - no env file needed, use defaults
        env_file = ""

    # The Settings initializer accepts a runtime-only `_env_file` kwarg used by
    # pydantic-settings; mypy's stub doesn't allow this call argument.
    settings = Settings(_env_file=env_file or None)  # type: ignore[call-arg]

    # Fail fast: a production process without a DSN would drop every report.
    if env == "production" and not settings.SENTRY_DSN:
        raise RuntimeError("SENTRY_DSN must be set in production")
    return settings
