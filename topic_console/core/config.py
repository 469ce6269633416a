# topic_console/core/config.py
import json
from functools import lru_cache
from typing import Annotated

from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Central application settings loaded from environment variables (and .env).

    Notes
    -----
    - The API server (``topic-console serve``) reads the Kafka and server sections.
    - The console (explorer, publisher, CLI) only needs ``console_api_base``
      and the request budgets; it never talks to Kafka directly.
    - `cors_allow_origins` accepts JSON array or comma-separated string.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Kafka client/admin ----------
    kafka_bootstrap: str = Field("localhost:9092")
    kafka_api_version: str | None = None

    # Client timeouts (ms)
    request_timeout_ms: int = 20_000
    metadata_max_age_ms: int = 30_000
    api_version_auto_timeout_ms: int = 10_000

    # Admin connection retry
    admin_connect_max_tries: int = 8
    admin_connect_backoff_sec: float = 1.5

    # ---------- Security (set when using SASL/SSL) ----------
    security_protocol: str = "PLAINTEXT"   # e.g. "SASL_SSL", "SSL"
    sasl_mechanism: str | None = None
    sasl_plain_username: str | None = None
    sasl_plain_password: str | None = None
    ssl_cafile: str | None = None

    # ---------- API server ----------
    api_prefix: str = "/api/v1"
    server_host: str = "0.0.0.0"
    server_port: int = 8080

    # Message reads: poll budget and the window used for "latest"
    read_poll_timeout_ms: int = 200
    read_max_empty_polls: int = 5
    read_deadline_sec: float = Field(default=10.0, gt=0)
    latest_window_max: int = Field(default=100, ge=1)

    # Producer delivery wait
    produce_timeout_sec: float = Field(default=10.0, gt=0)

    # Expose /metrics (Prometheus); default OFF
    metrics_enabled: bool = False

    # ---------- CORS ----------
    # NoDecode: the validator below does the parsing, not the env source
    cors_allow_origins: Annotated[list[str] | None, NoDecode] = None

    @field_validator("cors_allow_origins", mode="before")
    def _parse_cors_origins(cls, v):
        """Accept JSON array or comma-separated string."""
        if v is None:
            return None
        if isinstance(v, str):
            try:
                parsed = json.loads(v)  # JSON array
                if isinstance(parsed, list):
                    return [str(s).strip() for s in parsed if str(s).strip()]
            except ValueError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # ---------- Console (explorer / publisher) ----------
    console_api_base: str = "http://127.0.0.1:8080/api/v1"

    # Seconds. Tail reads need a watermark lookup first, so they get more budget.
    fetch_timeout_sec: float = Field(default=30.0, gt=0)
    fetch_timeout_latest_sec: float = Field(default=60.0, gt=0)
    publish_timeout_sec: float = Field(default=30.0, gt=0)
    default_limit: int = Field(default=100, ge=1)

    # ---------- Logging ----------
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
