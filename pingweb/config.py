"""Process-wide configuration for pingweb, read once at startup."""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE_VARIABLE = "PINGWEB_ENV_FILE"


class MonitorConfig(BaseSettings):
    """Immutable monitor settings.

    Every field can be set through a ``PINGWEB_``-prefixed environment
    variable or a ``.env`` file, e.g. ``PINGWEB_TARGET=8.8.8.8``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PINGWEB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    target: str
    listen_host: str = "0.0.0.0"
    listen_port: int = Field(default=8080, ge=1, le=65535)
    probe_interval: float = Field(default=1.0, gt=0)
    probe_timeout: float = Field(default=1.0, gt=0)
    log_dir: Path = Path("logs")
    max_ping_entries: int = Field(default=100, gt=0)
    refresh_seconds: int = Field(default=3, gt=0)
    prober: Literal["ping", "fake"] = "ping"

    # only read when prober == "fake"
    fake_latency_ms: float = Field(default=25.0, ge=0)
    fake_jitter_ms: float = Field(default=5.0, ge=0)
    fake_loss_probability: float = Field(default=0.02, ge=0, le=1)
    fake_outage_length: int = Field(default=1, ge=1)

    @field_validator("target")
    @classmethod
    def _target_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("target must not be empty")
        return value

    @property
    def probe_timeout_ms(self) -> int:
        return max(1, round(self.probe_timeout * 1000))


def load_config(env_file: str | None = None) -> MonitorConfig:
    """Build the configuration from the environment and an optional .env file.

    Raises:
        pydantic.ValidationError: a value is missing or invalid
    """
    if env_file is None:
        env_file = os.environ.get(ENV_FILE_VARIABLE, ".env")
    return MonitorConfig(_env_file=env_file)
