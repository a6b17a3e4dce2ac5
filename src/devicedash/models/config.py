from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devicedash.telemetry.liveness import OFFLINE_AFTER, SWEEP_INTERVAL
from devicedash.telemetry.store import HISTORY_LIMIT


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DEVICEDASH_",
        extra="ignore",
    )

    stream_url: str | None = None
    event_name: str = "mqtt_message"
    offline_after_seconds: float = Field(default=OFFLINE_AFTER.total_seconds(), gt=0)
    sweep_interval_seconds: float = Field(default=SWEEP_INTERVAL.total_seconds(), gt=0)
    history_limit: int = Field(default=HISTORY_LIMIT, ge=1)
    max_devices: int | None = Field(default=None, ge=1)
    output_format: Literal["rich", "json", "quiet"] | None = None

    @model_validator(mode="after")
    def _sweep_faster_than_threshold(self) -> AppSettings:
        # Staleness detection latency is bounded by threshold + one sweep.
        if self.sweep_interval_seconds >= self.offline_after_seconds:
            raise ValueError(
                "sweep_interval_seconds must be smaller than offline_after_seconds "
                f"({self.sweep_interval_seconds} >= {self.offline_after_seconds})"
            )
        return self
