"""
Runtime configuration.

Settings are plain Pydantic models with defaults matching the field app:
location every 30 seconds or 50 meters, whichever comes first, and a
30 second fallback sample.

EngineSettings.from_env() reads FIELDTRACK_* environment variables.
Unset variables keep their defaults; malformed values raise
pydantic.ValidationError instead of being silently ignored.
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


ENV_API_URL = "FIELDTRACK_API_URL"
ENV_API_TOKEN = "FIELDTRACK_API_TOKEN"
ENV_REQUEST_TIMEOUT = "FIELDTRACK_REQUEST_TIMEOUT"
ENV_ENGINEER_ID = "FIELDTRACK_ENGINEER_ID"
ENV_TRACKING_INTERVAL = "FIELDTRACK_TRACKING_INTERVAL"
ENV_TRACKING_DISTANCE = "FIELDTRACK_TRACKING_DISTANCE"
ENV_FALLBACK_INTERVAL = "FIELDTRACK_FALLBACK_INTERVAL"
ENV_LOG_LEVEL = "FIELDTRACK_LOG_LEVEL"

DEFAULT_API_URL = "http://localhost:3000"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class TrackingSettings(BaseModel):
    """Cadence of the location feed while a job is travelling."""

    model_config = ConfigDict(extra="forbid")

    min_interval_s: float = Field(default=30.0, gt=0)
    min_distance_m: float = Field(default=50.0, ge=0)
    fallback_interval_s: float = Field(default=30.0, gt=0)

    # How long stop() waits for the fallback thread to exit
    stop_join_timeout_s: float = Field(default=2.0, ge=0)


class EngineSettings(BaseModel):
    """Top-level settings for the engine and its backend client."""

    model_config = ConfigDict(extra="forbid")

    api_base_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None
    request_timeout_s: float = Field(default=10.0, gt=0)
    engineer_id: Optional[str] = None
    log_level: str = "INFO"

    tracking: TrackingSettings = Field(default_factory=TrackingSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            Validated EngineSettings
        """
        env = os.environ if environ is None else environ

        tracking = {}
        for key, env_name in (
            ("min_interval_s", ENV_TRACKING_INTERVAL),
            ("min_distance_m", ENV_TRACKING_DISTANCE),
            ("fallback_interval_s", ENV_FALLBACK_INTERVAL),
        ):
            if env.get(env_name):
                tracking[key] = env[env_name]

        values = {"tracking": TrackingSettings.model_validate(tracking)}
        for key, env_name in (
            ("api_base_url", ENV_API_URL),
            ("api_token", ENV_API_TOKEN),
            ("request_timeout_s", ENV_REQUEST_TIMEOUT),
            ("engineer_id", ENV_ENGINEER_ID),
            ("log_level", ENV_LOG_LEVEL),
        ):
            if env.get(env_name):
                values[key] = env[env_name]

        return cls.model_validate(values)


def configure_logging(settings: EngineSettings) -> None:
    """Apply the configured level and format to the root logger."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
