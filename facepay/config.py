"""Central configuration for the facepay controller service."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .state import Currency

ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = ROOT_DIR / ".env"


# ============================================================
# Nested Configuration Classes
# ============================================================

class CameraSettings(BaseModel):
    """Local camera used for the verification preview."""
    device_index: int = Field(0, description="OpenCV capture device index")
    resolution_width: int = Field(640, description="Camera stream width (pixels)")
    resolution_height: int = Field(480, description="Camera stream height (pixels)")
    fps: int = Field(30, description="Requested capture frame rate")
    jpeg_quality: int = Field(85, ge=1, le=100, description="JPEG quality for preview frames")
    preview_frame_interval: float = Field(0.033, description="Minimum time between preview frames (seconds)")


class PerformanceSettings(BaseModel):
    """Queue tuning for UI fan-out and the MJPEG preview."""
    ui_event_queue_size: int = Field(4, ge=1, description="Max buffered UI events per subscriber")
    preview_queue_size: int = Field(2, ge=1, description="Max buffered preview JPEG frames")


class Settings(BaseSettings):
    """Environment-driven settings for controller subsystems."""

    # Payments backend
    payments_api_url: str = Field(
        "http://localhost:3001/api", description="Payments REST base URL (POST {url}/payments)"
    )
    payments_timeout_seconds: float = Field(15.0, description="Timeout for a single payment request")
    payment_user_id: str = Field("demo-user", description="User id attached to every payment request")
    default_currency: Currency = Field(Currency.USD, description="Currency preselected on the payment form")

    # Controller HTTP Server
    controller_host: str = Field("0.0.0.0", description="Host interface for local FastAPI server")
    controller_port: int = Field(5000, description="Port for FastAPI server")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    package_log_level: Optional[str] = Field(
        None, description="Level for the facepay.* loggers (defaults to log_level)"
    )
    log_directory: Path = Field(ROOT_DIR / "logs", description="Log directory path")
    log_retention_days: int = Field(14, description="Number of log files to retain")

    # Nested Configuration Objects
    camera: CameraSettings = Field(default_factory=CameraSettings, description="Camera settings")
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings, description="Performance tuning")

    @field_validator("payments_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("PAYMENTS_API_URL must not be empty")
        return value.rstrip("/")

    @field_validator("log_level", "package_log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    model_config = SettingsConfigDict(
        env_file=str(DEFAULT_ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings(override_env_file: Optional[Path] = None) -> Settings:
    """Cached Settings instance; accepts optional env override for tests."""

    if override_env_file:
        return Settings(_env_file=str(override_env_file))
    return Settings()
