"""Runtime configuration for ytgrab.

Settings are grouped per concern (APP_, GOVERNOR_, RATE_LIMIT_,
DOWNLOADER_, LOG_ prefixes). ``APP_ENV`` picks an optional ``.env.<env>``
file at the project root which is loaded into the process environment
before the groups are read.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENV = os.getenv("APP_ENV", "development")
PROJECT_ROOT = Path(__file__).resolve().parents[2]
KNOWN_ENVS = ("development", "testing", "staging", "production")


def _env_file_for(app_env: str) -> Path | None:
    """Return ``.env.<app_env>`` under the project root if it exists."""
    name = app_env if app_env in KNOWN_ENVS else "development"
    candidate = PROJECT_ROOT / f".env.{name}"
    return candidate if candidate.is_file() else None


# Nested BaseSettings do not see a parent's env_file, so the file goes
# straight into os.environ.
_env_file = _env_file_for(APP_ENV)
if _env_file is not None:
    load_dotenv(_env_file, override=True)


class GovernorSettings(BaseSettings):
    """Abuse governor configuration (click window and temporary blocks)."""

    enabled: bool = Field(
        True,
        description="Enable IP-based spam protection on the media routes",
    )
    max_clicks: int = Field(
        10,
        description="Maximum requests allowed per client within one window",
        ge=1,
    )
    time_window_seconds: float = Field(
        60.0,
        description="Length of the click-counting window in seconds",
        gt=0,
    )
    block_duration_seconds: float = Field(
        3600.0,
        description="How long a client stays blocked after exceeding max_clicks",
        gt=0,
    )
    cleanup_interval_seconds: float = Field(
        300.0,
        description="Period of the janitor sweep that evicts stale entries",
        gt=0,
    )
    include_headers: bool = Field(
        True,
        description="Include Retry-After and X-Governor-* headers on 429 responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="GOVERNOR_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-route request limits applied ahead of the abuse governor."""

    enabled: bool = Field(True, description="Enable the per-route request limits")
    window_seconds: int = Field(60, description="Length of each limit window", ge=1)
    api_requests: int = Field(
        30,
        description="Requests per window per client across all /api routes",
        ge=1,
    )
    info_requests: int = Field(15, description="Requests per window to /api/info", ge=1)
    download_requests: int = Field(
        10,
        description="Requests per window to /api/download",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include Retry-After and X-RateLimit-* headers on 429 responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class DownloaderSettings(BaseSettings):
    """Media download backend configuration."""

    backend: str = Field(
        "ytdlp",
        description="Download backend name (currently: ytdlp)",
    )
    temp_dir: str | None = Field(
        None,
        description="Directory for in-flight downloads (system temp dir if unset)",
    )
    socket_timeout_seconds: float = Field(
        30.0,
        description="Network timeout handed to the download backend",
    )
    metadata_timeout_seconds: float = Field(
        45.0,
        description="Upper bound for a metadata lookup",
        gt=0,
    )
    download_timeout_seconds: float = Field(
        900.0,
        description="Upper bound for a single media download",
        gt=0,
    )
    scratch_max_age_seconds: float = Field(
        1800.0,
        description=(
            "Scratch directories untouched for this long are removed by the "
            "janitor; keep it above download_timeout_seconds"
        ),
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="DOWNLOADER_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_auth_required: bool = Field(
        True,
        description="Whether the /admin endpoints require an X-Admin-Key header",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid admin keys",
    )
    trust_forwarded_headers: bool = Field(
        False,
        description=(
            "Derive the client key from X-Forwarded-For / X-Real-IP. "
            "Only enable behind a proxy you control."
        ),
    )
    cors_origins: str | None = Field(
        None,
        description=(
            "Comma-separated origins allowed by CORS. Unset means any origin, "
            "except in production where cross-origin requests are refused."
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """All configuration groups.

    Built once at import time; a malformed value fails startup with a
    pydantic validation error.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    governor: GovernorSettings = Field(default_factory=GovernorSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    downloader: DownloaderSettings = Field(default_factory=DownloaderSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
