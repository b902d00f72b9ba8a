"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might load settings,
so tests never pick up a developer's .env file.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_ADMIN_AUTH_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key,second-admin-key")
os.environ.setdefault("APP_TRUST_FORWARDED_HEADERS", "false")
os.environ.setdefault("GOVERNOR_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ytgrab.adapters.downloader.base import (  # noqa: E402
    AbstractDownloader,
    DownloadedMedia,
    VideoMetadata,
)
from ytgrab.adapters.governor.in_memory import InMemoryAbuseGovernor  # noqa: E402
from ytgrab.core.app_factory import create_app  # noqa: E402

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}
VALID_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class FakeClock:
    """Deterministic clock used to drive window and block expiry."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeDownloader(AbstractDownloader):
    """In-process backend that never touches the network."""

    name = "fake"

    def __init__(self, work_dir: Path) -> None:
        self.work_dir = work_dir
        self.metadata_calls: list[str] = []
        self.download_calls: list[tuple[str, str, str]] = []
        self.error: Exception | None = None

    async def fetch_metadata(self, url: str) -> VideoMetadata:
        self.metadata_calls.append(url)
        if self.error:
            raise self.error
        return VideoMetadata(
            video_id="dQw4w9WgXcQ",
            title="Test Video",
            channel="Test Channel",
            channel_url="https://www.youtube.com/@test",
            duration=212,
            views=1000,
            likes=50,
            thumbnail="https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
            description="A test video",
        )

    async def download(self, url, *, quality="highest", media_format="mp4") -> DownloadedMedia:
        self.download_calls.append((url, quality, media_format))
        if self.error:
            raise self.error
        self.work_dir.mkdir(parents=True, exist_ok=True)
        path = self.work_dir / f"Test_Video.{media_format}"
        path.write_bytes(b"fake-media-bytes")
        return DownloadedMedia(
            path=path,
            filename=path.name,
            content_type="audio/mpeg" if media_format == "mp3" else "video/mp4",
            size_bytes=path.stat().st_size,
            work_dir=self.work_dir,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def governor(clock: FakeClock) -> InMemoryAbuseGovernor:
    """Governor with a small limit: 3 clicks per 60s, 1 hour block."""
    return InMemoryAbuseGovernor(
        max_clicks=3,
        time_window_seconds=60,
        block_duration_seconds=3600,
        clock=clock,
    )


@pytest.fixture
def downloader(tmp_path: Path) -> FakeDownloader:
    return FakeDownloader(tmp_path / "media")


@pytest.fixture
def app(governor: InMemoryAbuseGovernor, downloader: FakeDownloader) -> FastAPI:
    return create_app(governor=governor, downloader=downloader)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client; the janitor is not started (no lifespan context)."""
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)
