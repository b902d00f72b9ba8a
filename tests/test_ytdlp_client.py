"""Tests for the yt-dlp adapter with the library replaced by a fake."""

import asyncio
import os
import time
from pathlib import Path

import pytest
import yt_dlp

from ytgrab.adapters.downloader import ytdlp_client
from ytgrab.adapters.downloader.factory import create_downloader
from ytgrab.adapters.downloader.ytdlp_client import YtDlpDownloader, build_format_spec
from ytgrab.core.config import DownloaderSettings
from ytgrab.core.errors import DownloaderAppError, ValidationAppError

URL = "https://youtu.be/dQw4w9WgXcQ"

INFO = {
    "id": "dQw4w9WgXcQ",
    "title": "Never Gonna: Give You Up",
    "uploader": "Rick Astley",
    "uploader_url": "https://www.youtube.com/@RickAstley",
    "duration": 212,
    "view_count": 1_500_000_000,
    "like_count": 17_000_000,
    "description": "x" * 500,
}


class FakeYoutubeDL:
    """Stands in for yt_dlp.YoutubeDL; behaviour is set on class attributes."""

    instances: list["FakeYoutubeDL"] = []
    info: dict | None = INFO
    output_ext: str | None = "mp4"
    download_error: bool = False
    delay: float = 0.0

    def __init__(self, options: dict) -> None:
        self.options = options
        type(self).instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url: str, download: bool = False):
        if self.delay:
            time.sleep(self.delay)
        if self.info is None:
            raise yt_dlp.utils.DownloadError("Video unavailable")
        return dict(self.info)

    def download(self, urls: list[str]) -> int:
        if self.output_ext:
            Path(self.options["outtmpl"].replace("%(ext)s", self.output_ext)).write_bytes(b"data")
        if self.download_error:
            raise yt_dlp.utils.DownloadError("postprocessing failed")
        return 0


@pytest.fixture
def fake_ydl(monkeypatch):
    class _Fake(FakeYoutubeDL):
        instances = []

    monkeypatch.setattr(ytdlp_client.yt_dlp, "YoutubeDL", _Fake)
    return _Fake


@pytest.fixture
def backend(tmp_path: Path) -> YtDlpDownloader:
    return YtDlpDownloader(temp_dir=str(tmp_path))


@pytest.mark.parametrize(
    ("quality", "media_format", "expected"),
    [
        ("highest", "mp4", "best[ext=mp4][vcodec*=avc]/best[ext=mp4]/best"),
        ("720", "mp4", "best[height<=720][ext=mp4]/best[height<=720]/best"),
        ("1080", "mp3", "bestaudio[ext=m4a]/bestaudio"),
    ],
)
def test_build_format_spec(quality, media_format, expected) -> None:
    assert build_format_spec(quality, media_format) == expected


@pytest.mark.asyncio
async def test_fetch_metadata_maps_fields(fake_ydl, backend) -> None:
    metadata = await backend.fetch_metadata(URL)

    assert metadata.video_id == "dQw4w9WgXcQ"
    assert metadata.channel == "Rick Astley"
    assert metadata.views == 1_500_000_000
    assert len(metadata.description) == 300
    assert metadata.thumbnail == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
    assert fake_ydl.instances[0].options["skip_download"] is True


@pytest.mark.asyncio
async def test_fetch_metadata_failure_is_downloader_error(fake_ydl, backend) -> None:
    fake_ydl.info = None

    with pytest.raises(DownloaderAppError) as exc_info:
        await backend.fetch_metadata(URL)

    assert exc_info.value.code == "fetch_metadata_failed"


@pytest.mark.asyncio
async def test_fetch_metadata_timeout(fake_ydl, tmp_path) -> None:
    fake_ydl.delay = 0.3
    backend = YtDlpDownloader(temp_dir=str(tmp_path), metadata_timeout_seconds=0.05)

    with pytest.raises(DownloaderAppError) as exc_info:
        await backend.fetch_metadata(URL)

    assert exc_info.value.code == "fetch_metadata_timeout"


@pytest.mark.asyncio
async def test_download_video(fake_ydl, backend) -> None:
    media = await backend.download(URL, quality="720")

    assert media.filename == "Never_Gonna_Give_You_Up.mp4"
    assert media.content_type == "video/mp4"
    assert media.path.read_bytes() == b"data"
    assert fake_ydl.instances[-1].options["format"].startswith("best[height<=720]")

    media.cleanup()
    assert not media.work_dir.exists()


@pytest.mark.asyncio
async def test_download_audio_adds_postprocessor(fake_ydl, backend) -> None:
    fake_ydl.output_ext = "mp3"

    media = await backend.download(URL, media_format="mp3")

    assert media.content_type == "audio/mpeg"
    postprocessors = fake_ydl.instances[-1].options["postprocessors"]
    assert postprocessors[0]["key"] == "FFmpegExtractAudio"
    media.cleanup()


@pytest.mark.asyncio
async def test_download_tolerates_late_error_when_file_exists(fake_ydl, backend) -> None:
    fake_ydl.download_error = True

    media = await backend.download(URL)

    assert media.path.exists()
    media.cleanup()


@pytest.mark.asyncio
async def test_failed_download_removes_scratch_dir(fake_ydl, backend, tmp_path) -> None:
    fake_ydl.output_ext = None
    fake_ydl.download_error = True

    with pytest.raises(DownloaderAppError) as exc_info:
        await backend.download(URL)

    assert exc_info.value.code == "download_failed"
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_download_without_output_file(fake_ydl, backend, tmp_path) -> None:
    fake_ydl.output_ext = None

    with pytest.raises(DownloaderAppError) as exc_info:
        await backend.download(URL)

    assert exc_info.value.code == "download_missing_file"
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_timed_out_download_is_left_for_the_scratch_sweep(fake_ydl, tmp_path) -> None:
    fake_ydl.delay = 0.2
    backend = YtDlpDownloader(temp_dir=str(tmp_path), download_timeout_seconds=0.05)

    with pytest.raises(DownloaderAppError) as exc_info:
        await backend.download(URL)
    assert exc_info.value.code == "download_timeout"

    # The worker thread keeps going after the timeout and writes its file
    await asyncio.sleep(0.5)
    leftovers = list(tmp_path.glob("ytgrab-*"))
    assert len(leftovers) == 1
    assert list(leftovers[0].iterdir())

    assert backend.sweep_scratch(max_age_seconds=600) == 0
    assert backend.sweep_scratch(max_age_seconds=600, now=time.time() + 601) == 1
    assert list(tmp_path.glob("ytgrab-*")) == []


def test_sweep_scratch_keeps_active_and_foreign_dirs(tmp_path) -> None:
    backend = YtDlpDownloader(temp_dir=str(tmp_path))
    now = time.time()
    old = now - 3600

    stale = tmp_path / "ytgrab-stale"
    stale.mkdir()
    (stale / "clip.mp4").write_bytes(b"x")
    os.utime(stale / "clip.mp4", (old, old))

    active = tmp_path / "ytgrab-active"
    active.mkdir()
    (active / "clip.mp4.part").write_bytes(b"x")

    foreign = tmp_path / "other-dir"
    foreign.mkdir()

    for path in (stale, active, foreign):
        os.utime(path, (old, old))

    assert backend.sweep_scratch(max_age_seconds=600, now=now) == 1
    assert not stale.exists()
    assert active.exists()
    assert foreign.exists()


def test_sweep_scratch_with_missing_root(tmp_path) -> None:
    backend = YtDlpDownloader(temp_dir=str(tmp_path / "missing"))

    assert backend.sweep_scratch(max_age_seconds=1) == 0


class TestFactory:
    def test_creates_ytdlp_backend(self) -> None:
        backend = create_downloader(DownloaderSettings(backend="yt-dlp", download_timeout_seconds=60))

        assert isinstance(backend, YtDlpDownloader)
        assert backend.download_timeout_seconds == 60

    def test_unknown_backend_raises(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_downloader(DownloaderSettings(backend="pytube"))

        assert exc_info.value.code == "downloader_unknown_backend"
