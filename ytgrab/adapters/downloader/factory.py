"""Factory pattern for creating download backend instances."""

from ytgrab.adapters.downloader.base import AbstractDownloader
from ytgrab.adapters.downloader.ytdlp_client import YtDlpDownloader
from ytgrab.core.config import DownloaderSettings, settings
from ytgrab.core.errors import ValidationAppError


def create_downloader(downloader_settings: DownloaderSettings | None = None) -> AbstractDownloader:
    """Instantiate the download backend selected by ``DOWNLOADER_BACKEND``.

    Args:
        downloader_settings: Optional override; defaults to global settings.

    Returns:
        AbstractDownloader: Configured backend instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = downloader_settings or settings.downloader
    backend = cfg.backend.lower()

    if backend in ("ytdlp", "yt-dlp"):
        return YtDlpDownloader(
            temp_dir=cfg.temp_dir,
            socket_timeout_seconds=cfg.socket_timeout_seconds,
            metadata_timeout_seconds=cfg.metadata_timeout_seconds,
            download_timeout_seconds=cfg.download_timeout_seconds,
        )

    raise ValidationAppError(
        code="downloader_unknown_backend",
        message=f"Unknown download backend: '{backend}'. Supported backends: ytdlp",
    )
