"""yt-dlp download backend adapter."""

import asyncio
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any

import yt_dlp

from ytgrab.adapters.downloader.base import (
    AbstractDownloader,
    DownloadedMedia,
    MediaFormat,
    VideoMetadata,
)
from ytgrab.core.errors import DownloaderAppError
from ytgrab.utils.url_validation import sanitize_filename

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "ytgrab-"

_CONTENT_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
}


def build_format_spec(quality: str, media_format: MediaFormat) -> str:
    """Pick a yt-dlp format selector.

    Video prefers pre-muxed MP4 streams so no merge step (and no ffmpeg) is
    needed; audio takes the best m4a stream and converts it afterwards.
    """
    if media_format == "mp3":
        return "bestaudio[ext=m4a]/bestaudio"
    if quality == "highest":
        return "best[ext=mp4][vcodec*=avc]/best[ext=mp4]/best"
    return f"best[height<={quality}][ext=mp4]/best[height<={quality}]/best"


def _last_write_time(directory: Path) -> float:
    with os.scandir(directory) as entries:
        return max([directory.stat().st_mtime] + [entry.stat().st_mtime for entry in entries])


class YtDlpDownloader(AbstractDownloader):
    """Downloader backed by the yt-dlp library.

    yt-dlp is blocking, so every call runs in the default executor with an
    upper time bound.
    """

    name = "ytdlp"

    def __init__(
        self,
        *,
        temp_dir: str | None = None,
        socket_timeout_seconds: float = 30.0,
        metadata_timeout_seconds: float = 45.0,
        download_timeout_seconds: float = 900.0,
    ) -> None:
        self.temp_dir = temp_dir
        self.socket_timeout_seconds = socket_timeout_seconds
        self.metadata_timeout_seconds = metadata_timeout_seconds
        self.download_timeout_seconds = download_timeout_seconds

    def _base_options(self) -> dict[str, Any]:
        return {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "nocheckcertificate": True,
            "socket_timeout": self.socket_timeout_seconds,
        }

    def _extract_info(self, url: str) -> dict[str, Any]:
        options = {**self._base_options(), "skip_download": True}
        with yt_dlp.YoutubeDL(options) as ydl:
            info = ydl.extract_info(url, download=False)
        if not info:
            raise DownloaderAppError(
                code="metadata_empty",
                message="The download backend returned no metadata",
                details={"backend": self.name},
            )
        return info

    async def _run_blocking(self, func, *args, timeout: float, operation: str):
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, func, *args),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(
                "downloader.timeout",
                extra={"backend": self.name, "operation": operation, "timeout_s": timeout},
            )
            raise DownloaderAppError(
                code=f"{operation}_timeout",
                message=f"The download backend timed out during {operation}",
                details={"backend": self.name},
            ) from exc
        except yt_dlp.utils.DownloadError as exc:
            logger.warning(
                "downloader.failed",
                extra={"backend": self.name, "operation": operation, "error_msg": str(exc)[:200]},
            )
            raise DownloaderAppError(
                code=f"{operation}_failed",
                message=f"Failed to {operation.replace('_', ' ')}",
                details={"backend": self.name},
            ) from exc

    async def fetch_metadata(self, url: str) -> VideoMetadata:
        info = await self._run_blocking(
            self._extract_info,
            url,
            timeout=self.metadata_timeout_seconds,
            operation="fetch_metadata",
        )
        video_id = str(info.get("id") or "")
        return VideoMetadata(
            video_id=video_id,
            title=info.get("title") or "Untitled",
            channel=info.get("uploader") or info.get("channel") or "Unknown",
            channel_url=info.get("uploader_url") or info.get("channel_url") or "",
            duration=int(info.get("duration") or 0),
            views=int(info.get("view_count") or 0),
            likes=int(info.get("like_count") or 0),
            thumbnail=info.get("thumbnail")
            or f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg",
            description=(info.get("description") or "")[:300],
        )

    def _download_sync(
        self, url: str, quality: str, media_format: MediaFormat, work_dir: Path
    ) -> DownloadedMedia:
        info = self._extract_info(url)
        title = sanitize_filename(info.get("title"))

        options: dict[str, Any] = {
            **self._base_options(),
            "format": build_format_spec(quality, media_format),
            "outtmpl": str(work_dir / f"{title}.%(ext)s"),
        }
        if media_format == "mp3":
            options["postprocessors"] = [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": "mp3",
                    "preferredquality": "0",
                }
            ]

        try:
            with yt_dlp.YoutubeDL(options) as ydl:
                ydl.download([url])
        except yt_dlp.utils.DownloadError:
            # Post-processing can fail after the media itself landed on disk.
            if not any(work_dir.iterdir()):
                raise
            logger.warning("downloader.partial_error", extra={"backend": self.name})

        files = sorted(p for p in work_dir.iterdir() if p.is_file() and not p.name.endswith(".part"))
        if not files:
            raise DownloaderAppError(
                code="download_missing_file",
                message="Download finished but produced no file",
                details={"backend": self.name},
            )

        path = files[0]
        ext = path.suffix.lstrip(".").lower()
        return DownloadedMedia(
            path=path,
            filename=f"{title}.{ext}",
            content_type=_CONTENT_TYPES.get(ext, "application/octet-stream"),
            size_bytes=path.stat().st_size,
            work_dir=work_dir,
        )

    async def download(
        self,
        url: str,
        *,
        quality: str = "highest",
        media_format: MediaFormat = "mp4",
    ) -> DownloadedMedia:
        work_dir = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=self.temp_dir))
        try:
            media = await self._run_blocking(
                self._download_sync,
                url,
                quality,
                media_format,
                work_dir,
                timeout=self.download_timeout_seconds,
                operation="download",
            )
        except DownloaderAppError as exc:
            # The worker thread outlives a timeout and may still be writing
            # here; sweep_scratch removes the directory once it goes quiet.
            if exc.code != "download_timeout":
                shutil.rmtree(work_dir, ignore_errors=True)
            raise
        except Exception:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise

        logger.info(
            "downloader.complete",
            extra={
                "backend": self.name,
                "media_format": media_format,
                "quality": quality,
                "size_bytes": media.size_bytes,
            },
        )
        return media

    @property
    def scratch_root(self) -> Path:
        return Path(self.temp_dir or tempfile.gettempdir())

    def sweep_scratch(self, max_age_seconds: float, now: float | None = None) -> int:
        """Delete ``ytgrab-*`` directories nothing has written to recently.

        Age is measured from the newest modification time of the directory
        or any file directly inside it, so a download still writing its
        ``.part`` file is left alone.
        """
        now = time.time() if now is None else now
        removed = 0
        for work_dir in sorted(self.scratch_root.glob(f"{SCRATCH_PREFIX}*")):
            if not work_dir.is_dir():
                continue
            try:
                last_write = _last_write_time(work_dir)
            except FileNotFoundError:
                continue
            if now - last_write < max_age_seconds:
                continue
            shutil.rmtree(work_dir, ignore_errors=True)
            removed += 1

        if removed:
            logger.info(
                "downloader.scratch_swept",
                extra={"backend": self.name, "removed": removed},
            )
        return removed
