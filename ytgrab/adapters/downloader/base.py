from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

MediaFormat = Literal["mp4", "mp3"]


@dataclass(frozen=True)
class VideoMetadata:
	"""Display metadata for a single video."""

	video_id: str
	title: str
	channel: str
	channel_url: str
	duration: int
	views: int
	likes: int
	thumbnail: str
	description: str

	@property
	def is_short(self) -> bool:
		return self.duration <= 60


@dataclass(frozen=True)
class DownloadedMedia:
	"""A finished download sitting in its own scratch directory.

	The caller owns ``work_dir`` and must call ``cleanup()`` once the file
	has been sent.
	"""

	path: Path
	filename: str
	content_type: str
	size_bytes: int
	work_dir: Path

	def cleanup(self) -> None:
		shutil.rmtree(self.work_dir, ignore_errors=True)


class AbstractDownloader(ABC):
	"""Interface for media download backends (library, binary or remote API)."""

	name: str = "abstract"

	@abstractmethod
	async def fetch_metadata(self, url: str) -> VideoMetadata:
		"""Look up display metadata without downloading media.

		Args:
			url: A validated YouTube URL.

		Returns:
			VideoMetadata for the video.

		Raises:
			DownloaderAppError: If the backend fails or times out.
		"""
		...

	@abstractmethod
	async def download(
		self,
		url: str,
		*,
		quality: str = "highest",
		media_format: MediaFormat = "mp4",
	) -> DownloadedMedia:
		"""Download media to a scratch directory.

		Args:
			url: A validated YouTube URL.
			quality: "highest" or a maximum frame height such as "720".
			media_format: "mp4" for video, "mp3" for audio only.

		Returns:
			DownloadedMedia describing the file on disk.

		Raises:
			DownloaderAppError: If the backend fails, times out or produces no file.
		"""
		...

	def sweep_scratch(self, max_age_seconds: float, now: float | None = None) -> int:
		"""Remove leftover scratch data older than ``max_age_seconds``.

		Backends that keep nothing on disk have nothing to sweep.

		Returns:
			Number of scratch directories removed.
		"""
		return 0
