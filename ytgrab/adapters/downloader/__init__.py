"""Download backend adapters - one interface over interchangeable backends."""

from ytgrab.adapters.downloader.base import AbstractDownloader, DownloadedMedia, VideoMetadata
from ytgrab.adapters.downloader.factory import create_downloader
from ytgrab.adapters.downloader.ytdlp_client import YtDlpDownloader

__all__ = [
    "AbstractDownloader",
    "DownloadedMedia",
    "VideoMetadata",
    "YtDlpDownloader",
    "create_downloader",
]
