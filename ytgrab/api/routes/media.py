from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from ytgrab.adapters.downloader.base import AbstractDownloader
from ytgrab.core.abuse_guard import enforce_admission
from ytgrab.core.errors import ValidationAppError
from ytgrab.core.rate_limit import SCOPE_API, SCOPE_DOWNLOAD, SCOPE_INFO, limit_requests
from ytgrab.schemas.media import VideoInfoResponse
from ytgrab.utils.url_validation import is_valid_youtube_url

router = APIRouter(prefix="/api", tags=["Media"])


def get_downloader(request: Request) -> AbstractDownloader:
    """Return the download backend owned by the running application."""
    return request.app.state.downloader


def _require_youtube_url(url: str) -> str:
    if not is_valid_youtube_url(url):
        raise ValidationAppError(code="invalid_url", message="Invalid YouTube URL")
    return url


@router.get(
    "/info",
    response_model=VideoInfoResponse,
    dependencies=[
        Depends(limit_requests(SCOPE_API, SCOPE_INFO)),
        Depends(enforce_admission),
    ],
)
async def video_info(
    downloader: Annotated[AbstractDownloader, Depends(get_downloader)],
    url: str = Query(..., max_length=2048),
) -> VideoInfoResponse:
    """Fetch display metadata for a YouTube video.

    Raises:
        ValidationAppError: 400 if the URL is not a YouTube video URL.
        DownloaderAppError: 502 if the backend fails.
    """
    url = _require_youtube_url(url.strip())
    metadata = await downloader.fetch_metadata(url)
    return VideoInfoResponse(
        video_id=metadata.video_id,
        title=metadata.title,
        channel=metadata.channel,
        channel_url=metadata.channel_url,
        duration=metadata.duration,
        views=metadata.views,
        likes=metadata.likes,
        thumbnail=metadata.thumbnail,
        description=metadata.description,
        is_short=metadata.is_short,
    )


@router.get(
    "/download",
    response_class=FileResponse,
    dependencies=[
        Depends(limit_requests(SCOPE_API, SCOPE_DOWNLOAD)),
        Depends(enforce_admission),
    ],
)
async def download_media(
    downloader: Annotated[AbstractDownloader, Depends(get_downloader)],
    url: str = Query(..., max_length=2048),
    quality: str = Query("highest", pattern=r"^(highest|\d{3,4})$"),
    format: Literal["mp4", "mp3"] = Query("mp4"),
) -> FileResponse:
    """Download a video (mp4) or its audio track (mp3) as an attachment.

    The scratch directory is removed after the response has been sent.
    """
    url = _require_youtube_url(url.strip())
    media = await downloader.download(url, quality=quality, media_format=format)
    return FileResponse(
        path=media.path,
        media_type=media.content_type,
        filename=media.filename,
        background=BackgroundTask(media.cleanup),
    )
