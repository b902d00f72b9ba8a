"""Pydantic schemas for the media endpoints."""

from pydantic import BaseModel, Field


class VideoInfoResponse(BaseModel):
    """Video metadata shown before the user picks a download format."""

    video_id: str
    title: str
    channel: str
    channel_url: str = ""
    duration: int = Field(0, ge=0, description="Duration in seconds.")
    views: int = Field(0, ge=0)
    likes: int = Field(0, ge=0)
    thumbnail: str
    description: str = Field("", description="First 300 characters of the description.")
    is_short: bool = Field(..., description="True for videos of 60 seconds or less.")
