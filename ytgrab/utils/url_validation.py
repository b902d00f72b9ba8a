"""YouTube URL validation and download filename sanitization."""

from __future__ import annotations

import re

MAX_URL_LENGTH = 200
MAX_FILENAME_LENGTH = 60

_YOUTUBE_URL_PATTERNS = (
    re.compile(r"^(https?://)?(www\.)?youtube\.com/watch\?v=[A-Za-z0-9_-]{11}"),
    re.compile(r"^(https?://)?(www\.)?youtube\.com/shorts/[A-Za-z0-9_-]{11}"),
    re.compile(r"^(https?://)?(www\.)?youtu\.be/[A-Za-z0-9_-]{11}"),
    re.compile(r"^(https?://)?(m\.)?youtube\.com/watch\?v=[A-Za-z0-9_-]{11}"),
)

# Emoticons, pictographs, transport, supplemental symbols, misc symbols, dingbats
_EMOJI_RE = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF"
    "\U0001F900-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]"
)
_ILLEGAL_CHARS_RE = re.compile(r'[<>:"/\\|?*#@]')


def is_valid_youtube_url(url: str | None) -> bool:
    """Accept watch, shorts, youtu.be and mobile watch URLs up to 200 chars.

    Examples:
        >>> is_valid_youtube_url("https://youtu.be/dQw4w9WgXcQ")
        True
        >>> is_valid_youtube_url("https://example.com/watch?v=dQw4w9WgXcQ")
        False
    """
    if not url or not isinstance(url, str) or len(url) > MAX_URL_LENGTH:
        return False
    return any(pattern.match(url) for pattern in _YOUTUBE_URL_PATTERNS)


def sanitize_filename(title: str | None) -> str:
    """Make a video title safe to use as a download filename.

    Drops emoji and characters illegal on common filesystems, collapses
    whitespace to underscores and caps the length. Falls back to "video".
    """
    if not title:
        return "video"

    name = _EMOJI_RE.sub("", title)
    name = _ILLEGAL_CHARS_RE.sub("", name)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"_+", "_", name)
    name = name.strip("_")[:MAX_FILENAME_LENGTH]
    return name or "video"
