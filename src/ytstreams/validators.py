"""Watch URL validation and video ID extraction."""

from __future__ import annotations

import re

from ytstreams.errors import InvalidVideoIdError
from ytstreams.models import VideoId

YOUTUBE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:https?://)?(?:www\.|music\.)?youtube\.com/watch\?(?:.*&)?v=(?P<id>[a-zA-Z0-9_-]{11})(?![a-zA-Z0-9_-])"),
    re.compile(r"(?:https?://)?youtu\.be/(?P<id>[a-zA-Z0-9_-]{11})(?![a-zA-Z0-9_-])"),
    re.compile(r"(?:https?://)?(?:www\.)?youtube\.com/shorts/(?P<id>[a-zA-Z0-9_-]{11})(?![a-zA-Z0-9_-])"),
    re.compile(r"(?:https?://)?(?:www\.)?youtube\.com/embed/(?P<id>[a-zA-Z0-9_-]{11})(?![a-zA-Z0-9_-])"),
    re.compile(r"(?:https?://)?m\.youtube\.com/watch\?(?:.*&)?v=(?P<id>[a-zA-Z0-9_-]{11})(?![a-zA-Z0-9_-])"),
)


def extract_video_id(url: str) -> VideoId:
    """Extract the video ID from a watch, short, embed or youtu.be URL.

    Raises:
        InvalidVideoIdError: If the URL does not match any known pattern.
    """
    url = url.strip()
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return VideoId.new(match.group("id"))
    raise InvalidVideoIdError(f"Not a valid YouTube URL: {url}")


def coerce_video_id(value: object) -> VideoId:
    """Accept a VideoId, a bare 11-character ID or a URL containing one.

    Raises:
        InvalidVideoIdError: If no valid ID can be derived.
    """
    if isinstance(value, VideoId):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidVideoIdError("video ID must be a non-empty string")
    stripped = value.strip()
    if "/" in stripped or "." in stripped:
        return extract_video_id(stripped)
    return VideoId.new(stripped)
