from __future__ import annotations
import re

# watch?v=, youtu.be/, /embed/, /v/, /shorts/ URLs, or a bare 11-char id
_URL_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/|youtube\.com/shorts/)([A-Za-z0-9_-]{11})"
)
_ID_PATTERN = re.compile(r"^([A-Za-z0-9_-]{11})$")


def extract_video_id(value: str | None) -> str | None:
    """
    Pull the video id out of a pasted YouTube URL or a bare id.
    Returns None when nothing matches.

    >>> extract_video_id("https://www.youtube.com/watch?v=YP06jhz3Jqo")
    'YP06jhz3Jqo'
    >>> extract_video_id("YP06jhz3Jqo")
    'YP06jhz3Jqo'
    """
    if not value:
        return None
    value = value.strip()
    for pattern in (_URL_PATTERN, _ID_PATTERN):
        m = pattern.search(value)
        if m:
            return m.group(1)
    return None


def video_url(video_id: str | None) -> str | None:
    return f"https://www.youtube.com/watch?v={video_id}" if video_id else None
