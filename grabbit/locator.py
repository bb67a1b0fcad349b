"""
Locator module — turns whatever the caller pasted into one canonical
YouTube watch URL.

Every downstream yt-dlp call uses the canonical form, so playlist
parameters, share-tracking suffixes and the different URL shapes
(youtu.be, shorts, embed) never reach the extractor.
"""

import re

from grabbit.errors import BadInput

WATCH_URL = "https://www.youtube.com/watch?v={}"

_VIDEO_ID_RE = re.compile(r"(?:v=|youtu\.be/|shorts/|embed/)([^#?&]+)")


def normalize_youtube_url(url: str | None) -> str | None:
    """
    Normalize a YouTube locator to a canonical watch link.

    Returns None when the input is empty or no known ID pattern matches.
    """
    if not url:
        return None

    cleaned = url.split("&")[0].split("?si")[0]
    match = _VIDEO_ID_RE.search(cleaned)
    if not match:
        return None
    return WATCH_URL.format(match.group(1))


def require_canonical_url(url: str | None) -> str:
    """Like normalize_youtube_url, but raises BadInput instead of returning None."""
    canonical = normalize_youtube_url(url)
    if canonical is None:
        raise BadInput("Invalid URL")
    return canonical
