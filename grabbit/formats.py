"""
Formats module — turns yt-dlp's raw format list into a clean video catalog.

yt-dlp reports dozens of variants per video: muxed streams, DASH
video-only streams and audio-only streams, often several per resolution
and sometimes dubbed into other languages. This module:

    1. Splits formats into mixed / video-only / audio-only buckets.
    2. Collapses the video side to one candidate per height, preferring
       variants that already carry audio.
    3. Drops muxed variants dubbed into a foreign language so they are
       never offered as the primary stream.
"""

from dataclasses import dataclass


DESIRED_LANGUAGE = "en"
ALLOWED_CONTAINERS = ("mp4", "webm")


@dataclass
class VideoCandidate:
    """One offered video quality."""
    itag: str
    quality: str
    height: int
    container: str
    has_audio: bool
    merge: bool

    def to_dict(self) -> dict:
        return {
            "itag": self.itag,
            "quality": self.quality,
            "height": self.height,
            "container": self.container,
            "hasAudio": self.has_audio,
            "merge": self.merge,
        }


def normalize_language(code: str | None) -> str:
    """'en-US' → 'en', None → ''."""
    return (code or "").lower().split("-")[0]


def has_video(fmt: dict) -> bool:
    return fmt.get("vcodec") != "none"


def has_audio(fmt: dict) -> bool:
    return fmt.get("acodec") != "none"


def partition_formats(formats: list[dict]) -> tuple[list[dict], list[dict], list[dict]]:
    """
    Split raw formats into (mixed, video_only, audio_only).

    Formats with neither a video nor an audio codec are dropped.
    """
    mixed, video_only, audio_only = [], [], []
    for fmt in formats:
        v = has_video(fmt)
        a = has_audio(fmt)
        if v and a:
            mixed.append(fmt)
        elif v:
            video_only.append(fmt)
        elif a:
            audio_only.append(fmt)
    return mixed, video_only, audio_only


def candidate_key(fmt: dict):
    """Height when known, otherwise the format id."""
    return fmt.get("height") or fmt.get("format_id")


def should_replace(existing: VideoCandidate, incoming_has_audio: bool) -> bool:
    """An audio-bearing variant replaces a silent one, never the other way round."""
    return incoming_has_audio and not existing.has_audio


def is_foreign_audio(fmt: dict, carries_audio: bool, desired_language: str) -> bool:
    language = normalize_language(fmt.get("language"))
    return carries_audio and len(language) > 0 and language != desired_language


def _to_candidate(fmt: dict, carries_audio: bool) -> VideoCandidate:
    height = fmt.get("height") or 0
    itag = str(fmt.get("format_id"))
    return VideoCandidate(
        itag=itag,
        quality=f"{height}p" if height else (fmt.get("format_note") or itag),
        height=height,
        container=fmt.get("ext"),
        has_audio=carries_audio,
        merge=not carries_audio,
    )


def upsert_candidate(candidates: dict, fmt: dict, carries_audio: bool,
                     desired_language: str = DESIRED_LANGUAGE):
    """
    Insert ``fmt`` into ``candidates`` under its key.

    The first format at a key wins unless a later one brings audio the
    existing candidate lacks. Foreign-language audio never gets in.
    """
    if is_foreign_audio(fmt, carries_audio, desired_language):
        return

    key = candidate_key(fmt)
    existing = candidates.get(key)
    if existing is None or should_replace(existing, carries_audio):
        candidates[key] = _to_candidate(fmt, carries_audio)


def build_video_list(
    formats: list[dict],
    desired_language: str = DESIRED_LANGUAGE,
) -> list[VideoCandidate]:
    """
    Build the offered video qualities from a raw format list.

    Args:
        formats: The ``formats`` array from yt-dlp's JSON output.
        desired_language: Language code muxed audio must match (if tagged).

    Returns:
        list[VideoCandidate]: mp4/webm only, tallest first.
    """
    mixed, video_only, _ = partition_formats(formats)

    candidates = {}
    for fmt in mixed:
        upsert_candidate(candidates, fmt, True, desired_language)
    for fmt in video_only:
        upsert_candidate(candidates, fmt, False, desired_language)

    videos = [c for c in candidates.values() if c.container in ALLOWED_CONTAINERS]
    videos.sort(key=lambda c: c.height, reverse=True)
    return videos
