"""
Catalog module — the metadata side of Grabbit.

fetch_catalog() is the whole /api/info flow:

    locator → canonical URL → yt-dlp -J (strategy ladder)
            → video candidates + one audio track → catalog dict

A catalog is either complete or not returned at all; any failure
surfaces as BadInput or ExtractionFailed.
"""

import json

from config import settings as config
from grabbit.audio import select_audio_track
from grabbit.errors import AttemptFailed, ExtractionFailed
from grabbit.formats import build_video_list, partition_formats
from grabbit.locator import require_canonical_url
from grabbit.runner import INFO_STRATEGIES, run_ladder, run_ytdlp


def assemble_catalog(info: dict, videos: list, audio) -> dict:
    """Shape classifier/policy output into the response the client expects."""
    return {
        "title": info.get("title"),
        "thumbnail": info.get("thumbnail_url") or info.get("thumbnail"),
        "formats": {
            "video": [v.to_dict() for v in videos],
            "audio": [audio.to_catalog_entry()] if audio else [],
        },
    }


def parse_info(result) -> dict:
    """Accept a metadata attempt only if it yields at least one format."""
    try:
        info = json.loads(result.stdout)
    except ValueError as e:
        raise AttemptFailed("yt-dlp returned invalid JSON", stderr=result.stderr) from e

    if not isinstance(info, dict) or not info.get("formats"):
        raise AttemptFailed("yt-dlp returned no formats", stderr=result.stderr)
    return info


def classify(info: dict, desired_language: str = "en") -> dict:
    """Run the classifier and audio policy over one yt-dlp info document."""
    formats = info.get("formats") or []
    _, _, audio_only = partition_formats(formats)

    videos = build_video_list(formats, desired_language=desired_language)
    audio = select_audio_track(audio_only, info.get("language"))
    return assemble_catalog(info, videos, audio)


def fetch_catalog(url: str, settings: dict | None = None, invoke=None) -> dict:
    """
    Fetch and classify the formats available for a YouTube URL.

    Args:
        url: Any supported YouTube locator.
        settings: Settings dict (defaults to config.load_settings()).
        invoke: Override for the yt-dlp call, ``(args, timeout) -> ToolResult``.

    Returns:
        dict: ``{title, thumbnail, formats: {video: [...], audio: [...]}}``

    Raises:
        BadInput: the URL has no canonical form.
        ExtractionFailed: every metadata strategy failed.
    """
    settings = settings or config.load_settings()
    canonical = require_canonical_url(url)

    if invoke is None:
        def invoke(args, timeout):
            return run_ytdlp(
                args,
                timeout,
                ytdlp_path=settings["ytdlp_path"],
                cookie_file=settings["cookie_file"],
            )

    info = run_ladder(
        INFO_STRATEGIES,
        lambda strategy: [*strategy, canonical],
        timeout=settings["info_timeout"],
        label="INFO",
        accept=parse_info,
        invoke=invoke,
        exhausted=ExtractionFailed,
    )

    return classify(info, desired_language=settings["desired_language"])
