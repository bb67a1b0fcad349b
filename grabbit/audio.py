"""
Audio module — picks the single audio track Grabbit offers for a video.

Videos often ship several audio-only streams: different bitrates, dubs,
descriptive audio, director's commentary. We want the original-language
primary track:

    - Dubbed / descriptive / commentary tracks are never offered.
    - Tracks tagged with a language other than the video's original
      language are skipped (unless the original language is unknown).
    - Among what's left, a track yt-dlp marks as preferred
      (``preference >= 0``) wins over a higher-bitrate unmarked one.

The chosen track is offered as an mp3 conversion.
"""

import math
from dataclasses import dataclass

from grabbit.formats import normalize_language


EXCLUDED_NOTE_MARKERS = ("dub", "descriptive", "commentary")


@dataclass
class AudioCandidate:
    itag: str
    bitrate: int
    container: str
    language: str
    note: str
    is_default: bool

    def to_catalog_entry(self) -> dict:
        """Present the track as the mp3 deliverable it will be converted to."""
        return {
            "itag": self.itag,
            "bitrate": self.bitrate,
            "container": "mp3",
            "converted": True,
            "language": self.language,
            "original_itag": self.itag,
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def track_bitrate(fmt: dict) -> int:
    """Average bitrate, falling back to total bitrate, as an int (kbps)."""
    return round_half_up(fmt.get("abr") or fmt.get("tbr") or 0)


def is_alternate_track(note: str) -> bool:
    """Dubs, descriptive audio and commentary are never the primary track."""
    note = note.lower()
    return any(marker in note for marker in EXCLUDED_NOTE_MARKERS)


def is_wrong_language(fmt: dict, original_language: str) -> bool:
    # Nothing to compare against when the original language is unknown.
    if not original_language:
        return False
    declared = fmt.get("language")
    return bool(declared) and normalize_language(declared) != original_language


def select_audio_track(
    audio_formats: list[dict],
    original_language: str | None = "",
) -> AudioCandidate | None:
    """
    Choose the best audio-only track.

    Args:
        audio_formats: Audio-only formats from ``partition_formats``.
        original_language: The video's declared language (any case/region).

    Returns:
        AudioCandidate, or None when nothing usable survives filtering.
    """
    original_language = normalize_language(original_language)

    best_default = None
    best_overall = None

    for fmt in audio_formats:
        bitrate = track_bitrate(fmt)
        if bitrate <= 0:
            continue

        note = (fmt.get("format_note") or "").lower()
        if is_alternate_track(note) or is_wrong_language(fmt, original_language):
            continue

        preference = fmt.get("preference")
        candidate = AudioCandidate(
            itag=str(fmt.get("format_id")),
            bitrate=bitrate,
            container=fmt.get("ext"),
            language=normalize_language(fmt.get("language")),
            note=note,
            is_default=preference is not None and preference >= 0,
        )

        if candidate.is_default and bitrate > (best_default.bitrate if best_default else 0):
            best_default = candidate
        if bitrate > (best_overall.bitrate if best_overall else 0):
            best_overall = candidate

    return best_default or best_overall
