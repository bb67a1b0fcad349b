"""
Tests for the audio selection policy.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from grabbit.audio import round_half_up, select_audio_track, track_bitrate


def track(format_id, abr=None, tbr=None, preference=None, language=None, note="", ext="m4a"):
    return {
        "format_id": format_id,
        "abr": abr,
        "tbr": tbr,
        "preference": preference,
        "language": language,
        "format_note": note,
        "ext": ext,
        "vcodec": "none",
        "acodec": "mp4a",
    }


def test_highest_default_wins():
    chosen = select_audio_track([
        track("139", abr=128, preference=0),
        track("140", abr=256, preference=0),
    ])
    assert chosen.itag == "140"
    assert chosen.bitrate == 256


def test_default_beats_higher_bitrate():
    """A default-signalled 96k track beats a non-default 320k one."""
    chosen = select_audio_track([
        track("low", abr=96, preference=0),
        track("high", abr=320, preference=-1),
    ])
    assert chosen.itag == "low"


def test_absent_preference_is_not_default():
    chosen = select_audio_track([
        track("a", abr=96, preference=None),
        track("b", abr=160, preference=None),
    ])
    assert chosen.itag == "b"
    assert chosen.is_default is False


def test_commentary_never_selected():
    chosen = select_audio_track([
        track("cm", abr=512, preference=10, note="Director COMMENTARY"),
        track("ok", abr=64, preference=-5),
    ])
    assert chosen.itag == "ok"


def test_dub_and_descriptive_excluded():
    assert select_audio_track([
        track("d1", abr=128, preference=0, note="English (dubbed)"),
        track("d2", abr=128, preference=0, note="Descriptive audio"),
    ]) is None


def test_language_mismatch_excluded():
    chosen = select_audio_track([
        track("fr", abr=256, preference=0, language="fr"),
        track("en", abr=128, preference=0, language="en-US"),
    ], original_language="en")
    assert chosen.itag == "en"
    assert chosen.language == "en"


def test_unknown_original_language_lets_everything_through():
    chosen = select_audio_track([
        track("fr", abr=256, preference=0, language="fr"),
        track("en", abr=128, preference=0, language="en"),
    ], original_language="")
    assert chosen.itag == "fr"


def test_untagged_track_passes_language_check():
    chosen = select_audio_track([track("x", abr=128, preference=0)], original_language="ja")
    assert chosen.itag == "x"


def test_zero_bitrate_skipped():
    assert select_audio_track([track("z", abr=0, tbr=0, preference=0)]) is None
    assert select_audio_track([]) is None


def test_bitrate_falls_back_to_tbr_and_rounds():
    assert track_bitrate({"abr": None, "tbr": 129.5}) == 130
    assert track_bitrate({"abr": 0, "tbr": 48.4}) == 48
    assert round_half_up(2.5) == 3


def test_ties_keep_first():
    chosen = select_audio_track([
        track("first", abr=128, preference=0),
        track("second", abr=128, preference=0),
    ])
    assert chosen.itag == "first"


def test_catalog_entry_shape():
    chosen = select_audio_track([track("251", abr=160.2, preference=1, language="EN", ext="webm")])
    assert chosen.to_catalog_entry() == {
        "itag": "251",
        "bitrate": 160,
        "container": "mp3",
        "converted": True,
        "language": "en",
        "original_itag": "251",
    }
