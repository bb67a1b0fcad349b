"""
Tests for the downloader module: plan building, file discovery and the
download ladder with a fake yt-dlp that writes files to disk.
"""

import sys
import os
import time
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from config import settings as config
from grabbit.downloader import (
    build_download_args,
    cleanup_stale_files,
    download_media,
    find_output_file,
    new_download_token,
)
from grabbit.errors import AttemptFailed, BadInput, DownloadFailed
from grabbit.runner import ToolResult

URL = "https://www.youtube.com/watch?v=abc123"


def settings_for(tmp_path):
    return dict(config.DEFAULTS, tmp_dir=str(tmp_path))


class FakeDownloader:
    """
    Fake yt-dlp for download mode.

    Each outcome is an exception to raise, or a list of extensions to
    write next to the ``-o`` template before reporting success.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, args, timeout):
        self.calls.append(args)
        outcome = self.outcomes.pop(0)
        template = args[args.index("-o") + 1]
        if isinstance(outcome, Exception):
            with open(template.replace("%(ext)s", "mp4.part"), "wb") as f:
                f.write(b"partial")
            raise outcome
        for ext in outcome:
            with open(template.replace("%(ext)s", ext), "wb") as f:
                f.write(b"media")
        return ToolResult(stdout="", stderr="")


def test_audio_plan():
    args = build_download_args(["--no-warnings"], "251", URL, "/tmp/dl_x.%(ext)s", is_audio=True)
    assert args == [
        "--no-warnings", "-f", "251", "--extract-audio", "--audio-format", "mp3",
        "-o", "/tmp/dl_x.%(ext)s", URL,
    ]


def test_video_plan_with_and_without_audio_itag():
    merged = build_download_args([], "137", URL, "out.%(ext)s", is_audio=False, audio_itag="140")
    assert merged[:4] == ["-f", "137+140/137", "--merge-output-format", "mp4"]
    assert merged[-1] == URL

    fallback = build_download_args([], "137", URL, "out.%(ext)s", is_audio=False)
    assert fallback[1] == "137+bestaudio/137"


def test_tokens_are_unique():
    tokens = {new_download_token() for _ in range(200)}
    assert len(tokens) == 200


def test_video_download(tmp_path):
    tool = FakeDownloader(["mp4"])
    result = download_media(URL, "137", "video", "140", settings=settings_for(tmp_path), invoke=tool)

    assert result.filename == "download.mp4"
    assert result.mimetype == "video/mp4"
    assert os.path.exists(result.path)
    assert os.path.dirname(result.path) == str(tmp_path)
    assert "137+140/137" in tool.calls[0]


def test_audio_download_after_failures(tmp_path):
    """Earlier failures are retried with the next strategy; fragments are removed."""
    tool = FakeDownloader(AttemptFailed("403", stderr="HTTP Error 403"), ["mp3"])
    result = download_media(URL, "251", "audio", settings=settings_for(tmp_path), invoke=tool)

    assert len(tool.calls) == 2
    assert "youtube:player_client=android" in tool.calls[1]
    assert result.filename == "download.mp3"
    assert os.listdir(tmp_path) == [os.path.basename(result.path)]


def test_success_without_file_is_a_failure(tmp_path):
    tool = FakeDownloader([], [], [], ["mp4"])
    result = download_media(URL, "18", settings=settings_for(tmp_path), invoke=tool)
    assert len(tool.calls) == 4
    assert result.path.endswith(".mp4")


def test_exhaustion_cleans_up(tmp_path):
    tool = FakeDownloader(*[AttemptFailed("x", stderr=f"err {i}") for i in range(4)])
    with pytest.raises(DownloadFailed) as exc:
        download_media(URL, "18", settings=settings_for(tmp_path), invoke=tool)

    assert exc.value.details == "err 3"
    assert exc.value.kind == "download-failed"
    assert os.listdir(tmp_path) == []


def test_bad_input(tmp_path):
    tool = FakeDownloader()
    settings = settings_for(tmp_path)
    with pytest.raises(BadInput):
        download_media("", "18", settings=settings, invoke=tool)
    with pytest.raises(BadInput):
        download_media(URL, "", settings=settings, invoke=tool)
    with pytest.raises(BadInput):
        download_media(URL, "18", media_type="gif", settings=settings, invoke=tool)
    assert tool.calls == []


def test_find_output_file_skips_fragments(tmp_path):
    (tmp_path / "dl_tok.f137.mp4.part").write_bytes(b"x")
    assert find_output_file(str(tmp_path), "tok", "mp4") is None

    (tmp_path / "dl_tok.mkv").write_bytes(b"x")
    assert find_output_file(str(tmp_path), "tok", "mp4") == str(tmp_path / "dl_tok.mkv")

    (tmp_path / "dl_tok.mp4").write_bytes(b"x")
    assert find_output_file(str(tmp_path), "tok", "mp4") == str(tmp_path / "dl_tok.mp4")


def test_cleanup_stale_files(tmp_path):
    old = tmp_path / "dl_old.mp4"
    new = tmp_path / "dl_new.mp4"
    old.write_bytes(b"x")
    new.write_bytes(b"x")
    two_days_ago = time.time() - 48 * 3600
    os.utime(old, (two_days_ago, two_days_ago))

    assert cleanup_stale_files(str(tmp_path), max_age_hours=24) == 1
    assert not old.exists()
    assert new.exists()


def test_cleanup_missing_dir(tmp_path):
    assert cleanup_stale_files(str(tmp_path / "missing")) == 0


def test_unmerged_fallback_keeps_its_container(tmp_path):
    """When yt-dlp falls back to the bare webm video, the result says webm."""
    tool = FakeDownloader(["webm"])
    result = download_media(URL, "248", settings=settings_for(tmp_path), invoke=tool)

    assert result.path.endswith(".webm")
    assert result.filename == "download.webm"
    assert result.mimetype == "video/webm"


def test_find_output_file_skips_per_format_intermediates(tmp_path):
    """A .f137.mp4 left by a failed merge is not a finished download."""
    (tmp_path / "dl_tok.f137.mp4").write_bytes(b"x")
    assert find_output_file(str(tmp_path), "tok", "mp4") is None

    (tmp_path / "dl_tok.webm").write_bytes(b"x")
    assert find_output_file(str(tmp_path), "tok", "mp4") == str(tmp_path / "dl_tok.webm")
