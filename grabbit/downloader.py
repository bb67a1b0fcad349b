"""
Downloader module — fetches the chosen format with yt-dlp.

The download side mirrors the metadata side: the same kind of strategy
ladder, but with a much longer timeout since yt-dlp may have to merge
video and audio (or transcode to mp3) with ffmpeg.

Two kinds of request:
    - audio: ``-f <itag> --extract-audio --audio-format mp3``
    - video: ``-f <itag>+<audio>/<itag> --merge-output-format mp4``,
      where <audio> is the caller's chosen audio itag or ``bestaudio``.

Every request writes to its own ``dl_<token>.*`` file in the temp
directory so concurrent downloads never collide.
"""

import os
import re
import glob
import time
import uuid
from dataclasses import dataclass

from config import settings as config
from grabbit.errors import AttemptFailed, BadInput, DownloadFailed
from grabbit.locator import normalize_youtube_url
from grabbit.runner import DOWNLOAD_STRATEGIES, run_ladder, run_ytdlp


MEDIA_TYPES = ("video", "audio")

MIMETYPES = {
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "m4a": "audio/mp4",
}

# yt-dlp work files: partial downloads and per-format streams awaiting a merge.
_FRAGMENT_RE = re.compile(r"(\.(part|ytdl|temp)$)|(\.f\d+\.)")


@dataclass
class DownloadResult:
    path: str
    filename: str
    mimetype: str


def new_download_token() -> str:
    """Millisecond timestamp plus a short random suffix."""
    return f"{int(time.time() * 1000)}_{str(uuid.uuid4())[:8]}"


def build_download_args(
    strategy: list[str],
    itag: str,
    url: str,
    output_template: str,
    is_audio: bool,
    audio_itag: str | None = None,
) -> list[str]:
    """
    Build the full yt-dlp argument list for one download strategy.

    Audio requests extract and convert the chosen format to mp3. Video
    requests merge the chosen video format with the chosen audio format
    (or yt-dlp's best audio) into an mp4, falling back to the video
    format on its own if the merge selection can't be satisfied.
    """
    if is_audio:
        return [
            *strategy,
            "-f", itag,
            "--extract-audio",
            "--audio-format", "mp3",
            "-o", output_template,
            url,
        ]

    selected_audio = audio_itag or "bestaudio"
    return [
        *strategy,
        "-f", f"{itag}+{selected_audio}/{itag}",
        "--merge-output-format", "mp4",
        "-o", output_template,
        url,
    ]


def _token_files(tmp_dir: str, token: str) -> list[str]:
    return sorted(glob.glob(os.path.join(glob.escape(tmp_dir), f"dl_{token}.*")))


def find_output_file(tmp_dir: str, token: str, ext: str) -> str | None:
    """
    Locate the finished file for a download token.

    Prefers ``dl_<token>.<ext>``; otherwise any finished file for the token
    (skipping yt-dlp work files such as .part and .f137.mp4).
    """
    expected = os.path.join(tmp_dir, f"dl_{token}.{ext}")
    if os.path.exists(expected):
        return expected
    for path in _token_files(tmp_dir, token):
        if not _FRAGMENT_RE.search(os.path.basename(path)):
            return path
    return None


def remove_quietly(path: str):
    try:
        os.remove(path)
    except OSError:
        pass


def download_media(
    url: str,
    itag: str,
    media_type: str = "video",
    audio_itag: str | None = None,
    settings: dict | None = None,
    invoke=None,
) -> DownloadResult:
    """
    Download one format of a YouTube video into the temp directory.

    Args:
        url: Any supported YouTube locator.
        itag: Chosen format id (video itag, or audio itag for audio requests).
        media_type: "video" or "audio".
        audio_itag: Audio format to merge into a video download.
        settings: Settings dict (defaults to config.load_settings()).
        invoke: Override for the yt-dlp call, ``(args, timeout) -> ToolResult``.

    Returns:
        DownloadResult pointing at the finished file. The caller owns the
        file and must delete it once delivered.

    Raises:
        BadInput: bad locator, missing itag, or unknown media type.
        DownloadFailed: every download strategy failed.
    """
    canonical = normalize_youtube_url(url)
    if not canonical or not itag:
        raise BadInput("Invalid URL or Missing ITAG")
    media_type = media_type or "video"
    if media_type not in MEDIA_TYPES:
        raise BadInput(f"Unknown type: {media_type}")

    settings = settings or config.load_settings()
    tmp_dir = settings["tmp_dir"]
    os.makedirs(tmp_dir, exist_ok=True)

    is_audio = media_type == "audio"
    ext = "mp3" if is_audio else "mp4"
    token = new_download_token()
    output_template = os.path.join(tmp_dir, f"dl_{token}.%(ext)s")

    if invoke is None:
        def invoke(args, timeout):
            return run_ytdlp(
                args,
                timeout,
                ytdlp_path=settings["ytdlp_path"],
                cookie_file=settings["cookie_file"],
            )

    def accept(result):
        path = find_output_file(tmp_dir, token, ext)
        if path is None:
            raise AttemptFailed(
                "yt-dlp finished but produced no file",
                stderr=result.stderr or "Downloaded file is missing.",
            )
        # Fragments left behind by earlier failed strategies.
        for leftover in _token_files(tmp_dir, token):
            if leftover != path:
                remove_quietly(leftover)
        return path

    try:
        path = run_ladder(
            DOWNLOAD_STRATEGIES,
            lambda strategy: build_download_args(
                strategy, itag, canonical, output_template, is_audio, audio_itag
            ),
            timeout=settings["download_timeout"],
            label="DOWNLOAD",
            accept=accept,
            invoke=invoke,
            exhausted=DownloadFailed,
        )
    except DownloadFailed:
        for leftover in _token_files(tmp_dir, token):
            remove_quietly(leftover)
        raise

    # A merge fallback to the bare video format keeps its own container.
    actual_ext = os.path.splitext(path)[1].lstrip(".").lower() or ext
    return DownloadResult(
        path=path,
        filename=f"download.{actual_ext}",
        mimetype=MIMETYPES.get(actual_ext, "application/octet-stream"),
    )


def cleanup_stale_files(tmp_dir: str, max_age_hours: float = 24) -> int:
    """
    Delete files in ``tmp_dir`` older than ``max_age_hours``.

    Leftovers from crashed or interrupted downloads pile up otherwise.

    Returns:
        int: Number of files removed.
    """
    removed = 0
    try:
        names = os.listdir(tmp_dir)
    except OSError as e:
        print(f"  ⚠️  Failed to cleanup old temp files: {e}")
        return 0

    cutoff = time.time() - max_age_hours * 3600
    for name in names:
        path = os.path.join(tmp_dir, name)
        try:
            if os.path.isfile(path) and os.path.getmtime(path) < cutoff:
                print(f"  Cleaning old file: {path}")
                os.remove(path)
                removed += 1
        except OSError as e:
            print(f"  ⚠️  Could not remove {path}: {e}")
    return removed
