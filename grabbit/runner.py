"""
Runner module — invokes yt-dlp and walks a strategy ladder.

YouTube extraction breaks in different ways depending on which player
client yt-dlp emulates, so every operation is described as an ordered
list of argument variants ("strategies"). The runner tries them one at
a time and stops at the first one that works:

    1. Build the argument list for the strategy.
    2. Run yt-dlp with a hard timeout (the process is killed on expiry).
    3. On success, hand the result to ``accept`` and return.
    4. On failure, remember the error and move on to the next strategy.

If nothing works, ``StrategiesExhausted`` carries the last error so the
caller can report something useful.
"""

import subprocess
from dataclasses import dataclass

from grabbit.errors import (
    AttemptFailed,
    AttemptTimedOut,
    StrategiesExhausted,
    ToolUnavailable,
)


# Metadata ladder: cheapest and most faithful first, permissive last.
INFO_STRATEGIES = [
    ["-J", "--no-warnings"],
    ["-J", "--no-warnings", "--extractor-args", "youtube:player_client=android"],
    ["-J", "--no-warnings", "--extractor-args", "youtube:player_client=default"],
    ["-J", "--no-warnings", "--extractor-args", "youtube:player_client=tvhtml5"],
    ["-J", "--no-warnings", "--allow-dynamic-mpd", "--no-check-formats"],
]

DOWNLOAD_STRATEGIES = [
    ["--no-warnings"],
    ["--no-warnings", "--extractor-args", "youtube:player_client=android"],
    ["--no-warnings", "--extractor-args", "youtube:player_client=tvhtml5"],
    ["--no-warnings", "--allow-dynamic-mpd", "--no-check-formats"],
]

DEFAULT_YTDLP_PATH = "yt-dlp"
DEFAULT_COOKIE_FILE = "youtube_cookies.txt"


@dataclass
class ToolResult:
    """Captured output of one successful yt-dlp run."""
    stdout: str
    stderr: str
    returncode: int = 0


def run_ytdlp(
    args: list[str],
    timeout: float,
    ytdlp_path: str = DEFAULT_YTDLP_PATH,
    cookie_file: str | None = DEFAULT_COOKIE_FILE,
) -> ToolResult:
    """
    Run yt-dlp once and capture its output.

    Args:
        args: Strategy arguments (everything after the cookie flags).
        timeout: Seconds before the process is killed.
        ytdlp_path: Executable to run.
        cookie_file: Cookie jar passed as ``--cookies`` ahead of ``args``.

    Returns:
        ToolResult for a zero exit status.

    Raises:
        ToolUnavailable: the executable could not be started.
        AttemptTimedOut: the run exceeded ``timeout`` and was killed.
        AttemptFailed: yt-dlp exited with a non-zero status.
    """
    cmd = [ytdlp_path]
    if cookie_file:
        cmd += ["--cookies", cookie_file]
    cmd += list(args)

    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        # Missing binary, no permission, bad executable format, bad path.
        raise ToolUnavailable(
            f"yt-dlp could not be started: {e}",
            stderr=f"yt-dlp could not be started from {ytdlp_path}: {e}",
        ) from e

    with proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise AttemptTimedOut(f"yt-dlp timed out after {timeout}s", stderr="Timed out")
        finally:
            # Reached with the process still alive only if communicate() was
            # interrupted by something other than a timeout.
            if proc.poll() is None:
                proc.kill()
                proc.wait()

    if proc.returncode != 0:
        raise AttemptFailed(
            f"yt-dlp exited with status {proc.returncode}",
            stderr=stderr,
            returncode=proc.returncode,
        )
    return ToolResult(stdout=stdout, stderr=stderr, returncode=proc.returncode)


def run_ladder(
    ladder: list[list[str]],
    build_args,
    timeout: float,
    label: str = "RUN",
    accept=None,
    invoke=None,
    exhausted=StrategiesExhausted,
):
    """
    Try each strategy in ``ladder`` in order until one succeeds.

    Args:
        ladder: Ordered strategy argument lists.
        build_args: Callable turning one strategy into the full argument list.
        timeout: Per-attempt timeout in seconds.
        label: Prefix for the progress lines.
        accept: Optional callable applied to a successful ToolResult. Its
                return value becomes the ladder's result; raising
                AttemptFailed sends the runner on to the next strategy.
        invoke: Callable ``(args, timeout) -> ToolResult``. Defaults to
                ``run_ytdlp``.
        exhausted: StrategiesExhausted subclass raised when nothing works.

    Returns:
        The accepted result of the first successful attempt.
    """
    if invoke is None:
        invoke = run_ytdlp

    last_error = None
    for position, strategy in enumerate(ladder, start=1):
        args = build_args(strategy)
        print(f"{label} → {' '.join(args)}")
        try:
            result = invoke(args, timeout)
            return accept(result) if accept is not None else result
        except AttemptFailed as e:
            last_error = e
            print(f"  ⚠️  Strategy {position}/{len(ladder)} failed ({e.kind}): {e}")

    raise exhausted(
        f"All {len(ladder)} strategies failed",
        last_error=last_error,
    )
