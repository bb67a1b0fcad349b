"""
Error types shared by the metadata and download flows.

Every error carries a short ``kind`` string that the web layer turns
into a response classification. Failures of a single attempt
(``AttemptFailed`` and its subclasses) never leave a strategy ladder;
the caller only ever sees ``StrategiesExhausted`` or ``BadInput``.
"""

DETAILS_LIMIT = 500


class GrabbitError(Exception):
    """Base class for everything Grabbit raises on purpose."""

    kind = "error"


class BadInput(GrabbitError):
    """Locator or required id is missing or unparseable."""

    kind = "bad-input"


class AttemptFailed(GrabbitError):
    """One invocation of yt-dlp did not succeed."""

    kind = "attempt-failed"

    def __init__(self, message: str, stderr: str = "", returncode=None):
        super().__init__(message)
        self.stderr = stderr or ""
        self.returncode = returncode


class ToolUnavailable(AttemptFailed):
    kind = "tool-unavailable"


class AttemptTimedOut(AttemptFailed):
    kind = "timeout"


class StrategiesExhausted(GrabbitError):
    """Every strategy in a ladder failed. Holds on to the last failure."""

    kind = "exhausted"
    fallback_details = "No response received from yt-dlp."

    def __init__(self, message: str, last_error: AttemptFailed | None = None,
                 limit: int = DETAILS_LIMIT):
        super().__init__(message)
        self.last_error = last_error
        self.limit = limit

    @property
    def details(self) -> str:
        """Bounded diagnostic taken from the last attempt's stderr."""
        stderr = self.last_error.stderr if self.last_error else ""
        return stderr[: self.limit] or self.fallback_details


class ExtractionFailed(StrategiesExhausted):
    kind = "extraction-failed"


class DownloadFailed(StrategiesExhausted):
    kind = "download-failed"
    fallback_details = "No response received during download attempt."


class StreamFailure(GrabbitError):
    """Delivery of a finished file was interrupted."""

    kind = "stream-failure"
