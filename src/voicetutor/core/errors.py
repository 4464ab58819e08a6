"""
Error taxonomy.

Capture errors are classified from engine error codes and never abort an
in-flight backend call. Backend errors are converted to a single generic
user-facing message by the turn orchestrator.
"""

# Engine codes that are absorbed without interrupting capture
TRANSIENT_CAPTURE_CODES = frozenset({"no-speech", "network"})

# Engine acknowledgement of our own stop()/abort(); not an error
ABORTED_CODE = "aborted"


class VoiceTutorError(Exception):
    """Base class for all voicetutor errors."""


class CapabilityUnavailableError(VoiceTutorError):
    """Speech recognition or synthesis is not supported."""

    def __init__(self, capability: str) -> None:
        self.capability = capability
        super().__init__(f"{capability} is not available")


class CaptureError(VoiceTutorError):
    """Error reported by the speech recognition engine."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Speech recognition error: {code}")


class TransientCaptureError(CaptureError):
    """No-speech or network blip; capture continues."""


class FatalCaptureError(CaptureError):
    """Any other recognition error; surfaced and followed by a restart attempt."""


class BackendRequestError(VoiceTutorError):
    """Transport failure or non-success response from the assistant backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class MalformedResponseError(BackendRequestError):
    """Backend answered 2xx with a payload of unexpected shape."""


def classify_capture_error(code: str) -> CaptureError | None:
    """
    Map an engine error code onto the capture error taxonomy.

    Returns:
        None for the aborted acknowledgement, otherwise a transient or
        fatal capture error.
    """
    if code == ABORTED_CODE:
        return None
    if code in TRANSIENT_CAPTURE_CODES:
        return TransientCaptureError(code)
    return FatalCaptureError(code)
