"""Core module for voicetutor."""

from voicetutor.core.base import (
    LoopScheduler,
    Message,
    RecognitionEvent,
    RecognitionResult,
    Role,
    Scheduler,
    SessionFlags,
    SpeechRecognizer,
    SpeechSynthesizer,
    Utterance,
    Voice,
)
from voicetutor.core.errors import (
    BackendRequestError,
    CapabilityUnavailableError,
    CaptureError,
    FatalCaptureError,
    MalformedResponseError,
    TransientCaptureError,
    VoiceTutorError,
)
from voicetutor.core.logging import get_logger, setup_logging

__all__ = [
    "BackendRequestError",
    "CapabilityUnavailableError",
    "CaptureError",
    "FatalCaptureError",
    "LoopScheduler",
    "MalformedResponseError",
    "Message",
    "RecognitionEvent",
    "RecognitionResult",
    "Role",
    "Scheduler",
    "SessionFlags",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "TransientCaptureError",
    "Utterance",
    "VoiceTutorError",
    "Voice",
    "get_logger",
    "setup_logging",
]
