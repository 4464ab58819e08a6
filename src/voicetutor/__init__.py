"""
voicetutor - Voice-driven IELTS speaking practice.

Captures spoken turns, sends them to an assistant backend, speaks the
replies back and tracks token cost. Speech engines are supplied by the
host application through the SpeechRecognizer / SpeechSynthesizer
interfaces.
"""

from voicetutor.config.loader import ConfigLoader
from voicetutor.config.schema import TutorConfig
from voicetutor.core.base import (
    LoopScheduler,
    Message,
    RecognitionEvent,
    RecognitionResult,
    Role,
    SessionFlags,
    SpeechRecognizer,
    SpeechSynthesizer,
    Utterance,
    Voice,
)
from voicetutor.core.errors import (
    BackendRequestError,
    CapabilityUnavailableError,
    FatalCaptureError,
    MalformedResponseError,
    TransientCaptureError,
    VoiceTutorError,
)
from voicetutor.core.logging import get_logger, setup_logging
from voicetutor.core.session import SessionState, TurnCallbacks, TurnOrchestrator
from voicetutor.costs import CostAccumulator, CostTotals, UsageDelta
from voicetutor.backend import ChatBackend, ChatReply, ChatRequest, HttpChatBackend, RequestType
from voicetutor.voice import (
    CaptureCallbacks,
    CaptureState,
    PlaybackCallbacks,
    PlaybackController,
    SpeechCaptureMachine,
    select_voice,
)
from voicetutor.app import SessionSnapshot, TutorSession

__version__ = "0.1.0"

__all__ = [
    # Session
    "SessionSnapshot",
    "TutorSession",
    # Core types
    "LoopScheduler",
    "Message",
    "RecognitionEvent",
    "RecognitionResult",
    "Role",
    "SessionFlags",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "Utterance",
    "Voice",
    # Errors
    "BackendRequestError",
    "CapabilityUnavailableError",
    "FatalCaptureError",
    "MalformedResponseError",
    "TransientCaptureError",
    "VoiceTutorError",
    # Logging
    "get_logger",
    "setup_logging",
    # Config
    "ConfigLoader",
    "TutorConfig",
    # Orchestration
    "SessionState",
    "TurnCallbacks",
    "TurnOrchestrator",
    # Costs
    "CostAccumulator",
    "CostTotals",
    "UsageDelta",
    # Backend
    "ChatBackend",
    "ChatReply",
    "ChatRequest",
    "HttpChatBackend",
    "RequestType",
    # Voice
    "CaptureCallbacks",
    "CaptureState",
    "PlaybackCallbacks",
    "PlaybackController",
    "SpeechCaptureMachine",
    "select_voice",
]
