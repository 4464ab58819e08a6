"""
Voice interface subsystem.

Speech capture with silence-based turn segmentation, and single-utterance
playback with voice selection.
"""

from voicetutor.voice.capture import CaptureCallbacks, CaptureState, SpeechCaptureMachine
from voicetutor.voice.playback import PlaybackCallbacks, PlaybackController, select_voice

__all__ = [
    "CaptureCallbacks",
    "CaptureState",
    "PlaybackCallbacks",
    "PlaybackController",
    "SpeechCaptureMachine",
    "select_voice",
]
