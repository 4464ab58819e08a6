"""Configuration module for voicetutor."""

from voicetutor.config.loader import ConfigLoader
from voicetutor.config.schema import (
    BackendConfig,
    CaptureConfig,
    PlaybackConfig,
    PricingConfig,
    TutorConfig,
)

__all__ = [
    "BackendConfig",
    "CaptureConfig",
    "ConfigLoader",
    "PlaybackConfig",
    "PricingConfig",
    "TutorConfig",
]
