"""
Configuration schema using Pydantic.

Principles:
- All config values have sensible defaults
- Validation happens at load time
- Timing values are seconds, rates are per 1K tokens
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PREFERRED_VOICES = ["Samantha", "Alex", "Karen", "Daniel", "Fiona"]


class CaptureConfig(BaseModel):
    """Speech capture and turn segmentation."""

    language: str = "en-US"
    # Documentation elsewhere mentions 2 seconds; 3.0 matches runtime behavior
    silence_timeout: float = Field(default=3.0, gt=0.0, le=30.0)
    restart_delay: float = Field(default=0.1, ge=0.0, le=10.0)
    error_restart_delay: float = Field(default=1.0, ge=0.0, le=30.0)


class PlaybackConfig(BaseModel):
    """Text-to-speech playback."""

    rate: float = Field(default=0.85, gt=0.0, le=10.0)
    pitch: float = Field(default=1.0, ge=0.0, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    voice_catalog_timeout: float = Field(default=1.0, ge=0.0, le=30.0)
    preferred_voices: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PREFERRED_VOICES)
    )


class BackendConfig(BaseModel):
    """Assistant backend endpoint."""

    endpoint: str = "http://localhost:3000/api/chat"
    timeout_seconds: float = Field(default=60.0, gt=0.0, le=600.0)
    playback_delay: float = Field(default=0.1, ge=0.0, le=5.0)

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL: {v}")
        return v


class PricingConfig(BaseModel):
    """Token pricing used for the advisory cost display."""

    prompt_rate_per_1k: float = Field(default=0.005, ge=0.0)
    completion_rate_per_1k: float = Field(default=0.015, ge=0.0)
    fx_rate: float = Field(default=110.0, gt=0.0)
    base_currency: str = "USD"
    converted_currency: str = "BDT"


class TutorConfig(BaseSettings):
    """Root configuration for voicetutor."""

    model_config = SettingsConfigDict(
        env_prefix="VOICETUTOR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Path | None = None
    # Level for the voice.capture and voice.playback loggers; None follows log_level
    voice_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None

    # Overrides for bundled prompts (e.g. ielts_score.md)
    prompts_dir: Path | None = None

    @field_validator("log_file", "prompts_dir")
    @classmethod
    def validate_paths(cls, v: Path | None) -> Path | None:
        """Expand user paths."""
        return Path(v).expanduser() if v is not None else None

