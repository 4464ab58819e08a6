"""
Utterance playback.

Speaks assistant replies through a SpeechSynthesizer, picking the best
available English voice and keeping at most one utterance active.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from voicetutor.config.schema import PlaybackConfig
from voicetutor.core.base import SessionFlags, SpeechSynthesizer, Utterance, Voice
from voicetutor.core.errors import CapabilityUnavailableError
from voicetutor.core.logging import get_logger

logger = get_logger("voice.playback")

_PRIMARY_LOCALES = ("en-us", "en-gb")


def _normalize_lang(lang: str) -> str:
    return lang.replace("_", "-").lower()


def _is_primary_english(voice: Voice) -> bool:
    lang = _normalize_lang(voice.lang)
    return any(locale in lang for locale in _PRIMARY_LOCALES)


def select_voice(voices: Sequence[Voice], preferred_names: Sequence[str]) -> Voice | None:
    """
    Pick a voice from the catalog.

    Preference order:
    1. A voice whose name contains an allow-listed name (allow-list order)
    2. en-US / en-GB voice with "female" in its name
    3. Any en-US / en-GB voice
    4. Any voice whose locale starts with "en"
    5. The first voice in the catalog

    Returns:
        Selected voice, or None for the engine default (empty catalog)
    """
    if not voices:
        return None

    for name in preferred_names:
        for voice in voices:
            if name in voice.name:
                return voice

    for voice in voices:
        if _is_primary_english(voice) and "female" in voice.name.lower():
            return voice

    for voice in voices:
        if _is_primary_english(voice):
            return voice

    for voice in voices:
        if _normalize_lang(voice.lang).startswith("en"):
            return voice

    return voices[0]


@dataclass
class PlaybackCallbacks:
    """Callbacks for playback events."""

    on_speaking_change: Callable[[bool], None] | None = None


class PlaybackController:
    """
    Single-utterance text-to-speech controller.

    Every speak() call supersedes the previous one: the active utterance
    is cancelled and any speak() still waiting for the voice catalog is
    dropped.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer | None,
        flags: SessionFlags,
        config: PlaybackConfig | None = None,
        callbacks: PlaybackCallbacks | None = None,
    ) -> None:
        self._synth = synthesizer
        self._flags = flags
        self._config = config or PlaybackConfig()
        self._callbacks = callbacks or PlaybackCallbacks()
        self._generation = 0

        if synthesizer is None:
            logger.warning(f"{CapabilityUnavailableError('Speech synthesis')}; playback disabled")

    @property
    def is_available(self) -> bool:
        return self._synth is not None

    @property
    def is_speaking(self) -> bool:
        return self._flags.speaking

    async def speak(self, text: str) -> bool:
        """
        Speak text aloud, replacing anything currently playing.

        Args:
            text: Text to speak

        Returns:
            True if an utterance was handed to the synthesizer
        """
        if not text or not text.strip():
            logger.debug("No text to speak")
            return False
        if self._synth is None:
            logger.debug("Speech synthesis not available")
            return False

        self._generation += 1
        generation = self._generation
        self._synth.cancel()

        voices = await self._wait_for_voices()
        if generation != self._generation:
            logger.debug("Playback superseded while waiting for voices")
            return False

        voice = select_voice(voices, self._config.preferred_voices)
        if voice is not None:
            logger.debug(f"Using voice {voice.name} ({voice.lang})")
        else:
            logger.debug("No voices available, speaking with engine default")

        utterance = Utterance(
            text=text,
            rate=self._config.rate,
            pitch=self._config.pitch,
            volume=self._config.volume,
            voice=voice,
            on_start=lambda: self._on_utterance_state(generation, True),
            on_end=lambda: self._on_utterance_state(generation, False),
            on_error=lambda reason: self._on_utterance_error(generation, reason),
        )

        try:
            self._synth.speak(utterance)
        except Exception as e:
            logger.error(f"Error speaking: {e}")
            self._set_speaking(False)
            return False
        return True

    def stop(self) -> None:
        """Cancel playback immediately."""
        self._generation += 1
        if self._synth is not None:
            self._synth.cancel()
        self._set_speaking(False)

    async def _wait_for_voices(self) -> list[Voice]:
        """Return the voice catalog, waiting once (bounded) if it is not loaded yet."""
        assert self._synth is not None
        voices = self._synth.get_voices()
        if voices:
            return voices

        loaded = asyncio.Event()
        self._synth.add_voices_changed_listener(loaded.set)
        try:
            await asyncio.wait_for(loaded.wait(), timeout=self._config.voice_catalog_timeout)
        except asyncio.TimeoutError:
            logger.debug(
                f"Voice catalog not loaded after {self._config.voice_catalog_timeout}s"
            )
        finally:
            self._synth.remove_voices_changed_listener(loaded.set)

        return self._synth.get_voices()

    def _on_utterance_state(self, generation: int, speaking: bool) -> None:
        # Hooks from a cancelled utterance must not override the current one
        if generation == self._generation:
            self._set_speaking(speaking)

    def _on_utterance_error(self, generation: int, reason: str) -> None:
        if reason not in ("canceled", "interrupted"):
            logger.warning(f"Speech error: {reason}")
        self._on_utterance_state(generation, False)

    def _set_speaking(self, speaking: bool) -> None:
        if self._flags.speaking == speaking:
            return
        self._flags.speaking = speaking
        if self._callbacks.on_speaking_change:
            self._callbacks.on_speaking_change(speaking)
