"""
Base types and abstract engine boundaries.

Speech recognition and synthesis engines are supplied by the host
application; the components in this package only talk to them through
the abstract classes defined here.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """Conversation roles."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A message in the conversation log."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SessionFlags:
    """Shared per-turn flags.

    ``processing`` gates backend submission and capture auto-restart;
    ``speaking`` is independent of the other two.
    """

    listening: bool = False
    processing: bool = False
    speaking: bool = False


# === Speech input ===


@dataclass(frozen=True)
class RecognitionResult:
    """One recognition result; only the top alternative is used."""

    alternatives: tuple[str, ...]
    is_final: bool = False

    @property
    def transcript(self) -> str:
        return self.alternatives[0] if self.alternatives else ""


@dataclass(frozen=True)
class RecognitionEvent:
    """Results delivered by one engine callback.

    Results before ``result_index`` were already delivered by earlier
    callbacks of the same recognition pass.
    """

    results: tuple[RecognitionResult, ...]
    result_index: int = 0

    @property
    def new_results(self) -> tuple[RecognitionResult, ...]:
        return self.results[self.result_index :]


class RecognitionListener(Protocol):
    """Receiver of engine events."""

    def on_result(self, event: RecognitionEvent) -> None: ...

    def on_error(self, code: str) -> None: ...

    def on_end(self) -> None: ...


class SpeechRecognizer(ABC):
    """Continuous recognition engine with interim results."""

    @abstractmethod
    def bind(self, listener: RecognitionListener, language: str) -> None:
        """Register the event listener and the recognition language (BCP 47)."""
        pass

    @abstractmethod
    def start(self) -> None:
        """Begin a recognition session. May raise if already started."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """End the current recognition session."""
        pass


# === Speech output ===


@dataclass(frozen=True)
class Voice:
    """A synthesis voice from the engine catalog."""

    name: str
    lang: str


@dataclass
class Utterance:
    """Text plus synthesis parameters and lifecycle hooks.

    Engines call ``on_start``, ``on_end`` and ``on_error`` as playback
    progresses.
    """

    text: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: Voice | None = None
    on_start: Callable[[], None] | None = None
    on_end: Callable[[], None] | None = None
    on_error: Callable[[str], None] | None = None


class SpeechSynthesizer(ABC):
    """Text-to-speech engine with an asynchronously populated voice catalog."""

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """Queue an utterance for playback."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop the active utterance and drop anything queued."""
        pass

    @abstractmethod
    def get_voices(self) -> list[Voice]:
        """Return the voice catalog; may be empty until it has loaded."""
        pass

    @abstractmethod
    def add_voices_changed_listener(self, callback: Callable[[], None]) -> None:
        pass

    @abstractmethod
    def remove_voices_changed_listener(self, callback: Callable[[], None]) -> None:
        pass


# === Timers ===


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Source of one-shot timers on the event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
