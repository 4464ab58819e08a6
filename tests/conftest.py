"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from voicetutor.backend.client import ChatBackend, ChatReply
from voicetutor.backend.models import ChatRequest
from voicetutor.core.base import (
    RecognitionEvent,
    RecognitionListener,
    RecognitionResult,
    SessionFlags,
    SpeechRecognizer,
    SpeechSynthesizer,
    Utterance,
    Voice,
)
from voicetutor.costs.accumulator import UsageDelta


@dataclass
class ManualTimer:
    when: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler; time only moves on advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, self._seq, callback)
        self._seq += 1
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled]


class FakeRecognizer(SpeechRecognizer):
    """Scriptable recognition engine."""

    def __init__(self) -> None:
        self.listener: RecognitionListener | None = None
        self.language: str | None = None
        self.start_count = 0
        self.stop_count = 0
        self.fail_start = False

    def bind(self, listener: RecognitionListener, language: str) -> None:
        self.listener = listener
        self.language = language

    def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("recognition already started")
        self.start_count += 1

    def stop(self) -> None:
        self.stop_count += 1

    def emit(self, *results: RecognitionResult, result_index: int = 0) -> None:
        assert self.listener is not None
        self.listener.on_result(RecognitionEvent(results=tuple(results), result_index=result_index))

    def final(self, text: str) -> None:
        self.emit(RecognitionResult(alternatives=(text,), is_final=True))

    def interim(self, text: str) -> None:
        self.emit(RecognitionResult(alternatives=(text,), is_final=False))

    def error(self, code: str) -> None:
        assert self.listener is not None
        self.listener.on_error(code)

    def end(self) -> None:
        assert self.listener is not None
        self.listener.on_end()


class FakeSynthesizer(SpeechSynthesizer):
    """Synthesizer that records utterances instead of playing them."""

    def __init__(self, voices: list[Voice] | None = None) -> None:
        self.voices: list[Voice] = list(voices or [])
        self.spoken: list[Utterance] = []
        self.cancel_count = 0
        self.listeners: list[Callable[[], None]] = []

    def speak(self, utterance: Utterance) -> None:
        self.spoken.append(utterance)

    def cancel(self) -> None:
        self.cancel_count += 1

    def get_voices(self) -> list[Voice]:
        return list(self.voices)

    def add_voices_changed_listener(self, callback: Callable[[], None]) -> None:
        self.listeners.append(callback)

    def remove_voices_changed_listener(self, callback: Callable[[], None]) -> None:
        self.listeners.remove(callback)

    def load_voices(self, voices: list[Voice]) -> None:
        self.voices = list(voices)
        for callback in list(self.listeners):
            callback()


@dataclass
class FakeBackend(ChatBackend):
    """Backend returning queued replies or raising queued exceptions."""

    replies: list[ChatReply | Exception] = field(default_factory=list)
    requests: list[ChatRequest] = field(default_factory=list)
    gate: asyncio.Event | None = None
    closed: bool = False

    async def complete(self, request: ChatRequest) -> ChatReply:
        self.requests.append(request)
        # Suspend like a real request so callers see the in-flight window
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.replies.pop(0) if self.replies else ChatReply(text="OK")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


WELL_REPLY = ChatReply(
    text="I'm doing well, thanks!",
    usage=UsageDelta(prompt_tokens=50, completion_tokens=20, total_tokens=70),
)

EN_VOICES = [
    Voice(name="Google Deutsch", lang="de-DE"),
    Voice(name="Microsoft Zira Female", lang="en-US"),
    Voice(name="Samantha", lang="en-US"),
]


@pytest.fixture
def flags() -> SessionFlags:
    return SessionFlags()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer(voices=EN_VOICES)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def tmp_project_dir() -> Path:
    """Create a temporary project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        project_dir = Path(tmpdir)
        (project_dir / ".voicetutor").mkdir()
        yield project_dir


@pytest.fixture
def tmp_config_dir() -> Path:
    """Create a temporary config directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def well_reply() -> ChatReply:
    return WELL_REPLY


@pytest.fixture
def en_voices() -> list[Voice]:
    return list(EN_VOICES)


@pytest.fixture
def unloaded_synthesizer() -> FakeSynthesizer:
    """Synthesizer whose voice catalog has not loaded yet."""
    return FakeSynthesizer()
