"""
Tutor session wiring.

Connects capture, orchestration, playback and cost tracking around one
shared SessionState. Presenters read snapshot() and subscribe with
on_update; they never mutate the state directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from voicetutor.backend.client import ChatBackend, HttpChatBackend
from voicetutor.config.schema import TutorConfig
from voicetutor.core.base import Message, Scheduler, SpeechRecognizer, SpeechSynthesizer
from voicetutor.core.logging import get_logger
from voicetutor.core.session import SessionState, TurnCallbacks, TurnOrchestrator
from voicetutor.costs.accumulator import CostAccumulator, CostTotals
from voicetutor.prompts import load_score_prompt
from voicetutor.voice.capture import CaptureCallbacks, SpeechCaptureMachine
from voicetutor.voice.playback import PlaybackCallbacks, PlaybackController

logger = get_logger("app")


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session for presenters."""

    listening: bool
    processing: bool
    speaking: bool
    transcript: str
    error: str
    messages: list[Message]
    costs: CostTotals


class TutorSession:
    """
    One practice session.

    Capture hands finished turns to the orchestrator; the orchestrator
    speaks replies through playback and, once a request completes,
    lets capture resume.
    """

    def __init__(
        self,
        config: TutorConfig,
        recognizer: SpeechRecognizer | None,
        synthesizer: SpeechSynthesizer | None,
        backend: ChatBackend | None = None,
        scheduler: Scheduler | None = None,
        on_update: Callable[[SessionSnapshot], None] | None = None,
    ) -> None:
        """
        Initialize session.

        Args:
            config: Application configuration
            recognizer: Speech recognition engine (None if unsupported)
            synthesizer: Speech synthesis engine (None if unsupported)
            backend: Assistant backend (defaults to HTTP endpoint from config)
            scheduler: Timer source for capture (defaults to the event loop)
            on_update: Called with a fresh snapshot after every change
        """
        self.config = config
        self.state = SessionState()
        self._on_update = on_update
        self._preview = ""
        self._turn_tasks: set[asyncio.Task[Message | None]] = set()
        # A turn handed to the orchestrator whose task has not run yet
        self._turn_handoff = False

        self._backend = backend or HttpChatBackend.from_config(config.backend)
        self.costs = CostAccumulator.from_config(config.pricing)

        self.playback = PlaybackController(
            synthesizer,
            self.state.flags,
            config.playback,
            PlaybackCallbacks(on_speaking_change=lambda _: self._notify()),
        )
        self.orchestrator = TurnOrchestrator(
            self._backend,
            self.state,
            self.costs,
            speaker=self.playback.speak,
            score_prompt=load_score_prompt(config.prompts_dir),
            playback_delay=config.backend.playback_delay,
            callbacks=TurnCallbacks(
                on_message=lambda _: self._notify(),
                on_processing_change=self._on_processing_change,
                on_costs_update=lambda _: self._notify(),
                on_error=self._on_error,
            ),
        )
        self.capture = SpeechCaptureMachine(
            recognizer,
            self.state.flags,
            config.capture,
            scheduler,
            CaptureCallbacks(
                on_turn=self._on_turn,
                on_preview=self._on_preview,
                on_listening_change=self._on_listening_change,
                on_error=self._on_error,
                is_busy=self._is_busy,
            ),
        )

    # === User actions ===

    def start_listening(self) -> None:
        self.capture.start()

    def stop_listening(self) -> None:
        self.capture.stop()

    def toggle_listening(self) -> None:
        """Microphone button; ignored while a request is processing."""
        if self._is_busy():
            return
        if self.capture.is_listening:
            self.capture.stop()
        else:
            self.capture.start()

    async def request_score(self) -> Message | None:
        """Score the conversation once every turn already spoken has been sent."""
        await self._wait_for_turns()
        return await self.orchestrator.request_score()

    def clear(self) -> None:
        """Clear the conversation and cost totals."""
        self.orchestrator.reset_session()
        self._notify()

    def stop_speaking(self) -> None:
        self.playback.stop()

    def replay(self, index: int) -> None:
        """Speak the assistant message at ``index`` again; unknown indexes are ignored."""
        if not -len(self.state.log) <= index < len(self.state.log):
            logger.warning(f"No message at index {index} to replay")
            return
        self.orchestrator.replay(self.state.log[index])

    def snapshot(self) -> SessionSnapshot:
        flags = self.state.flags
        return SessionSnapshot(
            listening=flags.listening,
            processing=flags.processing,
            speaking=flags.speaking,
            transcript=self._preview,
            error=self.state.last_error,
            messages=self.state.log.snapshot(),
            costs=self.costs.totals,
        )

    async def wait_idle(self) -> None:
        """Wait for submitted turns and their playback to finish."""
        await self._wait_for_turns()
        await self.orchestrator.wait_for_playback()

    async def aclose(self) -> None:
        """Stop capture and playback, finish pending turns, release the backend."""
        self.capture.stop()
        self.playback.stop()
        await self.wait_idle()
        await self._backend.aclose()

    # === Component callbacks ===

    async def _wait_for_turns(self) -> None:
        # Finishing a turn can submit a deferred one, so drain until empty
        while self._turn_tasks:
            await asyncio.gather(*list(self._turn_tasks), return_exceptions=True)

    def _is_busy(self) -> bool:
        return self._turn_handoff or self.state.flags.processing

    def _on_turn(self, text: str) -> None:
        self._turn_handoff = True
        task = asyncio.create_task(self._run_turn(text))
        self._turn_tasks.add(task)
        task.add_done_callback(self._turn_tasks.discard)

    async def _run_turn(self, text: str) -> Message | None:
        # submit_turn sets processing before its first await
        self._turn_handoff = False
        return await self.orchestrator.submit_turn(text)

    def _on_preview(self, text: str) -> None:
        self._preview = text
        self._notify()

    def _on_listening_change(self, listening: bool) -> None:
        if listening:
            self.state.last_error = ""
        self._notify()

    def _on_processing_change(self, processing: bool) -> None:
        if not processing:
            self.capture.handle_processing_finished()
        self._notify()

    def _on_error(self, message: str) -> None:
        self.state.last_error = message
        self._notify()

    def _notify(self) -> None:
        if self._on_update:
            self._on_update(self.snapshot())
