"""
Speech capture state machine.

Wraps a continuous recognition engine that reports interim and final
segments, and decides when a user turn has ended using a silence window
measured from the last final segment.

Transitions:
    IDLE --start()--> LISTENING --stop()--> IDLE
    LISTENING + engine end + not processing --> schedule(restart)
    LISTENING + fatal engine error --> schedule(restart)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

from voicetutor.config.schema import CaptureConfig
from voicetutor.core.base import (
    LoopScheduler,
    RecognitionEvent,
    Scheduler,
    SessionFlags,
    SpeechRecognizer,
    TimerHandle,
)
from voicetutor.core.errors import (
    CapabilityUnavailableError,
    TransientCaptureError,
    classify_capture_error,
)
from voicetutor.core.logging import get_logger

logger = get_logger("voice.capture")

UNSUPPORTED_MESSAGE = "Sorry, speech recognition is not supported in this environment."
START_FAILED_MESSAGE = "Could not start speech recognition. Please try again."


class CaptureState(Enum):
    """Capture state machine states."""

    IDLE = auto()
    LISTENING = auto()


@dataclass
class CaptureCallbacks:
    """Callbacks for capture events."""

    on_turn: Callable[[str], None] | None = None
    on_preview: Callable[[str], None] | None = None  # buffer + interim
    on_listening_change: Callable[[bool], None] | None = None
    on_error: Callable[[str], None] | None = None
    # True while a handed-off turn has not reached the orchestrator yet
    is_busy: Callable[[], bool] | None = None


class SpeechCaptureMachine:
    """
    Turns a chunked recognition stream into discrete user turns.

    The machine is also the recognizer's listener: engine callbacks
    arrive through on_result(), on_error() and on_end().
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer | None,
        flags: SessionFlags,
        config: CaptureConfig | None = None,
        scheduler: Scheduler | None = None,
        callbacks: CaptureCallbacks | None = None,
    ) -> None:
        """
        Initialize capture machine.

        Args:
            recognizer: Recognition engine, or None when unsupported
            flags: Shared session flags (reads processing, owns listening)
            config: Capture timing configuration
            scheduler: Timer source (defaults to the running event loop)
            callbacks: Optional event callbacks
        """
        self._recognizer = recognizer
        self._flags = flags
        self._config = config or CaptureConfig()
        self._scheduler = scheduler or LoopScheduler()
        self._callbacks = callbacks or CaptureCallbacks()

        self._state = CaptureState.IDLE
        self._buffer = ""
        self._engine_active = False
        self._silence_timer: TimerHandle | None = None
        self._restart_timer: TimerHandle | None = None
        self._deferred_turns: list[str] = []

        if recognizer is None:
            logger.warning(f"{CapabilityUnavailableError('Speech recognition')}; capture disabled")
            self._emit_error(UNSUPPORTED_MESSAGE)
        else:
            recognizer.bind(self, self._config.language)

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_available(self) -> bool:
        return self._recognizer is not None

    @property
    def is_listening(self) -> bool:
        return self._state is CaptureState.LISTENING

    @property
    def transcript(self) -> str:
        """Finalized text of the utterance not yet submitted."""
        return self._buffer

    @property
    def has_pending_final(self) -> bool:
        """True while a silence timer is armed."""
        return self._silence_timer is not None

    @property
    def restart_pending(self) -> bool:
        return self._restart_timer is not None

    # === Commands ===

    def start(self) -> None:
        """Begin listening; a no-op when unavailable or already listening."""
        if self._recognizer is None or self._state is CaptureState.LISTENING:
            return

        self._buffer = ""
        self._cancel_silence_timer()
        self._emit_preview("")

        try:
            self._recognizer.start()
        except Exception as e:
            logger.error(f"Error starting recognition: {e}")
            self._emit_error(START_FAILED_MESSAGE)
            return

        self._engine_active = True
        self._set_state(CaptureState.LISTENING)

    def stop(self) -> None:
        """Stop listening and flush any pending transcript as a final turn."""
        self._set_state(CaptureState.IDLE)
        self._cancel_restart()
        self._cancel_silence_timer()

        if self._recognizer is not None and self._engine_active:
            try:
                self._recognizer.stop()
            except Exception as e:
                logger.warning(f"Error stopping recognition: {e}")

        self._flush()

    def reset_transcript(self) -> None:
        """Discard the pending transcript without submitting it."""
        self._cancel_silence_timer()
        self._buffer = ""
        self._emit_preview("")

    def handle_processing_finished(self) -> None:
        """Resume after a backend call: submit deferred turns, restart the engine."""
        if self._deferred_turns:
            text = " ".join(self._deferred_turns)
            self._deferred_turns.clear()
            self._submit(text)

        if (
            self._state is CaptureState.LISTENING
            and not self._engine_active
            and self._restart_timer is None
        ):
            self._schedule_restart(self._config.restart_delay)

    # === Recognizer listener ===

    def on_result(self, event: RecognitionEvent) -> None:
        if self._state is not CaptureState.LISTENING:
            logger.debug("Ignoring recognition result while idle")
            return

        final_text = ""
        interim_text = ""
        for result in event.new_results:
            if result.is_final:
                final_text += result.transcript
            else:
                interim_text += result.transcript

        self._emit_preview(self._buffer + final_text + interim_text)

        if final_text:
            self._buffer += final_text
            self._arm_silence_timer()

        # Still speaking; wait for the next final segment. This also cancels a
        # timer armed by a final in this same event, where a client that only
        # clears the previously armed timer would still submit after 3s.
        if interim_text and self._silence_timer is not None:
            self._cancel_silence_timer()
            logger.debug("Interim speech, silence timer cancelled")

    def on_error(self, code: str) -> None:
        error = classify_capture_error(code)
        if error is None:
            logger.debug("Recognition aborted")
            return
        if isinstance(error, TransientCaptureError):
            logger.debug(f"Transient recognition error absorbed: {code}")
            return

        logger.warning(f"Speech recognition error: {code}")
        self._emit_error(str(error))
        if self._state is CaptureState.LISTENING:
            self._schedule_restart(self._config.error_restart_delay)

    def on_end(self) -> None:
        self._engine_active = False
        if self._state is CaptureState.LISTENING and not self._flags.processing:
            logger.debug("Recognition ended unexpectedly, scheduling restart")
            self._schedule_restart(self._config.restart_delay)

    # === Internals ===

    def _set_state(self, state: CaptureState) -> None:
        if self._state is state:
            return
        self._state = state
        listening = state is CaptureState.LISTENING
        self._flags.listening = listening
        logger.info("Listening" if listening else "Stopped listening")
        if self._callbacks.on_listening_change:
            self._callbacks.on_listening_change(listening)

    def _is_busy(self) -> bool:
        if self._flags.processing:
            return True
        return bool(self._callbacks.is_busy and self._callbacks.is_busy())

    def _arm_silence_timer(self) -> None:
        self._cancel_silence_timer()
        self._silence_timer = self._scheduler.call_later(
            self._config.silence_timeout, self._on_silence_timeout
        )

    def _cancel_silence_timer(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None

    def _on_silence_timeout(self) -> None:
        self._silence_timer = None
        self._flush()

    def _flush(self) -> None:
        text = self._buffer.strip()
        self._buffer = ""
        if text:
            self._submit(text)

    def _submit(self, text: str) -> None:
        if self._is_busy():
            # Orchestrator would reject it; hold until the current call completes
            logger.info("Turn deferred until the current request completes")
            self._deferred_turns.append(text)
            return

        logger.info(f"Turn submitted ({len(text)} chars)")
        self._emit_preview("")
        if self._callbacks.on_turn:
            self._callbacks.on_turn(text)

    def _schedule_restart(self, delay: float) -> None:
        self._cancel_restart()
        self._restart_timer = self._scheduler.call_later(delay, self._restart)

    def _cancel_restart(self) -> None:
        if self._restart_timer is not None:
            self._restart_timer.cancel()
            self._restart_timer = None

    def _restart(self) -> None:
        self._restart_timer = None
        if (
            self._recognizer is None
            or self._state is not CaptureState.LISTENING
            or self._flags.processing
            or self._engine_active
        ):
            return

        try:
            self._recognizer.start()
        except Exception as e:
            logger.warning(f"Error restarting recognition: {e}")
            return
        self._engine_active = True
        logger.debug("Recognition restarted")

    def _emit_preview(self, text: str) -> None:
        if self._callbacks.on_preview:
            self._callbacks.on_preview(text)

    def _emit_error(self, message: str) -> None:
        if self._callbacks.on_error:
            self._callbacks.on_error(message)
