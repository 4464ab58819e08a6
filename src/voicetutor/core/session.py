"""
Session state and turn orchestration.

The orchestrator enforces a single in-flight backend request and
sequences each turn:

    append user message -> request with prior history -> append reply
    -> record usage -> schedule playback
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Iterator
from dataclasses import dataclass, field
from typing import Any

from voicetutor.backend.client import ChatBackend, ChatReply
from voicetutor.backend.models import ChatRequest, RequestType
from voicetutor.core.base import Message, Role, SessionFlags
from voicetutor.core.errors import BackendRequestError
from voicetutor.core.logging import get_logger
from voicetutor.costs.accumulator import CostAccumulator, CostTotals

logger = get_logger("core.session")

TURN_FAILED_MESSAGE = "Failed to process your request. Please try again."
SCORE_FAILED_MESSAGE = "Failed to get IELTS score. Please try again."
SCORE_NEEDS_CONVERSATION_MESSAGE = (
    "Please have a conversation first before requesting an IELTS score."
)


class ConversationLog:
    """Append-only message log; cleared only by a full session reset."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def clear(self) -> None:
        self._messages.clear()

    def snapshot(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]


@dataclass
class SessionState:
    """Shared state passed by reference to every component."""

    flags: SessionFlags = field(default_factory=SessionFlags)
    log: ConversationLog = field(default_factory=ConversationLog)
    last_error: str = ""


@dataclass
class TurnCallbacks:
    """Callbacks for orchestrator events."""

    on_message: Callable[[Message], None] | None = None
    on_processing_change: Callable[[bool], None] | None = None
    on_costs_update: Callable[[CostTotals], None] | None = None
    on_error: Callable[[str], None] | None = None


Speaker = Callable[[str], Coroutine[Any, Any, Any]]


class TurnOrchestrator:
    """
    Serializes user turns into single backend requests.

    The processing flag is checked and set before the first await, so a
    second submission on the same event loop is rejected rather than
    duplicated.
    """

    def __init__(
        self,
        backend: ChatBackend,
        state: SessionState,
        costs: CostAccumulator,
        speaker: Speaker | None = None,
        score_prompt: str = "",
        playback_delay: float = 0.1,
        callbacks: TurnCallbacks | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            backend: Assistant backend
            state: Shared session state (owns the conversation log)
            costs: Usage cost accumulator
            speaker: Coroutine function that speaks reply text
            score_prompt: Message text sent with an IELTS score request
            playback_delay: Seconds between a reply and its playback
            callbacks: Optional event callbacks
        """
        self._backend = backend
        self._state = state
        self._costs = costs
        self._speaker = speaker
        self._score_prompt = score_prompt
        self._playback_delay = playback_delay
        self._callbacks = callbacks or TurnCallbacks()
        self._playback_tasks: set[asyncio.Task[None]] = set()

    @property
    def is_processing(self) -> bool:
        return self._state.flags.processing

    @property
    def messages(self) -> list[Message]:
        return self._state.log.snapshot()

    @property
    def costs(self) -> CostTotals:
        return self._costs.totals

    async def submit_turn(self, text: str) -> Message | None:
        """
        Submit one user turn.

        Args:
            text: Finalized utterance text

        Returns:
            The assistant message, or None if the turn was ignored,
            rejected or failed
        """
        text = text.strip()
        if not text:
            return None
        if self._state.flags.processing:
            logger.warning("Turn rejected: a request is already in flight")
            return None

        self._set_processing(True)
        try:
            history = self._state.log.snapshot()
            self._append(Message(role=Role.USER, content=text))
            request = ChatRequest.build(text, history, RequestType.NORMAL)
            return await self._exchange(request, TURN_FAILED_MESSAGE)
        finally:
            self._set_processing(False)

    async def request_score(self) -> Message | None:
        """
        Ask the backend to score the conversation so far.

        Returns:
            The assistant message with the score, or None
        """
        if len(self._state.log) == 0:
            self._surface_error(SCORE_NEEDS_CONVERSATION_MESSAGE)
            return None
        if self._state.flags.processing:
            logger.warning("Score request rejected: a request is already in flight")
            return None

        self._set_processing(True)
        try:
            request = ChatRequest.build(
                self._score_prompt, self._state.log.snapshot(), RequestType.IELTS_SCORE
            )
            return await self._exchange(request, SCORE_FAILED_MESSAGE)
        finally:
            self._set_processing(False)

    def reset_session(self) -> None:
        """Clear the conversation and cost totals. In-flight requests are not cancelled."""
        self._state.log.clear()
        self._costs.reset()
        logger.info("Session reset")
        if self._callbacks.on_costs_update:
            self._callbacks.on_costs_update(self._costs.totals)

    def replay(self, message: Message) -> None:
        """Speak an earlier assistant message again."""
        if message.role is Role.ASSISTANT:
            self._schedule_playback(message.content, delay=0.0)

    async def wait_for_playback(self) -> None:
        """Wait until scheduled playback tasks have run."""
        if self._playback_tasks:
            await asyncio.gather(*list(self._playback_tasks), return_exceptions=True)

    async def _exchange(self, request: ChatRequest, failure_message: str) -> Message | None:
        try:
            reply = await self._backend.complete(request)
        except BackendRequestError as e:
            logger.error(f"Backend request failed: {e}")
            self._surface_error(failure_message)
            return None

        logger.info(f"Received response ({len(reply.text)} chars)")
        return self._accept(reply)

    def _accept(self, reply: ChatReply) -> Message:
        message = Message(role=Role.ASSISTANT, content=reply.text)
        self._append(message)
        self._state.last_error = ""

        if reply.usage is not None:
            totals = self._costs.record(reply.usage)
            if self._callbacks.on_costs_update:
                self._callbacks.on_costs_update(totals)

        self._schedule_playback(reply.text, delay=self._playback_delay)
        return message

    def _append(self, message: Message) -> None:
        self._state.log.append(message)
        if self._callbacks.on_message:
            self._callbacks.on_message(message)

    def _schedule_playback(self, text: str, delay: float) -> None:
        if self._speaker is None:
            return
        task = asyncio.create_task(self._play_after(text, delay))
        self._playback_tasks.add(task)
        task.add_done_callback(self._playback_tasks.discard)

    async def _play_after(self, text: str, delay: float) -> None:
        assert self._speaker is not None
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await self._speaker(text)
        except Exception as e:
            logger.error(f"Playback failed: {e}")

    def _set_processing(self, processing: bool) -> None:
        self._state.flags.processing = processing
        if self._callbacks.on_processing_change:
            self._callbacks.on_processing_change(processing)

    def _surface_error(self, message: str) -> None:
        self._state.last_error = message
        if self._callbacks.on_error:
            self._callbacks.on_error(message)
