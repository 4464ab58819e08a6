"""End-to-end tests for TutorSession wiring with fake engines."""

import asyncio

import pytest
from voicetutor.app import SessionSnapshot, TutorSession
from voicetutor.backend.client import ChatReply
from voicetutor.config.schema import BackendConfig, TutorConfig
from voicetutor.core.errors import BackendRequestError
from voicetutor.core.session import TURN_FAILED_MESSAGE
from voicetutor.voice.capture import UNSUPPORTED_MESSAGE


@pytest.fixture
def config() -> TutorConfig:
    return TutorConfig(backend=BackendConfig(playback_delay=0.0))


@pytest.fixture
def updates() -> list[SessionSnapshot]:
    return []


@pytest.fixture
def session(config, recognizer, synthesizer, backend, scheduler, updates) -> TutorSession:
    return TutorSession(
        config,
        recognizer,
        synthesizer,
        backend=backend,
        scheduler=scheduler,
        on_update=updates.append,
    )


class TestConversationFlow:
    """Tests for a full spoken turn."""

    @pytest.mark.asyncio
    async def test_spoken_turn_round_trip(
        self, session, recognizer, synthesizer, backend, scheduler, well_reply, updates
    ) -> None:
        """Speech, silence, reply, costs and playback in order."""
        backend.replies.append(well_reply)

        session.start_listening()
        recognizer.final("Hello, how are you")
        assert session.snapshot().transcript == "Hello, how are you"

        scheduler.advance(3.0)
        await session.wait_idle()

        snap = session.snapshot()
        assert [m.content for m in snap.messages] == [
            "Hello, how are you",
            "I'm doing well, thanks!",
        ]
        assert snap.costs.total_tokens == 70
        assert snap.processing is False
        assert snap.listening is True
        assert snap.transcript == ""
        assert snap.error == ""
        assert [u.text for u in synthesizer.spoken] == ["I'm doing well, thanks!"]
        assert any(u.processing for u in updates)

    @pytest.mark.asyncio
    async def test_failed_turn_shows_error(self, session, recognizer, backend, scheduler) -> None:
        """A failed request surfaces the generic message and keeps the user turn."""
        backend.replies.append(BackendRequestError("Backend returned 500", status_code=500))

        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await session.wait_idle()

        snap = session.snapshot()
        assert snap.error == TURN_FAILED_MESSAGE
        assert [m.content for m in snap.messages] == ["Hello"]
        assert snap.processing is False

    @pytest.mark.asyncio
    async def test_stop_flushes_turn(self, session, recognizer, backend) -> None:
        """Stopping the microphone submits what was said."""
        session.start_listening()
        recognizer.final("Short answer")
        session.stop_listening()
        await session.wait_idle()

        assert [r.message for r in backend.requests] == ["Short answer"]
        assert session.snapshot().listening is False


class TestProcessingInteraction:
    """Tests for capture behaviour while a request is in flight."""

    @pytest.mark.asyncio
    async def test_restart_after_processing(self, session, recognizer, backend, scheduler) -> None:
        """The engine is not restarted mid-request, only after it completes."""
        backend.gate = asyncio.Event()

        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await asyncio.sleep(0)
        assert session.snapshot().processing is True

        recognizer.end()
        scheduler.advance(1.0)
        assert recognizer.start_count == 1

        backend.gate.set()
        await session.wait_idle()
        scheduler.advance(0.125)
        assert recognizer.start_count == 2

    @pytest.mark.asyncio
    async def test_toggle_ignored_while_processing(
        self, session, recognizer, backend, scheduler
    ) -> None:
        """The microphone button does nothing while processing."""
        backend.gate = asyncio.Event()

        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await asyncio.sleep(0)

        session.toggle_listening()
        assert session.snapshot().listening is True

        backend.gate.set()
        await session.wait_idle()

        session.toggle_listening()
        assert session.snapshot().listening is False

    @pytest.mark.asyncio
    async def test_turn_during_processing_sent_afterwards(
        self, session, recognizer, backend, scheduler
    ) -> None:
        """A turn that ends mid-request is sent once the request completes."""
        backend.gate = asyncio.Event()
        backend.replies.extend([ChatReply(text="First reply"), ChatReply(text="Second reply")])

        session.start_listening()
        recognizer.final("First")
        scheduler.advance(3.0)
        await asyncio.sleep(0)

        recognizer.final("Second")
        scheduler.advance(3.0)
        assert [r.message for r in backend.requests] == ["First"]

        backend.gate.set()
        await session.wait_idle()

        assert [r.message for r in backend.requests] == ["First", "Second"]
        assert len(session.snapshot().messages) == 4


class TestTurnHandoff:
    """Tests for turns that end before the previous turn reaches the backend."""

    @pytest.mark.asyncio
    async def test_stop_right_after_silence_submit(
        self, session, recognizer, backend, scheduler
    ) -> None:
        """A flush in the same tick as a silence submit is sent afterwards, not dropped."""
        backend.replies.extend([ChatReply(text="First reply"), ChatReply(text="Second reply")])

        session.start_listening()
        recognizer.final("First")
        scheduler.advance(3.0)
        recognizer.final("Second")
        session.stop_listening()
        await session.wait_idle()

        assert [r.message for r in backend.requests] == ["First", "Second"]
        assert [m.content for m in session.snapshot().messages] == [
            "First",
            "First reply",
            "Second",
            "Second reply",
        ]
        assert session.snapshot().error == ""

    @pytest.mark.asyncio
    async def test_two_silence_submits_in_one_tick(
        self, session, recognizer, backend, scheduler
    ) -> None:
        """Back-to-back silence timeouts both reach the backend in order."""
        session.start_listening()
        recognizer.final("One")
        scheduler.advance(3.0)
        recognizer.final("Two")
        scheduler.advance(3.0)
        await session.wait_idle()

        assert [r.message for r in backend.requests] == ["One", "Two"]

    @pytest.mark.asyncio
    async def test_score_waits_for_pending_turn(
        self, session, recognizer, backend, scheduler
    ) -> None:
        """A score request right after a turn ends includes that turn."""
        backend.replies.extend(
            [ChatReply(text="r1"), ChatReply(text="r2"), ChatReply(text="Band 7")]
        )
        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await session.wait_idle()

        recognizer.final("My second answer")
        scheduler.advance(3.0)
        reply = await session.request_score()

        assert reply is not None and reply.content == "Band 7"
        assert [m.content for m in session.snapshot().messages] == [
            "Hello",
            "r1",
            "My second answer",
            "r2",
            "Band 7",
        ]
        score_request = backend.requests[-1]
        assert [h.content for h in score_request.conversation_history][-2:] == [
            "My second answer",
            "r2",
        ]

    @pytest.mark.asyncio
    async def test_toggle_ignored_during_handoff(self, session, recognizer, scheduler) -> None:
        """The microphone button waits until a handed-off turn is in flight and done."""
        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)

        session.toggle_listening()
        assert session.snapshot().listening is True
        await session.wait_idle()


class TestSessionActions:
    """Tests for clear, score and replay."""

    @pytest.mark.asyncio
    async def test_clear(self, session, recognizer, backend, scheduler, well_reply) -> None:
        backend.replies.append(well_reply)
        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await session.wait_idle()

        session.clear()

        snap = session.snapshot()
        assert snap.messages == []
        assert snap.costs.total_tokens == 0
        assert snap.costs.converted_cost == 0.0

    @pytest.mark.asyncio
    async def test_request_score(self, session, recognizer, backend, scheduler) -> None:
        """Score requests carry the bundled prompt and the conversation so far."""
        backend.replies.extend([ChatReply(text="Tell me more."), ChatReply(text="Band 7")])
        session.start_listening()
        recognizer.final("I live in Dhaka")
        scheduler.advance(3.0)
        await session.wait_idle()

        reply = await session.request_score()

        assert reply is not None and reply.content == "Band 7"
        assert "IELTS" in backend.requests[-1].message
        assert backend.requests[-1].request_type.value == "ielts_score"

    @pytest.mark.asyncio
    async def test_replay(self, session, recognizer, synthesizer, backend, scheduler) -> None:
        backend.replies.append(ChatReply(text="Say that again"))
        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await session.wait_idle()

        session.replay(1)
        await session.wait_idle()

        assert [u.text for u in synthesizer.spoken] == ["Say that again", "Say that again"]

    def test_replay_unknown_index_ignored(self, session, synthesizer) -> None:
        """Replaying a message that does not exist does nothing."""
        session.replay(5)
        session.replay(-1)
        assert synthesizer.spoken == []

    @pytest.mark.asyncio
    async def test_aclose(self, session, backend) -> None:
        session.start_listening()
        await session.aclose()
        assert backend.closed is True
        assert session.snapshot().listening is False


class TestUnsupportedEngines:
    """Tests for missing speech engines."""

    def test_unsupported_recognizer(self, config, synthesizer, backend, scheduler) -> None:
        """Missing recognition shows a notice and the mic stays off."""
        session = TutorSession(config, None, synthesizer, backend=backend, scheduler=scheduler)
        session.start_listening()

        snap = session.snapshot()
        assert snap.error == UNSUPPORTED_MESSAGE
        assert snap.listening is False

    @pytest.mark.asyncio
    async def test_unsupported_synthesizer(
        self, config, recognizer, backend, scheduler, well_reply
    ) -> None:
        """Replies are still logged without speech output."""
        backend.replies.append(well_reply)
        session = TutorSession(config, recognizer, None, backend=backend, scheduler=scheduler)

        session.start_listening()
        recognizer.final("Hello")
        scheduler.advance(3.0)
        await session.wait_idle()

        assert len(session.snapshot().messages) == 2
