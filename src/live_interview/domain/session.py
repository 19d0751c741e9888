import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from live_interview.domain.categories import InterviewCategory
from live_interview.domain.errors import SessionCancelled, TransportError
from live_interview.domain.events import (
    AssistantAudio,
    AssistantTranscript,
    Ignored,
    InboundEvent,
    Interrupted,
    ServiceError,
    TurnComplete,
    UserTranscript,
)
from live_interview.domain.recording import RawAudioArtifact
from live_interview.domain.state import SessionState, require_state, validate_transition
from live_interview.domain.turns import Speaker, Turn, TurnReconciler
from live_interview.ports.audio import AudioCapturePort
from live_interview.ports.transport import DemultiplexerPort, LiveTransportPort

logger = logging.getLogger(__name__)

READABLE_STATES = {
    SessionState.ACTIVE,
    SessionState.FINISHING,
    SessionState.CLOSED,
    SessionState.FAILED,
}
CANCELLABLE_STATES = {SessionState.CONNECTING, SessionState.ACTIVE, SessionState.FINISHING}


@dataclass(frozen=True)
class SessionResult:
    session_id: str
    turns: tuple[Turn, ...]
    recording: RawAudioArtifact
    duration_seconds: float
    transcript: str


class InterviewSession:
    """One live voice interview: IDLE -> CONNECTING -> ACTIVE -> FINISHING -> CLOSED.

    Any component failure while CONNECTING or ACTIVE, and ``cancel()`` at any
    point before CLOSED, move the session to FAILED and tear every component
    down. All state is mutated on the event loop; capture and transport
    callbacks are invoked there too.
    """

    def __init__(
        self,
        capture: AudioCapturePort,
        transport: LiveTransportPort,
        demultiplexer: DemultiplexerPort,
        session_id: str | None = None,
        on_turn: Callable[[Turn], None] | None = None,
        on_assistant_audio: Callable[[bytes, str], None] | None = None,
        on_interrupted: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capture = capture
        self._transport = transport
        self._demultiplexer = demultiplexer
        self._session_id = session_id or uuid.uuid4().hex
        self._on_turn = on_turn
        self._on_assistant_audio = on_assistant_audio
        self._on_interrupted = on_interrupted
        self._clock = clock

        self._reconciler = TurnReconciler(append_partials=demultiplexer.partials_are_deltas)
        self._state = SessionState.IDLE
        self._category: InterviewCategory | None = None
        self._error: Exception | None = None
        self._recording: RawAudioArtifact | None = None
        self._started_at: float | None = None
        self._ended_at: float | None = None
        self._connect_tasks: list[asyncio.Task] = []
        self._teardown_task: asyncio.Task | None = None
        self._terminated = asyncio.Event()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def category(self) -> InterviewCategory | None:
        return self._category

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def recording(self) -> RawAudioArtifact | None:
        return self._recording

    @property
    def duration_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._ended_at if self._ended_at is not None else self._clock()
        return end - self._started_at

    @property
    def turns(self) -> tuple[Turn, ...]:
        require_state(self._state, "read turns", READABLE_STATES)
        return self._reconciler.turns

    @property
    def transcript(self) -> str:
        require_state(self._state, "read transcript", READABLE_STATES)
        return self._reconciler.transcript()

    def partial(self, speaker: Speaker) -> str:
        require_state(self._state, "read partial text", READABLE_STATES)
        return self._reconciler.partial(speaker)

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.info("State: %s -> %s", self._state.name, target.name)
        self._state = target

    async def start(self, category: InterviewCategory) -> None:
        require_state(self._state, "start", {SessionState.IDLE})
        self._category = category
        self._transition_to(SessionState.CONNECTING)
        self._started_at = self._clock()
        logger.info("Starting session %s (category=%s)", self._session_id, category.id)

        self._transport.on_message(self._handle_message, self._handle_transport_error)
        self._connect_tasks = [
            asyncio.create_task(self._capture.acquire()),
            asyncio.create_task(self._transport.open(category)),
        ]

        try:
            await asyncio.wait(self._connect_tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            self._fail(SessionCancelled("Start was cancelled"))
            await self.wait_closed()
            raise

        if self._state is not SessionState.CONNECTING:
            await self.wait_closed()
            raise self._error

        failure = _first_failure(self._connect_tasks)
        if failure is not None:
            await self._abort(failure)
            raise failure

        self._connect_tasks = []
        self._transition_to(SessionState.ACTIVE)

        try:
            await self._capture.start_streaming(self._handle_frame, self._handle_capture_error)
        except Exception as exc:
            await self._abort(exc)
            raise

        if self._state is not SessionState.ACTIVE:
            await self.wait_closed()
            raise self._error

    async def finish(self) -> SessionResult:
        require_state(self._state, "finish", {SessionState.ACTIVE})
        self._transition_to(SessionState.FINISHING)
        try:
            try:
                await self._capture.stop()
            finally:
                await self._transport.close(drain=True)
        finally:
            self._recording = self._capture.get_accumulated_recording()
            self._ended_at = self._clock()
            if self._state is SessionState.FINISHING:
                self._transition_to(SessionState.CLOSED)
            self._terminated.set()

        if self._state is SessionState.FAILED:
            raise self._error
        turns = self._reconciler.turns
        logger.info(
            "Session %s finished: %d turns, %.1fs, %d bytes of audio",
            self._session_id, len(turns), self.duration_seconds, self._recording.size_bytes,
        )
        return SessionResult(
            session_id=self._session_id,
            turns=turns,
            recording=self._recording,
            duration_seconds=self.duration_seconds,
            transcript=self._reconciler.transcript(),
        )

    async def cancel(self) -> None:
        """Tear the session down without waiting on the service.

        While FINISHING this aborts the pending drain, and ``finish()`` raises
        ``SessionCancelled`` instead of returning a result.
        """
        require_state(self._state, "cancel", CANCELLABLE_STATES)
        if self._state is SessionState.FINISHING:
            self._error = SessionCancelled("Session cancelled while finishing")
            logger.info("Session %s cancelled while finishing", self._session_id)
            self._transition_to(SessionState.FAILED)
            await self._transport.close(drain=False)
        else:
            self._fail(SessionCancelled("Session cancelled"))
        await self.wait_closed()

    def send_text(self, text: str) -> None:
        require_state(self._state, "send text", {SessionState.ACTIVE})
        self._transport.send_text(text)

    async def wait_closed(self) -> None:
        await self._terminated.wait()

    def _fail(self, error: Exception) -> bool:
        if self._state not in (SessionState.CONNECTING, SessionState.ACTIVE):
            logger.warning("Ignoring failure while %s: %s", self._state.name, error)
            return False

        self._error = error
        if isinstance(error, SessionCancelled):
            logger.info("Session %s cancelled", self._session_id)
        else:
            logger.error("Session %s failed: %s", self._session_id, error)
        self._transition_to(SessionState.FAILED)

        for task in self._connect_tasks:
            task.cancel()
        self._teardown_task = asyncio.create_task(self._teardown())
        return True

    async def _abort(self, error: Exception) -> None:
        self._fail(error)
        await self.wait_closed()

    async def _teardown(self) -> None:
        try:
            if self._connect_tasks:
                await asyncio.gather(*self._connect_tasks, return_exceptions=True)
                self._connect_tasks = []
            try:
                await self._capture.stop()
            finally:
                await self._transport.close(drain=False)
        except Exception:
            logger.exception("Error during session teardown")
        finally:
            self._recording = self._capture.get_accumulated_recording()
            self._ended_at = self._clock()
            self._terminated.set()

    def _handle_frame(self, frame: bytes) -> None:
        if self._state is not SessionState.ACTIVE:
            return
        self._transport.send(frame)

    def _handle_capture_error(self, error: Exception) -> None:
        self._fail(error)

    def _handle_transport_error(self, error: TransportError) -> None:
        self._fail(error)

    def _handle_message(self, raw: object) -> None:
        for event in self._demultiplexer.classify(raw):
            if self._state.is_terminal:
                return
            self._dispatch(event)

    def _dispatch(self, event: InboundEvent) -> None:
        if isinstance(event, UserTranscript):
            text = self._reconciler.on_partial(Speaker.USER, event.text)
            logger.debug("Partial (user): %s", text)
        elif isinstance(event, AssistantTranscript):
            text = self._reconciler.on_partial(Speaker.ASSISTANT, event.text)
            logger.debug("Partial (assistant): %s", text)
        elif isinstance(event, TurnComplete):
            if event.carries_text:
                finalized = self._reconciler.on_turn_complete(event.user_text, event.assistant_text)
            else:
                finalized = self._reconciler.finalize_pending()
            for turn in finalized:
                logger.info("Turn %d [%s]: %s", turn.index, turn.speaker.value, turn.text)
                self._notify(self._on_turn, turn)
        elif isinstance(event, AssistantAudio):
            self._notify(self._on_assistant_audio, event.data, event.mime_type)
        elif isinstance(event, Interrupted):
            logger.info("Assistant interrupted")
            self._notify(self._on_interrupted)
        elif isinstance(event, ServiceError):
            self._fail(TransportError(event.message))
        elif isinstance(event, Ignored):
            logger.debug("Ignored message: %s", event.reason)

    def _notify(self, callback: Callable | None, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Session listener raised")


def _first_failure(tasks: list[asyncio.Task]) -> BaseException | None:
    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            return task.exception()
    return None
