import asyncio
import json
import logging

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, InvalidHandshake, InvalidURI

from live_interview.adapters.gemini_protocol import (
    DEFAULT_MODEL,
    DEFAULT_VOICE,
    INPUT_SAMPLE_RATE,
    audio_message,
    decode_message,
    is_setup_complete,
    opening_message,
    setup_message,
    text_message,
)
from live_interview.domain.categories import InterviewCategory
from live_interview.domain.errors import ConnectFailed, SendAfterClose, TransportError
from live_interview.ports.transport import MessageHandler, TransportErrorHandler

logger = logging.getLogger(__name__)

DEFAULT_URL = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)


class GeminiLiveTransport:
    """One-shot websocket connection to the Gemini Live service.

    Outbound messages go through an ordered queue drained by a writer task so
    ``send`` never blocks. A single reader task delivers inbound messages to
    the registered handler in arrival order.
    """

    def __init__(
        self,
        api_key: str,
        url: str = DEFAULT_URL,
        model: str = DEFAULT_MODEL,
        voice: str = DEFAULT_VOICE,
        sample_rate: int = INPUT_SAMPLE_RATE,
        connect_timeout: float = 10.0,
        drain_timeout: float = 5.0,
        send_opening_question: bool = True,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._model = model
        self._voice = voice
        self._sample_rate = sample_rate
        self._connect_timeout = connect_timeout
        self._drain_timeout = drain_timeout
        self._send_opening_question = send_opening_question

        self._ws: ClientConnection | None = None
        self._handler: MessageHandler | None = None
        self._error_handler: TransportErrorHandler | None = None
        self._outbound: asyncio.Queue[dict] | None = None
        self._reader_task: asyncio.Task | None = None
        self._writer_task: asyncio.Task | None = None
        self._used = False
        self._closed = False
        self._failed = False
        self._released = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed

    def on_message(
        self, handler: MessageHandler, error_handler: TransportErrorHandler | None = None
    ) -> None:
        if self._handler is not None:
            raise RuntimeError("A message handler is already registered")
        self._handler = handler
        self._error_handler = error_handler

    async def open(self, category: InterviewCategory) -> None:
        if self._used:
            raise ConnectFailed("Transport already used; create a new one per session")
        self._used = True
        if not self._api_key:
            raise ConnectFailed("Missing Gemini API key")

        try:
            await asyncio.wait_for(self._handshake(category), timeout=self._connect_timeout)
        except asyncio.TimeoutError as exc:
            self._abort_socket()
            raise ConnectFailed(
                f"No setup acknowledgement within {self._connect_timeout:.0f}s"
            ) from exc
        except (OSError, InvalidURI, InvalidHandshake, ConnectionClosed, ValueError) as exc:
            self._abort_socket()
            raise ConnectFailed(str(exc) or exc.__class__.__name__) from exc
        except asyncio.CancelledError:
            self._abort_socket()
            raise

        self._outbound = asyncio.Queue()
        self._reader_task = asyncio.create_task(self._read_loop())
        self._writer_task = asyncio.create_task(self._write_loop())

        if self._send_opening_question:
            opening = opening_message(category)
            if opening is not None:
                self._enqueue(opening)
        logger.info("Gemini Live connected (model=%s, voice=%s)", self._model, self._voice)

    async def _handshake(self, category: InterviewCategory) -> None:
        self._ws = await connect(
            f"{self._url}?key={self._api_key}",
            max_size=None,
            close_timeout=self._drain_timeout,
        )
        await self._ws.send(json.dumps(setup_message(category, self._model, self._voice)))
        while True:
            message = decode_message(await self._ws.recv())
            if is_setup_complete(message):
                return
            logger.debug("Message before setup acknowledgement: %s", str(message)[:200])

    def send(self, frame: bytes) -> None:
        self._enqueue(audio_message(frame, self._sample_rate))

    def send_text(self, text: str) -> None:
        self._enqueue(text_message(text))

    def _enqueue(self, message: dict) -> None:
        if self._closed:
            raise SendAfterClose("Transport is closed")
        if self._outbound is None:
            raise RuntimeError("Transport is not open")
        self._outbound.put_nowait(message)

    async def close(self, drain: bool = True) -> None:
        if self._released:
            if not drain:
                # cut short a draining close still in progress
                self._abort_socket()
            return
        self._released = True
        self._closed = True

        await _cancel_task(self._writer_task)
        self._writer_task = None

        if self._ws is not None and drain and not self._failed:
            try:
                await asyncio.wait_for(self._ws.close(), timeout=self._drain_timeout)
            except asyncio.TimeoutError:
                logger.warning("Close handshake timed out after %.1fs", self._drain_timeout)
            if self._reader_task is not None:
                await asyncio.wait({self._reader_task}, timeout=self._drain_timeout)
        else:
            self._abort_socket()

        await _cancel_task(self._reader_task)
        self._reader_task = None
        self._ws = None
        self._handler = None
        self._error_handler = None
        logger.info("Gemini Live connection closed (drain=%s)", drain)

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbound.get()
            try:
                await self._ws.send(json.dumps(message))
            except ConnectionClosed as exc:
                self._report_failure(TransportError(f"Connection lost while sending: {exc}"))
                return

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    message = decode_message(raw)
                except ValueError as exc:
                    self._report_failure(TransportError(f"Malformed message: {exc}"))
                    return
                self._deliver(message)
        except ConnectionClosedError as exc:
            self._report_failure(TransportError(f"Connection dropped: {exc}"))
            return
        if not self._closed:
            self._report_failure(TransportError("Connection closed by the service"))

    def _deliver(self, message: object) -> None:
        if self._handler is None:
            return
        try:
            self._handler(message)
        except Exception:
            logger.exception("Message handler raised")

    def _report_failure(self, error: TransportError) -> None:
        if self._closed:
            return
        self._closed = True
        self._failed = True
        logger.error("Gemini Live transport error: %s", error)
        if self._writer_task is not None and self._writer_task is not asyncio.current_task():
            self._writer_task.cancel()
        if self._error_handler is not None:
            self._error_handler(error)

    def _abort_socket(self) -> None:
        if self._ws is None:
            return
        transport = getattr(self._ws, "transport", None)
        if transport is not None:
            transport.abort()
        self._ws = None


async def _cancel_task(task: asyncio.Task | None) -> None:
    if task is None or task is asyncio.current_task():
        return
    if not task.done():
        task.cancel()
    await asyncio.gather(task, return_exceptions=True)
