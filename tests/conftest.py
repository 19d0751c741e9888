import asyncio
import base64

import numpy as np
import pytest

from live_interview.domain.categories import InterviewCategory
from live_interview.domain.errors import SendAfterClose
from live_interview.domain.events import Ignored, InboundEvent
from live_interview.domain.recording import RecordingBuffer


SAMPLE_RATE = 16000
FRAME_DURATION_MS = 100
FRAME_SIZE = int(SAMPLE_RATE * FRAME_DURATION_MS / 1000)


def generate_silence(duration_ms: int = FRAME_DURATION_MS, sample_rate: int = SAMPLE_RATE) -> bytes:
    num_samples = int(sample_rate * duration_ms / 1000)
    return np.zeros(num_samples, dtype=np.int16).tobytes()


def generate_sine_wave(
    frequency: float = 440.0,
    duration_ms: int = FRAME_DURATION_MS,
    amplitude: float = 0.8,
    sample_rate: int = SAMPLE_RATE,
) -> bytes:
    num_samples = int(sample_rate * duration_ms / 1000)
    t = np.arange(num_samples) / sample_rate
    signal = np.sin(2 * np.pi * frequency * t) * amplitude
    return (signal * 32767).astype(np.int16).tobytes()


def split_into_frames(pcm_data: bytes, frame_size: int = FRAME_SIZE) -> list[bytes]:
    bytes_per_frame = frame_size * 2
    frames = []
    for i in range(0, len(pcm_data), bytes_per_frame):
        chunk = pcm_data[i : i + bytes_per_frame]
        if len(chunk) == bytes_per_frame:
            frames.append(chunk)
    return frames


def input_transcription(text: str) -> dict:
    return {"serverContent": {"inputTranscription": {"text": text}}}


def output_transcription(text: str) -> dict:
    return {"serverContent": {"outputTranscription": {"text": text}}}


def turn_complete() -> dict:
    return {"serverContent": {"turnComplete": True}}


def model_audio(pcm: bytes, mime_type: str = "audio/pcm;rate=24000") -> dict:
    return {
        "serverContent": {
            "modelTurn": {
                "parts": [
                    {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(pcm).decode()}}
                ]
            }
        }
    }


async def yield_to_loop(times: int = 1) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


class FakeAudioCapture:
    def __init__(
        self,
        acquire_yields: int = 0,
        acquire_error: Exception | None = None,
        start_error: Exception | None = None,
        sample_rate: int = SAMPLE_RATE,
    ) -> None:
        self._acquire_yields = acquire_yields
        self._acquire_error = acquire_error
        self._start_error = start_error
        self._sample_rate = sample_rate
        self._recording = RecordingBuffer(sample_rate)
        self._on_frame = None
        self._on_error = None
        self.open_handles = 0
        self.acquire_calls = 0
        self.stop_calls = 0

    @property
    def streaming(self) -> bool:
        return self._on_frame is not None

    async def acquire(self) -> None:
        self.acquire_calls += 1
        await yield_to_loop(self._acquire_yields)
        if self._acquire_error is not None:
            raise self._acquire_error
        self.open_handles += 1
        self._recording = RecordingBuffer(self._sample_rate)

    async def start_streaming(self, on_frame, on_error=None) -> None:
        if self._start_error is not None:
            raise self._start_error
        self._on_frame = on_frame
        self._on_error = on_error

    def feed(self, frames: list[bytes]) -> None:
        for frame in frames:
            self._recording.append(frame)
            if self._on_frame is not None:
                self._on_frame(frame)

    def fail(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)

    def get_accumulated_recording(self):
        return self._recording.seal()

    async def stop(self) -> None:
        self.stop_calls += 1
        self.open_handles = 0
        self._on_frame = None
        self._on_error = None


class FakeTransport:
    """In-memory transport.

    ``drain_messages`` are delivered during a draining close, as a live
    service would flush its last replies. With ``hang_on_drain`` the draining
    close only returns once an aborting close arrives.
    """

    def __init__(
        self,
        open_yields: int = 0,
        open_error: Exception | None = None,
        drain_messages: list | None = None,
        hang_on_drain: bool = False,
    ) -> None:
        self._open_yields = open_yields
        self._open_error = open_error
        self._drain_messages = list(drain_messages or [])
        self._hang_on_drain = hang_on_drain
        self._aborted = asyncio.Event()
        self._released = False
        self._handler = None
        self._error_handler = None
        self._closed = False
        self.open_connections = 0
        self.open_calls = 0
        self.close_drains: list[bool] = []
        self.sent_frames: list[bytes] = []
        self.sent_texts: list[str] = []
        self.opened_category: InterviewCategory | None = None

    def on_message(self, handler, error_handler=None) -> None:
        self._handler = handler
        self._error_handler = error_handler

    async def open(self, category: InterviewCategory) -> None:
        self.open_calls += 1
        await yield_to_loop(self._open_yields)
        if self._open_error is not None:
            raise self._open_error
        self.open_connections += 1
        self.opened_category = category

    def send(self, frame: bytes) -> None:
        if self._closed:
            raise SendAfterClose("Transport is closed")
        self.sent_frames.append(frame)

    def send_text(self, text: str) -> None:
        if self._closed:
            raise SendAfterClose("Transport is closed")
        self.sent_texts.append(text)

    def emit(self, *messages) -> None:
        for message in messages:
            self._handler(message)

    def drop(self, error: Exception) -> None:
        self._closed = True
        self._error_handler(error)

    async def close(self, drain: bool = True) -> None:
        self._closed = True
        self.close_drains.append(drain)
        if not drain:
            self._aborted.set()
        if self._released:
            return
        self._released = True
        if drain:
            self.emit(*self._drain_messages)
            if self._hang_on_drain:
                await self._aborted.wait()
        self.open_connections = 0


class PassthroughDemultiplexer:
    """Treats every raw message as an already classified event."""

    def __init__(self, partials_are_deltas: bool = False) -> None:
        self._partials_are_deltas = partials_are_deltas

    @property
    def partials_are_deltas(self) -> bool:
        return self._partials_are_deltas

    def classify(self, raw) -> tuple[InboundEvent, ...]:
        if isinstance(raw, InboundEvent):
            return (raw,)
        return (Ignored(reason="not an event"),)


@pytest.fixture
def category():
    return InterviewCategory(
        id="prueba",
        name="Prueba",
        system_prompt="Eres un entrevistador amable.",
        opening_question="¿Cómo estás?",
    )


@pytest.fixture
def fake_capture():
    return FakeAudioCapture()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def speech_frames():
    return split_into_frames(generate_sine_wave(duration_ms=1000))
