import asyncio
import logging
import os
import threading

import janus
import numpy as np
import sounddevice as sd

from live_interview.domain.errors import DeviceUnavailable
from live_interview.domain.recording import RawAudioArtifact, RecordingBuffer, RecordingSealedError
from live_interview.ports.audio import ErrorCallback, FrameCallback

logger = logging.getLogger(__name__)

_held_devices: set[str | int] = set()
_held_devices_lock = threading.Lock()


def _claim_device(key: str | int) -> None:
    with _held_devices_lock:
        if key in _held_devices:
            raise DeviceUnavailable(f"Audio input '{key}' is already in use by another session")
        _held_devices.add(key)


def _release_device(key: str | int) -> None:
    with _held_devices_lock:
        _held_devices.discard(key)


def resample_pcm16(pcm: bytes, source_rate: int, target_rate: int) -> bytes:
    if source_rate == target_rate or not pcm:
        return pcm
    samples = np.frombuffer(pcm, dtype=np.int16).astype(np.float32)
    target_length = int(round(len(samples) * target_rate / source_rate))
    if target_length == 0:
        return b""
    positions = np.linspace(0, len(samples) - 1, target_length)
    resampled = np.interp(positions, np.arange(len(samples)), samples)
    return np.round(resampled).astype(np.int16).tobytes()


class SounddeviceCapture:
    """Microphone capture feeding two outputs from one PortAudio stream.

    The driver callback appends raw PCM to the recording buffer and hands a
    copy to a janus queue; a pump task on the event loop resamples it to the
    wire rate and pushes it to ``on_frame``.
    """

    def __init__(
        self,
        device: str | int | None = None,
        sample_rate: int = 16000,
        stream_sample_rate: int = 16000,
        frame_duration_ms: int = 100,
        gain: float = 1.0,
        queue_size: int = 100,
    ) -> None:
        self._device = device
        self._sample_rate = sample_rate
        self._stream_sample_rate = stream_sample_rate
        self._frame_duration_ms = frame_duration_ms
        self._frame_size = int(sample_rate * frame_duration_ms / 1000)
        self._gain = gain
        self._queue_size = queue_size
        self._stream: sd.InputStream | None = None
        self._queue: janus.Queue[bytes] | None = None
        self._pump_task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_error: ErrorCallback | None = None
        self._recording = RecordingBuffer(sample_rate)
        self._device_key: str | int | None = None
        self._stopping = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def frame_size(self) -> int:
        return self._frame_size

    @property
    def holds_device(self) -> bool:
        return self._device_key is not None

    async def acquire(self) -> None:
        if self._device_key is not None:
            raise DeviceUnavailable("This capture already holds an audio input")

        device = self._resolve_device()
        key = device if device is not None else "default"
        _claim_device(key)
        self._device_key = key
        self._stopping = False
        self._recording = RecordingBuffer(self._sample_rate)

        try:
            self._queue = janus.Queue(maxsize=self._queue_size)
            self._stream = sd.InputStream(
                device=device,
                samplerate=self._sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self._frame_size,
                callback=self._audio_callback,
                finished_callback=self._stream_finished,
            )
        except (sd.PortAudioError, ValueError) as exc:
            await self.stop()
            raise DeviceUnavailable(f"Cannot open audio input: {exc}") from exc
        logger.info(
            "Audio input acquired (device=%s, rate=%d, frame=%dms)",
            key, self._sample_rate, self._frame_duration_ms,
        )

    async def start_streaming(
        self, on_frame: FrameCallback, on_error: ErrorCallback | None = None
    ) -> None:
        if self._stream is None or self._queue is None:
            raise DeviceUnavailable("Audio input has not been acquired")

        self._loop = asyncio.get_running_loop()
        self._on_error = on_error
        self._pump_task = asyncio.create_task(self._pump(self._queue, on_frame))
        try:
            self._stream.start()
        except sd.PortAudioError as exc:
            await self.stop()
            raise DeviceUnavailable(f"Cannot start audio input: {exc}") from exc
        logger.info("Audio streaming started (wire rate=%d)", self._stream_sample_rate)

    def get_accumulated_recording(self) -> RawAudioArtifact:
        return self._recording.seal()

    async def stop(self) -> None:
        self._stopping = True
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except sd.PortAudioError:
                logger.warning("Error closing audio input stream", exc_info=True)
            self._stream = None

        if self._queue is not None:
            self._queue.close()
            await self._queue.wait_closed()
            self._queue = None

        if self._pump_task is not None and self._pump_task is not asyncio.current_task():
            self._pump_task.cancel()
            await asyncio.gather(self._pump_task, return_exceptions=True)
        self._pump_task = None

        if self._device_key is not None:
            _release_device(self._device_key)
            logger.info("Audio input released (device=%s)", self._device_key)
            self._device_key = None

    def _audio_callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.warning("Audio capture status: %s", status)
        samples = np.clip(indata[:, 0] * self._gain, -1.0, 1.0)
        pcm_bytes = (samples * 32767).astype(np.int16).tobytes()

        try:
            self._recording.append(pcm_bytes)
        except RecordingSealedError:
            pass

        queue = self._queue
        if queue is None:
            return
        try:
            queue.sync_q.put_nowait(pcm_bytes)
        except janus.SyncQueueFull:
            logger.warning("Capture queue full, dropping frame")
        except (janus.SyncQueueShutDown, RuntimeError):
            pass

    def _stream_finished(self) -> None:
        if self._stopping or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._report_stream_lost)
        except RuntimeError:
            pass

    def _report_stream_lost(self) -> None:
        if self._stopping:
            return
        error = DeviceUnavailable("Audio input stream ended unexpectedly")
        logger.error("%s", error)
        if self._on_error is not None:
            self._on_error(error)

    async def _pump(self, queue: janus.Queue[bytes], on_frame: FrameCallback) -> None:
        while True:
            try:
                pcm = await queue.async_q.get()
            except janus.AsyncQueueShutDown:
                break
            frame = resample_pcm16(pcm, self._sample_rate, self._stream_sample_rate)
            try:
                on_frame(frame)
            except Exception as exc:
                logger.exception("Frame consumer raised, stopping audio stream")
                if self._on_error is not None:
                    self._on_error(exc)
                break

    def _resolve_device(self) -> str | int | None:
        try:
            if self._device is None or self._device == "":
                sd.query_devices(kind="input")
                return None
            if isinstance(self._device, int):
                return self._device
            try:
                return int(self._device)
            except ValueError:
                pass
            for i, dev in enumerate(sd.query_devices()):
                if self._device.lower() in dev["name"].lower() and dev["max_input_channels"] > 0:
                    logger.info("Resolved device '%s' -> %d (%s)", self._device, i, dev["name"])
                    return i
        except sd.PortAudioError as exc:
            raise DeviceUnavailable(f"No audio input available: {exc}") from exc
        os.environ["PIPEWIRE_NODE"] = self._device
        logger.info("Device '%s' not in PortAudio, set PIPEWIRE_NODE for PipeWire routing", self._device)
        return None


class SounddevicePlayback:
    def __init__(self, sample_rate: int = 24000, queue_size: int = 400) -> None:
        self._sample_rate = sample_rate
        self._queue_size = queue_size
        self._stream: sd.OutputStream | None = None
        self._queue: janus.Queue[bytes | None] | None = None
        self._play_task: asyncio.Task | None = None

    async def start(self) -> None:
        self._queue = janus.Queue(maxsize=self._queue_size)
        self._stream = sd.OutputStream(
            samplerate=self._sample_rate,
            channels=1,
            dtype="int16",
        )
        self._stream.start()
        self._play_task = asyncio.create_task(self._playback_loop(self._queue))

    async def stop(self) -> None:
        queue, self._queue = self._queue, None
        if queue is not None:
            await queue.async_q.put(None)
        if self._play_task is not None:
            await self._play_task
            self._play_task = None
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        if queue is not None:
            queue.close()
            await queue.wait_closed()

    def enqueue(self, audio_data: bytes) -> None:
        if self._queue is None:
            return
        try:
            self._queue.async_q.put_nowait(audio_data)
        except janus.AsyncQueueFull:
            logger.warning("Playback queue full, dropping audio chunk")

    def flush(self) -> None:
        if self._queue is None:
            return
        while True:
            try:
                self._queue.async_q.get_nowait()
            except janus.AsyncQueueEmpty:
                return

    async def _playback_loop(self, queue: janus.Queue[bytes | None]) -> None:
        while True:
            try:
                chunk = await queue.async_q.get()
            except janus.AsyncQueueShutDown:
                break
            if chunk is None:
                break
            audio_array = np.frombuffer(chunk, dtype=np.int16)
            try:
                await asyncio.to_thread(self._stream.write, audio_array.reshape(-1, 1))
            except sd.PortAudioError:
                logger.warning("Playback write error")
