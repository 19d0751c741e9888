import io
import threading
import wave
from dataclasses import dataclass

SAMPLE_WIDTH_BYTES = 2
WAV_MIME_TYPE = "audio/wav"


@dataclass(frozen=True)
class RawAudioArtifact:
    payload: bytes
    mime_type: str
    duration_seconds: float
    sample_rate: int
    channels: int = 1

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


class RecordingSealedError(Exception):
    pass


class RecordingBuffer:
    """Accumulates raw 16-bit PCM chunks until sealed into a WAV artifact.

    Appends come from the audio driver thread, so every access takes the lock.
    """

    def __init__(self, sample_rate: int, channels: int = 1) -> None:
        self._sample_rate = sample_rate
        self._channels = channels
        self._chunks: list[bytes] = []
        self._byte_count = 0
        self._artifact: RawAudioArtifact | None = None
        self._lock = threading.Lock()

    @property
    def sealed(self) -> bool:
        with self._lock:
            return self._artifact is not None

    @property
    def duration_seconds(self) -> float:
        with self._lock:
            return self._duration_for(self._byte_count)

    def append(self, pcm: bytes) -> None:
        with self._lock:
            if self._artifact is not None:
                raise RecordingSealedError("Recording already sealed")
            self._chunks.append(pcm)
            self._byte_count += len(pcm)

    def seal(self) -> RawAudioArtifact:
        with self._lock:
            if self._artifact is None:
                pcm = b"".join(self._chunks)
                self._chunks = []
                self._artifact = RawAudioArtifact(
                    payload=pcm_to_wav_bytes(pcm, self._sample_rate, self._channels),
                    mime_type=WAV_MIME_TYPE,
                    duration_seconds=self._duration_for(len(pcm)),
                    sample_rate=self._sample_rate,
                    channels=self._channels,
                )
            return self._artifact

    def _duration_for(self, byte_count: int) -> float:
        return byte_count / (self._sample_rate * self._channels * SAMPLE_WIDTH_BYTES)


def pcm_to_wav_bytes(pcm_data: bytes, sample_rate: int, channels: int = 1) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(SAMPLE_WIDTH_BYTES)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm_data)
    return buffer.getvalue()
