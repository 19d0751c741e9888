from collections.abc import Callable
from typing import Protocol

from live_interview.domain.recording import RawAudioArtifact

FrameCallback = Callable[[bytes], None]
ErrorCallback = Callable[[Exception], None]


class AudioCapturePort(Protocol):
    async def acquire(self) -> None: ...
    async def start_streaming(
        self, on_frame: FrameCallback, on_error: ErrorCallback | None = None
    ) -> None: ...
    def get_accumulated_recording(self) -> RawAudioArtifact: ...
    async def stop(self) -> None: ...


class AudioPlaybackPort(Protocol):
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    def enqueue(self, audio_data: bytes) -> None: ...
    def flush(self) -> None: ...
