import asyncio
import logging
from pathlib import Path

from live_interview.domain.recording import RawAudioArtifact

logger = logging.getLogger(__name__)

EXTENSIONS = {"audio/wav": ".wav", "audio/webm": ".webm"}


class LocalRecordingStorage:
    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    async def store(self, session_id: str, artifact: RawAudioArtifact) -> str:
        extension = EXTENSIONS.get(artifact.mime_type, ".bin")
        path = self._directory / f"{session_id}{extension}"
        await asyncio.to_thread(self._write, path, artifact.payload)
        logger.info(
            "Stored recording %s (%.1fs, %d bytes)",
            path, artifact.duration_seconds, artifact.size_bytes,
        )
        return str(path)

    def _write(self, path: Path, payload: bytes) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        if path.exists():
            raise FileExistsError(f"Recording already stored at {path}")
        path.write_bytes(payload)
