from typing import Any, Protocol

from live_interview.domain.recording import RawAudioArtifact


class RecordingStoragePort(Protocol):
    async def store(self, session_id: str, artifact: RawAudioArtifact) -> str: ...


class AnalysisPort(Protocol):
    async def analyze(self, transcript: str, task_type: str, category: str) -> dict[str, Any]: ...
