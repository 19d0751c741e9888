from collections.abc import Callable

from live_interview.adapters.file_storage import LocalRecordingStorage
from live_interview.adapters.gemini_live import GeminiLiveTransport
from live_interview.adapters.gemini_protocol import GeminiLiveDemultiplexer
from live_interview.adapters.http_analysis import HttpAnalysisService
from live_interview.adapters.sounddevice_audio import SounddeviceCapture, SounddevicePlayback
from live_interview.config import LiveInterviewConfig
from live_interview.domain.session import InterviewSession
from live_interview.domain.turns import Turn
from live_interview.ports.audio import AudioPlaybackPort
from live_interview.ports.handoff import AnalysisPort, RecordingStoragePort


def create_capture(config: LiveInterviewConfig) -> SounddeviceCapture:
    return SounddeviceCapture(
        device=config.capture_device or None,
        sample_rate=config.sample_rate,
        stream_sample_rate=config.stream_sample_rate,
        frame_duration_ms=config.frame_duration_ms,
        gain=config.capture_gain,
    )


def create_transport(config: LiveInterviewConfig) -> GeminiLiveTransport:
    return GeminiLiveTransport(
        api_key=config.read_secret(config.gemini_api_key_file),
        url=config.gemini_url,
        model=config.model,
        voice=config.voice,
        sample_rate=config.stream_sample_rate,
        connect_timeout=config.connect_timeout_seconds,
        drain_timeout=config.drain_timeout_seconds,
        send_opening_question=config.send_opening_question,
    )


def create_playback(config: LiveInterviewConfig) -> SounddevicePlayback | None:
    if not config.playback_enabled:
        return None
    return SounddevicePlayback(sample_rate=config.playback_sample_rate)


def create_storage(config: LiveInterviewConfig) -> RecordingStoragePort:
    return LocalRecordingStorage(config.recordings_dir)


def create_analysis(config: LiveInterviewConfig) -> AnalysisPort | None:
    if not config.analysis_url:
        return None
    return HttpAnalysisService(url=config.analysis_url, timeout=config.analysis_timeout_seconds)


def create_session(
    config: LiveInterviewConfig,
    playback: AudioPlaybackPort | None = None,
    on_turn: Callable[[Turn], None] | None = None,
) -> InterviewSession:
    on_assistant_audio = None
    on_interrupted = None
    if playback is not None:

        def on_assistant_audio(data: bytes, mime_type: str) -> None:
            playback.enqueue(data)

        on_interrupted = playback.flush

    return InterviewSession(
        capture=create_capture(config),
        transport=create_transport(config),
        demultiplexer=GeminiLiveDemultiplexer(partials_are_deltas=config.transcripts_are_deltas),
        on_turn=on_turn,
        on_assistant_audio=on_assistant_audio,
        on_interrupted=on_interrupted,
    )
