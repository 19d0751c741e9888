from pydantic_settings import BaseSettings, SettingsConfigDict


class LiveInterviewConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIVE_INTERVIEW_")

    gemini_api_key_file: str = ""
    gemini_url: str = (
        "wss://generativelanguage.googleapis.com/ws/"
        "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
    )
    model: str = "models/gemini-2.5-flash-native-audio-preview-09-2025"
    voice: str = "Aoede"
    connect_timeout_seconds: float = 10.0
    drain_timeout_seconds: float = 5.0
    send_opening_question: bool = True
    transcripts_are_deltas: bool = True

    capture_device: str = ""
    capture_gain: float = 1.0
    sample_rate: int = 16000
    stream_sample_rate: int = 16000
    frame_duration_ms: int = 100
    playback_enabled: bool = True
    playback_sample_rate: int = 24000

    category: str = "infancia"

    recordings_dir: str = "~/.local/share/live-interview/recordings"
    analysis_url: str = ""
    analysis_timeout_seconds: float = 60.0

    log_file: str = ""

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""
