import pytest

try:
    import sounddevice as sd
except OSError:
    pytest.skip("PortAudio library not available", allow_module_level=True)

from live_interview.config import LiveInterviewConfig
from live_interview.health import HealthCheckResult, has_critical_failures, run_startup_checks


@pytest.fixture
def no_audio(monkeypatch):
    def query_devices(*args, **kwargs):
        raise sd.PortAudioError("no devices")

    monkeypatch.setattr(sd, "query_devices", query_devices)


@pytest.fixture
def default_mic(monkeypatch):
    monkeypatch.setattr(
        sd, "query_devices", lambda *args, **kwargs: {"name": "Built-in Mic", "max_input_channels": 1}
    )


def results_by_name(config) -> dict[str, HealthCheckResult]:
    return {r.name: r for r in run_startup_checks(config)}


class TestStartupChecks:
    def test_all_pass(self, tmp_path, default_mic):
        key_file = tmp_path / "gemini"
        key_file.write_text("abc")
        config = LiveInterviewConfig(
            gemini_api_key_file=str(key_file), recordings_dir=str(tmp_path / "rec")
        )
        results = results_by_name(config)
        assert all(r.passed for r in results.values())
        assert (tmp_path / "rec").is_dir()
        assert not has_critical_failures(list(results.values()))

    def test_missing_api_key_is_critical(self, tmp_path, default_mic):
        config = LiveInterviewConfig(
            gemini_api_key_file=str(tmp_path / "missing"), recordings_dir=str(tmp_path)
        )
        results = run_startup_checks(config)
        assert not {r.name: r for r in results}["api_key"].passed
        assert has_critical_failures(results)

    def test_no_audio_device_is_critical(self, tmp_path, no_audio):
        key_file = tmp_path / "gemini"
        key_file.write_text("abc")
        config = LiveInterviewConfig(gemini_api_key_file=str(key_file), recordings_dir=str(tmp_path))
        results = run_startup_checks(config)
        assert not {r.name: r for r in results}["audio_device"].passed
        assert has_critical_failures(results)

    def test_unwritable_recordings_dir_is_not_critical(self, tmp_path, default_mic):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        key_file = tmp_path / "gemini"
        key_file.write_text("abc")
        config = LiveInterviewConfig(
            gemini_api_key_file=str(key_file), recordings_dir=str(blocker / "rec")
        )
        results = run_startup_checks(config)
        assert not {r.name: r for r in results}["recordings_dir"].passed
        assert not has_critical_failures(results)
