import logging
import os
from dataclasses import dataclass
from pathlib import Path

import sounddevice as sd

from live_interview.config import LiveInterviewConfig

logger = logging.getLogger(__name__)

CRITICAL_CHECKS = {"audio_device", "api_key"}


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(config: LiveInterviewConfig) -> list[HealthCheckResult]:
    results = [
        _check_audio_device(config),
        _check_api_key(config),
        _check_recordings_dir(config),
    ]

    passed = sum(1 for r in results if r.passed)
    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    return any(not r.passed and r.name in CRITICAL_CHECKS for r in results)


def _check_audio_device(config: LiveInterviewConfig) -> HealthCheckResult:
    name = "audio_device"
    try:
        if config.capture_device:
            for dev in sd.query_devices():
                if (
                    config.capture_device.lower() in dev["name"].lower()
                    and dev["max_input_channels"] > 0
                ):
                    return HealthCheckResult(
                        name=name, passed=True, detail=f"Device '{config.capture_device}' found"
                    )
        default = sd.query_devices(kind="input")
        if config.capture_device:
            detail = (
                f"'{config.capture_device}' not in PortAudio (will use PIPEWIRE_NODE), "
                f"default input: {default['name']}"
            )
        else:
            detail = f"Default input: {default['name']}"
        return HealthCheckResult(name=name, passed=True, detail=detail)
    except sd.PortAudioError:
        return HealthCheckResult(name=name, passed=False, detail="No input devices available")
    except Exception as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))


def _check_api_key(config: LiveInterviewConfig) -> HealthCheckResult:
    name = "api_key"
    if config.read_secret(config.gemini_api_key_file):
        return HealthCheckResult(name=name, passed=True, detail="Gemini API key loaded")
    return HealthCheckResult(
        name=name,
        passed=False,
        detail=f"Missing: gemini ({config.gemini_api_key_file or 'not configured'})",
    )


def _check_recordings_dir(config: LiveInterviewConfig) -> HealthCheckResult:
    name = "recordings_dir"
    directory = Path(config.recordings_dir).expanduser()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return HealthCheckResult(name=name, passed=False, detail=str(exc))
    if not os.access(directory, os.W_OK):
        return HealthCheckResult(name=name, passed=False, detail=f"{directory} is not writable")
    return HealthCheckResult(name=name, passed=True, detail=str(directory))
