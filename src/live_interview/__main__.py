import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

from live_interview.config import LiveInterviewConfig
from live_interview.domain.categories import (
    ALL_CATEGORIES,
    InterviewCategory,
    UnknownCategoryError,
    get_category,
)
from live_interview.domain.errors import SessionError
from live_interview.domain.session import CANCELLABLE_STATES, SessionResult
from live_interview.domain.state import SessionState
from live_interview.domain.turns import DEFAULT_LABELS, Turn
from live_interview.log_format import configure_logging
from live_interview.ports.handoff import RecordingStoragePort

ENV_FILE_PATH = Path.home() / ".config" / "live-interview" / "env"

logger = logging.getLogger("live_interview")


def _load_env_file() -> None:
    if not ENV_FILE_PATH.exists():
        return
    with open(ENV_FILE_PATH) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            value = value.strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def main() -> None:
    _load_env_file()
    parser = argparse.ArgumentParser(description="Live voice interview session")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("categories", help="List interview categories")

    interview_parser = subparsers.add_parser("interview", help="Run a live interview (default)")
    interview_parser.add_argument("--category", help="Interview category id")
    interview_parser.add_argument(
        "--no-analysis", action="store_true", help="Skip the analysis service hand-off"
    )

    args = parser.parse_args()
    config = LiveInterviewConfig()
    configure_logging(verbose=args.verbose, log_file=config.log_file)

    if args.command == "categories":
        _print_categories()
        return

    category_id = getattr(args, "category", None) or config.category
    try:
        category = get_category(category_id)
    except UnknownCategoryError:
        print(f"Unknown category: {category_id}", file=sys.stderr)
        sys.exit(2)

    analyze = not getattr(args, "no_analysis", False)
    sys.exit(asyncio.run(_run_interview(config, category, analyze)))


def _print_categories() -> None:
    for category in ALL_CATEGORIES:
        print(f"{category.id:<12} {category.emoji} {category.name} [{category.task_type}]")
        print(f"{'':<12} {category.opening_question}")


def _print_turn(turn: Turn) -> None:
    print(f"[{DEFAULT_LABELS[turn.speaker]}]: {turn.text}", flush=True)


async def _run_interview(
    config: LiveInterviewConfig, category: InterviewCategory, analyze: bool
) -> int:
    from live_interview.factory import (
        create_analysis,
        create_playback,
        create_session,
        create_storage,
    )
    from live_interview.health import has_critical_failures, run_startup_checks

    results = run_startup_checks(config)
    if has_critical_failures(results):
        logger.error("Critical health check failures, aborting startup")
        return 1

    playback = create_playback(config)
    if playback is not None:
        await playback.start()
    session = create_session(config, playback=playback, on_turn=_print_turn)

    finish_requested = asyncio.Event()
    pending_cancel: list[asyncio.Task] = []

    def handle_signal() -> None:
        if session.state is SessionState.CONNECTING or finish_requested.is_set():
            if session.state in CANCELLABLE_STATES:
                logger.warning("Cancelling interview")
                pending_cancel.append(asyncio.create_task(session.cancel()))
                return
            logger.warning("Forced exit")
            sys.exit(1)
        logger.info("Finishing interview...")
        finish_requested.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    try:
        try:
            await session.start(category)
        except SessionError as exc:
            logger.error("Could not start interview: %s", exc)
            return 1

        print(f"{category.emoji} {category.name}: speak freely, Ctrl+C to finish.", flush=True)
        finish_wait = asyncio.create_task(finish_requested.wait())
        closed_wait = asyncio.create_task(session.wait_closed())
        await asyncio.wait({finish_wait, closed_wait}, return_when=asyncio.FIRST_COMPLETED)
        for task in (finish_wait, closed_wait):
            task.cancel()

        if session.state is not SessionState.ACTIVE:
            await session.wait_closed()
            logger.error("Interview failed: %s", session.error)
            if session.turns:
                logger.info("Partial transcript kept in memory only:\n%s", session.transcript)
            return 1

        try:
            result = await session.finish()
        except SessionError as exc:
            logger.error("Interview did not finish cleanly: %s", exc)
            return 1
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        if pending_cancel:
            await asyncio.gather(*pending_cancel, return_exceptions=True)
        if playback is not None:
            await playback.stop()

    location = await _store_recording(create_storage(config), result)
    exit_code = 0 if location is not None else 1

    analysis = create_analysis(config) if analyze else None
    if analysis is not None and result.turns:
        from live_interview.adapters.http_analysis import AnalysisError

        try:
            structured = await analysis.analyze(result.transcript, category.task_type, category.id)
        except AnalysisError as exc:
            logger.error("Analysis failed: %s", exc)
            return 1
        for key, value in structured.items():
            print(f"{key}: {value}")
    return exit_code


async def _store_recording(storage: RecordingStoragePort, result: SessionResult) -> str | None:
    try:
        location = await storage.store(result.session_id, result.recording)
    except OSError as exc:
        logger.error("Could not store recording for session %s: %s", result.session_id, exc)
        return None
    print(f"\nRecording saved to {location} ({result.duration_seconds:.0f}s)")
    return location


if __name__ == "__main__":
    main()
