"""Command-line entry point: run one update cycle or keep checking."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import List, Optional, Sequence

from otaflow.app.scheduler import CycleScheduler
from otaflow.app.settings import apply_overrides, build_client, load_settings
from otaflow.domain.events import UpdateEvent
from otaflow.domain.ports import UseCaseError
from otaflow.domain.update_models import CycleResult
from otaflow.usecases.update_client import UpdateClient
from otaflow.utils import logging as logging_utils

log = logging.getLogger("otaflow")

EXIT_OK = 0
EXIT_CYCLE_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="otaflow",
        description="Ask the update server for new firmware and install it.",
    )
    parser.add_argument("--config", help="JSON settings file (default: $OTAFLOW_CONFIG)")
    parser.add_argument(
        "--auto-update",
        action="store_true",
        help="install available updates even on non-core firmware",
    )
    parser.add_argument("--loop", action="store_true", help="keep checking periodically")
    parser.add_argument("--interval", type=int, help="seconds between checks with --loop")
    parser.add_argument("--log-level", default="INFO", help="root log level (default: INFO)")
    return parser


def print_event(event: UpdateEvent) -> None:
    print(f"[otaflow] {event.name}", flush=True)


def summarize(client: UpdateClient, result: CycleResult) -> None:
    if result.manifest is not None:
        log.info(
            "Server offers version %s (firmware=%r, filesystem=%r)",
            client.new_version,
            client.new_firmware,
            client.new_filesystem,
        )
    if result.fatal_error:
        log.warning("Cycle failed [%s]: %s", result.error_number, result.fatal_error)


def exit_code(result: CycleResult) -> int:
    if UpdateEvent.CONFIGURATION_ERROR in result.events:
        return EXIT_CONFIG_ERROR
    return EXIT_OK if result.ok else EXIT_CYCLE_ERROR


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging_utils.configure_root(args.log_level)

    try:
        settings = load_settings(args.config)
        overrides = {}
        if args.auto_update:
            overrides["auto_update"] = True
        if args.interval is not None:
            overrides["interval_s"] = args.interval
        settings = apply_overrides(settings, overrides)
        client = build_client(settings, on_event=print_event)
    except (ValueError, UseCaseError) as exc:
        message = getattr(exc, "message", None) or str(exc)
        log.error("Configuration error: %s", message)
        return EXIT_CONFIG_ERROR

    if not args.loop:
        result = client.handle(settings.auto_update)
        summarize(client, result)
        return exit_code(result)

    last: List[CycleResult] = []

    def run_cycle() -> None:
        result = client.handle(settings.auto_update)
        summarize(client, result)
        last[:] = [result]

    stopped = threading.Event()
    scheduler = CycleScheduler(run_cycle, settings.interval_s)
    log.info("Checking every %d s, Ctrl+C to stop", settings.interval_s)
    try:
        scheduler.start()
        stopped.wait()
    except KeyboardInterrupt:
        log.info("Stopping")
    finally:
        scheduler.stop()
    return exit_code(last[0]) if last else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
