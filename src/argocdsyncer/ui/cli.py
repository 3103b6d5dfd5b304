from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from argocdsyncer.app import build_runner, reconcile_application
from argocdsyncer.common.logging import configure_logging
from argocdsyncer.config import ConfigurationError, get_controller_config
from argocdsyncer.domain.errors import StoreError
from argocdsyncer.domain.model import NamespacedName

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from argocdsyncer.config import ControllerConfig

log = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror tenant Argo CD Applications into the Argo CD namespace"
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Load environment variables from this file before reading configuration",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Watch Applications and reconcile them until stopped")

    reconcile = subparsers.add_parser("reconcile", help="Reconcile a single Application once")
    reconcile.add_argument(
        "application",
        type=str,
        help="Application to reconcile, as NAMESPACE/NAME",
    )

    return parser.parse_args(list(argv))


def _install_stop_handler(stop: Callable[[], None]) -> None:
    def handler(signal_received: int, _frame: FrameType | None) -> None:
        log.info("Received signal %s, shutting down", signal_received)
        stop()

    signal(SIGINT, handler)
    signal(SIGTERM, handler)


def _load_config(env_file: str | None) -> ControllerConfig:
    if env_file:
        load_dotenv(env_file, override=True)
    else:
        load_dotenv()
    config = get_controller_config()
    configure_logging(config.log_level, config.log_format)
    return config


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        config = _load_config(parsed_args.env_file)
        key = (
            NamespacedName.parse(parsed_args.application)
            if parsed_args.command == "reconcile"
            else None
        )
    except (ConfigurationError, ValueError) as exc:
        configure_logging()
        log.error("Invalid configuration: %s", exc)  # noqa: TRY400
        sys.exit(EXIT_USAGE)

    try:
        if key is not None:
            reconcile_application(key, config=config)
        else:
            runner = build_runner(config=config)
            _install_stop_handler(runner.stop)
            runner.run()
    except ConfigurationError as exc:
        log.error("Invalid configuration: %s", exc)  # noqa: TRY400
        sys.exit(EXIT_USAGE)
    except StoreError:
        log.exception("Reconcile failed")
        sys.exit(EXIT_FAILURE)
    except Exception:
        log.exception("Fatal error")
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
