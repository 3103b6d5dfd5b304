"""Shared logging helpers for argocdsyncer."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from typing import TextIO

LEVELS: Final[dict[str, int]] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}
FORMATS: Final[tuple[str, ...]] = ("nested", "json")

NESTED_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"

log = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "@timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    level: str = "info",
    fmt: str = "nested",
    *,
    force: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Initialise the root logger once from the controller's level and format names.

    ``level`` accepts logrus-style names (``trace`` to ``panic``) and ``fmt`` is
    ``nested`` or ``json``. Unknown values fall back to ``info`` and ``nested``
    with a warning. Pass ``force=True`` to reconfigure during tests.
    """

    warnings: list[str] = []
    level_value = LEVELS.get(level.strip().lower())
    if level_value is None:
        warnings.append(
            f"Unknown log level {level!r}, using 'info'. Possible values: {', '.join(LEVELS)}"
        )
        level_value = logging.INFO

    format_value = fmt.strip().lower()
    if format_value not in FORMATS:
        warnings.append(
            f"Unknown log format {fmt!r}, using 'nested'. Possible values: {', '.join(FORMATS)}"
        )
        format_value = "nested"

    handler = logging.StreamHandler(stream)
    if format_value == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(NESTED_FORMAT, datefmt="%H:%M:%S"))

    logging.basicConfig(level=level_value, handlers=[handler], force=force)

    for message in warnings:
        log.warning(message)
