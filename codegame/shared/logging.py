"""Structured logging configuration with structlog.

The client never configures logging on import; applications (and the
``codegame`` CLI) call :func:`setup_logging` once at startup.

Environment variables:
- CODEGAME_LOG_FORMAT: "json" for machine-readable output, "console" or unset
  for human-readable colored output.
- CODEGAME_LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".
  DEBUG also logs every event sent and received over the socket.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# log every request or frame at INFO/DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "websockets")


def _enum_values(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Log event names and connection states by value, not by repr."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (os.environ.get(name) or default).upper()
    if value not in choices:
        msg = f"Invalid {name}={value!r}. Must be one of {', '.join(choices)}."
        raise ValueError(msg)
    return value


def _formatter(renderer: structlog.typing.Processor) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def setup_logging(log_dir: Path | str | None = None) -> Path | None:
    """Configure structlog to write to stdout and, given ``log_dir``, to a log file.

    The file is named after the UTC start time. Its path is returned, or
    None when no file is written (always the case under pytest).
    """
    json_mode = _env_choice("CODEGAME_LOG_FORMAT", "CONSOLE", ("JSON", "CONSOLE")) == "JSON"
    level = getattr(logging, _env_choice("CODEGAME_LOG_LEVEL", "INFO", _LOG_LEVELS))

    # exceptions are rendered by each handler's formatter
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _enum_values,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    def renderer(colors: bool) -> structlog.typing.Processor:
        if json_mode:
            return structlog.processors.JSONRenderer()
        return structlog.dev.ConsoleRenderer(colors=colors)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_formatter(renderer(colors=sys.stdout.isatty())))
    root_logger.addHandler(stdout_handler)

    if log_dir is None or _is_test():
        return None

    dir_path = Path(log_dir)
    dir_path.mkdir(parents=True, exist_ok=True)
    file_path = dir_path / f"{datetime.now(tz=UTC):%Y-%m-%d_%H-%M-%S}.log"
    file_handler = logging.FileHandler(file_path)
    file_handler.setFormatter(_formatter(renderer(colors=False)))
    root_logger.addHandler(file_handler)
    return file_path
