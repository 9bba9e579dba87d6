"""Logging setup for the validator and reconciliation pass.

Engine modules log through structlog with one event per pass
(``graph_validation_complete``, ``strp_complete``, ...) and the counts as
key/value pairs. Two sinks receive those events:

- the console (stderr, via rich), whose level follows the ``-v`` count
- an optional ``debug.jsonl`` file in the ``--log`` directory, which
  receives every event at DEBUG and above, one JSON object per line
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import Processor

DEBUG_LOG_NAME = "debug.jsonl"
PACKAGE_LOGGER = "causalcheck"

_CONSOLE_LEVELS = {0: logging.WARNING, 1: logging.INFO}

# Keys structlog adds that the JSONL entry carries under its own names
_RESERVED_KEYS = ("event", "level", "timestamp")

_configured = False
_file_handler: logging.FileHandler | None = None
_log_file: Path | None = None


def component_name(logger_name: str) -> str:
    """Short component name for a logger: ``causalcheck.graph.validation`` -> ``validation``."""
    if logger_name == PACKAGE_LOGGER or not logger_name.startswith(f"{PACKAGE_LOGGER}."):
        return logger_name
    return logger_name.rsplit(".", 1)[-1]


class JSONLFileHandler(logging.FileHandler):
    """File handler writing one JSON object per engine event.

    Each line has ``timestamp``, ``level``, ``component`` and ``message``
    followed by the event's key/value pairs. Pairs whose value is None
    (an unset ``request_id``, for example) are left out.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, Any] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "component": component_name(record.name),
            }

            # wrap_for_formatter hands the event dict over as record.msg
            if isinstance(record.msg, dict):
                fields = dict(record.msg)
                entry["message"] = fields.pop("event", record.getMessage())
                for key, value in fields.items():
                    if key not in _RESERVED_KEYS and value is not None:
                        entry[key] = value
            else:
                entry["message"] = record.getMessage()

            if self.stream:
                self.stream.write(json.dumps(entry, default=str) + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


def _console_handler(verbosity: int) -> RichHandler:
    # Event names and counts are plain text; rich markup would eat brackets
    return RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=_CONSOLE_LEVELS.get(verbosity, logging.DEBUG),
    )


def _open_file_handler(log_dir: Path) -> JSONLFileHandler:
    global _log_file

    log_dir.mkdir(parents=True, exist_ok=True)
    _log_file = log_dir / DEBUG_LOG_NAME
    handler = JSONLFileHandler(str(_log_file), mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    return handler


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """Route engine events to the console and, optionally, a JSONL file.

    Safe to call more than once; a previously opened log file is closed.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG on the console.
        log_to_file: Also append every event to ``log_dir/debug.jsonl``.
        log_dir: Directory for the JSONL file. Required if log_to_file=True.

    Raises:
        ValueError: If log_to_file=True but log_dir is not provided.
    """
    global _configured, _file_handler

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()

    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        _file_handler = _open_file_handler(log_dir)
        handlers.append(_file_handler)

    # The file wants everything; the console handler filters for itself
    root_level = logging.DEBUG if (verbosity > 0 or log_to_file) else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger, configuring console-only logging on first use.

    Args:
        name: Logger name (typically __name__).
    """
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def get_log_file() -> Path | None:
    """Path of the JSONL log file, or None if file logging is off."""
    return _log_file if _file_handler is not None else None


def close_file_logging() -> None:
    """Flush and close the JSONL file, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
