"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from causalcheck.observability import (
    close_file_logging,
    configure_logging,
    get_log_file,
    get_logger,
)
from causalcheck.observability.logging import component_name

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _close_handler() -> Iterator[None]:
    yield
    close_file_logging()


def test_configure_logging_sets_level_warning() -> None:
    """Default verbosity (0) sets WARNING level."""
    configure_logging(verbosity=0)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.WARNING


def test_configure_logging_verbose_sets_debug_root() -> None:
    """verbosity=1 opens the root logger; the console handler filters to INFO."""
    configure_logging(verbosity=1)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG


def test_get_logger_returns_bound_logger() -> None:
    """get_logger returns a structlog logger with expected methods."""
    logger = get_logger(__name__)

    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")


def test_get_logger_auto_configures() -> None:
    """get_logger configures logging if not already done."""
    import causalcheck.observability.logging as log_module

    log_module._configured = False

    logger = get_logger("test")

    assert log_module._configured is True
    assert logger is not None


def test_configure_logging_with_file_logging(tmp_path: Path) -> None:
    """File logging creates the log directory and reports the file path."""
    log_dir = tmp_path / "logs"
    configure_logging(verbosity=0, log_to_file=True, log_dir=log_dir)

    assert log_dir.exists()
    assert get_log_file() == log_dir / "debug.jsonl"

    close_file_logging()

    assert get_log_file() is None


def test_configure_logging_without_file_logging(tmp_path: Path) -> None:
    """Without file logging flag, the log directory is not created."""
    log_dir = tmp_path / "logs"
    configure_logging(verbosity=0, log_to_file=False, log_dir=log_dir)

    assert not log_dir.exists()
    assert get_log_file() is None


def test_configure_logging_requires_log_dir_for_file_logging() -> None:
    """log_to_file=True without log_dir raises ValueError."""
    with pytest.raises(ValueError, match="log_dir is required"):
        configure_logging(verbosity=0, log_to_file=True, log_dir=None)


def test_configure_logging_reconfiguration_closes_handler(tmp_path: Path) -> None:
    """Reconfiguring logging closes previous file handler."""
    import causalcheck.observability.logging as log_module

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    first_handler = log_module._file_handler
    assert first_handler is not None

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

    assert first_handler.stream is None or first_handler.stream.closed
    assert log_module._file_handler is not None


def test_close_file_logging_clears_handler(tmp_path: Path) -> None:
    """close_file_logging closes handler and clears reference."""
    import causalcheck.observability.logging as log_module

    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)
    assert log_module._file_handler is not None

    close_file_logging()

    assert log_module._file_handler is None


def test_jsonl_file_handler_writes_structlog_context(tmp_path: Path) -> None:
    """JSONLFileHandler correctly extracts structlog context to JSONL."""
    configure_logging(verbosity=2, log_to_file=True, log_dir=tmp_path)

    logger = get_logger("test.context")
    logger.info("graph_validation_complete", request_id="req-1", error_count=3)

    close_file_logging()

    log_file = tmp_path / "debug.jsonl"
    assert log_file.exists()

    found = False
    with log_file.open() as f:
        for line in f:
            entry = json.loads(line)
            if entry.get("message") == "graph_validation_complete":
                found = True
                assert entry["request_id"] == "req-1"
                assert entry["error_count"] == 3
                assert entry["level"] == "INFO"
                break

    assert found, "Log entry with structlog context not found in JSONL"


def test_jsonl_entries_name_component_and_skip_unset_fields(tmp_path: Path) -> None:
    """Entries carry the short component name and omit None-valued fields."""
    configure_logging(verbosity=0, log_to_file=True, log_dir=tmp_path)

    get_logger("causalcheck.graph.reconciliation").info(
        "strp_complete", request_id=None, mutation_count=2
    )
    close_file_logging()

    entries = [json.loads(line) for line in (tmp_path / "debug.jsonl").read_text().splitlines()]
    [entry] = [e for e in entries if e["message"] == "strp_complete"]
    assert entry["component"] == "reconciliation"
    assert entry["mutation_count"] == 2
    assert "request_id" not in entry


@pytest.mark.parametrize(
    ("logger_name", "expected"),
    [
        ("causalcheck.graph.validation", "validation"),
        ("causalcheck.cli", "cli"),
        ("causalcheck", "causalcheck"),
        ("test.context", "test.context"),
    ],
)
def test_component_name(logger_name: str, expected: str) -> None:
    assert component_name(logger_name) == expected
