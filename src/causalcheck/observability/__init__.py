"""Observability module for causalcheck.

Provides structured logging and the fire-and-forget telemetry sink registry.
"""

from causalcheck.observability.logging import (
    close_file_logging,
    configure_logging,
    get_log_file,
    get_logger,
)
from causalcheck.observability.telemetry import (
    TelemetrySink,
    clear_sinks,
    emit,
    register_sink,
    unregister_sink,
)

__all__ = [
    "TelemetrySink",
    "clear_sinks",
    "close_file_logging",
    "configure_logging",
    "emit",
    "get_log_file",
    "get_logger",
    "register_sink",
    "unregister_sink",
]
