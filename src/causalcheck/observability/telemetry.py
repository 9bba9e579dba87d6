"""Fire-and-forget telemetry sinks.

The engine reports issue and mutation counts to whatever sinks the host
application registers (a metrics client, an event bus, a test spy). Sinks
are plain callables taking an event name and a flat counts mapping.

A failing sink is logged and otherwise ignored: telemetry must never change
a validation or reconciliation result.
"""

from __future__ import annotations

import threading
from typing import Any, Protocol

from causalcheck.observability.logging import get_logger

log = get_logger(__name__)


class TelemetrySink(Protocol):
    """Callable receiving one telemetry event."""

    def __call__(self, event: str, counts: dict[str, Any]) -> None: ...


_sinks: list[TelemetrySink] = []
_lock = threading.Lock()


def register_sink(sink: TelemetrySink) -> None:
    """Register a sink. Registering the same sink twice is a no-op."""
    with _lock:
        if sink not in _sinks:
            _sinks.append(sink)


def unregister_sink(sink: TelemetrySink) -> None:
    """Remove a previously registered sink, if present."""
    with _lock:
        if sink in _sinks:
            _sinks.remove(sink)


def clear_sinks() -> None:
    """Remove all registered sinks."""
    with _lock:
        _sinks.clear()


def emit(event: str, counts: dict[str, Any]) -> None:
    """Deliver ``counts`` to every registered sink.

    Exceptions raised by a sink are logged at WARNING and swallowed so the
    caller's result is unaffected.
    """
    with _lock:
        sinks = list(_sinks)

    for sink in sinks:
        try:
            sink(event, counts)
        except Exception as e:
            log.warning(
                "telemetry_sink_failed",
                telemetry_event=event,
                sink=getattr(sink, "__name__", type(sink).__name__),
                error=str(e),
            )
