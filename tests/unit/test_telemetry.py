"""Tests for the telemetry sink registry."""

from __future__ import annotations

from typing import Any

from causalcheck.observability import clear_sinks, emit, register_sink, unregister_sink


class Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, counts: dict[str, Any]) -> None:
        self.events.append((event, counts))


def test_emit_without_sinks_is_a_no_op() -> None:
    emit("graph_validation.complete", {"valid": True})


def test_every_sink_receives_the_event() -> None:
    first, second = Recorder(), Recorder()
    register_sink(first)
    register_sink(second)

    emit("strp.complete", {"mutation_count": 2})

    assert first.events == [("strp.complete", {"mutation_count": 2})]
    assert second.events == first.events


def test_registering_twice_delivers_once() -> None:
    recorder = Recorder()
    register_sink(recorder)
    register_sink(recorder)

    emit("strp.complete", {})

    assert len(recorder.events) == 1


def test_unregister_and_clear() -> None:
    kept, removed = Recorder(), Recorder()
    register_sink(kept)
    register_sink(removed)
    unregister_sink(removed)
    unregister_sink(removed)

    emit("a", {})
    clear_sinks()
    emit("b", {})

    assert [event for event, _ in kept.events] == ["a"]
    assert removed.events == []


def test_failing_sink_does_not_stop_delivery() -> None:
    def broken(event: str, counts: dict[str, Any]) -> None:
        raise ValueError("boom")

    recorder = Recorder()
    register_sink(broken)
    register_sink(recorder)

    emit("graph_validation.complete", {"valid": False})

    assert recorder.events == [("graph_validation.complete", {"valid": False})]
