"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from causalcheck.observability import clear_sinks
from tests.fixtures.graph_fixtures import make_valid_graph


@pytest.fixture
def graph_data() -> dict[str, Any]:
    """Fresh copy of the valid reference graph as a plain dict."""
    return make_valid_graph()


@pytest.fixture(autouse=True)
def reset_telemetry_sinks() -> Iterator[None]:
    """Drop telemetry sinks registered by a test before the next one runs."""
    clear_sinks()
    yield
    clear_sinks()
