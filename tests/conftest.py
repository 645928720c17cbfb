"""Shared fixtures for the goapagent test suite."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest

from goapagent.core import GoapAction, GoapGoal, WorldState
from goapagent.io.logging import StructuredLogger

if TYPE_CHECKING:
    from pathlib import Path


DOMAIN_TOML = """
[planner]
heuristic = "goal_distance"

[[actions]]
name = "A"
pre = ["start"]
post = ["stepA"]

[[actions]]
name = "B"
pre = ["stepA"]
post = ["goal"]

[[actions]]
name = "X"
pre = ["start"]
post = ["stepX"]
cost = 2.0

[[actions]]
name = "Y"
pre = ["stepX"]
post = ["goal"]
cost = 2.0

[[goals]]
name = "done"
pre = ["goal"]
value = 1.0
"""


@pytest.fixture
def two_route_actions() -> list[GoapAction]:
    """Return a cheap A -> B route and an expensive X -> Y route to ``goal``."""
    return [
        GoapAction(name="A", preconditions=["start"], effects=["stepA"], cost=1.0),
        GoapAction(name="B", preconditions=["stepA"], effects=["goal"], cost=2.0),
        GoapAction(name="X", preconditions=["start"], effects=["stepX"], cost=2.0),
        GoapAction(name="Y", preconditions=["stepX"], effects=["goal"], cost=2.0),
    ]


@pytest.fixture
def goal_condition() -> GoapGoal:
    """Return a goal requiring the ``goal`` condition."""
    return GoapGoal(name="done", preconditions=["goal"], value=1.0)


@pytest.fixture
def start_state() -> WorldState:
    """Return a state where only ``start`` holds."""
    return WorldState.from_mapping(
        {"start": True, "stepA": False, "stepX": False, "goal": False},
    )


@pytest.fixture
def log_stream() -> io.StringIO:
    """Return a buffer collecting log output."""
    return io.StringIO()


@pytest.fixture
def debug_logger(log_stream: io.StringIO) -> StructuredLogger:
    """Return a JSON logger writing every level to ``log_stream``."""
    return StructuredLogger(name="goapagent.test", json_mode=True, stream=log_stream, level="DEBUG")


@pytest.fixture
def domain_file(tmp_path: Path) -> Path:
    """Write the two-route domain to a TOML file."""
    path = tmp_path / "domain.toml"
    path.write_text(DOMAIN_TOML, encoding="utf-8")
    return path
