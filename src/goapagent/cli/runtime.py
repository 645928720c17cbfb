"""Helpers shared across CLI commands for planning over a declarative domain."""

from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from goapagent.core.conditions import ConditionDetermination
from goapagent.core.planner import AStarPlanner
from goapagent.core.world import MappingWorldStateDeterminer, WorldState
from goapagent.io import Config, StructuredLogger, load_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from goapagent.core.models import GoapPlanningSystem


class StateArgumentError(ValueError):
    """Raised when a ``--state`` argument cannot be parsed."""


@dataclass(slots=True)
class PlanningContext:
    """Container bundling CLI dependencies for planning."""

    config: Config
    system: GoapPlanningSystem
    state: WorldState
    planner: AStarPlanner
    logger: StructuredLogger


def parse_state_arguments(arguments: Sequence[str]) -> dict[str, ConditionDetermination]:
    """Parse ``NAME=VALUE`` pairs where VALUE is true, false or unknown."""
    parsed: dict[str, ConditionDetermination] = {}
    for argument in arguments:
        name, separator, value = argument.partition("=")
        if not separator or not name.strip():
            msg = f"Expected NAME=VALUE, got {argument!r}"
            raise StateArgumentError(msg)
        try:
            parsed[name.strip()] = ConditionDetermination.parse(value)
        except ValueError as exc:
            raise StateArgumentError(str(exc)) from exc
    return parsed


def initial_state(system: GoapPlanningSystem, overrides: dict[str, ConditionDetermination]) -> WorldState:
    """Return a state where every known condition is FALSE unless overridden."""
    mapping = dict.fromkeys(sorted(system.known_conditions()), ConditionDetermination.FALSE)
    mapping.update(overrides)
    return WorldState.from_mapping(mapping)


def build_planning_context(
    config_path: Path,
    state_arguments: Sequence[str],
    *,
    silence_logs: bool,
) -> PlanningContext:
    """Load the domain and assemble what the planning commands need."""
    config = load_config(path=config_path)
    stream = io.StringIO() if silence_logs else sys.stderr
    logger = StructuredLogger(
        name="goapagent.cli",
        json_mode=config.logging.json_mode,
        stream=stream,
        level=config.logging.level,
    )
    system = config.planning_system()
    state = initial_state(system, parse_state_arguments(state_arguments))
    planner = AStarPlanner(
        MappingWorldStateDeterminer(state.as_dict()),
        settings=config.planner,
        logger=logger,
    )
    logger.debug("domain loaded", actions=len(system.actions), goals=len(system.goals))
    return PlanningContext(config=config, system=system, state=state, planner=planner, logger=logger)


__all__ = [
    "PlanningContext",
    "StateArgumentError",
    "build_planning_context",
    "initial_state",
    "parse_state_arguments",
]
