"""A* planner and heuristic utilities for goapagent."""

from __future__ import annotations

import heapq
import itertools
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .models import GoapAction, GoapGoal, GoapPlanningSystem, Plan

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Sequence

    from goapagent.io.logging import StructuredLogger

    from .world import WorldState, WorldStateDeterminer


class HeuristicKind(str, Enum):
    """Available remaining-cost estimates."""

    goal_distance = "goal_distance"
    zero = "zero"


class PlannerSettings(BaseModel):
    """Tunables for :class:`AStarPlanner`."""

    max_iterations: int = Field(default=10_000, gt=0)
    heuristic: HeuristicKind = HeuristicKind.goal_distance
    resolve_unknowns: bool = True
    optimize: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid")


@dataclass(frozen=True, slots=True)
class _GoalDistance:
    """Lower bound on remaining cost for one goal over one action set.

    Each action can establish at most ``per_action`` unmet goal conditions and
    costs at least ``min_cost``, so ``ceil(unmet / per_action) * min_cost`` never
    overestimates and never drops by more than the cost of a single step.
    """

    goal: GoapGoal
    per_action: int
    min_cost: float

    @classmethod
    def build(cls, goal: GoapGoal, actions: Sequence[GoapAction]) -> _GoalDistance:
        per_action = 0
        for action in actions:
            matches = sum(
                1 for name, value in action.effects.items() if goal.preconditions.get(name) is value
            )
            per_action = max(per_action, matches)
        min_cost = min((action.cost for action in actions), default=0.0)
        return cls(goal=goal, per_action=per_action, min_cost=min_cost)

    def __call__(self, state: WorldState) -> float:
        unmet = len(self.goal.unmet_conditions(state))
        if unmet == 0 or self.per_action == 0:
            return 0.0
        return math.ceil(unmet / self.per_action) * self.min_cost


def heuristic_score(
    state: WorldState,
    goal: GoapGoal,
    actions: Sequence[GoapAction],
    kind: HeuristicKind = HeuristicKind.goal_distance,
) -> float:
    """Estimate the cost still needed to reach ``goal`` from ``state``.

    Args:
        state: The state to evaluate.
        goal: The goal being planned for.
        actions: The action catalogue available to the planner.
        kind: Which estimate to use. ``zero`` turns A* into uniform-cost search.

    Returns:
        An admissible estimate; ``0.0`` whenever ``state`` satisfies ``goal``.

    """
    if kind is HeuristicKind.zero:
        return 0.0
    return _GoalDistance.build(goal, actions)(state)


@dataclass(frozen=True, slots=True)
class _Step:
    """Parent pointer recorded for a reached state."""

    previous: WorldState | None
    action: GoapAction | None
    g: float
    depth: int


def apply_action(state: WorldState, action: GoapAction) -> WorldState:
    """Return the state reached by applying ``action``'s effects to ``state``."""
    return state.apply(action.effects)


def simulate(start: WorldState, actions: Sequence[GoapAction]) -> WorldState | None:
    """Apply ``actions`` in order; ``None`` if one of them is not achievable."""
    state = start
    for action in actions:
        if not action.is_achievable(state):
            return None
        state = apply_action(state, action)
    return state


def relevant_actions(actions: Sequence[GoapAction], goal: GoapGoal) -> list[GoapAction]:
    """Return the actions that can influence ``goal``, in their original order.

    Starting from the goal's condition names, the preconditions of every action
    whose effects touch a tracked name are tracked too, until nothing changes.
    Actions touching none of those names can never help reach the goal.
    """
    tracked = set(goal.preconditions)
    pending = list(actions)
    changed = True
    while changed:
        changed = False
        remaining: list[GoapAction] = []
        for action in pending:
            if tracked.isdisjoint(action.effects):
                remaining.append(action)
                continue
            tracked.update(action.preconditions)
            changed = True
        pending = remaining
    return [action for action in actions if not tracked.isdisjoint(action.effects)]


class AStarPlanner:
    """A* search over world states, expanding only achievable actions."""

    def __init__(
        self,
        determiner: WorldStateDeterminer | None = None,
        *,
        settings: PlannerSettings | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Create a planner reading world states from ``determiner``."""
        self._determiner = determiner
        self._settings = settings or PlannerSettings()
        self._logger = logger

    @property
    def settings(self) -> PlannerSettings:
        """Return the planner settings."""
        return self._settings

    def world_state(self) -> WorldState:
        """Return the current world state from the determiner."""
        if self._determiner is None:
            msg = "planner has no world state determiner"
            raise RuntimeError(msg)
        return self._determiner.determine_world_state()

    def plan_to_goal_from(
        self,
        start: WorldState,
        actions: Sequence[GoapAction],
        goal: GoapGoal,
    ) -> Plan | None:
        """Return the cheapest plan from ``start`` to ``goal`` or ``None``.

        Ties in estimated total cost go to the plan with fewer actions, then to
        the lower accumulated cost, then to the earliest action in ``actions``.
        """
        actions = relevant_actions(actions, goal)
        if self._settings.heuristic is HeuristicKind.zero:
            estimate = None
        else:
            estimate = _GoalDistance.build(goal, actions)

        def h(state: WorldState) -> float:
            return estimate(state) if estimate is not None else 0.0

        sequence = itertools.count()
        steps: dict[WorldState, _Step] = {start: _Step(previous=None, action=None, g=0.0, depth=0)}
        closed: set[WorldState] = set()
        frontier: list[tuple[float, int, float, int, WorldState]] = [
            (h(start), 0, 0.0, next(sequence), start),
        ]
        iterations = 0
        found: WorldState | None = None

        while frontier and iterations < self._settings.max_iterations:
            _, depth, g, _, state = heapq.heappop(frontier)
            best = steps[state]
            if state in closed or (g, depth) > (best.g, best.depth):
                continue
            iterations += 1
            closed.add(state)

            if goal.is_achievable(state):
                found = state
                break

            for action in actions:
                if not action.is_achievable(state):
                    continue
                successor = apply_action(state, action)
                if successor == state:
                    continue
                tentative = (g + action.cost, depth + 1)
                known = steps.get(successor)
                if known is not None and tentative >= (known.g, known.depth):
                    continue
                steps[successor] = _Step(previous=state, action=action, g=tentative[0], depth=tentative[1])
                closed.discard(successor)
                heapq.heappush(
                    frontier,
                    (tentative[0] + h(successor), tentative[1], tentative[0], next(sequence), successor),
                )

        self._debug(
            "search finished",
            goal=goal.name,
            iterations=iterations,
            actions=len(actions),
            states=len(steps),
            found=found is not None,
        )
        if found is None:
            return None

        path = self._reconstruct(steps, found)
        if self._settings.optimize:
            path = self._drop_unneeded(path, start, goal)
        return Plan(actions=tuple(path), goal=goal, world_state=start)

    def plan_to_goal(self, actions: Sequence[GoapAction], goal: GoapGoal) -> Plan | None:
        """Plan from the determiner's current world state.

        When the state contains UNKNOWN conditions, each is resolved both ways; if
        the resulting plans differ the condition is evaluated for real before
        planning.
        """
        start = self.world_state()
        actions = list(actions)
        direct = self.plan_to_goal_from(start, actions, goal)
        if not self._settings.resolve_unknowns or self._determiner is None:
            return direct

        resolved = start
        for condition in sorted(start.unknown_conditions()):
            outcomes = {
                tuple(plan.action_names()) if plan is not None else None
                for plan in (self.plan_to_goal_from(variant, actions, goal) for variant in resolved.variants(condition))
            }
            outcomes.add(tuple(direct.action_names()) if direct is not None else None)
            if len(outcomes) > 1:
                determination = self._determiner.determine_condition(condition)
                self._debug("evaluated unknown condition", condition=condition, determination=determination.value)
                resolved = resolved.plus(condition, determination)

        if resolved == start:
            return direct
        return self.plan_to_goal_from(resolved, actions, goal)

    def plans_to_goals(self, system: GoapPlanningSystem) -> list[Plan]:
        """Return one plan per achievable goal, best net value first."""
        plans = [
            plan
            for plan in (self.plan_to_goal(system.actions, goal) for goal in system.goals)
            if plan is not None
        ]
        return sorted(plans, key=lambda plan: -plan.net_value)

    def best_value_plan_to_any_goal(self, system: GoapPlanningSystem) -> Plan | None:
        """Return the plan with the highest net value, if any goal is achievable."""
        plans = self.plans_to_goals(system)
        return plans[0] if plans else None

    def prune(self, system: GoapPlanningSystem) -> GoapPlanningSystem:
        """Drop actions that appear in no plan to any goal."""
        plans = self.plans_to_goals(system)
        used = {name for plan in plans for name in plan.action_names()}
        pruned = system.with_actions(action for action in system.actions if action.name in used)
        self._debug(
            "pruned planning system",
            plans=len(plans),
            kept=len(pruned.actions),
            dropped=len(system.actions) - len(pruned.actions),
        )
        return pruned

    def _reconstruct(self, steps: dict[WorldState, _Step], goal_state: WorldState) -> list[GoapAction]:
        path: list[GoapAction] = []
        state: WorldState | None = goal_state
        while state is not None:
            step = steps[state]
            if step.action is not None:
                path.append(step.action)
            state = step.previous
        path.reverse()
        return path

    def _drop_unneeded(
        self,
        path: list[GoapAction],
        start: WorldState,
        goal: GoapGoal,
    ) -> list[GoapAction]:
        """Walk the plan backwards keeping only actions that establish a needed condition."""
        if not path:
            return path
        needed = dict(goal.preconditions)
        kept: list[GoapAction] = []
        for action in reversed(path):
            contributes = [name for name, value in action.effects.items() if needed.get(name) is value]
            if not contributes:
                continue
            kept.append(action)
            for name in contributes:
                del needed[name]
            needed.update(action.preconditions)
        kept.reverse()
        if len(kept) == len(path):
            return path

        final_state = simulate(start, kept)
        if final_state is None or not goal.is_achievable(final_state):
            return path
        if sum(action.cost for action in kept) > sum(action.cost for action in path):
            return path
        self._debug("dropped unneeded actions", goal=goal.name, dropped=len(path) - len(kept))
        return kept

    def _debug(self, message: str, **fields: object) -> None:
        if self._logger is not None:
            self._logger.debug(message, **fields)


__all__ = [
    "AStarPlanner",
    "HeuristicKind",
    "PlannerSettings",
    "apply_action",
    "heuristic_score",
    "relevant_actions",
    "simulate",
]
