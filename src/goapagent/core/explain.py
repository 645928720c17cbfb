"""Utilities for explaining plans step by step."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .planner import apply_action

if TYPE_CHECKING:
    from .conditions import ConditionDetermination
    from .models import GoapAction, Plan
    from .world import WorldState


@dataclass(frozen=True, slots=True)
class StepExplanation:
    """Why a single action sits at its position in a plan."""

    index: int
    action: GoapAction
    state_before: WorldState
    relied_on: dict[str, ConditionDetermination]
    changes: dict[str, ConditionDetermination]
    establishes: tuple[str, ...]

    @property
    def reason(self) -> str:
        """Render the explanation as a sentence."""
        if self.establishes:
            return "Establishes goal condition(s): " + ", ".join(self.establishes)
        if self.changes:
            changed = ", ".join(f"{name}={value.value}" for name, value in self.changes.items())
            return f"Prepares later steps by setting {changed}"
        return "Does not change the planned world state."


def explain_plan(plan: Plan) -> list[StepExplanation]:
    """Replay ``plan`` from its start state and explain each action.

    Args:
        plan: The plan to explain.

    Returns:
        One :class:`StepExplanation` per action, in execution order.

    """
    explanations: list[StepExplanation] = []
    state = plan.world_state
    goal_conditions = plan.goal.preconditions

    for index, action in enumerate(plan.actions, start=1):
        after = apply_action(state, action)
        changes = {
            name: value for name, value in action.effects.items() if state.get(name) is not value
        }
        establishes = tuple(
            name for name, value in changes.items() if goal_conditions.get(name) is value
        )
        explanations.append(
            StepExplanation(
                index=index,
                action=action,
                state_before=state,
                relied_on=dict(action.preconditions),
                changes=changes,
                establishes=establishes,
            ),
        )
        state = after

    return explanations


__all__ = ["StepExplanation", "explain_plan"]
