"""Tests for step-by-step plan explanations."""

from __future__ import annotations

from goapagent.core.conditions import ConditionDetermination
from goapagent.core.explain import explain_plan
from goapagent.core.models import GoapAction, GoapGoal, Plan
from goapagent.core.planner import AStarPlanner
from goapagent.core.world import WorldState

T = ConditionDetermination.TRUE


def test_explanations_follow_plan(
    two_route_actions: list[GoapAction],
    goal_condition: GoapGoal,
    start_state: WorldState,
) -> None:
    """Each step reports what it relied on and what it changed."""
    plan = AStarPlanner().plan_to_goal_from(start_state, two_route_actions, goal_condition)
    assert plan is not None

    first, second = explain_plan(plan)

    assert first.index == 1
    assert first.action.name == "A"
    assert first.state_before == start_state
    assert first.relied_on == {"start": T}
    assert first.changes == {"stepA": T}
    assert first.establishes == ()
    assert first.reason == "Prepares later steps by setting stepA=TRUE"
    assert second.action.name == "B"
    assert second.state_before["stepA"] is T
    assert second.establishes == ("goal",)
    assert second.reason == "Establishes goal condition(s): goal"


def test_empty_plan_has_no_explanations() -> None:
    """A satisfied goal needs no explanation."""
    assert explain_plan(Plan(goal=GoapGoal(name="done"))) == []


def test_step_without_changes() -> None:
    """An action whose effects already hold is called out."""
    plan = Plan(
        actions=(GoapAction(name="noop", effects=["ready"]),),
        goal=GoapGoal(name="done"),
        world_state=WorldState.from_mapping({"ready": True}),
    )

    (explanation,) = explain_plan(plan)

    assert explanation.changes == {}
    assert explanation.reason == "Does not change the planned world state."
