"""Tests for the A* planner and heuristic utilities."""

from __future__ import annotations

import itertools
import json
from typing import TYPE_CHECKING

import pytest

from goapagent.core.conditions import ConditionDetermination
from goapagent.core.models import GoapAction, GoapGoal, GoapPlanningSystem
from goapagent.core.planner import (
    AStarPlanner,
    HeuristicKind,
    PlannerSettings,
    heuristic_score,
    relevant_actions,
    simulate,
)
from goapagent.core.world import MappingWorldStateDeterminer, WorldState

if TYPE_CHECKING:
    import io

    from goapagent.io.logging import StructuredLogger

T = ConditionDetermination.TRUE
F = ConditionDetermination.FALSE
U = ConditionDetermination.UNKNOWN


class RecordingDeterminer(MappingWorldStateDeterminer):
    """Determiner that reports UNKNOWN conditions but knows their real values."""

    def __init__(self, observed: dict[str, object], actual: dict[str, bool]) -> None:
        super().__init__(observed)
        self._actual = actual
        self.evaluated: list[str] = []

    def determine_condition(self, condition: str) -> ConditionDetermination:
        self.evaluated.append(condition)
        return ConditionDetermination.of(self._actual[condition])


def test_prefers_cheapest_route(
    two_route_actions: list[GoapAction],
    goal_condition: GoapGoal,
    start_state: WorldState,
) -> None:
    """A -> B (cost 3) beats X -> Y (cost 4)."""
    plan = AStarPlanner().plan_to_goal_from(start_state, two_route_actions, goal_condition)

    assert plan is not None
    assert plan.action_names() == ["A", "B"]
    assert plan.cost == pytest.approx(3.0)
    assert plan.world_state == start_state


def test_plan_replays_to_goal(
    two_route_actions: list[GoapAction],
    goal_condition: GoapGoal,
    start_state: WorldState,
) -> None:
    """Every plan is executable from its start state and ends in the goal."""
    plan = AStarPlanner().plan_to_goal_from(start_state, two_route_actions, goal_condition)

    assert plan is not None
    final_state = simulate(plan.world_state, plan.actions)
    assert final_state is not None
    assert goal_condition.is_achievable(final_state)


def test_unreachable_goal_returns_none(two_route_actions: list[GoapAction], start_state: WorldState) -> None:
    """No sequence of actions establishes an unrelated condition."""
    goal = GoapGoal(name="impossible", preconditions=["never"])

    assert AStarPlanner().plan_to_goal_from(start_state, two_route_actions, goal) is None


def test_satisfied_goal_yields_empty_plan(two_route_actions: list[GoapAction], goal_condition: GoapGoal) -> None:
    """A goal that already holds needs no actions."""
    state = WorldState.from_mapping({"start": True, "goal": True})

    plan = AStarPlanner().plan_to_goal_from(state, two_route_actions, goal_condition)

    assert plan is not None
    assert plan.is_complete()
    assert plan.cost == 0.0


def test_unknown_never_satisfies_goal(two_route_actions: list[GoapAction], goal_condition: GoapGoal) -> None:
    """An UNKNOWN goal condition still has to be established."""
    state = WorldState.from_mapping({"start": True, "goal": None})

    plan = AStarPlanner().plan_to_goal_from(state, two_route_actions, goal_condition)

    assert plan is not None
    assert plan.action_names() == ["A", "B"]


def test_finds_long_chain_among_noise_actions() -> None:
    """Irrelevant actions do not distract the search from a ten step chain."""
    chain = [
        GoapAction(name=f"step{index}", preconditions=[f"c{index}"], effects=[f"c{index + 1}"])
        for index in range(10)
    ]
    noise = [
        GoapAction(name=f"noise{index}", preconditions=[f"blocked{index}"], effects=[f"c{index % 10}"])
        for index in range(60)
    ]
    actions = list(itertools.chain.from_iterable(zip(noise[:10], chain, strict=True))) + noise[10:]
    start = WorldState.from_mapping({"c0": True})
    goal = GoapGoal(name="end", preconditions=["c10"])

    plan = AStarPlanner().plan_to_goal_from(start, actions, goal)

    assert plan is not None
    assert plan.action_names() == [f"step{index}" for index in range(10)]


def test_runnable_noise_actions_do_not_exhaust_the_search() -> None:
    """Noise actions that can fire at every step are left out of the search."""
    chain = [
        GoapAction(name=f"step{index}", preconditions=[f"c{index}"], effects=[f"c{index + 1}"])
        for index in range(10)
    ]
    noise = [GoapAction(name=f"noise{index}", preconditions=["c0"], effects=[f"n{index}"]) for index in range(50)]
    start = WorldState.from_mapping({"c0": True} | {f"c{index}": False for index in range(1, 11)})
    goal = GoapGoal(name="end", preconditions=["c10"])

    plan = AStarPlanner(settings=PlannerSettings(max_iterations=100)).plan_to_goal_from(start, noise + chain, goal)

    assert plan is not None
    assert plan.action_names() == [f"step{index}" for index in range(10)]


def test_relevant_actions_follow_precondition_chains() -> None:
    """Actions feeding the goal indirectly are kept in their original order."""
    actions = [
        GoapAction(name="unrelated", preconditions=["start"], effects=["noise"]),
        GoapAction(name="finish", preconditions=["ready"], effects=["goal"]),
        GoapAction(name="prepare", preconditions=["start"], effects=["ready"]),
        GoapAction(name="undo", effects={"ready": False}),
    ]

    kept = relevant_actions(actions, GoapGoal(name="done", preconditions=["goal"]))

    assert [action.name for action in kept] == ["finish", "prepare", "undo"]


def test_cycles_terminate() -> None:
    """Actions toggling a condition back and forth do not loop forever."""
    actions = [
        GoapAction(name="on", preconditions={"light": False}, effects={"light": True}),
        GoapAction(name="off", preconditions={"light": True}, effects={"light": False}),
    ]
    start = WorldState.from_mapping({"light": False})

    assert AStarPlanner().plan_to_goal_from(start, actions, GoapGoal(name="never")) is None
    plan = AStarPlanner().plan_to_goal_from(start, actions, GoapGoal(name="lit", preconditions=["light"]))
    assert plan is not None
    assert plan.action_names() == ["on"]


def test_search_is_deterministic(
    two_route_actions: list[GoapAction],
    goal_condition: GoapGoal,
    start_state: WorldState,
) -> None:
    """Equal-cost alternatives resolve to the earliest registered action."""
    actions = [
        GoapAction(name="first", preconditions=["start"], effects=["goal"]),
        GoapAction(name="second", preconditions=["start"], effects=["goal"]),
        *two_route_actions,
    ]
    planner = AStarPlanner()

    names: set[tuple[str, ...]] = set()
    for _ in range(5):
        plan = planner.plan_to_goal_from(start_state, actions, goal_condition)
        assert plan is not None
        names.add(tuple(plan.action_names()))

    assert names == {("first",)}


def test_ties_prefer_fewer_actions(goal_condition: GoapGoal, start_state: WorldState) -> None:
    """With equal cost the shorter plan wins."""
    actions = [
        GoapAction(name="half1", preconditions=["start"], effects=["half"], cost=1.0),
        GoapAction(name="half2", preconditions=["half"], effects=["goal"], cost=1.0),
        GoapAction(name="direct", preconditions=["start"], effects=["goal"], cost=2.0),
    ]

    plan = AStarPlanner().plan_to_goal_from(start_state, actions, goal_condition)

    assert plan is not None
    assert plan.action_names() == ["direct"]


@pytest.mark.parametrize("heuristic", list(HeuristicKind))
def test_optimal_with_either_heuristic(heuristic: HeuristicKind) -> None:
    """A cheaper longer route beats an expensive shortcut."""
    actions = [
        GoapAction(name="shortcut", preconditions=["start"], effects=["a", "b"], cost=5.0),
        GoapAction(name="make_a", preconditions=["start"], effects=["a"], cost=1.0),
        GoapAction(name="make_b", preconditions=["a"], effects=["b"], cost=1.0),
    ]
    goal = GoapGoal(name="both", preconditions=["a", "b"])
    planner = AStarPlanner(settings=PlannerSettings(heuristic=heuristic))

    plan = planner.plan_to_goal_from(WorldState.from_mapping({"start": True}), actions, goal)

    assert plan is not None
    assert plan.action_names() == ["make_a", "make_b"]
    assert plan.cost == pytest.approx(2.0)


def test_fractional_costs_stay_optimal() -> None:
    """Costs below one do not make the heuristic overestimate."""
    actions = [
        GoapAction(name="pricey", preconditions=["start"], effects=["goal"], cost=0.9),
        GoapAction(name="prep", preconditions=["start"], effects=["ready"], cost=0.1),
        GoapAction(name="finish", preconditions=["ready"], effects=["goal"], cost=0.1),
    ]
    goal = GoapGoal(name="done", preconditions=["goal"])

    plan = AStarPlanner().plan_to_goal_from(WorldState.from_mapping({"start": True}), actions, goal)

    assert plan is not None
    assert plan.action_names() == ["prep", "finish"]


def test_heuristic_is_admissible_and_zero_at_goal(goal_condition: GoapGoal, two_route_actions: list[GoapAction]) -> None:
    """The estimate is zero at the goal and never above the true remaining cost."""
    at_goal = WorldState.from_mapping({"goal": True})
    one_step = WorldState.from_mapping({"stepA": True})

    assert heuristic_score(at_goal, goal_condition, two_route_actions) == 0.0
    assert heuristic_score(one_step, goal_condition, two_route_actions) <= 2.0
    assert heuristic_score(one_step, goal_condition, two_route_actions, HeuristicKind.zero) == 0.0


def test_iteration_cap_returns_none(
    two_route_actions: list[GoapAction],
    goal_condition: GoapGoal,
    start_state: WorldState,
) -> None:
    """Running out of expansions is reported as no plan."""
    planner = AStarPlanner(settings=PlannerSettings(max_iterations=1))

    assert planner.plan_to_goal_from(start_state, two_route_actions, goal_condition) is None


def test_unknown_conditions_are_evaluated_when_they_matter() -> None:
    """An UNKNOWN condition splitting the plans is evaluated for real."""
    actions = [
        GoapAction(name="walk", effects=["arrived"], cost=3.0),
        GoapAction(name="drive", preconditions=["car"], effects=["arrived"], cost=1.0),
    ]
    goal = GoapGoal(name="arrive", preconditions=["arrived"])
    determiner = RecordingDeterminer({"car": None, "arrived": False}, {"car": True})

    plan = AStarPlanner(determiner).plan_to_goal(actions, goal)

    assert determiner.evaluated == ["car"]
    assert plan is not None
    assert plan.action_names() == ["drive"]
    assert plan.world_state["car"] is T


def test_irrelevant_unknown_conditions_are_left_alone() -> None:
    """Conditions that do not change the plan are never evaluated."""
    actions = [GoapAction(name="walk", effects=["arrived"], cost=3.0)]
    goal = GoapGoal(name="arrive", preconditions=["arrived"])
    determiner = RecordingDeterminer({"weather": None, "arrived": False}, {"weather": True})

    plan = AStarPlanner(determiner).plan_to_goal(actions, goal)

    assert determiner.evaluated == []
    assert plan is not None
    assert plan.world_state["weather"] is U


def test_unknown_resolution_can_be_disabled() -> None:
    """With resolution off the planner plans from the observed state only."""
    actions = [
        GoapAction(name="walk", effects=["arrived"], cost=3.0),
        GoapAction(name="drive", preconditions=["car"], effects=["arrived"], cost=1.0),
    ]
    goal = GoapGoal(name="arrive", preconditions=["arrived"])
    determiner = RecordingDeterminer({"car": None, "arrived": False}, {"car": True})
    planner = AStarPlanner(determiner, settings=PlannerSettings(resolve_unknowns=False))

    plan = planner.plan_to_goal(actions, goal)

    assert determiner.evaluated == []
    assert plan is not None
    assert plan.action_names() == ["walk"]


def test_plan_to_goal_requires_determiner(goal_condition: GoapGoal) -> None:
    """Planning from the current state needs a determiner."""
    with pytest.raises(RuntimeError, match="determiner"):
        AStarPlanner().plan_to_goal([], goal_condition)


@pytest.fixture
def multi_goal_system() -> GoapPlanningSystem:
    """Return a system with a valuable, a cheap and an unreachable goal."""
    return GoapPlanningSystem(
        actions=(
            GoapAction(name="earn", preconditions=["start"], effects=["rich"], cost=2.0),
            GoapAction(name="rest", preconditions=["start"], effects=["rested"], cost=0.5),
            GoapAction(name="unused", preconditions=["never"], effects=["rested"], cost=0.1),
        ),
        goals=(
            GoapGoal(name="rich", value=1.0),
            GoapGoal(name="rested", value=0.8),
            GoapGoal(name="famous", value=1.0),
        ),
    )


def test_plans_to_goals_ranks_by_net_value(multi_goal_system: GoapPlanningSystem) -> None:
    """One plan per reachable goal, best net value first."""
    planner = AStarPlanner(MappingWorldStateDeterminer({"start": True, "never": False}))

    plans = planner.plans_to_goals(multi_goal_system)

    assert [plan.goal.name for plan in plans] == ["rested", "rich"]
    assert plans[0].net_value == pytest.approx(0.3)
    assert plans[1].net_value == pytest.approx(-1.0)
    best = planner.best_value_plan_to_any_goal(multi_goal_system)
    assert best is not None
    assert best.goal.name == "rested"


def test_best_value_plan_is_none_when_nothing_reachable() -> None:
    """Without reachable goals there is no best plan."""
    system = GoapPlanningSystem(goals=(GoapGoal(name="famous"),))
    planner = AStarPlanner(MappingWorldStateDeterminer({}))

    assert planner.plans_to_goals(system) == []
    assert planner.best_value_plan_to_any_goal(system) is None


def test_prune_keeps_only_used_actions(multi_goal_system: GoapPlanningSystem) -> None:
    """Actions that appear in no plan are removed."""
    planner = AStarPlanner(MappingWorldStateDeterminer({"start": True, "never": False}))

    pruned = planner.prune(multi_goal_system)

    assert [action.name for action in pruned.actions] == ["earn", "rest"]
    assert pruned.goals == multi_goal_system.goals


def test_search_statistics_are_logged(
    two_route_actions: list[GoapAction],
    goal_condition: GoapGoal,
    start_state: WorldState,
    debug_logger: StructuredLogger,
    log_stream: io.StringIO,
) -> None:
    """The planner reports its search at DEBUG level."""
    AStarPlanner(logger=debug_logger).plan_to_goal_from(start_state, two_route_actions, goal_condition)

    records = [json.loads(line) for line in log_stream.getvalue().splitlines()]
    finished = [record for record in records if record["message"] == "search finished"]
    assert finished
    assert finished[0]["goal"] == "done"
    assert finished[0]["found"] is True
    assert finished[0]["iterations"] >= 1
