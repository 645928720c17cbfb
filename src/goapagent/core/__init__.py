"""Core GOAP components for goapagent."""

from .agent import (
    ActionStatus,
    ActionStatusCode,
    Agent,
    AgentAction,
    AgentBuilder,
    StuckHandlingResult,
    StuckHandlingResultCode,
    has_run_condition,
)
from .blackboard import Blackboard, InMemoryBlackboard
from .conditions import (
    AndCondition,
    ComputedBooleanCondition,
    Condition,
    ConditionDetermination,
    NotCondition,
    OrCondition,
    UnknownCondition,
)
from .determiner import BlackboardWorldStateDeterminer
from .errors import ActionExecutionError, ProcessStateError, UnknownActionError
from .explain import StepExplanation, explain_plan
from .models import GoapAction, GoapGoal, GoapPlanningSystem, Plan
from .planner import AStarPlanner, HeuristicKind, PlannerSettings, heuristic_score, relevant_actions
from .platform import AgentPlatform
from .process import (
    ActionInvocation,
    AgentProcess,
    AgentProcessStatusCode,
    PendingInput,
    ProcessContext,
)
from .termination import EarlyTermination, ProcessOptions
from .world import MappingWorldStateDeterminer, WorldState, WorldStateDeterminer

__all__ = [
    "AStarPlanner",
    "AndCondition",
    "ActionExecutionError",
    "ActionInvocation",
    "ActionStatus",
    "ActionStatusCode",
    "Agent",
    "AgentAction",
    "AgentBuilder",
    "AgentPlatform",
    "AgentProcess",
    "AgentProcessStatusCode",
    "Blackboard",
    "BlackboardWorldStateDeterminer",
    "ComputedBooleanCondition",
    "Condition",
    "ConditionDetermination",
    "EarlyTermination",
    "GoapAction",
    "GoapGoal",
    "GoapPlanningSystem",
    "HeuristicKind",
    "InMemoryBlackboard",
    "MappingWorldStateDeterminer",
    "NotCondition",
    "OrCondition",
    "PendingInput",
    "Plan",
    "PlannerSettings",
    "ProcessContext",
    "ProcessOptions",
    "ProcessStateError",
    "StepExplanation",
    "StuckHandlingResult",
    "StuckHandlingResultCode",
    "UnknownActionError",
    "UnknownCondition",
    "WorldState",
    "WorldStateDeterminer",
    "explain_plan",
    "has_run_condition",
    "heuristic_score",
    "relevant_actions",
]
