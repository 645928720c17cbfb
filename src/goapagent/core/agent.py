"""Agent definitions: executable actions, goals, conditions and a registration API."""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ConfigDict, Field

from .conditions import ComputedBooleanCondition, Condition, ConditionDetermination
from .errors import UnknownActionError
from .models import GoapAction, GoapGoal, GoapPlanningSystem

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Iterable, Mapping, Sequence

    from .process import AgentProcess, ProcessContext

HAS_RUN_CONDITION_PREFIX = "hasRun_"


def has_run_condition(action_name: str) -> str:
    """Return the condition recording that ``action_name`` has executed."""
    return f"{HAS_RUN_CONDITION_PREFIX}{action_name}"


class ActionStatusCode(str, Enum):
    """Outcome reported by a single action execution."""

    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    WAITING = "WAITING"


@dataclass(frozen=True, slots=True)
class ActionStatus:
    """Status and timing of one action execution."""

    status: ActionStatusCode
    running_time: dt.timedelta = dt.timedelta()


ActionHandler = typing.Callable[["ProcessContext"], "ActionStatusCode | None"]


class AgentAction(GoapAction):
    """GOAP action bound to the handler that performs it.

    The handler receives the :class:`ProcessContext`, mutates the blackboard and
    returns an :class:`ActionStatusCode`; returning ``None`` means SUCCEEDED.
    Actions registered without a handler are executed by recording their
    declared effects on the blackboard.
    """

    handler: Callable[..., Any] | None = Field(default=None, exclude=True, repr=False)
    description: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    def execute(self, context: ProcessContext) -> ActionStatusCode:
        """Run the handler and normalise its result."""
        if self.handler is None:
            msg = f"action {self.name!r} has no handler"
            raise TypeError(msg)
        result = self.handler(context)
        return ActionStatusCode.SUCCEEDED if result is None else ActionStatusCode(result)


class StuckHandlingResultCode(str, Enum):
    """Whether a stuck handler changed anything worth replanning for."""

    REPLAN = "REPLAN"
    NO_RESOLUTION = "NO_RESOLUTION"


@dataclass(frozen=True, slots=True)
class StuckHandlingResult:
    """Result returned by a :class:`StuckHandler`."""

    code: StuckHandlingResultCode
    message: str = ""


class StuckHandler(Protocol):
    """Callable given a chance to unblock a process that has no plan."""

    def __call__(self, process: AgentProcess) -> StuckHandlingResult:
        """Inspect ``process`` and possibly modify its blackboard."""
        ...


@dataclass(frozen=True, slots=True)
class Agent:
    """Immutable agent definition shared by every process that runs it."""

    name: str
    actions: tuple[GoapAction, ...]
    goals: tuple[GoapGoal, ...]
    conditions: tuple[Condition, ...] = ()
    description: str = ""
    stuck_handler: StuckHandler | None = None
    _planning_system: GoapPlanningSystem = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_planning_system",
            GoapPlanningSystem(actions=self.actions, goals=self.goals),
        )

    @property
    def planning_system(self) -> GoapPlanningSystem:
        """Return the actions and goals as a planning system."""
        return self._planning_system

    def action_named(self, name: str) -> GoapAction:
        """Return the single action called ``name``."""
        matches = [action for action in self.actions if action.name == name]
        if len(matches) != 1:
            msg = f"expected exactly one action named {name!r} in agent {self.name!r}, found {len(matches)}"
            raise UnknownActionError(msg)
        return matches[0]

    def condition_named(self, name: str) -> Condition | None:
        """Return the registered condition called ``name`` (or ending in ``.name``)."""
        for condition in self.conditions:
            if condition.name == name or condition.name.endswith(f".{name}"):
                return condition
        return None

    def info_string(self) -> str:
        """Describe the agent and its planning system."""
        header = f"Agent {self.name}"
        if self.description:
            header = f"{header}: {self.description}"
        return f"{header}\n{self.planning_system.info_string()}"


def _spec(pre: Iterable[str] | None, explicit: Mapping[str, Any] | None) -> dict[str, Any]:
    spec: dict[str, Any] = {name: ConditionDetermination.TRUE for name in pre or ()}
    spec.update(explicit or {})
    return spec


class AgentBuilder:
    """Explicit registration API for agents.

    Example::

        builder = AgentBuilder("orders")

        @builder.action(pre=["order:Order"], post=["paid"], cost=0.5)
        def take_payment(context: ProcessContext) -> None:
            ...

        builder.goal("fulfilled", pre=["paid", "shipped"], value=1.0)
        agent = builder.build()
    """

    def __init__(self, name: str, *, description: str = "") -> None:
        """Start an agent called ``name``."""
        self._name = name
        self._description = description
        self._actions: list[GoapAction] = []
        self._goals: list[GoapGoal] = []
        self._conditions: list[Condition] = []
        self._stuck_handler: StuckHandler | None = None

    def add_action(
        self,
        name: str,
        handler: ActionHandler | None = None,
        *,
        pre: Sequence[str] | None = None,
        post: Sequence[str] | None = None,
        preconditions: Mapping[str, Any] | None = None,
        effects: Mapping[str, Any] | None = None,
        cost: float = 1.0,
        value: float = 0.0,
        can_rerun: bool = True,
        description: str | None = None,
    ) -> AgentAction:
        """Register an action and return it."""
        action_preconditions = _spec(pre, preconditions)
        action_effects = _spec(post, effects)
        if not can_rerun:
            action_preconditions[has_run_condition(name)] = ConditionDetermination.FALSE
            action_effects[has_run_condition(name)] = ConditionDetermination.TRUE
        action = AgentAction(
            name=name,
            preconditions=action_preconditions,
            effects=action_effects,
            cost=cost,
            value=value,
            handler=handler,
            description=description,
        )
        self._actions.append(action)
        return action

    def action(
        self,
        name: str | None = None,
        **options: Any,
    ) -> Callable[[ActionHandler], ActionHandler]:
        """Register the decorated function as an action handler."""

        def decorator(handler: ActionHandler) -> ActionHandler:
            action_name = name or getattr(handler, "__name__", None)
            if not action_name:
                msg = "action name is required for anonymous handlers"
                raise ValueError(msg)
            self.add_action(action_name, handler, **options)
            return handler

        return decorator

    def goal(
        self,
        name: str,
        *,
        pre: Sequence[str] | None = None,
        preconditions: Mapping[str, Any] | None = None,
        value: float = 0.0,
        description: str | None = None,
    ) -> GoapGoal:
        """Register a goal; without ``pre`` it requires a condition named after itself."""
        goal = GoapGoal(
            name=name,
            preconditions=_spec(pre, preconditions),
            value=value,
            description=description,
        )
        self._goals.append(goal)
        return goal

    def condition(
        self,
        name: str | None = None,
        *,
        cost: float = 0.0,
    ) -> Callable[[Callable[[ProcessContext, Condition], bool | None]], Condition]:
        """Register the decorated predicate as a named condition."""

        def decorator(evaluator: Callable[[ProcessContext, Condition], bool | None]) -> Condition:
            condition = ComputedBooleanCondition(name or evaluator.__name__, evaluator, cost=cost)
            self._conditions.append(condition)
            return condition

        return decorator

    def add_condition(self, condition: Condition) -> Condition:
        """Register an already built condition, such as a combinator expression."""
        self._conditions.append(condition)
        return condition

    def stuck_handler(self, handler: StuckHandler) -> StuckHandler:
        """Register the handler invoked when a process gets stuck."""
        self._stuck_handler = handler
        return handler

    def build(self) -> Agent:
        """Freeze the registrations into an :class:`Agent`."""
        return Agent(
            name=self._name,
            actions=tuple(self._actions),
            goals=tuple(self._goals),
            conditions=tuple(self._conditions),
            description=self._description,
            stuck_handler=self._stuck_handler,
        )


__all__ = [
    "HAS_RUN_CONDITION_PREFIX",
    "ActionHandler",
    "ActionStatus",
    "ActionStatusCode",
    "Agent",
    "AgentAction",
    "AgentBuilder",
    "StuckHandler",
    "StuckHandlingResult",
    "StuckHandlingResultCode",
    "has_run_condition",
]
