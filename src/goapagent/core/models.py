"""Core data models for goapagent: actions, goals, plans and planning systems."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
import typing

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .conditions import ConditionDetermination
from .world import WorldState, coerce_determination


def _normalise_spec(value: typing.Any) -> dict[str, ConditionDetermination]:
    """Turn a name list (required TRUE) or a mapping into an effect spec."""
    if value is None:
        return {}
    if isinstance(value, MappingABC):
        typed_mapping = typing.cast("typing.Mapping[str, typing.Any]", value)
        return {str(key): coerce_determination(item) for key, item in typed_mapping.items()}
    if isinstance(value, str):
        return {value: ConditionDetermination.TRUE}
    return {str(name): ConditionDetermination.TRUE for name in value}


def _indent(text: str, level: int) -> str:
    prefix = "  " * level
    return "\n".join(prefix + line for line in text.splitlines())


class GoapAction(BaseModel):
    """Declarative action: preconditions, expected effects and cost."""

    name: str
    preconditions: dict[str, ConditionDetermination] = Field(default_factory=dict)
    effects: dict[str, ConditionDetermination] = Field(default_factory=dict)
    cost: float = Field(default=1.0, ge=0.0)
    value: float = Field(default=0.0, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("preconditions", "effects", mode="before")
    @classmethod
    def _coerce_spec(cls, value: typing.Any) -> dict[str, ConditionDetermination]:
        return _normalise_spec(value)

    @property
    def known_conditions(self) -> set[str]:
        """Return every condition name referenced by the action."""
        return set(self.preconditions) | set(self.effects)

    def is_achievable(self, state: WorldState) -> bool:
        """Return ``True`` when every precondition holds exactly in ``state``."""
        return state.satisfies(self.preconditions)

    def info_string(self, indent: int = 0) -> str:
        """Describe the action on a single line."""
        pre = {key: value.value for key, value in self.preconditions.items()}
        post = {key: value.value for key, value in self.effects.items()}
        return _indent(f"{self.name} - pre={pre} post={post} cost={self.cost} value={self.value}", indent)


class GoapGoal(BaseModel):
    """Goal satisfied once every required condition holds.

    ``preconditions`` may be given as a list of names, each implicitly required
    TRUE. When omitted the goal requires a condition carrying its own name.
    """

    name: str
    preconditions: dict[str, ConditionDetermination] = Field(default_factory=dict)
    value: float = Field(default=0.0, ge=0.0, le=1.0)
    description: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("preconditions", mode="before")
    @classmethod
    def _coerce_spec(cls, value: typing.Any) -> dict[str, ConditionDetermination]:
        return _normalise_spec(value)

    @model_validator(mode="before")
    @classmethod
    def _default_to_own_name(cls, data: typing.Any) -> typing.Any:
        if isinstance(data, dict) and not data.get("preconditions") and "name" in data:
            return {**data, "preconditions": [data["name"]]}
        return data

    @property
    def known_conditions(self) -> set[str]:
        """Return the condition names the goal requires."""
        return set(self.preconditions)

    def is_achievable(self, state: WorldState) -> bool:
        """Return ``True`` when ``state`` satisfies the goal."""
        return state.satisfies(self.preconditions)

    def unmet_conditions(self, state: WorldState) -> list[str]:
        """Return the required conditions ``state`` does not satisfy."""
        current = state.as_dict()
        return [
            name
            for name, required in self.preconditions.items()
            if current.get(name, ConditionDetermination.UNKNOWN) is not required
        ]

    def info_string(self, indent: int = 0) -> str:
        """Describe the goal on a single line."""
        pre = {key: value.value for key, value in self.preconditions.items()}
        return _indent(f"{self.name} - pre={pre} value={self.value}", indent)


class Plan(BaseModel):
    """Ordered, costed sequence of actions achieving ``goal`` from ``world_state``."""

    actions: tuple[GoapAction, ...] = ()
    goal: GoapGoal
    world_state: WorldState = Field(default_factory=WorldState)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def cost(self) -> float:
        """Sum of the action costs."""
        return sum(action.cost for action in self.actions)

    @property
    def action_value(self) -> float:
        """Sum of the action values."""
        return sum(action.value for action in self.actions)

    @property
    def value(self) -> float:
        """Aggregate value of reaching the goal through this plan."""
        return self.goal.value + self.action_value

    @property
    def net_value(self) -> float:
        """Value minus cost; used to rank plans to different goals."""
        return self.value - self.cost

    def is_complete(self) -> bool:
        """Return ``True`` when the goal already holds and nothing remains to do."""
        return not self.actions

    def action_names(self) -> list[str]:
        """Return the action names in execution order."""
        return [action.name for action in self.actions]

    def info_string(self, *, verbose: bool = False) -> str:
        """Render the plan for logs and the CLI."""
        header = f"Plan to {self.goal.name}: cost={self.cost:.2f} net_value={self.net_value:.2f}"
        if not verbose:
            return f"{header} actions={self.action_names()}"
        lines = [header]
        lines.extend(
            f"{index}. {action.info_string()}" for index, action in enumerate(self.actions, start=1)
        )
        return "\n".join(lines)


class GoapPlanningSystem(BaseModel):
    """All actions and goals known to a planning session, in registration order."""

    actions: tuple[GoapAction, ...] = ()
    goals: tuple[GoapGoal, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def for_goal(cls, actions: typing.Iterable[GoapAction], goal: GoapGoal) -> GoapPlanningSystem:
        """Create a system with a single goal."""
        return cls(actions=tuple(actions), goals=(goal,))

    def known_preconditions(self) -> set[str]:
        """Return every condition used as a precondition by an action or goal."""
        names: set[str] = set()
        for action in self.actions:
            names.update(action.preconditions)
        for goal in self.goals:
            names.update(goal.preconditions)
        return names

    def known_effects(self) -> set[str]:
        """Return every condition some action may change."""
        names: set[str] = set()
        for action in self.actions:
            names.update(action.effects)
        return names

    def known_conditions(self) -> set[str]:
        """Return the union of known preconditions and effects."""
        return self.known_preconditions() | self.known_effects()

    def goal_named(self, name: str) -> GoapGoal | None:
        """Return the goal called ``name`` if registered."""
        return next((goal for goal in self.goals if goal.name == name), None)

    def with_actions(self, actions: typing.Iterable[GoapAction]) -> GoapPlanningSystem:
        """Return a copy with ``actions`` replacing the current actions."""
        return self.model_copy(update={"actions": tuple(actions)})

    def info_string(self) -> str:
        """Describe the planning system over several lines."""
        lines = ["GOAP system:", "  actions:"]
        lines.extend(action.info_string(2) for action in self.actions)
        lines.append("  goals:")
        lines.extend(goal.info_string(2) for goal in self.goals)
        lines.append("  known preconditions: " + ", ".join(sorted(self.known_preconditions())))
        lines.append("  known effects: " + ", ".join(sorted(self.known_effects())))
        return "\n".join(lines)


__all__ = [
    "GoapAction",
    "GoapGoal",
    "GoapPlanningSystem",
    "Plan",
]
