"""Early termination policies evaluated before each tick of a process."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .agent import ActionStatusCode

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Callable

    from .process import AgentProcess

DEFAULT_ACTION_LIMIT = 40


@dataclass(frozen=True, slots=True)
class EarlyTermination:
    """Why a process was stopped and by which policy."""

    policy: str
    reason: str

    def __str__(self) -> str:
        return f"Early termination by policy {self.policy} - {self.reason}"


class EarlyTerminationPolicy(Protocol):
    """Predicate over a process deciding whether it must stop."""

    @property
    def name(self) -> str:
        """Return the policy name reported in terminations."""
        ...

    def should_terminate(self, process: AgentProcess) -> EarlyTermination | None:
        """Return a termination when ``process`` should stop, else ``None``."""
        ...


@dataclass(frozen=True, slots=True)
class MaxActionsPolicy:
    """Stop once ``max_actions`` actions have been executed.

    Attempts that paused for input are not counted; the action runs again once
    the process resumes.
    """

    max_actions: int = DEFAULT_ACTION_LIMIT
    name: str = "max_actions"

    def should_terminate(self, process: AgentProcess) -> EarlyTermination | None:
        """Compare the number of completed attempts with the limit."""
        executed = sum(1 for invocation in process.history if invocation.status is not ActionStatusCode.WAITING)
        if executed >= self.max_actions:
            return EarlyTermination(self.name, f"Max actions reached: {self.max_actions}")
        return None


@dataclass(frozen=True, slots=True)
class BudgetPolicy:
    """Stop once the cumulative cost of executed actions reaches ``budget``."""

    budget: float
    name: str = "hard_budget_limit"

    def should_terminate(self, process: AgentProcess) -> EarlyTermination | None:
        """Compare the process cost with the budget."""
        cost = process.cost()
        if cost >= self.budget:
            return EarlyTermination(self.name, f"Exceeded budget of {self.budget:.4f}: cost={cost:.4f}")
        return None


@dataclass(frozen=True, slots=True)
class FirstOfPolicy:
    """Report the first termination raised by any of ``policies``."""

    policies: tuple[EarlyTerminationPolicy, ...]
    name: str = "first_of"

    def should_terminate(self, process: AgentProcess) -> EarlyTermination | None:
        """Evaluate the policies in order."""
        for policy in self.policies:
            termination = policy.should_terminate(process)
            if termination is not None:
                return termination
        return None


@dataclass(frozen=True, slots=True)
class PredicatePolicy:
    """Custom policy backed by a predicate over the process."""

    name: str
    predicate: Callable[[AgentProcess], bool]
    reason: str = "custom policy fired"

    def should_terminate(self, process: AgentProcess) -> EarlyTermination | None:
        """Terminate when the predicate returns ``True``."""
        if self.predicate(process):
            return EarlyTermination(self.name, self.reason)
        return None


def max_actions(limit: int = DEFAULT_ACTION_LIMIT) -> EarlyTerminationPolicy:
    """Return a policy stopping after ``limit`` actions."""
    if limit <= 0:
        msg = "max_actions must be positive"
        raise ValueError(msg)
    return MaxActionsPolicy(limit)


def hard_budget_limit(budget: float) -> EarlyTerminationPolicy:
    """Return a policy stopping once cumulative action cost reaches ``budget``."""
    if budget < 0:
        msg = "budget must be non-negative"
        raise ValueError(msg)
    return BudgetPolicy(budget)


def first_of(*policies: EarlyTerminationPolicy) -> EarlyTerminationPolicy:
    """Combine ``policies``; the first to fire wins."""
    return FirstOfPolicy(tuple(policies))


def custom(
    name: str,
    predicate: Callable[[AgentProcess], bool],
    reason: str = "custom policy fired",
) -> EarlyTerminationPolicy:
    """Return a policy built from ``predicate``."""
    return PredicatePolicy(name, predicate, reason)


class ProcessOptions(BaseModel):
    """Per-run controls, loaded from the ``[process]`` configuration section."""

    max_actions: int = Field(default=DEFAULT_ACTION_LIMIT, gt=0)
    budget: float | None = Field(default=None, ge=0.0)
    allow_goal_change: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid")

    def termination_policy(self, extra: EarlyTerminationPolicy | None = None) -> EarlyTerminationPolicy:
        """Combine the configured limits with an optional custom policy."""
        policies = [max_actions(self.max_actions)]
        if self.budget is not None:
            policies.append(hard_budget_limit(self.budget))
        if extra is not None:
            policies.append(extra)
        return first_of(*policies)


__all__ = [
    "DEFAULT_ACTION_LIMIT",
    "BudgetPolicy",
    "EarlyTermination",
    "EarlyTerminationPolicy",
    "FirstOfPolicy",
    "MaxActionsPolicy",
    "PredicatePolicy",
    "ProcessOptions",
    "custom",
    "first_of",
    "hard_budget_limit",
    "max_actions",
]
