"""Three-valued condition algebra used by the planner and the world state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Callable


class ConditionDetermination(str, Enum):
    """Kleene-style truth value distinguishing "not evaluated" from "false"."""

    TRUE = "TRUE"
    FALSE = "FALSE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def of(cls, value: bool | None) -> ConditionDetermination:
        """Map ``True``/``False``/``None`` onto a determination."""
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    @classmethod
    def parse(cls, text: str) -> ConditionDetermination:
        """Parse ``true``/``false``/``unknown`` regardless of case."""
        try:
            return cls(text.strip().upper())
        except ValueError as exc:
            msg = f"invalid condition determination: {text!r}"
            raise ValueError(msg) from exc

    def as_true_or_false(self) -> ConditionDetermination:
        """Treat UNKNOWN as FALSE."""
        return ConditionDetermination.TRUE if self is ConditionDetermination.TRUE else ConditionDetermination.FALSE

    def negate(self) -> ConditionDetermination:
        """Flip TRUE and FALSE, leaving UNKNOWN untouched."""
        if self is ConditionDetermination.TRUE:
            return ConditionDetermination.FALSE
        if self is ConditionDetermination.FALSE:
            return ConditionDetermination.TRUE
        return ConditionDetermination.UNKNOWN


class Condition(ABC):
    """A named, costed check evaluated against an execution context.

    ``cost`` ranges from 0 (cheap) to 1 (expensive). Combinators evaluate the
    cheaper operand first so that expensive checks can be skipped entirely.
    """

    name: str
    cost: float

    @abstractmethod
    def evaluate(self, context: Any) -> ConditionDetermination:
        """Evaluate the condition against ``context``."""

    def negated(self) -> Condition:
        """Return the Kleene negation of this condition."""
        return NotCondition(self)

    def is_unknown(self) -> Condition:
        """Return a condition that holds only while this one is UNKNOWN."""
        return UnknownCondition(self)

    def __invert__(self) -> Condition:
        return NotCondition(self)

    def __and__(self, other: Condition) -> Condition:
        return AndCondition(self, other)

    def __or__(self, other: Condition) -> Condition:
        return OrCondition(self, other)

    def info_string(self) -> str:
        """Return a short description of the condition."""
        return f"Condition(name={self.name!r}, cost={self.cost})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, cost={self.cost})"


def _check_cost(cost: float) -> float:
    if not 0.0 <= cost <= 1.0:
        msg = f"condition cost must be within [0, 1], got {cost}"
        raise ValueError(msg)
    return float(cost)


class ComputedBooleanCondition(Condition):
    """Condition backed by a callable returning ``True``, ``False`` or ``None``."""

    def __init__(
        self,
        name: str,
        evaluator: Callable[[Any, Condition], bool | None],
        *,
        cost: float = 0.0,
    ) -> None:
        """Create a condition named ``name`` evaluated by ``evaluator``."""
        self.name = name
        self.cost = _check_cost(cost)
        self._evaluator = evaluator

    def evaluate(self, context: Any) -> ConditionDetermination:
        """Run the evaluator and convert its result into a determination."""
        return ConditionDetermination.of(self._evaluator(context, self))


class NotCondition(Condition):
    """Kleene NOT: ``!c``."""

    def __init__(self, condition: Condition) -> None:
        """Negate ``condition``."""
        self.condition = condition
        self.name = f"!{condition.name}"
        self.cost = condition.cost

    def evaluate(self, context: Any) -> ConditionDetermination:
        """Evaluate the wrapped condition and negate the result."""
        return self.condition.evaluate(context).negate()


class UnknownCondition(Condition):
    """TRUE exactly when the wrapped condition evaluates UNKNOWN."""

    def __init__(self, condition: Condition) -> None:
        """Wrap ``condition``."""
        self.condition = condition
        self.name = f"?{condition.name}"
        self.cost = condition.cost

    def evaluate(self, context: Any) -> ConditionDetermination:
        """Return TRUE for UNKNOWN, FALSE otherwise."""
        result = self.condition.evaluate(context)
        return ConditionDetermination.of(result is ConditionDetermination.UNKNOWN)


class _BinaryCondition(Condition):
    _operator: str
    _short_circuit: ConditionDetermination

    def __init__(self, left: Condition, right: Condition) -> None:
        self.left = left
        self.right = right
        self.name = f"({left.name} {self._operator} {right.name})"
        self.cost = min(left.cost, right.cost)

    def _ordered(self) -> tuple[Condition, Condition]:
        # Stable for equal costs: the left operand goes first.
        if self.right.cost < self.left.cost:
            return self.right, self.left
        return self.left, self.right

    def evaluate(self, context: Any) -> ConditionDetermination:
        """Evaluate the cheaper operand first and stop as soon as the result is fixed."""
        first, second = self._ordered()
        first_result = first.evaluate(context)
        if first_result is self._short_circuit:
            return self._short_circuit
        second_result = second.evaluate(context)
        if second_result is self._short_circuit:
            return self._short_circuit
        if ConditionDetermination.UNKNOWN in (first_result, second_result):
            return ConditionDetermination.UNKNOWN
        return self._short_circuit.negate()


class AndCondition(_BinaryCondition):
    """Kleene AND: FALSE wins, then UNKNOWN, then TRUE."""

    _operator = "AND"
    _short_circuit = ConditionDetermination.FALSE


class OrCondition(_BinaryCondition):
    """Kleene OR: TRUE wins, then UNKNOWN, then FALSE."""

    _operator = "OR"
    _short_circuit = ConditionDetermination.TRUE


__all__ = [
    "AndCondition",
    "ComputedBooleanCondition",
    "Condition",
    "ConditionDetermination",
    "NotCondition",
    "OrCondition",
    "UnknownCondition",
]
