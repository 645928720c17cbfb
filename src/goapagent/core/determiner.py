"""Derive world states from a process blackboard."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .agent import HAS_RUN_CONDITION_PREFIX, ActionStatusCode
from .conditions import ConditionDetermination
from .world import WorldState

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from .process import ProcessContext

_LIST_TYPE = "List"


class BlackboardWorldStateDeterminer:
    """Evaluate every known condition of an agent against a process context.

    Condition names are interpreted as follows:

    - ``var:Type``: a value of ``Type`` is bound to ``var`` (for ``it``, the most
      recent object of that type also counts).
    - ``hasRun_<action>``: the action has succeeded at least once in the process
      history; failed or waiting attempts do not count.
    - a condition registered on the agent: its own ``evaluate``.
    - anything else: an explicitly set blackboard condition, FALSE when unset.
    """

    def __init__(self, context: ProcessContext) -> None:
        """Bind the determiner to ``context``."""
        self._context = context
        self._agent = context.process.agent
        self._known_conditions = sorted(self._agent.planning_system.known_conditions())
        self._logger = context.logger

    @property
    def known_conditions(self) -> list[str]:
        """Return the condition names the agent refers to."""
        return list(self._known_conditions)

    def determine_world_state(self) -> WorldState:
        """Evaluate every known condition."""
        return WorldState.from_mapping(
            {condition: self.determine_condition(condition) for condition in self._known_conditions},
        )

    def determine_condition(self, condition: str) -> ConditionDetermination:
        """Evaluate ``condition`` against the blackboard and history."""
        if ":" in condition:
            determination = self._binding_condition(condition)
        elif condition.startswith(HAS_RUN_CONDITION_PREFIX):
            action_name = condition.removeprefix(HAS_RUN_CONDITION_PREFIX)
            determination = ConditionDetermination.of(
                any(
                    invocation.action_name == action_name and invocation.status is ActionStatusCode.SUCCEEDED
                    for invocation in self._context.process.history
                ),
            )
        else:
            registered = self._agent.condition_named(condition)
            if registered is not None:
                determination = registered.evaluate(self._context)
            else:
                explicit = self._context.blackboard.get_condition(condition)
                determination = ConditionDetermination.of(explicit).as_true_or_false()

        if determination is ConditionDetermination.UNKNOWN:
            self._logger.warning("condition determined unknown", condition=condition)
        else:
            self._logger.debug("condition determined", condition=condition, determination=determination.value)
        return determination

    def _binding_condition(self, condition: str) -> ConditionDetermination:
        variable, _, type_name = condition.partition(":")
        blackboard = self._context.blackboard
        if type_name == _LIST_TYPE:
            return ConditionDetermination.of(isinstance(blackboard.get(variable), list))
        return ConditionDetermination.of(blackboard.get_value(variable, type_name) is not None)


__all__ = ["BlackboardWorldStateDeterminer"]
