"""Immutable world state snapshots and world state determination."""

from __future__ import annotations

import json
from collections.abc import Mapping as MappingABC
from typing import TYPE_CHECKING, Any, Protocol, cast

from pydantic import BaseModel, ConfigDict, field_validator

from .conditions import ConditionDetermination

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Mapping

_DEFINITE = (ConditionDetermination.TRUE, ConditionDetermination.FALSE)
_ALL = (
    ConditionDetermination.TRUE,
    ConditionDetermination.FALSE,
    ConditionDetermination.UNKNOWN,
)


def coerce_determination(value: Any) -> ConditionDetermination:
    """Accept determinations, booleans, ``None`` or their string names."""
    if isinstance(value, ConditionDetermination):
        return value
    if value is None or isinstance(value, bool):
        return ConditionDetermination.of(value)
    if isinstance(value, str):
        return ConditionDetermination.parse(value)
    msg = f"cannot interpret {value!r} as a condition determination"
    raise ValueError(msg)


class WorldState(BaseModel):
    """Point in the discrete planning space: one determination per condition name.

    Entries are kept sorted by name so that equality and hashing are structural.
    Conditions that are absent from the state read as UNKNOWN.
    """

    entries: tuple[tuple[str, ConditionDetermination], ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("entries", mode="before")
    @classmethod
    def _sort_entries(cls, value: Any) -> tuple[tuple[str, Any], ...]:
        """Accept a mapping or pair sequence and order it by condition name."""
        if isinstance(value, MappingABC):
            typed_mapping = cast("Mapping[str, Any]", value)
            pairs = {str(key): coerce_determination(item) for key, item in typed_mapping.items()}
        else:
            pairs = {}
            for key, item in value:
                pairs[str(key)] = coerce_determination(item)
        return tuple(sorted(pairs.items()))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None = None) -> WorldState:
        """Build a state from ``{name: determination}``."""
        return cls(entries=mapping or {})

    def as_dict(self) -> dict[str, ConditionDetermination]:
        """Return a fresh dictionary copy of the entries."""
        return dict(self.entries)

    def get(self, name: str) -> ConditionDetermination:
        """Return the determination for ``name``; absent conditions are UNKNOWN."""
        for key, value in self.entries:
            if key == name:
                return value
        return ConditionDetermination.UNKNOWN

    def __getitem__(self, name: str) -> ConditionDetermination:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def names(self) -> list[str]:
        """Return the condition names in order."""
        return [key for key, _ in self.entries]

    def unknown_conditions(self) -> list[str]:
        """Return the names whose determination is UNKNOWN."""
        return [key for key, value in self.entries if value is ConditionDetermination.UNKNOWN]

    def plus(self, name: str, determination: ConditionDetermination) -> WorldState:
        """Return a copy with ``name`` set to ``determination``."""
        updated = self.as_dict()
        updated[name] = determination
        return WorldState(entries=updated)

    def apply(self, effects: Mapping[str, ConditionDetermination]) -> WorldState:
        """Return the state reached by applying every entry in ``effects``."""
        if not effects:
            return self
        updated = self.as_dict()
        updated.update(effects)
        return WorldState(entries=updated)

    def satisfies(self, preconditions: Mapping[str, ConditionDetermination]) -> bool:
        """Return ``True`` when every precondition matches exactly."""
        current = self.as_dict()
        return all(
            current.get(name, ConditionDetermination.UNKNOWN) is required
            for name, required in preconditions.items()
        )

    def variants(self, name: str) -> list[WorldState]:
        """Return the TRUE and FALSE resolutions of condition ``name``."""
        return [self.plus(name, determination) for determination in _DEFINITE]

    def with_one_change(self) -> list[WorldState]:
        """Return every state that differs from this one in exactly one condition."""
        neighbours: list[WorldState] = []
        for name, current in self.entries:
            neighbours.extend(
                self.plus(name, determination) for determination in _ALL if determination is not current
            )
        return neighbours

    def info_string(self, *, verbose: bool = False) -> str:
        """Render the state for logs and the CLI."""
        rendered = {key: value.value for key, value in self.entries}
        if verbose:
            return json.dumps(rendered, indent=2)
        return ", ".join(f"{key}={value}" for key, value in rendered.items()) or "<empty>"


class WorldStateDeterminer(Protocol):
    """Source of world states for the planner."""

    def determine_world_state(self) -> WorldState:
        """Return the current world state; expensive conditions may be UNKNOWN."""
        ...

    def determine_condition(self, condition: str) -> ConditionDetermination:
        """Evaluate a single condition, bypassing any caching."""
        ...


class MappingWorldStateDeterminer:
    """Determiner returning a fixed state, mostly useful for tests and the CLI."""

    def __init__(self, mapping: Mapping[str, Any] | None = None) -> None:
        """Snapshot ``mapping`` as the world state."""
        self._state = WorldState.from_mapping(mapping)

    def determine_world_state(self) -> WorldState:
        """Return the configured state."""
        return self._state

    def determine_condition(self, condition: str) -> ConditionDetermination:
        """Return the configured determination or UNKNOWN."""
        return self._state.get(condition)


__all__ = [
    "MappingWorldStateDeterminer",
    "WorldState",
    "WorldStateDeterminer",
    "coerce_determination",
]
