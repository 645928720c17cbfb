"""Blackboard contract and an in-memory implementation."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Mapping, Sequence

T = TypeVar("T")

DEFAULT_BINDING = "it"


def satisfies_type(value: Any, type_name: str) -> bool:
    """Return ``True`` when ``value``'s class or any base class is called ``type_name``."""
    for klass in type(value).__mro__:
        if type_name in (klass.__name__, klass.__qualname__, f"{klass.__module__}.{klass.__qualname__}"):
            return True
    return False


class Blackboard(Protocol):
    """Shared store of bound values that conditions and actions read and write."""

    @property
    def blackboard_id(self) -> str:
        """Return the identifier of this blackboard."""
        ...

    @property
    def objects(self) -> Sequence[Any]:
        """Return every added object, oldest first."""
        ...

    def get(self, name: str) -> Any | None:
        """Return the value bound to ``name``."""
        ...

    def bind(self, name: str, value: Any) -> Blackboard:
        """Bind ``value`` to ``name`` and append it to the objects."""
        ...

    def add_object(self, value: Any) -> Blackboard:
        """Append ``value`` without binding a name."""
        ...

    def set_condition(self, name: str, value: bool) -> Blackboard:
        """Explicitly set a condition used in planning."""
        ...

    def get_condition(self, name: str) -> bool | None:
        """Return an explicitly set condition."""
        ...

    def get_value(self, variable: str, type_name: str) -> Any | None:
        """Resolve ``variable`` to a value whose type is called ``type_name``."""
        ...

    def unbind(self, name: str) -> None:
        """Remove the binding for ``name`` if present."""
        ...

    def spawn(self) -> Blackboard:
        """Return an independent copy."""
        ...


class InMemoryBlackboard:
    """Dictionary-backed blackboard preserving insertion order of objects."""

    def __init__(self, blackboard_id: str | None = None) -> None:
        """Create an empty blackboard."""
        self._blackboard_id = blackboard_id or str(uuid.uuid4())
        self._bindings: dict[str, Any] = {}
        self._conditions: dict[str, bool] = {}
        self._objects: list[Any] = []

    @property
    def blackboard_id(self) -> str:
        """Return the identifier of this blackboard."""
        return self._blackboard_id

    @property
    def objects(self) -> tuple[Any, ...]:
        """Return every added object, oldest first."""
        return tuple(self._objects)

    def get(self, name: str) -> Any | None:
        """Return the value bound to ``name``."""
        return self._bindings.get(name)

    def __getitem__(self, name: str) -> Any | None:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.bind(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def bind(self, name: str, value: Any) -> InMemoryBlackboard:
        """Bind ``value`` to ``name`` and append it to the objects."""
        self._bindings[name] = value
        self._objects.append(value)
        return self

    def bind_all(self, bindings: Mapping[str, Any]) -> InMemoryBlackboard:
        """Bind every entry of ``bindings``."""
        for name, value in bindings.items():
            self.bind(name, value)
        return self

    def add_object(self, value: Any) -> InMemoryBlackboard:
        """Append ``value`` without binding a name."""
        self._objects.append(value)
        return self

    def unbind(self, name: str) -> None:
        """Remove the binding for ``name``; the object history is kept."""
        self._bindings.pop(name, None)

    def set_condition(self, name: str, value: bool) -> InMemoryBlackboard:
        """Explicitly set a condition used in planning."""
        self._conditions[name] = bool(value)
        return self

    def get_condition(self, name: str) -> bool | None:
        """Return an explicitly set condition."""
        return self._conditions.get(name)

    def last(self, klass: type[T]) -> T | None:
        """Return the most recently added object of type ``klass``."""
        for value in reversed(self._objects):
            if isinstance(value, klass):
                return value
        return None

    def all(self, klass: type[T]) -> list[T]:
        """Return every added object of type ``klass``."""
        return [value for value in self._objects if isinstance(value, klass)]

    def get_value(self, variable: str, type_name: str) -> Any | None:
        """Resolve ``variable`` to a value whose type is called ``type_name``.

        A named variable must be bound exactly; the default binding ``it`` also
        matches the last added object of the requested type.
        """
        bound = self._bindings.get(variable)
        if bound is not None and satisfies_type(bound, type_name):
            return bound
        if variable != DEFAULT_BINDING:
            return None
        for value in reversed(self._objects):
            if satisfies_type(value, type_name):
                return value
        return None

    def spawn(self) -> InMemoryBlackboard:
        """Return an independent copy with a new identifier."""
        child = InMemoryBlackboard()
        child._bindings.update(self._bindings)
        child._conditions.update(self._conditions)
        child._objects.extend(self._objects)
        return child

    def info_string(self) -> str:
        """Summarise the blackboard contents."""
        bindings = ", ".join(f"{key}={type(value).__name__}" for key, value in self._bindings.items())
        conditions = ", ".join(f"{key}={value}" for key, value in self._conditions.items())
        return (
            f"InMemoryBlackboard(id={self._blackboard_id}, bindings=[{bindings}], "
            f"conditions=[{conditions}], objects={len(self._objects)})"
        )


__all__ = ["DEFAULT_BINDING", "Blackboard", "InMemoryBlackboard", "satisfies_type"]
