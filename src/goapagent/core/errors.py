"""Exceptions raised by the execution loop."""

from __future__ import annotations


class ActionExecutionError(RuntimeError):
    """Raised when an action handler fails; terminal for the owning process."""

    def __init__(self, action: str, cause: BaseException) -> None:
        """Wrap ``cause`` raised while executing ``action``."""
        self.action = action
        self.cause = cause
        super().__init__(f"action {action!r} failed: {type(cause).__name__}: {cause}")


class ProcessStateError(RuntimeError):
    """Raised when a process is driven in a way its current status does not allow."""


class UnknownActionError(LookupError):
    """Raised when a plan names an action the agent does not define exactly once."""


__all__ = ["ActionExecutionError", "ProcessStateError", "UnknownActionError"]
