"""Structured logging utilities."""

from __future__ import annotations

import json
from collections.abc import Mapping as MappingABC
from datetime import datetime, UTC
import re
import sys
from typing import Any, TextIO, cast
from collections.abc import Mapping

from pydantic import BaseModel, SecretStr, field_validator

LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

_SENSITIVE_PATTERNS = [
    (r"https://[^:/\s]+:[^@\s]+@", "https://***:***@"),
    (r"token[=:]\s*\S+", "token=***"),
    (r"api[_-]?key[=:]\s*\S+", "api_key=***"),
]


class _SanitizedText(BaseModel):
    """Model that masks credentials embedded in log text."""

    text: SecretStr

    @field_validator("text", mode="before")
    @classmethod
    def _mask_sensitive_data(cls, value: Any) -> str:
        text = str(value)
        for pattern, replacement in _SENSITIVE_PATTERNS:
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
        return text


def _sanitize_log_output(text: str) -> str:
    sanitized = _SanitizedText.model_validate({"text": text})
    return sanitized.text.get_secret_value()


def _sanitize_log_value(value: Any) -> Any:
    """Sanitise strings nested in structured log data and make the rest JSON friendly."""
    if isinstance(value, str):
        return _sanitize_log_output(value)
    if isinstance(value, bool | int | float) or value is None:
        return value
    if isinstance(value, MappingABC):
        typed_mapping = cast("Mapping[Any, Any]", value)
        return {str(key): _sanitize_log_value(item) for key, item in typed_mapping.items()}
    if isinstance(value, list | tuple | set | frozenset):
        typed_items = cast("list[Any]", list(value))
        return [_sanitize_log_value(item) for item in typed_items]
    if isinstance(value, BaseModel):
        return _sanitize_log_value(value.model_dump(mode="json"))
    return _sanitize_log_output(str(value))


class StructuredLogger:
    """Structured logger emitting JSON lines or single-line text records."""

    def __init__(
        self,
        *,
        name: str,
        json_mode: bool = False,
        stream: TextIO | None = None,
        level: str = "INFO",
        context: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialise the structured logger."""
        if level.upper() not in LEVELS:
            msg = f"unknown log level: {level}"
            raise ValueError(msg)
        self._name = name
        self._json_mode = json_mode
        self._stream: TextIO = stream or sys.stderr
        self._level = level.upper()
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        """Return the logger name."""
        return self._name

    @property
    def json_mode(self) -> bool:
        """Return whether JSON mode is enabled."""
        return self._json_mode

    @property
    def level(self) -> str:
        """Return the minimum level that is emitted."""
        return self._level

    def bind(self, **fields: Any) -> StructuredLogger:
        """Return a child logger adding ``fields`` to every record."""
        return StructuredLogger(
            name=self._name,
            json_mode=self._json_mode,
            stream=self._stream,
            level=self._level,
            context={**self._context, **fields},
        )

    def is_enabled_for(self, level: str) -> bool:
        """Return whether records at ``level`` are emitted."""
        return LEVELS[level] >= LEVELS[self._level]

    def debug(self, message: str, **fields: Any) -> None:
        """Log a DEBUG-level message."""
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        """Log an INFO-level message."""
        self._emit("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        """Log a WARNING-level message."""
        self._emit("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        """Log an ERROR-level message."""
        self._emit("ERROR", message, fields)

    def _emit(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if not self.is_enabled_for(level):
            return
        timestamp = datetime.now(UTC).isoformat()
        sanitised_message = _sanitize_log_output(message)
        merged = {**self._context, **fields}
        sanitised_fields = {key: _sanitize_log_value(value) for key, value in merged.items()}
        if self._json_mode:
            payload: dict[str, Any] = {
                "timestamp": timestamp,
                "level": level,
                "logger": self._name,
                "message": sanitised_message,
            }
            payload.update(sanitised_fields)
            self._stream.write(json.dumps(payload, ensure_ascii=False) + "\n")
        else:
            line = f"[{timestamp}] {level:<7} {self._name}: {sanitised_message}"
            if sanitised_fields:
                extras = " ".join(
                    f"{key}={json.dumps(value, ensure_ascii=False)}" for key, value in sanitised_fields.items()
                )
                line = f"{line} | {extras}"
            self._stream.write(line + "\n")
        self._stream.flush()


def null_logger(name: str = "goapagent") -> StructuredLogger:
    """Return a logger that only emits errors, to stderr."""
    return StructuredLogger(name=name, level="ERROR")


__all__ = ["LEVELS", "StructuredLogger", "null_logger"]
