"""Configuration loading utilities for goapagent."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from goapagent.core.models import GoapAction, GoapGoal, GoapPlanningSystem
from goapagent.core.planner import PlannerSettings
from goapagent.core.termination import ProcessOptions


class LoggingSettings(BaseModel):
    """Logging options from the ``[logging]`` section."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_mode: bool = Field(default=False, alias="json")

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def _empty_actions() -> list[GoapAction]:
    return []


def _empty_goals() -> list[GoapGoal]:
    return []


class Config(BaseModel):
    """Top level configuration schema validated from TOML files."""

    planner: PlannerSettings = Field(default_factory=PlannerSettings)
    process: ProcessOptions = Field(default_factory=ProcessOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    actions: list[GoapAction] = Field(default_factory=_empty_actions)
    goals: list[GoapGoal] = Field(default_factory=_empty_goals)

    model_config = ConfigDict(extra="forbid")

    def planning_system(self) -> GoapPlanningSystem:
        """Return the declared actions and goals as a planning system."""
        return GoapPlanningSystem(actions=tuple(self.actions), goals=tuple(self.goals))


def load_config(
    *,
    path: Path | str | None = None,
    data: str | bytes | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Config:
    """Load and validate configuration from TOML data.

    Exactly one of ``path`` or ``data`` must be provided. ``overrides`` allows
    callers to patch specific sections before validation, which is useful for
    CLI flags or tests.
    """
    if (path is None and data is None) or (path is not None and data is not None):
        msg = "Provide exactly one of 'path' or 'data' when loading configuration."
        raise ValueError(msg)

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        if not path.is_file():
            msg = f"Configuration path is not a file: {path}"
            raise ValueError(msg)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Unable to read configuration file {path}: {exc}"
            raise ValueError(msg) from exc
    else:
        text = data if isinstance(data, str) else cast("bytes", data).decode()

    raw_content: dict[str, Any] = tomllib.loads(text)

    if overrides is not None:
        typed_overrides: dict[str, Any] = {str(key): value for key, value in overrides.items()}
        raw_content = _merge_dicts(dict(raw_content), typed_overrides)

    return Config.model_validate(_normalise(raw_content))


def _merge_dicts(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if (
            key in base
            and isinstance(base[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            nested_base = cast("dict[str, Any]", dict(base[key]))
            nested_updates = cast("Mapping[str, Any]", value)
            base[key] = _merge_dicts(nested_base, nested_updates)
        else:
            base[key] = value
    return base


def _merge_shorthand(entry: Mapping[str, Any], shorthand: str, target: str) -> dict[str, Any]:
    """Fold a ``pre``/``post`` name list into the explicit mapping it abbreviates."""
    result = dict(entry)
    names = result.pop(shorthand, None)
    if names is None:
        return result
    if isinstance(names, str):
        names = [names]
    explicit = dict(result.get(target) or {})
    merged: dict[str, Any] = {str(name): "TRUE" for name in names}
    merged.update(explicit)
    result[target] = merged
    return result


def _normalise(raw: Mapping[str, Any]) -> dict[str, Any]:
    actions = []
    for entry in raw.get("actions", []):
        action = _merge_shorthand(entry, "pre", "preconditions")
        actions.append(_merge_shorthand(action, "post", "effects"))
    goals = [_merge_shorthand(entry, "pre", "preconditions") for entry in raw.get("goals", [])]

    config_dict: dict[str, Any] = {
        "planner": raw.get("planner", {}),
        "process": raw.get("process", {}),
        "logging": raw.get("logging", {}),
        "actions": actions,
        "goals": goals,
    }
    unknown = set(raw) - set(config_dict)
    for key in unknown:
        config_dict[key] = raw[key]
    return config_dict


__all__ = ["Config", "LoggingSettings", "load_config"]
