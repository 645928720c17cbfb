"""CLI entry point for goapagent built with Typer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from goapagent.cli.runtime import PlanningContext, build_planning_context
from goapagent.core.explain import explain_plan
from goapagent.core.models import GoapPlanningSystem

if TYPE_CHECKING:
    from collections.abc import Sequence

    from goapagent.core.models import Plan


app = typer.Typer(add_completion=False, no_args_is_help=True)


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False))


def _prepare_context(config_path: Path, state: list[str] | None, *, silence_logs: bool) -> PlanningContext:
    try:
        return build_planning_context(config_path, state or [], silence_logs=silence_logs)
    except FileNotFoundError as exc:
        typer.echo(f"Configuration file not found: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except (ValueError, ValidationError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc


def _plan_payload(plan: Plan) -> dict[str, Any]:
    return {
        "goal": plan.goal.name,
        "actions": plan.action_names(),
        "cost": plan.cost,
        "value": plan.value,
        "net_value": plan.net_value,
    }


def _select_plan(context: PlanningContext, goal_name: str | None) -> Plan | None:
    system = context.system
    if goal_name is not None:
        goal = system.goal_named(goal_name)
        if goal is None:
            typer.echo(f"Unknown goal: {goal_name}", err=True)
            raise typer.Exit(code=2)
        system = GoapPlanningSystem.for_goal(system.actions, goal)
    return context.planner.best_value_plan_to_any_goal(system)


@app.callback()
def cli_root() -> None:
    """Top-level CLI group for goapagent."""


ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to a domain TOML file."),
]
StateOption = Annotated[
    list[str] | None,
    typer.Option("--state", "-s", help="Condition value as NAME=true|false|unknown."),
]
GoalOption = Annotated[str | None, typer.Option(help="Plan for this goal only.")]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", "--json-output", help="Emit JSON instead of text."),
]


@app.command("plan")
def plan_command(
    config: ConfigOption,
    state: StateOption = None,
    goal: GoalOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Display the best plan from the given state."""
    context = _prepare_context(config, state, silence_logs=json_output)
    plan = _select_plan(context, goal)

    if json_output:
        _emit_json(
            {
                "state": {name: value.value for name, value in context.state.as_dict().items()},
                "plan": _plan_payload(plan) if plan is not None else None,
            },
        )
    elif plan is None:
        typer.echo("No plan found.")
    else:
        lines = [
            f"Goal: {plan.goal.name}",
            f"Cost: {plan.cost:.2f} (net value {plan.net_value:.2f})",
            "Actions:",
        ]
        lines.extend(
            f"  {index}. {action.name} (cost={action.cost:.2f})"
            for index, action in enumerate(plan.actions, start=1)
        )
        if plan.is_complete():
            lines.append("  (goal already satisfied)")
        typer.echo("\n".join(lines))

    if plan is None:
        raise typer.Exit(code=1)


@app.command("plans")
def plans_command(
    config: ConfigOption,
    state: StateOption = None,
    json_output: JsonFlag = False,
) -> None:
    """List every achievable plan, best net value first."""
    context = _prepare_context(config, state, silence_logs=json_output)
    plans = context.planner.plans_to_goals(context.system)

    if json_output:
        _emit_json({"plans": [_plan_payload(plan) for plan in plans]})
        return

    if not plans:
        typer.echo("No achievable goals.")
        return
    lines = [
        f"{plan.goal.name}: {' -> '.join(plan.action_names()) or '(satisfied)'} "
        f"[cost={plan.cost:.2f}, net value={plan.net_value:.2f}]"
        for plan in plans
    ]
    typer.echo("\n".join(lines))


@app.command("explain")
def explain_command(
    config: ConfigOption,
    state: StateOption = None,
    goal: GoalOption = None,
    json_output: JsonFlag = False,
) -> None:
    """Explain each action in the best plan."""
    context = _prepare_context(config, state, silence_logs=json_output)
    plan = _select_plan(context, goal)
    if plan is None:
        typer.echo("No plan found.", err=not json_output)
        raise typer.Exit(code=1)
    explanations = explain_plan(plan)

    if json_output:
        _emit_json(
            {
                "plan": _plan_payload(plan),
                "explanations": [
                    {
                        "step": explanation.index,
                        "action": explanation.action.name,
                        "reason": explanation.reason,
                        "relied_on": {name: value.value for name, value in explanation.relied_on.items()},
                        "changes": {name: value.value for name, value in explanation.changes.items()},
                    }
                    for explanation in explanations
                ],
            },
        )
        return

    lines = [f"Goal: {plan.goal.name} (cost {plan.cost:.2f})", "Explanations:"]
    for explanation in explanations:
        lines.append(f"  {explanation.index}. {explanation.action.name} (cost={explanation.action.cost:.2f})")
        lines.append(f"     reason: {explanation.reason}")
    typer.echo("\n".join(lines))


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the goapagent CLI and return the exit status."""
    command = typer.main.get_command(app)
    try:
        result = command.main(args=list(argv or []), prog_name="goapagent", standalone_mode=False)
    except SystemExit as exc:  # pragma: no cover - Typer propagates exit codes via SystemExit
        return int(exc.code or 0)
    except typer.Exit as exc:
        return exc.exit_code
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
