"""Execution loop driving one agent run: observe, plan, execute one action, repeat."""

from __future__ import annotations

import datetime as dt
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from goapagent.io.logging import StructuredLogger

from .agent import ActionStatus, ActionStatusCode, AgentAction, StuckHandlingResultCode
from .conditions import ConditionDetermination
from .blackboard import InMemoryBlackboard
from .determiner import BlackboardWorldStateDeterminer
from .errors import ActionExecutionError, ProcessStateError
from .models import GoapPlanningSystem
from .planner import AStarPlanner, PlannerSettings
from .termination import ProcessOptions

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from .agent import Agent
    from .blackboard import Blackboard
    from .models import GoapAction, GoapGoal, Plan
    from .termination import EarlyTermination, EarlyTerminationPolicy
    from .world import WorldState

PENDING_INPUT_BINDING = "pendingInput"


class AgentProcessStatusCode(str, Enum):
    """Lifecycle of a process; WAITING is the only non-running state that can resume."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    STUCK = "STUCK"
    WAITING = "WAITING"
    TERMINATED = "TERMINATED"


@dataclass(frozen=True, slots=True)
class ActionInvocation:
    """Record of one executed action."""

    action_name: str
    cost: float
    timestamp: dt.datetime
    running_time: dt.timedelta
    status: ActionStatusCode


@dataclass(frozen=True, slots=True)
class PendingInput:
    """Request for external input left on the blackboard while a process waits."""

    action: str
    binding: str
    prompt: str = ""


@dataclass(slots=True)
class ProcessContext:
    """What an action handler or condition sees of the running process."""

    process: AgentProcess

    @property
    def blackboard(self) -> Blackboard:
        """Return the process blackboard."""
        return self.process.blackboard

    @property
    def logger(self) -> StructuredLogger:
        """Return the process logger."""
        return self.process.logger

    def await_input(self, binding: str, prompt: str = "") -> ActionStatusCode:
        """Leave a :class:`PendingInput` on the blackboard and ask the loop to wait.

        The answer is later supplied through :meth:`AgentProcess.resume` under
        ``binding``.
        """
        action = self.process.current_action or ""
        self.blackboard.bind(PENDING_INPUT_BINDING, PendingInput(action=action, binding=binding, prompt=prompt))
        return ActionStatusCode.WAITING


class _SnapshotDeterminer:
    """Serve one tick's world state, delegating forced evaluations."""

    def __init__(self, state: WorldState, delegate: BlackboardWorldStateDeterminer) -> None:
        self._state = state
        self._delegate = delegate

    def determine_world_state(self) -> WorldState:
        return self._state

    def determine_condition(self, condition: str) -> ConditionDetermination:
        return self._delegate.determine_condition(condition)


class AgentProcess:
    """Single run of an agent, advanced one action per :meth:`tick`.

    A process is single threaded: ``tick`` is not re-entrant and must not be
    called concurrently. ``status`` may be read from any thread.
    """

    def __init__(
        self,
        agent: Agent,
        blackboard: Blackboard | None = None,
        *,
        options: ProcessOptions | None = None,
        planner_settings: PlannerSettings | None = None,
        termination_policy: EarlyTerminationPolicy | None = None,
        logger: StructuredLogger | None = None,
        process_id: str | None = None,
    ) -> None:
        """Create a RUNNING process for ``agent``."""
        self._id = process_id or str(uuid.uuid4())
        self._agent = agent
        self._blackboard: Blackboard = blackboard if blackboard is not None else InMemoryBlackboard()
        self._options = options or ProcessOptions()
        self._planner_settings = planner_settings or PlannerSettings()
        self._policy = self._options.termination_policy(termination_policy)
        base_logger = logger or StructuredLogger(name="goapagent.process", level="WARNING")
        self._logger = base_logger.bind(process_id=self._id, agent=agent.name)
        self._status = AgentProcessStatusCode.RUNNING
        self._status_lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._history: list[ActionInvocation] = []
        self._goal: GoapGoal | None = None
        self._last_world_state: WorldState | None = None
        self._last_plan: Plan | None = None
        self._current_action: str | None = None
        self._failure: ActionExecutionError | None = None
        self._termination: EarlyTermination | None = None
        self._context = ProcessContext(self)
        self._determiner = BlackboardWorldStateDeterminer(self._context)

    @property
    def id(self) -> str:
        """Return the process identifier."""
        return self._id

    @property
    def agent(self) -> Agent:
        """Return the agent definition."""
        return self._agent

    @property
    def blackboard(self) -> Blackboard:
        """Return the process blackboard."""
        return self._blackboard

    @property
    def logger(self) -> StructuredLogger:
        """Return the process logger."""
        return self._logger

    @property
    def context(self) -> ProcessContext:
        """Return the context handed to actions and conditions."""
        return self._context

    @property
    def options(self) -> ProcessOptions:
        """Return the process options."""
        return self._options

    @property
    def status(self) -> AgentProcessStatusCode:
        """Return the current status."""
        with self._status_lock:
            return self._status

    def _set_status(self, status: AgentProcessStatusCode) -> None:
        with self._status_lock:
            previous, self._status = self._status, status
        if previous is not status:
            self._logger.info("status changed", previous=previous.value, status=status.value)

    @property
    def history(self) -> list[ActionInvocation]:
        """Return the executed actions, oldest first."""
        return list(self._history)

    @property
    def goal(self) -> GoapGoal | None:
        """Return the goal the process is currently pursuing."""
        return self._goal

    @property
    def last_world_state(self) -> WorldState | None:
        """Return the world state observed by the latest tick."""
        return self._last_world_state

    @property
    def last_plan(self) -> Plan | None:
        """Return the plan formulated by the latest tick."""
        return self._last_plan

    @property
    def current_action(self) -> str | None:
        """Return the name of the action being executed, if any."""
        return self._current_action

    @property
    def failure(self) -> ActionExecutionError | None:
        """Return the error that failed the process, if any."""
        return self._failure

    @property
    def termination(self) -> EarlyTermination | None:
        """Return the early termination that stopped the process, if any."""
        return self._termination

    @property
    def pending_input(self) -> PendingInput | None:
        """Return the outstanding input request while WAITING."""
        value = self._blackboard.get(PENDING_INPUT_BINDING)
        return value if isinstance(value, PendingInput) else None

    def cost(self) -> float:
        """Return the cumulative cost of executed actions."""
        return sum(invocation.cost for invocation in self._history)

    def tick(self) -> AgentProcess:
        """Observe, plan and execute at most one action."""
        if not self._tick_lock.acquire(blocking=False):
            msg = f"process {self._id} is already ticking"
            raise ProcessStateError(msg)
        try:
            if self.status is not AgentProcessStatusCode.RUNNING:
                msg = f"process {self._id} cannot tick while {self.status.value}"
                raise ProcessStateError(msg)
            self._tick()
        finally:
            self._tick_lock.release()
        return self

    def _tick(self) -> None:
        world_state = self._determiner.determine_world_state()
        self._last_world_state = world_state
        self._logger.debug("tick", world_state=world_state.info_string())

        plan = self._formulate_plan(world_state)
        self._last_plan = plan
        if plan is None:
            self._logger.warning(
                "no plan to any goal",
                world_state=world_state.info_string(),
                goals=[goal.name for goal in self._agent.goals],
            )
            self._set_status(AgentProcessStatusCode.STUCK)
            return

        if plan.is_complete():
            self._logger.info("goal achieved", goal=plan.goal.name, actions=len(self._history))
            self._set_status(AgentProcessStatusCode.COMPLETED)
            return

        self._logger.info("plan formulated", goal=plan.goal.name, plan=plan.action_names(), cost=plan.cost)
        action = self._agent.action_named(plan.actions[0].name)
        status = self._execute(action)
        self._set_status(_process_status_for(status.status))

    def _formulate_plan(self, world_state: WorldState) -> Plan | None:
        system = self._agent.planning_system
        if self._goal is not None and not self._options.allow_goal_change:
            system = GoapPlanningSystem(actions=system.actions, goals=(self._goal,))
        planner = AStarPlanner(
            _SnapshotDeterminer(world_state, self._determiner),
            settings=self._planner_settings,
            logger=self._logger,
        )
        plan = planner.best_value_plan_to_any_goal(system)
        if plan is None:
            return None
        if self._goal is not None and self._goal.name != plan.goal.name:
            self._logger.info("goal changed", previous=self._goal.name, goal=plan.goal.name)
        self._goal = plan.goal
        return plan

    def _execute(self, action: GoapAction) -> ActionStatus:
        self._current_action = action.name
        timestamp = dt.datetime.now(dt.UTC)
        started = time.perf_counter()
        try:
            if isinstance(action, AgentAction) and action.handler is not None:
                code = action.execute(self._context)
            else:
                code = self._apply_declared_effects(action)
        except Exception as exc:  # noqa: BLE001 - handler errors end this run only
            code = ActionStatusCode.FAILED
            self._failure = ActionExecutionError(action.name, exc)
            self._logger.error("action failed", action=action.name, error=str(exc))
        finally:
            self._current_action = None
        running_time = dt.timedelta(seconds=time.perf_counter() - started)
        self._history.append(
            ActionInvocation(
                action_name=action.name,
                cost=action.cost,
                timestamp=timestamp,
                running_time=running_time,
                status=code,
            ),
        )
        self._logger.info(
            "action executed",
            action=action.name,
            status=code.value,
            running_time_ms=round(running_time.total_seconds() * 1000, 3),
        )
        return ActionStatus(status=code, running_time=running_time)

    def _apply_declared_effects(self, action: GoapAction) -> ActionStatusCode:
        """Execute a handler-less action by recording its effects as blackboard conditions."""
        for name, determination in action.effects.items():
            if determination is not ConditionDetermination.UNKNOWN:
                self._blackboard.set_condition(name, determination is ConditionDetermination.TRUE)
        return ActionStatusCode.SUCCEEDED

    def run(self) -> AgentProcess:
        """Tick until the process leaves RUNNING or a termination policy fires."""
        if not self._agent.goals:
            msg = f"agent {self._agent.name} has no goals"
            raise ProcessStateError(msg)

        while True:
            while self.status is AgentProcessStatusCode.RUNNING:
                termination = self._policy.should_terminate(self)
                if termination is not None:
                    self._termination = termination
                    self._logger.info("early termination", policy=termination.policy, reason=termination.reason)
                    self._set_status(AgentProcessStatusCode.TERMINATED)
                    break
                self.tick()
            if self.status is AgentProcessStatusCode.STUCK and self._handle_stuck():
                self._set_status(AgentProcessStatusCode.RUNNING)
                continue
            break

        if self.status is AgentProcessStatusCode.WAITING:
            pending = self.pending_input
            self._logger.info("waiting for input", binding=pending.binding if pending else None)
        return self

    def _handle_stuck(self) -> bool:
        handler = self._agent.stuck_handler
        if handler is None:
            self._logger.warning("process stuck without a handler")
            return False
        before = self._last_world_state
        result = handler(self)
        if result.code is not StuckHandlingResultCode.REPLAN:
            self._logger.warning("stuck handler found no resolution", handler_message=result.message)
            return False
        if self._determiner.determine_world_state() == before:
            self._logger.warning("stuck handler requested replan without changing the world", handler_message=result.message)
            return False
        self._logger.info("stuck handler requested replan", handler_message=result.message)
        return True

    def resume(self, binding: str | None = None, value: Any = None) -> AgentProcess:
        """Supply the awaited input and continue running.

        ``binding`` defaults to the one named by the pending request.
        """
        if self.status is not AgentProcessStatusCode.WAITING:
            msg = f"process {self._id} is not waiting (status={self.status.value})"
            raise ProcessStateError(msg)
        pending = self.pending_input
        target = binding or (pending.binding if pending else None)
        if target is None:
            msg = "no binding given and no pending input request"
            raise ProcessStateError(msg)
        self._blackboard.bind(target, value)
        self._blackboard.unbind(PENDING_INPUT_BINDING)
        self._set_status(AgentProcessStatusCode.RUNNING)
        return self.run()

    def info_string(self) -> str:
        """Summarise the process for logs and diagnostics."""
        return (
            f"AgentProcess(id={self._id}, agent={self._agent.name}, status={self.status.value}, "
            f"goal={self._goal.name if self._goal else None}, actions={len(self._history)}, cost={self.cost():.2f})"
        )


def _process_status_for(code: ActionStatusCode) -> AgentProcessStatusCode:
    if code is ActionStatusCode.SUCCEEDED:
        return AgentProcessStatusCode.RUNNING
    if code is ActionStatusCode.WAITING:
        return AgentProcessStatusCode.WAITING
    return AgentProcessStatusCode.FAILED


__all__ = [
    "PENDING_INPUT_BINDING",
    "ActionInvocation",
    "AgentProcess",
    "AgentProcessStatusCode",
    "PendingInput",
    "ProcessContext",
    "ProcessOptions",
]
