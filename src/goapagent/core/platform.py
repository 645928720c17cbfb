"""Run many agent processes side by side, each owned by one worker thread."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from goapagent.io.logging import StructuredLogger

from .blackboard import InMemoryBlackboard
from .process import AgentProcess

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Mapping
    from types import TracebackType

    from .agent import Agent
    from .planner import PlannerSettings
    from .termination import EarlyTerminationPolicy, ProcessOptions


class AgentPlatform:
    """Create processes and run them on a thread pool.

    Agents are shared read-only; every process gets its own blackboard so runs
    never share mutable state.
    """

    def __init__(
        self,
        *,
        max_workers: int = 4,
        planner_settings: PlannerSettings | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Create a platform backed by ``max_workers`` threads."""
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="goapagent")
        self._planner_settings = planner_settings
        self._logger = logger or StructuredLogger(name="goapagent.platform", level="WARNING")
        self._processes: dict[str, AgentProcess] = {}
        self._running: set[str] = set()
        self._lock = threading.Lock()

    def create_process(
        self,
        agent: Agent,
        bindings: Mapping[str, Any] | None = None,
        *,
        options: ProcessOptions | None = None,
        termination_policy: EarlyTerminationPolicy | None = None,
    ) -> AgentProcess:
        """Create and register a RUNNING process seeded with ``bindings``."""
        blackboard = InMemoryBlackboard().bind_all(bindings or {})
        process = AgentProcess(
            agent,
            blackboard,
            options=options,
            planner_settings=self._planner_settings,
            termination_policy=termination_policy,
            logger=self._logger,
        )
        with self._lock:
            self._processes[process.id] = process
        self._logger.info("process created", process_id=process.id, agent=agent.name)
        return process

    def run_async(self, process: AgentProcess) -> Future[AgentProcess]:
        """Run ``process`` on a worker thread; a process runs on at most one worker at a time."""
        with self._lock:
            if process.id in self._running:
                msg = f"process {process.id} is already running"
                raise RuntimeError(msg)
            self._running.add(process.id)
            self._processes.setdefault(process.id, process)

        def _run() -> AgentProcess:
            try:
                return process.run()
            finally:
                with self._lock:
                    self._running.discard(process.id)

        return self._executor.submit(_run)

    def resume_async(self, process: AgentProcess, binding: str | None, value: Any) -> Future[AgentProcess]:
        """Supply input to a WAITING process and continue it on a worker thread."""
        with self._lock:
            if process.id in self._running:
                msg = f"process {process.id} is already running"
                raise RuntimeError(msg)
            self._running.add(process.id)

        def _resume() -> AgentProcess:
            try:
                return process.resume(binding, value)
            finally:
                with self._lock:
                    self._running.discard(process.id)

        return self._executor.submit(_resume)

    def get_process(self, process_id: str) -> AgentProcess | None:
        """Return the registered process with ``process_id``."""
        with self._lock:
            return self._processes.get(process_id)

    @property
    def processes(self) -> list[AgentProcess]:
        """Return every registered process."""
        with self._lock:
            return list(self._processes.values())

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting work and optionally wait for running processes."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> AgentPlatform:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.shutdown()


__all__ = ["AgentPlatform"]
