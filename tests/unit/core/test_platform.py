"""Tests for running many processes on the platform's worker threads."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from goapagent.core.agent import ActionStatusCode, AgentBuilder
from goapagent.core.platform import AgentPlatform
from goapagent.core.process import AgentProcessStatusCode

if TYPE_CHECKING:
    from goapagent.core.agent import Agent
    from goapagent.core.process import ProcessContext


def counting_agent() -> Agent:
    """Agent that increments a counter bound on its blackboard until it reaches three."""
    builder = AgentBuilder("counter")

    @builder.action(post=["done"])
    def count(context: ProcessContext) -> None:
        value = context.blackboard.get("count") + 1
        context.blackboard.bind("count", value)
        context.blackboard.set_condition("done", value >= 3)

    builder.goal("done")
    return builder.build()


def test_processes_run_independently() -> None:
    """Each process has its own blackboard and history."""
    agent = counting_agent()
    with AgentPlatform(max_workers=4) as platform:
        processes = [platform.create_process(agent, {"count": start}) for start in range(3)]
        futures = [platform.run_async(process) for process in processes]
        results = [future.result(timeout=10) for future in futures]

    assert all(result.status is AgentProcessStatusCode.COMPLETED for result in results)
    assert [len(result.history) for result in results] == [3, 2, 1]
    assert all(result.blackboard.get("count") == 3 for result in results)
    assert {process.id for process in platform.processes} == {process.id for process in processes}
    assert platform.get_process(processes[0].id) is processes[0]
    assert platform.get_process("missing") is None


def test_process_cannot_run_on_two_workers() -> None:
    """Submitting a process that is already running is rejected."""
    release = threading.Event()
    started = threading.Event()
    builder = AgentBuilder("slow")

    @builder.action(post=["done"])
    def wait(context: ProcessContext) -> ActionStatusCode:
        started.set()
        release.wait(timeout=10)
        context.blackboard.set_condition("done", True)
        return ActionStatusCode.SUCCEEDED

    builder.goal("done")
    with AgentPlatform(max_workers=2) as platform:
        process = platform.create_process(builder.build())
        future = platform.run_async(process)
        assert started.wait(timeout=10)
        with pytest.raises(RuntimeError, match="already running"):
            platform.run_async(process)
        release.set()
        assert future.result(timeout=10).status is AgentProcessStatusCode.COMPLETED


def test_resume_async_continues_waiting_process() -> None:
    """A waiting process can be resumed on a worker thread."""
    builder = AgentBuilder("asker")

    @builder.action(post=["answered"])
    def ask(context: ProcessContext) -> ActionStatusCode:
        if context.blackboard.get("answer") is None:
            return context.await_input("answer")
        context.blackboard.set_condition("answered", True)
        return ActionStatusCode.SUCCEEDED

    builder.goal("answered")
    with AgentPlatform() as platform:
        process = platform.create_process(builder.build())
        assert platform.run_async(process).result(timeout=10).status is AgentProcessStatusCode.WAITING
        resumed = platform.resume_async(process, None, "yes").result(timeout=10)

    assert resumed.status is AgentProcessStatusCode.COMPLETED
    assert resumed.blackboard.get("answer") == "yes"
