"""Orchestration strategies: the closed set and their shared plumbing."""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import Sequence

from ..errors import UnknownStrategyError
from ..logger import get_logger
from .context import ExecutionContext
from .futures import failed, resolved
from .tasks import Task, TaskResult, TaskStatus

_log = get_logger(__name__)

NO_AGENTS_ERROR = "No agents available."


class ProcessStrategy(str, Enum):
    SEQUENTIAL = "sequential"
    HIERARCHICAL = "hierarchical"
    CONSENSUAL = "consensual"

    @classmethod
    def parse(cls, value) -> "ProcessStrategy":
        """Accept a member or its (case-insensitive) value; reject anything else."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise UnknownStrategyError(value)


class Process(ABC):
    """Binds a task and an ordered list of agents into one final result."""

    strategy: ProcessStrategy
    label = "PROCESS"

    @abstractmethod
    def execute(self, task: Task, agents: Sequence, context: ExecutionContext) -> Future:
        """Run ``task`` across ``agents``; the future resolves to the final string."""

    def _note(self, context: ExecutionContext, message: str) -> None:
        context.log(f"{self.label}: {message}")

    @staticmethod
    def _begin(task: Task) -> None:
        if task.status is TaskStatus.PENDING:
            task.set_status(TaskStatus.IN_PROGRESS)

    @staticmethod
    def _start_agent(agent, task: Task, context: ExecutionContext) -> Future:
        try:
            return agent.perform_task(task, context)
        except Exception as exc:
            _log.warning("Agent %s raised while starting task %s: %s", agent.name, task.id, exc)
            return failed(exc)

    @staticmethod
    def _settle(task: Task, result: TaskResult, notify: bool = True) -> None:
        """Move a strategy-owned task to ``result``'s terminal state.

        With ``notify`` the task's callback receives ``result``; already
        terminal tasks are left untouched.
        """
        if task.is_terminal:
            _log.debug("Task %s already %s; ignoring %s", task.id, task.status.name, result.status.name)
            return
        if result.ok and task.status is not TaskStatus.IN_PROGRESS:
            # PENDING or AWAITING_HUMAN_INPUT cannot complete directly.
            task.set_status(TaskStatus.IN_PROGRESS)
        if notify:
            task.complete_task(result)
        else:
            task.set_status(result.status)

    def _no_agents(self, task: Task, context: ExecutionContext) -> Future:
        self._note(context, "No agents available. Failing task.")
        self._settle(task, TaskResult.failure(NO_AGENTS_ERROR))
        return resolved(f"Error: {NO_AGENTS_ERROR}")


def create_process(strategy, **options) -> Process:
    """Build the process for ``strategy``.

    Options understood: ``sequential_callback`` (``"final"`` or ``"per-hop"``)
    for the sequential strategy.
    """
    kind = ProcessStrategy.parse(strategy)
    if kind is ProcessStrategy.SEQUENTIAL:
        from .sequential import SequentialProcess
        return SequentialProcess(callback_mode=options.get("sequential_callback", "final"))
    if kind is ProcessStrategy.HIERARCHICAL:
        from .hierarchical import HierarchicalProcess
        return HierarchicalProcess()
    from .consensual import ConsensualProcess
    return ConsensualProcess()
