"""Crew facade: binds agents to one strategy and runs tasks through it."""

import threading
from concurrent.futures import Future
from typing import List, Optional, Sequence

from ..logger import get_logger
from .context import ExecutionContext
from .futures import failed, handle
from .process import Process, ProcessStrategy, create_process
from .tasks import Task

_log = get_logger(__name__)


class Crew:
    """A fixed team of agents and the strategy that coordinates them.

    The strategy is resolved when the crew is built, so an unknown strategy
    raises :class:`~agentcrew.errors.UnknownStrategyError` here rather than
    on ``execute``. Every ``execute`` call gets a fresh
    :class:`ExecutionContext`; the future it returns never fails, and
    unexpected errors arrive as ``"Error during crew execution: ..."``.
    """

    def __init__(
        self,
        agents: Sequence,
        strategy=ProcessStrategy.SEQUENTIAL,
        sequential_callback: str = "final",
    ):
        self.agents: List = list(agents)
        self.strategy = ProcessStrategy.parse(strategy)
        self.process: Process = create_process(
            self.strategy, sequential_callback=sequential_callback,
        )
        self._last_context: Optional[ExecutionContext] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, strategy=None, llm=None) -> "Crew":
        """Build a crew from the ``agents:`` section of a loaded Config."""
        from .roles import create_agent, load_agent_specs

        agents = [create_agent(spec, config, llm=llm) for spec in load_agent_specs(config)]
        return cls(
            agents,
            strategy=strategy or config.strategy,
            sequential_callback=config.sequential_callback,
        )

    @property
    def last_context(self) -> Optional[ExecutionContext]:
        """Context of the most recent ``execute`` call."""
        with self._lock:
            return self._last_context

    def execute(self, task: Task, context: Optional[ExecutionContext] = None) -> Future:
        context = context or ExecutionContext()
        with self._lock:
            self._last_context = context
        context.log(
            f"Crew starting {self.strategy.value} run for task {task.id} "
            f"with {len(self.agents)} agent(s)"
        )

        try:
            started = self.process.execute(task, self.agents, context)
        except Exception as e:
            _log.exception("Crew run %s failed to start", context.run_id)
            started = failed(e)

        def _finish(result, exc):
            if exc is not None:
                context.log(f"Crew execution failed: {exc}")
                return f"Error during crew execution: {exc}"
            context.log("Crew execution finished")
            return result

        return handle(started, _finish)

    def shutdown(self, wait: bool = True) -> None:
        for agent in self.agents:
            agent.shutdown(wait=wait)

    def __enter__(self) -> "Crew":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
