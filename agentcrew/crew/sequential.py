"""Sequential strategy: a strict hand-off chain through the agents in order."""

import uuid
from concurrent.futures import Future
from enum import Enum
from functools import partial
from typing import Optional, Sequence

from ..errors import StepFailedError
from .context import ExecutionContext
from .futures import compose, handle, resolved, then
from .process import Process, ProcessStrategy
from .tasks import Task, TaskResult, TaskStatus

PROCESS_FAILED = "Error: Process failed or produced no result."


class SequentialCallback(str, Enum):
    FINAL = "final"        # the caller's callback fires once, when the chain ends
    PER_HOP = "per-hop"    # legacy: once per successful hop


class SequentialProcess(Process):
    """Agent *i* works on agent *i-1*'s output; the last output is the result.

    Hops run on derived tasks. The first hop inherits the caller's human-input
    flag; later hops receive the previous output as their description and a
    snapshot of shared memory as input. A failed hop ends the chain.
    """

    strategy = ProcessStrategy.SEQUENTIAL
    label = "SEQUENTIAL_PROCESS"

    def __init__(self, callback_mode="final"):
        self.callback_mode = SequentialCallback(callback_mode)

    def execute(self, task: Task, agents: Sequence, context: ExecutionContext) -> Future:
        if not agents:
            return self._no_agents(task, context)

        run_id = f"{task.description}_{uuid.uuid4()}"
        self._note(context, f"Starting process for task: {task.description} with run ID: {run_id}")
        self._begin(task)

        chain: Future = resolved(None)
        for index, agent in enumerate(agents):
            chain = compose(chain, partial(self._run_hop, task, agent, index, run_id, context))
        return handle(chain, partial(self._finish, task, context))

    def _run_hop(
        self, parent: Task, agent, index: int, run_id: str, context: ExecutionContext,
        previous: Optional[str],
    ) -> Future:
        if index == 0:
            hop = parent.derive(inherit_human_input=True)
        else:
            hop = parent.derive(description=previous, input=context.shared_snapshot())
        self._note(context, f"Agent {agent.name} starting task: {hop.description}")
        context.store_task_data(run_id, f"{agent.name}_input", dict(hop.input))
        return then(
            self._start_agent(agent, hop, context),
            partial(self._after_hop, parent, hop, agent, run_id, context),
        )

    def _after_hop(
        self, parent: Task, hop: Task, agent, run_id: str, context: ExecutionContext, output: str,
    ) -> str:
        if hop.status is TaskStatus.FAILED:
            self._note(context, f"Agent {agent.name} failed task: {hop.description}. Error: {output}")
            raise StepFailedError(agent.name, output)
        context.store_task_data(run_id, f"{agent.name}_output", output)
        self._note(context, f"Agent {agent.name} finished task. Output: {output}")
        if self.callback_mode is SequentialCallback.PER_HOP and parent.callback is not None:
            parent.callback(TaskResult.success(output))
        return output

    def _finish(self, parent: Task, context: ExecutionContext, output, exc) -> str:
        notify = self.callback_mode is SequentialCallback.FINAL
        if exc is not None or output is None:
            reason = str(exc) if exc is not None else "no result"
            self._note(context, f"Process finished with failure: {reason}")
            self._settle(parent, TaskResult.failure(reason), notify=notify)
            return PROCESS_FAILED
        self._note(context, f"Process finished. Final output: {output}")
        self._settle(parent, TaskResult.success(output), notify=notify)
        return output
