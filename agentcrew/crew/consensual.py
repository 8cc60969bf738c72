"""Consensual strategy: every agent answers in parallel, the last one synthesizes."""

from concurrent.futures import Future
from functools import partial
from typing import List, Sequence

from .context import ExecutionContext
from .futures import compose, handle, outcome, settle_all
from .process import Process, ProcessStrategy
from .prompts import build_consensual_synthesis
from .tasks import Task, TaskResult


class ConsensualProcess(Process):
    strategy = ProcessStrategy.CONSENSUAL
    label = "CONSENSUAL_PROCESS"

    def execute(self, task: Task, agents: Sequence, context: ExecutionContext) -> Future:
        self._note(context, f"Starting execution for task: {task.description} (ID: {task.id})")
        if not agents:
            return self._no_agents(task, context)
        if len(agents) == 1:
            only = agents[0]
            self._note(context, f"Only one agent ({only.name}) available. Delegating task {task.id} directly.")
            return self._start_agent(only, task, context)

        self._begin(task)
        branches = []
        for agent in agents:
            # Each branch owns its task; the caller's task is never shared.
            branch = task.derive(inherit_human_input=True)
            self._note(context, f"Agent {agent.name} starting parallel execution for task {task.id}")
            branches.append(self._start_agent(agent, branch, context))

        flow = compose(
            settle_all(branches),
            partial(self._synthesize, task, list(agents), context),
        )
        return handle(flow, partial(self._finish, task, context))

    def _synthesize(
        self, parent: Task, agents: List, context: ExecutionContext, settled: List[Future],
    ) -> Future:
        outputs = []
        for agent, branch in zip(agents, settled):
            output, exc = outcome(branch)
            if exc is not None:
                self._note(context, f"Agent {agent.name} failed for task {parent.id}. Error: {exc}")
                output = f"Error: {exc}"
            else:
                self._note(context, f"Agent {agent.name} completed task {parent.id}. Output: {output}")
            outputs.append((agent.name, output))
        self._note(context, f"All agents completed parallel execution for task {parent.id}")

        synthesizer = agents[-1]
        synthesis = Task(
            description=build_consensual_synthesis(parent.description, outputs),
            input=dict(parent.input),
            expected_output=parent.expected_output,
            callback=partial(self._settle, parent),
        )
        self._note(
            context,
            f"Asking synthesizer agent {synthesizer.name} to synthesize final answer for task {parent.id}",
        )
        return self._start_agent(synthesizer, synthesis, context)

    def _finish(self, parent: Task, context: ExecutionContext, output, exc) -> str:
        if exc is None:
            return output
        self._note(context, f"An error occurred during the process for task {parent.id}. Error: {exc}")
        self._settle(parent, TaskResult.failure(f"Consensual process failed: {exc}"))
        return f"Error: Consensual process failed. {exc}"
