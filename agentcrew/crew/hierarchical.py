"""Hierarchical strategy: a manager plans, workers execute, the manager synthesizes."""

from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass, field
from functools import partial
from typing import Dict, List, Sequence

from ..errors import PlanParseError, StepFailedError
from .context import ExecutionContext
from .futures import compose, handle, resolved
from .process import Process, ProcessStrategy
from .prompts import build_hierarchical_synthesis, build_plan_instructions
from .tasks import Task, TaskResult, TaskStatus
from .toolcall import find_json_object


@dataclass
class SubTaskSpec:
    task_description: str
    assigned_agent_name: str
    expected_output: str = ""


@dataclass
class ManagerPlan:
    sub_tasks: List[SubTaskSpec] = field(default_factory=list)
    manager_notes: str = ""


def parse_plan(text: str) -> ManagerPlan:
    """Read a manager plan from model output (bare or fenced JSON, prose allowed)."""
    obj = find_json_object(text or "", ("sub_tasks",))
    if obj is None:
        raise PlanParseError("no JSON object with a 'sub_tasks' key", text)
    raw = obj["sub_tasks"]
    if not isinstance(raw, list):
        raise PlanParseError("'sub_tasks' must be a list", text)

    sub_tasks = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise PlanParseError(f"sub-task {i} is not an object", text)
        desc = item.get("task_description")
        agent = item.get("assigned_agent_name")
        if not isinstance(desc, str) or not isinstance(agent, str):
            raise PlanParseError(
                f"sub-task {i} needs string 'task_description' and 'assigned_agent_name'", text,
            )
        expected = item.get("expected_output") or ""
        sub_tasks.append(SubTaskSpec(desc, agent, str(expected)))

    notes = obj.get("manager_notes") or ""
    return ManagerPlan(sub_tasks=sub_tasks, manager_notes=str(notes))


class HierarchicalProcess(Process):
    """The first agent manages; the rest are workers addressed by name.

    Sub-tasks run one after another in plan order. A missing worker or a
    failed sub-task is recorded as an ``"Error: ..."`` result and never aborts
    the plan. The synthesis task carries the caller's completion, so the
    caller's callback fires from the manager's final answer.
    """

    strategy = ProcessStrategy.HIERARCHICAL
    label = "HIERARCHICAL_PROCESS"

    def execute(self, task: Task, agents: Sequence, context: ExecutionContext) -> Future:
        self._note(context, f"Starting execution for task: {task.description}")
        if not agents:
            return self._no_agents(task, context)

        manager, workers = agents[0], list(agents[1:])
        if not workers:
            self._note(context, f"Only one agent ({manager.name}) available. Delegating task directly.")
            return self._start_agent(manager, task, context)

        self._begin(task)
        instructions = build_plan_instructions(workers)
        if task.expected_output:
            instructions = f"{task.expected_output}\n\n{instructions}"
        plan_task = task.derive(expected_output=instructions, inherit_human_input=True)
        self._note(context, f"Asking manager {manager.name} to plan sub-tasks.")
        flow = compose(
            self._start_agent(manager, plan_task, context),
            partial(self._run_plan, task, plan_task, manager, {w.name: w for w in workers}, context),
        )
        return handle(flow, partial(self._finish, task, context))

    def _run_plan(
        self, parent: Task, plan_task: Task, manager, workers: Dict[str, object],
        context: ExecutionContext, plan_output: str,
    ) -> Future:
        self._note(context, f"Manager {manager.name} produced plan: {plan_output}")
        if plan_task.status is TaskStatus.FAILED:
            raise StepFailedError(manager.name, plan_output)

        try:
            plan = parse_plan(plan_output)
        except PlanParseError as exc:
            self._note(context, f"Failed to parse manager's plan. Error: {exc}. Plan: {plan_output}")
            self._settle(parent, TaskResult.failure(f"Failed to parse manager's plan: {exc}"))
            return resolved(f"Error: Failed to parse manager's plan. Manager's output: {plan_output}")

        if not plan.sub_tasks:
            self._note(
                context,
                f"Manager {manager.name} did not define any sub-tasks. Using its output as the answer.",
            )
            self._settle(parent, TaskResult.success(plan_output))
            return resolved(plan_output)

        results: "OrderedDict[str, str]" = OrderedDict()
        chain: Future = resolved(None)
        for sub in plan.sub_tasks:
            chain = compose(chain, partial(self._run_sub_task, parent, sub, workers, results, context))
        return compose(chain, lambda _: self._synthesize(parent, manager, plan, results, context))

    def _run_sub_task(
        self, parent: Task, sub: SubTaskSpec, workers: Dict[str, object],
        results: "OrderedDict[str, str]", context: ExecutionContext, _previous,
    ) -> Future:
        worker = workers.get(sub.assigned_agent_name)
        if worker is None:
            self._note(
                context,
                f"Could not find assigned agent: {sub.assigned_agent_name} "
                f"for sub-task: {sub.task_description}",
            )
            results[sub.task_description] = f"Error: Agent not found - {sub.assigned_agent_name}"
            return resolved(None)

        sub_task = Task(
            description=sub.task_description,
            input=dict(parent.input),
            expected_output=sub.expected_output,
        )
        self._note(context, f"Assigning sub-task '{sub_task.description}' to agent {worker.name}")

        def _record(output, exc):
            if exc is not None:
                self._note(
                    context,
                    f"Sub-task '{sub_task.description}' failed for agent {worker.name}. Error: {exc}",
                )
                results[sub_task.description] = f"Error: {exc}"
            else:
                self._note(
                    context,
                    f"Sub-task '{sub_task.description}' completed by {worker.name}. Output: {output}",
                )
                results[sub_task.description] = output

        return handle(self._start_agent(worker, sub_task, context), _record)

    def _synthesize(
        self, parent: Task, manager, plan: ManagerPlan,
        results: "OrderedDict[str, str]", context: ExecutionContext,
    ) -> Future:
        self._note(context, "All sub-tasks processed. Preparing for manager synthesis.")
        synthesis = Task(
            description=build_hierarchical_synthesis(
                parent.description, results.items(), plan.manager_notes,
            ),
            expected_output=parent.expected_output,
            callback=partial(self._settle, parent),
        )
        self._note(context, f"Asking manager {manager.name} to synthesize final answer.")
        return self._start_agent(manager, synthesis, context)

    def _finish(self, parent: Task, context: ExecutionContext, output, exc) -> str:
        if exc is None:
            return output
        self._note(context, f"An error occurred in the process. Error: {exc}")
        self._settle(parent, TaskResult.failure(f"Hierarchical process failed: {exc}"))
        return f"Error: Hierarchical process failed. {exc}"
