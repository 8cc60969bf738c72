"""Agents: the base capability and the LLM-driven reasoning agent."""

import os
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Sequence

from ..errors import HumanInputTimeoutError, TaskStateError
from ..logger import get_logger
from ..memory import Memory, ShortTermMemory
from ..tools.base import Tool
from .context import ExecutionContext
from .futures import failed, handle, outcome, try_set_exception, try_set_result
from .prompts import build_agent_prompt
from .tasks import Task, TaskResult, TaskStatus
from .toolcall import parse_tool_call

_log = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 5
DEFAULT_MEMORY_TOP_K = 3
MAX_ITERATIONS_ERROR = "Agent reached maximum iterations."


def default_pool_size() -> int:
    return max(2, os.cpu_count() or 1)


class Agent(ABC):
    """A named capability that turns a task into a textual result."""

    def __init__(
        self,
        name: str,
        role: str,
        tools: Optional[Sequence[Tool]] = None,
        memory: Optional[Memory] = None,
    ):
        self.name = name
        self.role = role
        self.tools: List[Tool] = list(tools or [])
        self.memory: Memory = memory if memory is not None else ShortTermMemory()

    @abstractmethod
    def perform_task(self, task: Task, context: ExecutionContext) -> Future:
        """Start working on ``task``; the future resolves to the output string."""

    def get_tool(self, name: str) -> Optional[Tool]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    def shutdown(self, wait: bool = True) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, role={self.role!r})"


class ReasoningAgent(Agent):
    """Agent that loops model call -> optional tool call until it has an answer.

    Every step runs on the agent's own thread pool; ``perform_task`` itself
    never blocks. Tasks that need a human decision are parked on a
    :class:`~agentcrew.crew.tasks.HumanInputHandle` without holding a pool
    thread, and resume when ``Task.set_human_input`` is called.
    """

    def __init__(
        self,
        name: str,
        role: str,
        llm,
        tools: Optional[Sequence[Tool]] = None,
        memory: Optional[Memory] = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        pool_size: Optional[int] = None,
        memory_top_k: int = DEFAULT_MEMORY_TOP_K,
        human_input_timeout: Optional[float] = None,
    ):
        super().__init__(name, role, tools=tools, memory=memory)
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.llm = llm
        self.max_iterations = max_iterations
        self.memory_top_k = max(0, memory_top_k)
        self.human_input_timeout = human_input_timeout or None
        self.pool_size = pool_size or default_pool_size()
        self._pool = ThreadPoolExecutor(
            max_workers=self.pool_size, thread_name_prefix=f"agent-{name}",
        )

    def perform_task(self, task: Task, context: ExecutionContext) -> Future:
        context.log(f"{self.name} received task: {task.description} (ID: {task.id})")
        task.assigned_agent = self
        try:
            if task.requires_human_input and task.human_input is None:
                return self._wait_for_human(task, context)
            task.set_status(TaskStatus.IN_PROGRESS)
        except TaskStateError as exc:
            context.log(f"{self.name} cannot start task {task.id}: {exc}")
            return failed(exc)

        if task.human_input is not None:
            context.log(
                f"{self.name} proceeding with task {task.id}, "
                f"human input was previously provided: {task.human_input}"
            )
        return _ReasoningLoop(self, task, context).start()

    def shutdown(self, wait: bool = True) -> None:
        _log.debug("Agent %s shutting down its worker pool", self.name)
        self._pool.shutdown(wait=wait)

    # ── Human in the loop ─────────────────────────────────────

    def _wait_for_human(self, task: Task, context: ExecutionContext) -> Future:
        if task.status is TaskStatus.PENDING:
            task.set_status(TaskStatus.IN_PROGRESS)
        waiting = task.await_human_input()
        context.log(
            f"{self.name} is waiting for human input on task {task.id}: {task.description}"
        )

        timer = None
        if self.human_input_timeout:
            timer = threading.Timer(
                self.human_input_timeout,
                task.cancel_human_input,
                args=(HumanInputTimeoutError(self.human_input_timeout),),
            )
            timer.daemon = True
            timer.start()

        def _resume(value, exc):
            if timer is not None:
                timer.cancel()
            if exc is None:
                try:
                    return self._accept_human_input(task, context, value)
                except Exception as err:
                    exc = err
            return self._reject_human_input(task, context, exc)

        result = handle(waiting.future, _resume, self._pool)

        def _on_result_done(f: Future) -> None:
            if f.cancelled():
                task.cancel_human_input()

        result.add_done_callback(_on_result_done)
        return result

    def _accept_human_input(self, task: Task, context: ExecutionContext, value: str) -> str:
        context.log(f"{self.name} received human input for task {task.id}: {value}")
        self.memory.add(f"human_input_received:{task.id}:{task.description}", value)
        task.complete_task(TaskResult.success(value))
        context.store_task_data(task.id, f"{self.name}_human_input_result", value)
        return value

    def _reject_human_input(
        self, task: Task, context: ExecutionContext, exc: BaseException,
    ) -> str:
        reason = str(exc) or type(exc).__name__
        context.log(f"{self.name} failed to process human input for task {task.id}: {reason}")
        self.memory.add(f"human_input_failure:{task.id}", reason)
        if not task.is_terminal:
            task.complete_task(TaskResult.failure(reason))
        if isinstance(exc, HumanInputTimeoutError):
            return f"Error: {reason}"
        return f"Error processing human input: {reason}"


class _ReasoningLoop:
    """State of one reasoning run; steps execute one at a time on the agent pool."""

    def __init__(self, agent: ReasoningAgent, task: Task, context: ExecutionContext):
        self.agent = agent
        self.task = task
        self.context = context
        self.history: List[str] = []
        self.iterations = 0
        self.result: Future = Future()

    def start(self) -> Future:
        self._submit(self._step)
        return self.result

    def _submit(self, fn, *args) -> None:
        try:
            self.agent._pool.submit(self._guarded, fn, *args)
        except RuntimeError as exc:
            self._abort(exc)

    def _guarded(self, fn, *args) -> None:
        if self.result.cancelled():
            self.context.log(f"{self.agent.name} stopped task {self.task.id}: cancelled")
            if not self.task.is_terminal:
                self.task.complete_task(TaskResult.failure("Task cancelled."))
            return
        try:
            fn(*args)
        except Exception as exc:
            self._abort(exc)

    def _abort(self, exc: BaseException) -> None:
        name, task = self.agent.name, self.task
        self.context.log(f"{name} failed on task {task.id}: {exc}")
        _log.warning("Agent %s failed on task %s: %s", name, task.id, exc)
        if not task.is_terminal:
            try:
                task.complete_task(TaskResult.failure(str(exc) or type(exc).__name__))
            except Exception:
                _log.exception("Completion callback failed for task %s", task.id)
        try_set_exception(self.result, exc)

    def _prompt(self) -> str:
        agent, task = self.agent, self.task
        snippets = []
        if agent.memory_top_k:
            snippets = agent.memory.search(task.description, agent.memory_top_k)
        return build_agent_prompt(
            agent.name, agent.role, task, snippets, agent.tools, "\n".join(self.history),
        )

    def _step(self) -> None:
        agent, task, context = self.agent, self.task, self.context
        self.iterations += 1
        if self.iterations > agent.max_iterations:
            context.log(
                f"{agent.name} reached max iterations for task: {task.description} (ID: {task.id})"
            )
            agent.memory.add(
                f"task_failure_max_iterations:{task.id}:{task.description}", MAX_ITERATIONS_ERROR,
            )
            task.complete_task(TaskResult.failure(MAX_ITERATIONS_ERROR))
            try_set_result(self.result, f"Error: {MAX_ITERATIONS_ERROR}")
            return

        prompt = self._prompt()
        context.log(
            f"{agent.name} sending prompt to LLM (iteration {self.iterations}) "
            f"for task {task.id}:\n{prompt}"
        )
        response = agent.llm.complete(prompt)
        context.log(f"{agent.name} received LLM response for task {task.id}: {response}")

        call = parse_tool_call(response)
        if call is None:
            self._finish(response)
            return

        tool = agent.get_tool(call.tool_name)
        if tool is None:
            context.log(f"{agent.name} LLM tried to use unknown tool: {call.tool_name}")
            self.history.append(f"Attempted to use unknown tool: {call.tool_name}")
            agent.memory.add(f"unknown_tool_attempt:{call.tool_name}:{task.id}", response)
            self._submit(self._step)
            return

        context.log(
            f"{agent.name} attempting to use tool: {tool.name} "
            f"with params: {call.tool_parameters} for task {task.id}"
        )
        try:
            pending = tool.use(call.tool_parameters)
        except Exception as exc:
            pending = failed(exc)
        pending.add_done_callback(lambda f: self._submit(self._after_tool, tool, f))

    def _after_tool(self, tool: Tool, done: Future) -> None:
        agent, task = self.agent, self.task
        value, exc = outcome(done)
        if exc is not None:
            message = str(exc) or type(exc).__name__
            self.context.log(f"{agent.name} tool execution failed for task {task.id}: {message}")
            self.history.append(f"Tool {tool.name} execution failed: {message}")
            agent.memory.add(f"tool_error:{tool.name}:{task.id}", message)
        else:
            self.context.log(
                f"{agent.name} tool {tool.name} executed for task {task.id}. Result: {value}"
            )
            self.history.append(f"Tool {tool.name} output: {value}")
            agent.memory.add(f"tool_interaction:{tool.name}:{task.id}", value)
        self._step()

    def _finish(self, answer: str) -> None:
        agent, task = self.agent, self.task
        self.context.log(f"{agent.name} received final answer for task {task.id}: {answer}")
        agent.memory.add(f"task_summary:{task.id}:{task.description}", answer)
        task.complete_task(TaskResult.success(answer))
        self.context.store_task_data(task.id, f"{agent.name}_final_output", answer)
        try_set_result(self.result, answer)
