"""Shared fixtures for agentcrew tests."""

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
import yaml

from agentcrew.crew.agent import Agent, ReasoningAgent
from agentcrew.crew.context import ExecutionContext
from agentcrew.crew.tasks import TaskResult, TaskStatus

# Seconds to wait on any future before declaring a hang.
TIMEOUT = 5


class FakeLLM:
    """Scripted model backend.

    Replies come from ``responses`` in order (an Exception instance is
    raised instead of returned), or from ``responder(prompt)`` when given.
    Once the script runs out the last reply repeats.
    """

    def __init__(self, responses=None, responder=None):
        self._responses = list(responses or [])
        self._last = "(no scripted reply)"
        self.responder = responder
        self.prompts = []
        self._lock = threading.Lock()

    def complete(self, prompt):
        with self._lock:
            self.prompts.append(prompt)
            if self.responder is None:
                if self._responses:
                    self._last = self._responses.pop(0)
                reply = self._last
        if self.responder is not None:
            reply = self.responder(prompt)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self):
        with self._lock:
            return len(self.prompts)


class StubAgent(Agent):
    """Agent double that answers on its own thread and records every task it gets.

    ``action(task, context)`` computes the output; ``fail`` makes the agent
    fail instead: an exception instance fails the returned future, a string
    ends the task FAILED and resolves to ``"Error: <fail>"``.
    """

    def __init__(self, name, output="ok", action=None, fail=None, role="stub"):
        super().__init__(name, role)
        self.output = output
        self.action = action
        self.fail = fail
        self.received = []
        self.shut_down = False
        self._lock = threading.Lock()
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix=f"stub-{name}")

    @property
    def descriptions(self):
        with self._lock:
            return [t.description for t in self.received]

    def perform_task(self, task, context):
        with self._lock:
            self.received.append(task)
        task.assigned_agent = self
        task.set_status(TaskStatus.IN_PROGRESS)
        return self._pool.submit(self._run, task, context)

    def _run(self, task, context):
        if isinstance(self.fail, BaseException):
            task.complete_task(TaskResult.failure(str(self.fail)))
            raise self.fail
        if self.fail is not None:
            task.complete_task(TaskResult.failure(self.fail))
            return f"Error: {self.fail}"
        output = self.action(task, context) if self.action else self.output
        task.complete_task(TaskResult.success(output))
        return output

    def shutdown(self, wait=True):
        self.shut_down = True
        self._pool.shutdown(wait=wait)


class CallbackRecorder:
    """Completion callback that remembers every TaskResult it receives."""

    def __init__(self):
        self.results = []
        self.fired = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, result):
        with self._lock:
            self.results.append(result)
        self.fired.set()

    @property
    def count(self):
        with self._lock:
            return len(self.results)

    @property
    def last(self):
        with self._lock:
            return self.results[-1]


@pytest.fixture
def tmp_dir(tmp_path):
    """Provide a temporary directory and cd into it."""
    orig = os.getcwd()
    os.chdir(tmp_path)
    yield tmp_path
    os.chdir(orig)


@pytest.fixture
def context():
    return ExecutionContext()


@pytest.fixture
def callback():
    return CallbackRecorder()


@pytest.fixture
def make_agent():
    """Factory for ReasoningAgents backed by a FakeLLM; pools are shut down afterwards."""
    created = []

    def _make(name="agent", responses=None, responder=None, **kwargs):
        llm = kwargs.pop("llm", None) or FakeLLM(responses, responder)
        kwargs.setdefault("pool_size", 2)
        agent = ReasoningAgent(name=name, role=f"{name} role", llm=llm, **kwargs)
        created.append(agent)
        return agent

    yield _make
    for agent in created:
        agent.shutdown(wait=False)


@pytest.fixture
def make_stub():
    created = []

    def _make(name, **kwargs):
        agent = StubAgent(name, **kwargs)
        created.append(agent)
        return agent

    yield _make
    for agent in created:
        agent.shutdown(wait=False)


@pytest.fixture
def sample_config_data():
    """Minimal .crew.conf.yml data dict."""
    return {
        "active-model": "local",
        "strategy": "hierarchical",
        "max-iterations": 7,
        "pool-size": 3,
        "memory-top-k": 2,
        "memory-capacity": 50,
        "human-input-timeout": 30,
        "sequential-callback": "per-hop",
        "verbose": False,
        "models": {
            "local": {
                "provider": "local",
                "model": "openai/model",
                "description": "Local test model",
                "temperature": 0.0,
                "max-tokens": 8192,
                "api-base": "http://localhost:8080/v1",
                "api-key": "not-needed",
            }
        },
        "agents": [
            {"name": "planner", "role": "Plans the work", "tools": ["EchoTool"]},
            {"name": "doer", "role": "Does the work", "max-iterations": 3},
        ],
    }


@pytest.fixture
def config_yaml_file(tmp_dir, sample_config_data):
    """Write a config YAML to tmp_dir and return its Path."""
    path = tmp_dir / ".crew.conf.yml"
    with open(path, "w") as f:
        yaml.dump(sample_config_data, f, default_flow_style=False)
    return path


def wait_for(predicate, timeout=TIMEOUT):
    """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)
