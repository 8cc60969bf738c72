"""Crew engine: tasks, agents and the orchestration strategies."""

from .agent import Agent, ReasoningAgent
from .consensual import ConsensualProcess
from .context import ExecutionContext, LogEntry
from .crew import Crew
from .hierarchical import HierarchicalProcess, ManagerPlan, SubTaskSpec, parse_plan
from .process import Process, ProcessStrategy, create_process
from .roles import AgentSpec, create_agent, load_agent_specs
from .sequential import SequentialCallback, SequentialProcess
from .tasks import HumanInputHandle, Task, TaskResult, TaskStatus
from .toolcall import ToolCall, parse_tool_call

__all__ = [
    "Agent", "ReasoningAgent",
    "Crew", "ExecutionContext", "LogEntry",
    "Process", "ProcessStrategy", "create_process",
    "SequentialProcess", "SequentialCallback", "HierarchicalProcess", "ConsensualProcess",
    "ManagerPlan", "SubTaskSpec", "parse_plan",
    "AgentSpec", "create_agent", "load_agent_specs",
    "Task", "TaskResult", "TaskStatus", "HumanInputHandle",
    "ToolCall", "parse_tool_call",
]
