"""agentcrew: orchestrate LLM agents under sequential, hierarchical or consensual strategies."""

__version__ = "0.1.0"

from .crew import (
    Agent,
    Crew,
    ExecutionContext,
    ProcessStrategy,
    ReasoningAgent,
    Task,
    TaskResult,
    TaskStatus,
)

__all__ = [
    "__version__",
    "Agent", "ReasoningAgent", "Crew", "ExecutionContext",
    "ProcessStrategy", "Task", "TaskResult", "TaskStatus",
]
