"""Structured error types for the crew engine."""


class CrewError(Exception):
    """Base error for all crew operations."""
    pass


class ToolError(CrewError):
    """Error raised during tool execution."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"{tool_name} error: {message}")


class TaskStateError(CrewError):
    """Raised when a task is moved along a transition its state machine forbids."""

    def __init__(self, task_id: str, current, requested):
        self.task_id = task_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Task {task_id}: cannot move from {current.name} to {requested.name}"
        )


class PlanParseError(CrewError):
    """Raised when a manager's response cannot be read as a sub-task plan."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)


class HumanInputTimeoutError(CrewError):
    """Raised when a task waits longer than allowed for human input."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timed out waiting for human input after {timeout:g}s")


class UnknownStrategyError(CrewError, ValueError):
    """Raised when a crew is built with a strategy outside ProcessStrategy."""

    def __init__(self, strategy):
        self.strategy = strategy
        super().__init__(f"Unsupported process strategy: {strategy!r}")


class ConfigError(CrewError):
    """Raised for configuration that cannot be turned into a crew."""
    pass


class StepFailedError(CrewError):
    """Raised inside a strategy when one agent's step ends in failure."""

    def __init__(self, agent_name: str, message: str):
        self.agent_name = agent_name
        super().__init__(f"{agent_name}: {message}")
