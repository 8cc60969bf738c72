"""Agent definitions and the factory that turns them into reasoning agents."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..errors import ConfigError
from ..logger import get_logger

if TYPE_CHECKING:
    from ..config import Config
    from .agent import ReasoningAgent

_log = get_logger(__name__)


@dataclass
class AgentSpec:
    """Specification for one crew member; drives agent construction."""

    name: str
    role: str
    tools: List[str] = field(default_factory=list)
    model_override: Optional[str] = None
    temperature_override: Optional[float] = None
    max_iterations: Optional[int] = None


# Used when the configuration defines no agents: plan, do, check.
DEFAULT_AGENTS = [
    AgentSpec(
        name="researcher",
        role="Gathers facts and breaks problems into concrete steps",
        tools=["web_fetch", "read_file", "list_directory"],
    ),
    AgentSpec(
        name="writer",
        role="Turns findings into a clear, complete answer",
        tools=["EchoTool"],
    ),
    AgentSpec(
        name="reviewer",
        role="Checks the answer for errors and gaps and returns the corrected final version",
    ),
]


def load_agent_specs(config: "Config") -> List[AgentSpec]:
    """Read the ``agents:`` section of the config, falling back to defaults."""
    raw = getattr(config, "agents", None) or []
    if not raw:
        return list(DEFAULT_AGENTS)

    specs = []
    seen = set()
    for i, entry in enumerate(raw):
        name = str(entry.get("name") or "").strip()
        if not name:
            raise ConfigError(f"agents[{i}]: 'name' is required")
        if name in seen:
            raise ConfigError(f"agents[{i}]: duplicate agent name '{name}'")
        seen.add(name)
        tools = entry.get("tools") or []
        if isinstance(tools, str):
            tools = [t.strip() for t in tools.split(",") if t.strip()]
        specs.append(AgentSpec(
            name=name,
            role=str(entry.get("role") or name),
            tools=[str(t) for t in tools],
            model_override=entry.get("model"),
            temperature_override=entry.get("temperature"),
            max_iterations=entry.get("max-iterations"),
        ))
    return specs


def create_agent(spec: AgentSpec, config: "Config", llm=None) -> "ReasoningAgent":
    """Create an independent ReasoningAgent for ``spec``.

    Each agent gets its own model adapter, memory and worker pool, so agents
    never share mutable state. Pass ``llm`` to use a prepared backend instead
    of one built from the model preset.
    """
    from ..llm import LLMAdapter
    from ..memory import ShortTermMemory
    from ..tools import resolve_tools
    from .agent import ReasoningAgent

    if llm is None:
        preset = config.get_preset(spec.model_override)
        llm_kwargs = preset.get_llm_kwargs()
        if spec.temperature_override is not None:
            llm_kwargs["temperature"] = spec.temperature_override
        llm = LLMAdapter(**llm_kwargs)

    try:
        tools = resolve_tools(spec.tools)
    except KeyError as e:
        raise ConfigError(f"Agent '{spec.name}': unknown tool {e}")

    _log.debug("Creating agent %s with tools %s", spec.name, [t.name for t in tools])
    return ReasoningAgent(
        name=spec.name,
        role=spec.role,
        llm=llm,
        tools=tools,
        memory=ShortTermMemory(capacity=config.memory_capacity or None),
        max_iterations=spec.max_iterations or config.max_iterations,
        pool_size=config.pool_size or None,
        memory_top_k=config.memory_top_k,
        human_input_timeout=config.human_input_timeout or None,
    )
