"""
Configuration: model presets, crew defaults and agent definitions.

Loading priority:
  1. Project dir .crew.conf.yml
  2. Git root .crew.conf.yml
  3. Global ~/.agentcrew/config.yml

The crew engine never reads configuration itself; this module resolves
values that are then passed to agent and crew constructors.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .logger import get_logger

_log = get_logger(__name__)

CONFIG_DIR = Path.home() / ".agentcrew"
CONFIG_FILE = CONFIG_DIR / "config.yml"
PROJECT_CONFIG_NAME = ".crew.conf.yml"

STRATEGIES = {"sequential", "hierarchical", "consensual"}
SEQUENTIAL_CALLBACK_MODES = {"final", "per-hop"}


# ── Configuration metadata and validation ──


@dataclass
class ConfigFieldSpec:
    """Configuration field specification with validation rules."""
    key: str
    field_name: str
    description: str
    value_type: str  # "str", "int", "float", "bool"
    default: Any
    validator: Optional[Callable[[Any], tuple]] = None  # (valid, coerced_value, error_msg)


def _validate_int_range(value: Any, min_val: int, max_val: int) -> tuple:
    """Validate integer within range."""
    if isinstance(value, bool):
        return False, None, "Must be an integer"
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, None, "Must be an integer"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_non_negative_float(value: Any) -> tuple:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return False, None, "Must be a number"
    if parsed < 0:
        return False, 0.0, "Must be zero or positive"
    return True, parsed, ""


def _validate_enum(value: Any, valid_values: set) -> tuple:
    """Validate value is in allowed set."""
    val_str = str(value).strip().lower()
    if val_str not in valid_values:
        return False, None, f"Must be one of: {', '.join(sorted(valid_values))}"
    return True, val_str, ""


def _validate_bool(value: Any) -> tuple:
    """Validate boolean value."""
    if isinstance(value, bool):
        return True, value, ""
    if isinstance(value, str):
        val_lower = value.strip().lower()
        if val_lower in ("1", "true", "yes", "on"):
            return True, True, ""
        if val_lower in ("0", "false", "no", "off"):
            return True, False, ""
    return False, None, "Must be true/false, yes/no, on/off, or 1/0"


CONFIG_FIELDS: Dict[str, ConfigFieldSpec] = {
    "active-model": ConfigFieldSpec(
        key="active-model",
        field_name="active_model",
        description="Model preset used by agents without their own model",
        value_type="str",
        default="local",
        validator=None,  # Validated against available models separately
    ),
    "strategy": ConfigFieldSpec(
        key="strategy",
        field_name="strategy",
        description="Default orchestration strategy",
        value_type="str",
        default="sequential",
        validator=lambda v: _validate_enum(v, STRATEGIES),
    ),
    "max-iterations": ConfigFieldSpec(
        key="max-iterations",
        field_name="max_iterations",
        description="Reasoning loop iteration cap per task",
        value_type="int",
        default=5,
        validator=lambda v: _validate_int_range(v, 1, 100),
    ),
    "pool-size": ConfigFieldSpec(
        key="pool-size",
        field_name="pool_size",
        description="Worker threads per agent (0 = based on CPU count)",
        value_type="int",
        default=0,
        validator=lambda v: _validate_int_range(v, 0, 64),
    ),
    "memory-top-k": ConfigFieldSpec(
        key="memory-top-k",
        field_name="memory_top_k",
        description="Memory snippets included in each prompt",
        value_type="int",
        default=3,
        validator=lambda v: _validate_int_range(v, 0, 20),
    ),
    "memory-capacity": ConfigFieldSpec(
        key="memory-capacity",
        field_name="memory_capacity",
        description="Short-term memory entries per agent (0 = unbounded)",
        value_type="int",
        default=0,
        validator=lambda v: _validate_int_range(v, 0, 1_000_000),
    ),
    "human-input-timeout": ConfigFieldSpec(
        key="human-input-timeout",
        field_name="human_input_timeout",
        description="Seconds to wait for human input (0 = wait forever)",
        value_type="float",
        default=0.0,
        validator=_validate_non_negative_float,
    ),
    "sequential-callback": ConfigFieldSpec(
        key="sequential-callback",
        field_name="sequential_callback",
        description="When the sequential strategy fires the task callback: final or per-hop",
        value_type="str",
        default="final",
        validator=lambda v: _validate_enum(v, SEQUENTIAL_CALLBACK_MODES),
    ),
    "verbose": ConfigFieldSpec(
        key="verbose",
        field_name="verbose",
        description="Enable INFO logging on the console",
        value_type="bool",
        default=False,
        validator=_validate_bool,
    ),
}


def validate_config_value(key: str, value: Any) -> tuple:
    """
    Validate a configuration value.

    Returns:
        (is_valid, coerced_value, error_message)
    """
    if key not in CONFIG_FIELDS:
        return False, value, f"Unknown configuration key: {key}"

    spec = CONFIG_FIELDS[key]
    if spec.validator:
        return spec.validator(value)
    return True, str(value), ""


@dataclass
class ModelPreset:
    name: str
    provider: str
    model: str
    api_base: Optional[str] = None
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    temperature: float = 0.0
    max_tokens: int = 4096
    description: str = ""

    def resolve_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        env_map = {
            "openai": "OPENAI_API_KEY", "anthropic": "ANTHROPIC_API_KEY",
            "deepseek": "DEEPSEEK_API_KEY", "gemini": "GEMINI_API_KEY",
            "groq": "GROQ_API_KEY",
        }
        env_var = env_map.get(self.provider)
        return os.environ.get(env_var) if env_var else None

    def get_llm_kwargs(self) -> dict:
        """Return kwargs for the LLMAdapter constructor: direct, no env vars."""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "api_base": self.api_base,
            "api_key": self.resolve_api_key(),
        }


@dataclass
class Config:
    active_model: str = "local"
    strategy: str = "sequential"
    max_iterations: int = 5
    pool_size: int = 0
    memory_top_k: int = 3
    memory_capacity: int = 0
    human_input_timeout: float = 0.0
    sequential_callback: str = "final"
    verbose: bool = False
    models: Dict[str, ModelPreset] = field(default_factory=dict)
    agents: List[Dict[str, Any]] = field(default_factory=list)  # raw agents: section
    project_root: Optional[str] = None
    _config_source: str = ""

    @classmethod
    def load(cls, project_dir: str = ".", global_config: Optional[Path] = None) -> "Config":
        config = cls()
        global_file = Path(global_config) if global_config else CONFIG_FILE
        project_path = Path(project_dir).resolve()

        for env_path in [global_file.parent / ".env", project_path / ".env"]:
            if env_path.exists():
                load_dotenv(env_path, override=False)

        git_root = cls._find_git_root(project_path)
        for candidate in [
            project_path / PROJECT_CONFIG_NAME,
            (git_root / PROJECT_CONFIG_NAME) if git_root and git_root != project_path else None,
            global_file,
        ]:
            if candidate and candidate.exists():
                config._load_yaml(candidate)
                config._config_source = str(candidate)
                break
        else:
            config._add_default_presets()

        config._apply_env()
        config.project_root = str(project_path)
        return config

    @classmethod
    def get_default_presets(cls) -> Dict[str, ModelPreset]:
        return {
            "local": ModelPreset(
                name="local", provider="local", model="openai/model",
                api_base="http://localhost:8080/v1", api_key="not-needed",
                description="Local model (vLLM / llama.cpp on :8080)",
            ),
            "gpt-4o-mini": ModelPreset(
                name="gpt-4o-mini", provider="openai", model="openai/gpt-4o-mini",
                api_key_env="OPENAI_API_KEY", description="OpenAI GPT-4o mini",
            ),
            "claude-haiku": ModelPreset(
                name="claude-haiku", provider="anthropic",
                model="anthropic/claude-3-5-haiku-latest",
                api_key_env="ANTHROPIC_API_KEY", description="Anthropic Claude Haiku",
            ),
            "gemini-flash": ModelPreset(
                name="gemini-flash", provider="gemini", model="gemini/gemini-2.0-flash",
                api_key_env="GEMINI_API_KEY", description="Google Gemini Flash",
            ),
            "groq-llama": ModelPreset(
                name="groq-llama", provider="groq", model="groq/llama-3.3-70b-versatile",
                api_key_env="GROQ_API_KEY", description="Llama 3.3 70B on Groq",
            ),
            "deepseek-chat": ModelPreset(
                name="deepseek-chat", provider="deepseek", model="deepseek/deepseek-chat",
                api_key_env="DEEPSEEK_API_KEY", description="DeepSeek chat",
            ),
        }

    def _add_default_presets(self):
        self.models = self.get_default_presets()
        self.active_model = "local"

    def _load_yaml(self, filepath: Path):
        try:
            with open(filepath) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read {filepath}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"{filepath}: top level must be a mapping")

        for key, spec in CONFIG_FIELDS.items():
            if key not in data:
                continue
            if key == "active-model":
                self.active_model = str(data[key])
                continue
            valid, coerced, error = validate_config_value(key, data[key])
            if not valid:
                # Out-of-range numbers come back clamped; anything else falls back.
                coerced = spec.default if coerced is None else coerced
                _log.warning("%s: invalid %s (%s); using %r", filepath, key, error, coerced)
            setattr(self, spec.field_name, coerced)

        agents = data.get("agents", [])
        if not isinstance(agents, list):
            raise ConfigError(f"{filepath}: 'agents' must be a list")
        self.agents = [dict(a) for a in agents if isinstance(a, dict)]

        self.models = {}
        for name, m in (data.get("models") or {}).items():
            m = m or {}
            self.models[name] = ModelPreset(
                name=name, provider=m.get("provider", "openai"),
                model=m.get("model", "openai/gpt-4o-mini"),
                api_base=m.get("api-base"), api_key=m.get("api-key"),
                api_key_env=m.get("api-key-env"),
                temperature=m.get("temperature", 0.0),
                max_tokens=m.get("max-tokens", 4096),
                description=m.get("description", ""),
            )
        if not self.models:
            self._add_default_presets()

    def _apply_env(self):
        env_map = {
            "CREW_MODEL": ("active_model", str),
            "CREW_STRATEGY": ("strategy", lambda v: self._checked("strategy", v)),
            "CREW_VERBOSE": ("verbose", lambda v: self._coerce_bool(v, self.verbose)),
            "CREW_MAX_ITERATIONS": ("max_iterations", lambda v: self._checked("max-iterations", v)),
        }
        for env_var, (attr, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val:
                try:
                    setattr(self, attr, conv(val))
                except (ValueError, TypeError) as e:
                    _log.warning("Ignoring %s=%r: %s", env_var, val, e)

    @staticmethod
    def _checked(key: str, value: Any) -> Any:
        valid, coerced, error = validate_config_value(key, value)
        if not valid:
            raise ValueError(error)
        return coerced

    def save(self, filepath: Optional[str] = None) -> Path:
        target = Path(filepath) if filepath else (
            Path(self._config_source) if self._config_source else CONFIG_FILE
        )
        data: Dict[str, Any] = {}
        for key, spec in CONFIG_FIELDS.items():
            data[key] = getattr(self, spec.field_name)
        data["models"] = {}
        for name, m in self.models.items():
            entry = {"provider": m.provider, "model": m.model}
            if m.api_base:
                entry["api-base"] = m.api_base
            if m.api_key:
                entry["api-key"] = m.api_key
            if m.api_key_env:
                entry["api-key-env"] = m.api_key_env
            entry["temperature"] = m.temperature
            entry["max-tokens"] = m.max_tokens
            if m.description:
                entry["description"] = m.description
            data["models"][name] = entry
        data["agents"] = list(self.agents)

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        self._config_source = str(target)
        return target

    def get_active_preset(self) -> ModelPreset:
        if self.active_model in self.models:
            return self.models[self.active_model]
        if self.models:
            return next(iter(self.models.values()))
        return ModelPreset(name="default", provider="local", model="openai/model",
                           api_base="http://localhost:8080/v1", api_key="not-needed")

    def get_preset(self, name: Optional[str]) -> ModelPreset:
        """Preset ``name``, or the active preset when ``name`` is empty."""
        if not name:
            return self.get_active_preset()
        if name not in self.models:
            raise ConfigError(f"Model '{name}' not found. Known: {', '.join(sorted(self.models))}")
        return self.models[name]

    def summary(self) -> dict:
        p = self.get_active_preset()
        return {
            "Config file": self._config_source or "(defaults)",
            "Active model": f"{self.active_model} -> {p.model}",
            "API key": "set" if p.resolve_api_key() else "not set",
            "Strategy": self.strategy,
            "Max iterations": self.max_iterations,
            "Pool size": self.pool_size or "auto",
            "Memory top-k": self.memory_top_k,
            "Human input timeout": f"{self.human_input_timeout:g}s" if self.human_input_timeout else "none",
            "Sequential callback": self.sequential_callback,
            "Agents": ", ".join(a.get("name", "?") for a in self.agents) or "(default crew)",
        }

    @staticmethod
    def _coerce_bool(value, default: bool) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("1", "true", "yes", "on"):
                return True
            if text in ("0", "false", "no", "off"):
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        return default

    @staticmethod
    def _find_git_root(path: Path) -> Optional[Path]:
        current = path
        while current != current.parent:
            if (current / ".git").exists():
                return current
            current = current.parent
        return None
