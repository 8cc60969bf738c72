"""@tool decorator: turns a plain function into a registered FunctionTool.

Usage:
    @tool(description="Read a text file")
    def read_file(path: str, start_line: int = None) -> str:
        \"\"\"
        path: File to read
        start_line: First line to return (1-based)
        \"\"\"
        ...

The parameter schema shown to the model comes from the signature, the type
hints and the ``name: description`` lines of the docstring.
"""

import inspect
from typing import Any, Callable, Dict, List, Optional, get_type_hints

from .base import FunctionTool, Tool

# Global registry: name -> Tool
_TOOL_REGISTRY: Dict[str, Tool] = {}

# Python type -> JSON Schema type
_TYPE_MAP = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}


def tool(description: str, name: Optional[str] = None):
    """Decorator to register a function as an agent-callable tool.

    Args:
        description: Tool description shown to the model.
        name: Registry name; defaults to the function name.
    """
    def decorator(func: Callable) -> FunctionTool:
        tool_name = name or func.__name__
        json_schema = _build_schema(func, tool_name, description)
        wrapped = FunctionTool(
            name=tool_name,
            description=description,
            func=func,
            parameter_schema=_describe_parameters(json_schema),
            json_schema=json_schema,
        )
        register_tool(wrapped)
        return wrapped

    return decorator


def register_tool(t: Tool) -> Tool:
    """Add a tool instance to the registry, replacing any tool of the same name."""
    _TOOL_REGISTRY[t.name] = t
    return t


def _unwrap_optional(hint):
    args = getattr(hint, "__args__", None)
    if args and type(None) in args:
        return next((a for a in args if a is not type(None)), None)
    return hint


def _build_schema(func: Callable, name: str, description: str) -> dict:
    """Generate an OpenAI-compatible JSON Schema from the function signature."""
    sig = inspect.signature(func)
    try:
        hints = get_type_hints(func)
    except Exception:
        hints = {}

    properties = {}
    required = []

    for param_name, param in sig.parameters.items():
        if param_name == "self":
            continue

        hint = _unwrap_optional(hints.get(param_name))
        hint = getattr(hint, "__origin__", None) or hint
        prop: Dict[str, Any] = {"type": _TYPE_MAP.get(hint, "string")}

        doc_desc = _extract_param_doc(func, param_name)
        if doc_desc:
            prop["description"] = doc_desc

        if param.default is not inspect.Parameter.empty:
            if param.default is not None:
                prop["default"] = param.default
        else:
            required.append(param_name)

        properties[param_name] = prop

    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        },
    }


def _describe_parameters(json_schema: dict) -> Dict[str, str]:
    """Flatten a JSON Schema into the name -> description map shown in prompts."""
    params = json_schema["function"]["parameters"]
    required = set(params["required"])
    described = {}
    for param_name, prop in params["properties"].items():
        flags = [prop["type"], "required" if param_name in required else "optional"]
        text = prop.get("description") or param_name
        described[param_name] = f"{text} ({', '.join(flags)})"
    return described


def _extract_param_doc(func: Callable, param_name: str) -> str:
    """Extract a parameter description from the docstring (Google/numpy style)."""
    doc = func.__doc__
    if not doc:
        return ""
    for line in doc.splitlines():
        stripped = line.strip()
        if stripped.startswith(f"{param_name}:") or stripped.startswith(f"{param_name} :"):
            _, _, desc = stripped.partition(":")
            return desc.strip()
    return ""


def get_tool(name: str) -> Optional[Tool]:
    return _TOOL_REGISTRY.get(name)


def available_tools() -> List[Tool]:
    """Registered tools, sorted by name."""
    return [_TOOL_REGISTRY[n] for n in sorted(_TOOL_REGISTRY)]


def resolve_tools(names) -> List[Tool]:
    """Look up tools by name; unknown names raise ``KeyError``."""
    resolved = []
    for tool_name in names or []:
        found = _TOOL_REGISTRY.get(tool_name)
        if found is None:
            raise KeyError(tool_name)
        resolved.append(found)
    return resolved
