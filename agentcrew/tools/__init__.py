from .base import FunctionTool, Tool
from .echo import EchoTool
from .tool_decorator import available_tools, get_tool, register_tool, resolve_tools, tool
from . import files, web  # noqa: F401  (registers built-in tools)

register_tool(EchoTool())

__all__ = [
    "Tool", "FunctionTool", "EchoTool", "tool",
    "get_tool", "available_tools", "register_tool", "resolve_tools",
]
