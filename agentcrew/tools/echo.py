"""Echo tool, handy for wiring checks and tests."""

from concurrent.futures import Future
from typing import Any, Dict

from .base import Tool

MISSING_INPUT_ERROR = (
    "Error: Missing or invalid 'input' parameter. "
    "Please provide a string value for 'input'."
)


class EchoTool(Tool):
    name = "EchoTool"
    description = "A simple tool that echoes back the input string."

    @property
    def parameter_schema(self) -> Dict[str, str]:
        return {"input": "The text to echo back (string, required)"}

    def use(self, parameters: Dict[str, Any]) -> Future:
        future: Future = Future()
        value = (parameters or {}).get("input")
        future.set_result(value if isinstance(value, str) else MISSING_INPUT_ERROR)
        return future
