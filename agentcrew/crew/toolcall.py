"""Detect tool invocations and other JSON payloads in free-form model output."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence

_FENCE_OPEN_RE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    tool_name: str
    tool_parameters: Dict[str, Any] = field(default_factory=dict)


def strip_code_fence(text: str) -> str:
    """Remove one leading and one trailing Markdown code fence, if present."""
    text = text.strip()
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    return _FENCE_CLOSE_RE.sub("", text, count=1).strip()


def iter_json_objects(text: str) -> Iterator[Dict[str, Any]]:
    """Yield every JSON object that starts at a ``{`` in ``text``, in order.

    Each candidate is decoded with the JSON parser itself, so nested braces
    and braces inside string literals are matched correctly. Objects nested
    inside an earlier object are yielded too, after their container.
    """
    start = text.find("{")
    while start != -1:
        try:
            obj, _end = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            yield obj
        start = text.find("{", start + 1)


def find_json_object(text: str, required_keys: Sequence[str]) -> Optional[Dict[str, Any]]:
    """First JSON object in ``text`` that has every key in ``required_keys``."""
    for obj in iter_json_objects(strip_code_fence(text)):
        if all(key in obj for key in required_keys):
            return obj
    return None


def parse_tool_call(response: str) -> Optional[ToolCall]:
    """Return the first well-formed tool call in a model response.

    A tool call is a JSON object with a non-empty string ``tool_name`` and an
    object ``tool_parameters``. Objects that carry both keys but the wrong
    types are skipped. ``None`` means the response is a final answer.
    """
    if not response:
        return None
    for obj in iter_json_objects(strip_code_fence(response)):
        name = obj.get("tool_name")
        params = obj.get("tool_parameters")
        if isinstance(name, str) and name.strip() and isinstance(params, dict):
            return ToolCall(tool_name=name.strip(), tool_parameters=params)
    return None
