"""Model backend via litellm."""

from typing import Any, Dict, List, Optional

import litellm
litellm.suppress_debug_info = True

from .logger import get_logger

_log = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = """\
You are a member of a crew of AI agents working together on a task.
Follow the instructions in each message exactly. When asked to reply with
JSON only, reply with a single JSON object and nothing else.
"""


class LLMAdapter:
    """Synchronous ``complete(prompt) -> str`` over any litellm-supported model.

    Passes api_key/api_base straight to litellm instead of exporting them as
    environment variables, so agents on different providers can coexist.
    """

    def __init__(self, model: str, temperature: float = 0.0,
                 max_tokens: int = 4096, api_base: Optional[str] = None,
                 api_key: Optional[str] = None,
                 system_prompt: Optional[str] = DEFAULT_SYSTEM_PROMPT):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_base = api_base
        self.api_key = api_key
        self.system_prompt = system_prompt

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def complete(self, prompt: str) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model, "messages": self._messages(prompt),
            "temperature": self.temperature, "max_tokens": self.max_tokens,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            response = litellm.completion(**kwargs)
        except litellm.exceptions.AuthenticationError as e:
            raise ConnectionError(f"Auth failed. Check API key.\n{e}")
        except litellm.exceptions.APIConnectionError as e:
            raise ConnectionError(f"Cannot connect: model={self.model}, base={self.api_base or 'default'}\n{e}")
        except Exception as e:
            raise ConnectionError(f"LLM error: {type(e).__name__}: {e}")

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        if usage:
            _log.debug("%s used %s prompt / %s completion tokens",
                       self.model, usage.prompt_tokens, usage.completion_tokens)
        return content

    def __repr__(self) -> str:
        return f"LLMAdapter(model={self.model!r})"
