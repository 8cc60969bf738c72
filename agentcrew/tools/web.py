"""Web fetch tool: Jina Reader turns any URL into clean markdown, no API key."""

import re
import time
from typing import Optional
from urllib.parse import urlparse

import requests

from ..errors import ToolError
from .tool_decorator import tool

JINA_PREFIX = "https://r.jina.ai/"
TIMEOUT = 30
MAX_CONTENT_LENGTH = 40000
_RETRYABLE_STATUS = {429, 500, 502, 503}
_MULTI_NEWLINE_RE = re.compile(r"\n{3,}")

_session: Optional[requests.Session] = None


def _get_session() -> requests.Session:
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({
            "Accept": "text/markdown, text/plain, */*;q=0.8",
            "X-Return-Format": "markdown",
        })
    return _session


def _request_with_retry(url: str, max_retries: int = 2) -> requests.Response:
    """GET with exponential backoff on transient errors."""
    session = _get_session()
    for attempt in range(1 + max_retries):
        try:
            resp = session.get(url, timeout=TIMEOUT)
            if resp.status_code not in _RETRYABLE_STATUS or attempt == max_retries:
                resp.raise_for_status()
                return resp
        except (requests.ConnectionError, requests.Timeout):
            if attempt == max_retries:
                raise
        time.sleep(2 ** attempt)  # 1s -> 2s
    raise ToolError("web_fetch", f"no response from {url}")


@tool(description="Fetch a web page and return its content as markdown.")
def web_fetch(url: str) -> str:
    """
    url: The http(s) URL to fetch
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ToolError("web_fetch", f"invalid URL scheme: {parsed.scheme or '(none)'}")
    try:
        resp = _request_with_retry(JINA_PREFIX + url)
    except requests.RequestException as e:
        raise ToolError("web_fetch", f"fetch failed: {e}")

    text = _MULTI_NEWLINE_RE.sub("\n\n", resp.text.strip())
    if len(text) > MAX_CONTENT_LENGTH:
        text = text[:MAX_CONTENT_LENGTH] + "\n\n... (truncated)"
    return f"URL: {url}\n\n{text}"
