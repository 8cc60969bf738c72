"""Read-only file tools."""

from pathlib import Path

from ..errors import ToolError
from .tool_decorator import tool

MAX_FILE_BYTES = 512 * 1024


@tool(description="Read a UTF-8 text file, optionally a range of lines.")
def read_file(path: str, start_line: int = None, end_line: int = None) -> str:
    """
    path: Path of the file to read
    start_line: First line to return, 1-based
    end_line: Last line to return, inclusive
    """
    fp = Path(path).expanduser()
    if not fp.is_file():
        raise ToolError("read_file", f"not a file: {path}")
    if fp.stat().st_size > MAX_FILE_BYTES:
        raise ToolError("read_file", f"file too large: {path}")

    lines = fp.read_text(encoding="utf-8", errors="replace").splitlines()
    start = max(int(start_line or 1), 1)
    end = min(int(end_line or len(lines)), len(lines))
    if start > end:
        return ""
    return "\n".join(lines[start - 1:end])


@tool(description="List the entries of a directory.")
def list_directory(path: str = ".") -> str:
    """
    path: Directory to list
    """
    dp = Path(path).expanduser()
    if not dp.is_dir():
        raise ToolError("list_directory", f"not a directory: {path}")
    entries = sorted(dp.iterdir(), key=lambda p: (not p.is_dir(), p.name.lower()))
    return "\n".join(f"{p.name}/" if p.is_dir() else p.name for p in entries)
