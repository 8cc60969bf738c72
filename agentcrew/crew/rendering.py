"""Console rendering for crew runs: status lines, result panel and run log."""

import threading
from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .context import ExecutionContext
from .process import ProcessStrategy
from .tasks import Task, TaskStatus

ACCENT = "#7FA6D9"
BORDER = "#3B4252"
DIM = "grey58"
SUCCESS = "#57DB9C"
WARN = "#D9D97F"
ERROR = "#D97F7F"

# Status display: (icon_char, color, label)
_STATE_DISPLAY = {
    TaskStatus.PENDING:              ("○", DIM,     "pending"),
    TaskStatus.IN_PROGRESS:          ("▸", ACCENT,  "running"),
    TaskStatus.AWAITING_HUMAN_INPUT: ("?", WARN,    "waiting for you"),
    TaskStatus.COMPLETED:            ("✓", SUCCESS, "done"),
    TaskStatus.FAILED:               ("✗", ERROR,   "failed"),
}

STRATEGY_DESCRIPTIONS = {
    ProcessStrategy.SEQUENTIAL: "Each agent works on the previous agent's output, in order",
    ProcessStrategy.HIERARCHICAL: "First agent plans sub-tasks for the others, then synthesizes",
    ProcessStrategy.CONSENSUAL: "All agents answer in parallel; the last one synthesizes",
}


class CrewRenderer:
    """Prints crew progress to a rich console; safe to call from agent threads."""

    def __init__(self, console: Console):
        self.console = console
        self._lock = threading.Lock()

    def _print(self, *renderables) -> None:
        with self._lock:
            self.console.print(*renderables)

    def on_status_change(self, task: Task, old: TaskStatus, new: TaskStatus) -> None:
        """Status listener for :meth:`Task.add_status_listener`."""
        icon, color, label = _STATE_DISPLAY[new]
        self._print(
            f"  [{color}]{icon} {label}[/{color}] "
            f"[{DIM}]{escape(task.description[:60])}[/{DIM}]"
        )

    def render_start(self, task: Task, strategy: ProcessStrategy, agent_names: Iterable[str]) -> None:
        names = ", ".join(agent_names) or "(none)"
        self._print(
            f"\n  [{ACCENT}]● Crew[/{ACCENT}] [{DIM}]{strategy.value} · agents: {escape(names)}[/{DIM}]"
        )

    def render_result(self, task: Task, result: str) -> None:
        ok = task.status is TaskStatus.COMPLETED and not result.startswith("Error")
        color = SUCCESS if ok else ERROR
        self._print(Panel(
            escape(result),
            title=f"[bold {color}] Result [/bold {color}]",
            subtitle=f"[{DIM}]task {task.status.value}[/{DIM}]",
            title_align="left",
            border_style=BORDER,
            padding=(0, 1),
        ))

    def render_log(self, context: Optional[ExecutionContext], limit: int = 0) -> None:
        if context is None:
            return
        entries = context.get_log_history()
        if limit:
            entries = entries[-limit:]
        table = Table(show_header=True, header_style=f"bold {ACCENT}", border_style=BORDER)
        table.add_column("Time", style=DIM, no_wrap=True)
        table.add_column("Event")
        for entry in entries:
            table.add_row(entry.timestamp.strftime("%H:%M:%S.%f")[:-3], escape(entry.message[:300]))
        self._print(Panel(
            table,
            title=f"[bold {ACCENT}] Run log {context.run_id} [/bold {ACCENT}]",
            title_align="left",
            border_style=BORDER,
        ))

    def render_strategies(self) -> None:
        table = Table(show_header=True, header_style=f"bold {ACCENT}", border_style=BORDER)
        table.add_column("Strategy")
        table.add_column("Description")
        for strategy in ProcessStrategy:
            table.add_row(strategy.value, STRATEGY_DESCRIPTIONS[strategy])
        self._print(table)

    def render_tools(self, tools) -> None:
        table = Table(show_header=True, header_style=f"bold {ACCENT}", border_style=BORDER)
        table.add_column("Tool")
        table.add_column("Description")
        table.add_column("Parameters", style=DIM)
        for t in tools:
            params = "\n".join(f"{k}: {v}" for k, v in t.parameter_schema.items()) or "-"
            table.add_row(t.name, t.description, escape(params))
        self._print(table)
