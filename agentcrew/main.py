"""
agentcrew: run a crew of LLM agents from your terminal.

Command: agentcrew run "TASK"
"""

import sys
from concurrent.futures import FIRST_COMPLETED, Future, wait

import click
from rich.console import Console

from . import __version__
from .config import PROJECT_CONFIG_NAME, Config, ModelPreset
from .crew import Crew, ProcessStrategy, Task, TaskStatus
from .crew.futures import try_set_result
from .crew.rendering import CrewRenderer
from .errors import ConfigError, CrewError
from .logger import setup_logger
from .tools import available_tools

console = Console()
BANNER = (
    f"[bold #7FA6D9]agentcrew[/bold #7FA6D9] "
    f"[dim]v{__version__} · multi-agent task runner[/dim]"
)
STRATEGY_CHOICES = [s.value for s in ProcessStrategy]


@click.group()
@click.version_option(__version__, prog_name="agentcrew")
def cli():
    """agentcrew: orchestrate LLM agents on a task."""


@cli.command()
@click.argument("task", nargs=-1, required=True)
@click.option("--strategy", "-s", type=click.Choice(STRATEGY_CHOICES), default=None,
              help="Orchestration strategy (default from config)")
@click.option("--project-dir", "-d", default=".", help="Project directory")
@click.option("--model", "-m", default=None, help="Model preset name or litellm model id")
@click.option("--expected", default="", help="Hint describing the expected output")
@click.option("--ask-human", is_flag=True, help="Pause the task for a human answer")
@click.option("--show-log", is_flag=True, help="Print the run log when done")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def run(task, strategy, project_dir, model, expected, ask_human, show_log, verbose):
    """Run TASK through a crew built from configuration."""
    console.print(BANNER)
    try:
        config = Config.load(project_dir)
    except ConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        sys.exit(2)

    if model:
        if model not in config.models:
            config.models["_cli"] = ModelPreset(name="_cli", provider="openai", model=model)
            model = "_cli"
        config.active_model = model
    if verbose:
        config.verbose = True
    setup_logger(verbose=config.verbose)

    try:
        crew = Crew.from_config(config, strategy=strategy)
    except (ConfigError, CrewError, ValueError) as e:
        console.print(f"[red]Cannot build crew: {e}[/red]")
        sys.exit(2)

    renderer = CrewRenderer(console)
    crew_task = Task(
        description=" ".join(task),
        expected_output=expected,
        requires_human_input=ask_human,
    )
    signal = {"awaiting": Future()}

    def _on_status(t, old, new):
        renderer.on_status_change(t, old, new)
        if new is TaskStatus.AWAITING_HUMAN_INPUT:
            try_set_result(signal["awaiting"], True)

    crew_task.add_status_listener(_on_status)
    renderer.render_start(crew_task, crew.strategy, [a.name for a in crew.agents])

    with crew:
        pending = crew.execute(crew_task)
        try:
            while True:
                done, _ = wait([pending, signal["awaiting"]], return_when=FIRST_COMPLETED)
                if pending in done:
                    break
                signal["awaiting"] = Future()
                if crew_task.awaiting_human_input:
                    answer = console.input("[bold #D9D97F]? Your input:[/bold #D9D97F] ")
                    crew_task.set_human_input(answer)
        except KeyboardInterrupt:
            console.print("\n[red]Crew interrupted by user[/red]")
            crew_task.cancel_human_input()
            sys.exit(130)
        result = pending.result()

    renderer.render_result(crew_task, result)
    if show_log:
        renderer.render_log(crew.last_context)
    if crew_task.status is TaskStatus.FAILED or result.startswith("Error"):
        sys.exit(1)


@cli.command()
def strategies():
    """List orchestration strategies."""
    CrewRenderer(console).render_strategies()


@cli.command()
def tools():
    """List tools agents can use."""
    CrewRenderer(console).render_tools(available_tools())


@cli.command("config")
@click.option("--project-dir", "-d", default=".", help="Project directory")
def config_cmd(project_dir):
    """Show the resolved configuration."""
    try:
        cfg = Config.load(project_dir)
    except ConfigError as e:
        console.print(f"[red]Config error: {e}[/red]")
        sys.exit(2)
    for key, value in cfg.summary().items():
        console.print(f"  [dim]{key:<22}[/dim] {value}")


@cli.command()
@click.option("--project-dir", "-d", default=".", help="Project directory")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init(project_dir, force):
    """Write a starter .crew.conf.yml into the project directory."""
    cfg = Config.load(project_dir)
    target = f"{cfg.project_root}/{PROJECT_CONFIG_NAME}"
    if cfg._config_source == target and not force:
        console.print(f"[yellow]{target} already exists (use --force to overwrite)[/yellow]")
        sys.exit(1)
    from .crew.roles import DEFAULT_AGENTS

    cfg.agents = [
        {"name": s.name, "role": s.role, "tools": list(s.tools)} for s in DEFAULT_AGENTS
    ]
    path = cfg.save(target)
    console.print(f"[green]Wrote {path}[/green]")


if __name__ == "__main__":
    cli()
