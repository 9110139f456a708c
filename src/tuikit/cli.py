"""Command line entry point: inspect schemas, validate props files and run a demo."""

from __future__ import annotations

import asyncio
import itertools
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.schema import get_registry
from .core.theme import COLOR_SCHEMES, available_themes, resolve_theme, scheme_as_dict
from .core.validator import ComponentValidator
from .errors import InvalidPropsError, PropsFileError, UnknownComponentError
from .logging_config import configure_logging
from .settings import get_settings
from .widgets import WIDGETS


def _console() -> Console:
    return Console(highlight=False)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="tuikit")
@click.option("--log-level", default=None, help="Override TUIKIT_LOG_LEVEL.")
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None,
              help="Override TUIKIT_LOG_FORMAT.")
@click.option("--log-file", default=None, type=click.Path(dir_okay=False),
              help="Write logs to a file instead of stderr.")
def main(log_level: Optional[str], log_format: Optional[str], log_file: Optional[str]) -> None:
    """tuikit widget runtime tools."""
    settings = get_settings()
    configure_logging(
        log_level or ("DEBUG" if settings.debug else settings.log_level),
        log_format or settings.log_format,
        log_file or settings.log_file,
    )


@main.command("components")
def components_cmd() -> None:
    """List registered component schemas."""
    registry = get_registry()
    table = Table(title="Components")
    table.add_column("Name", style="cyan")
    table.add_column("Fields", justify="right")
    table.add_column("Widget")
    table.add_column("Description")
    for name in registry.names():
        schema = registry.get(name)
        widget = WIDGETS.get(name)
        table.add_row(
            name,
            str(len(schema.fields)),
            widget.__module__ if widget else "-",
            schema.description,
        )
    _console().print(table)


@main.command("schema")
@click.argument("component")
def schema_cmd(component: str) -> None:
    """Show the props accepted by COMPONENT."""
    schema = get_registry().get(component)
    if schema is None:
        raise UnknownComponentError(component)
    table = Table(title=f"{schema.name} props")
    table.add_column("Prop", style="cyan")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("Default")
    table.add_column("Notes")
    for spec in schema.fields:
        notes = spec.description
        if spec.deprecated and spec.replaced_by:
            notes = f"deprecated, use '{spec.replaced_by}'"
        table.add_row(
            spec.key,
            spec.describe_type(),
            "yes" if spec.required else "",
            "" if spec.default is None else repr(spec.default),
            notes,
        )
    _console().print(table)


@main.command("themes")
def themes_cmd() -> None:
    """List the built-in theme palettes."""
    table = Table(title="Themes")
    table.add_column("Theme", style="cyan")
    keys = [k for k in scheme_as_dict(available_themes()[0]) if k != "name"]
    for key in keys:
        table.add_column(key)
    for name in available_themes():
        palette = scheme_as_dict(name)
        table.add_row(name, *[f"[{palette[k]}]{palette[k]}[/]" for k in keys])
    _console().print(table)


@main.command("validate")
@click.argument("component")
@click.argument("props_file", type=click.Path(dir_okay=False))
@click.option("--strict", is_flag=True, help="Warn about props the schema does not declare.")
def validate_cmd(component: str, props_file: str, strict: bool) -> None:
    """Validate a YAML or JSON PROPS_FILE against COMPONENT's schema."""
    registry = get_registry()
    if component not in registry:
        raise UnknownComponentError(component)
    try:
        with open(props_file, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except OSError as e:
        raise PropsFileError(props_file, e.strerror or str(e)) from e
    except yaml.YAMLError as e:
        raise PropsFileError(props_file, f"invalid YAML/JSON ({e})") from e

    strict = strict or get_settings().strict_validation
    result = ComponentValidator(registry, strict=strict).validate(component, raw)
    console = _console()
    for warning in result.warnings:
        console.print(f"[yellow]warning[/yellow] {escape(warning)}")
    if not result.success:
        for error in result.errors:
            console.print(f"[red]error[/red] [bold]{escape(error.path)}[/bold]: {escape(error.message)}")
        raise InvalidPropsError(component, len(result.errors))
    console.print(f"[green]✅ {component} props are valid[/green]")


@main.command("demo")
@click.option("--seconds", default=6.0, show_default=True, help="How long to run.")
@click.option("--theme", "theme_name", type=click.Choice(sorted(COLOR_SCHEMES)), default=None,
              help="Base theme (defaults to TUIKIT_THEME).")
def demo_cmd(seconds: float, theme_name: Optional[str]) -> None:
    """Run a short live demo of the agent widgets."""
    asyncio.run(_run_demo(seconds, theme_name))


async def _run_demo(seconds: float, theme_name: Optional[str]) -> None:
    from .core.surface import Screen
    from .core.timers import AsyncioScheduler
    from .widgets import AgentStatus, TaskList

    screen = Screen(_console())
    scheduler = AsyncioScheduler()
    theme = resolve_theme(base=theme_name) if theme_name else None
    status = AgentStatus(
        status="running", agent_name="demo-agent", display_mode="detailed",
        show_duration=True, show_progress=True, progress=0, animation="rotate",
        refresh_interval=1000, theme=theme, screen=screen, scheduler=scheduler,
    )
    tasks = TaskList(
        tasks=["Collect inputs", "Plan steps", "Execute", "Report"],
        title="Demo tasks", theme=theme, screen=screen, scheduler=scheduler,
    )
    cycle = itertools.cycle(["running", "paused", "running", "completed"])
    screen.start()
    try:
        steps = max(1, int(seconds))
        task_ids = [t.id for t in tasks.get_tasks()]
        for step in range(steps):
            await asyncio.sleep(1)
            status.set_progress(min(100, (step + 1) * 100 // steps))
            if step < len(task_ids):
                if step:
                    tasks.complete_task(task_ids[step - 1])
                tasks.start_task(task_ids[step])
            if step % 2 == 1:
                status.set_status(next(cycle))
        for task in tasks.get_tasks():
            if task.status != "completed":
                tasks.complete_task(task.id)
        status.set_status("completed")
        await asyncio.sleep(0.5)
    finally:
        screen.stop()
        status.cleanup()
        tasks.cleanup()


if __name__ == "__main__":
    main()
