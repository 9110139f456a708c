"""Exception types raised by the tuikit runtime and CLI."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

import click


class TuikitError(Exception):
    """Base class for all tuikit errors."""


class SchemaError(TuikitError):
    """Raised on schema registry misuse (duplicate names, bad field specs)."""


class ThemeError(TuikitError):
    """Raised when a theme file cannot be read or has the wrong shape."""


class PropsValidationError(TuikitError, ValueError):
    """Props failed validation; carries every offending field.

    Construction aborts with this before any element is mounted, and
    ``update()`` raises it without touching the instance's current props.
    """

    def __init__(self, component: str, errors: Iterable, warnings: Iterable[str] = ()):
        self.component = component
        self.errors: Tuple = tuple(errors)
        self.warnings: Tuple[str, ...] = tuple(warnings)
        super().__init__(self._build_message())

    @property
    def fields(self) -> List[str]:
        return [error.path for error in self.errors]

    def _build_message(self) -> str:
        if not self.errors:
            return f"Invalid props for {self.component}"
        details = "; ".join(f"{e.path}: {e.message}" for e in self.errors)
        return f"Invalid props for {self.component}: {details}"


class WidgetDestroyedError(TuikitError, RuntimeError):
    """A public widget method was called after ``cleanup()``."""

    def __init__(self, component: str, operation: Optional[str] = None):
        self.component = component
        self.operation = operation
        where = f".{operation}()" if operation else ""
        super().__init__(f"{component}{where} called after cleanup()")


class CLIError(click.ClickException):
    """Base class for all CLI-visible errors with enhanced formatting."""

    #: Emoji shown at the beginning of every error line
    emoji: str = "❌"

    #: Short, actionable suggestion shown after the main message.
    hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint

    @property
    def formatted_message(self) -> str:
        lines = [f"{self.emoji}  {click.style(self.message, fg='red', bold=True)}"]
        if self.hint:
            lines.append(click.style(f"💡 {self.hint}", fg='yellow'))
        return "\n".join(lines)

    def show(self, file=None) -> None:
        click.echo(self.formatted_message, err=True, file=file)


class UnknownComponentError(CLIError):
    """Raised when a command names a component with no registered schema."""
    emoji = "🚫"

    def __init__(self, name: str):
        hint = f"Run {click.style('tuikit components', fg='cyan')} to list registered components."
        super().__init__(f"Unknown component {click.style(name, fg='magenta')}.", hint)


class PropsFileError(CLIError):
    """Raised when a props file cannot be read or parsed."""
    emoji = "📄"

    def __init__(self, path: str, details: str):
        hint = "Props files must contain a YAML or JSON mapping of prop names to values."
        super().__init__(f"Cannot load props from {path}: {details}", hint)


class InvalidPropsError(CLIError):
    """Raised by ``tuikit validate`` when props fail validation."""
    emoji = "⚠️"

    def __init__(self, component: str, count: int):
        hint = f"Run {click.style(f'tuikit schema {component}', fg='cyan')} to see the accepted props."
        noun = "error" if count == 1 else "errors"
        super().__init__(f"{component} props are invalid ({count} {noun}).", hint)
