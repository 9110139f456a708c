"""
Terminal surface backed by rich.

Widgets build a tree of Elements (boxes with a style record, text content
and input bindings). ``Screen.render()`` turns the visible tree into rich
renderables and pushes the frame to a ``rich.live.Live`` display, or captures
it into ``last_frame`` when no live display is running.
"""

import io
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from rich import box
from rich.color import ColorParseError
from rich.console import Console, Group, RenderableType
from rich.errors import StyleError, StyleSyntaxError
from rich.live import Live
from rich.padding import Padding
from rich.panel import Panel
from rich.style import Style
from rich.text import Text


logger = logging.getLogger(__name__)


BORDER_BOXES = {
    'line': box.SQUARE,
    'round': box.ROUNDED,
    'double': box.DOUBLE,
    'bold': box.HEAVY,
    'heavy': box.HEAVY,
    'classic': box.ASCII,
    'ascii': box.ASCII,
}

_JUSTIFY = ('left', 'center', 'right', 'full')

Handler = Callable[..., Any]


def _color_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return f"color({value})"
    return str(value)


def rich_style(style: Mapping[str, Any], color_key: str = 'fg') -> Style:
    """Convert a resolved style record to a rich Style; bad colours degrade to unstyled."""
    try:
        return Style(
            color=_color_value(style.get(color_key)),
            bgcolor=_color_value(style.get('bg')) if color_key == 'fg' else None,
            bold=style.get('bold'),
            dim=style.get('dim'),
            italic=style.get('italic'),
            underline=style.get('underline'),
            reverse=style.get('reverse'),
        )
    except (ColorParseError, StyleError, StyleSyntaxError) as e:
        logger.warning(f"Invalid style {dict(style)!r}, rendering unstyled: {e}")
        return Style.null()


def padding_tuple(value: Any) -> Tuple[int, ...]:
    """Normalize padding given as int, (v, h), (t, r, b, l) or a side mapping."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (0, 0)
    if isinstance(value, int):
        return (value,)
    try:
        if isinstance(value, (list, tuple)) and len(value) in (1, 2, 4):
            return tuple(int(v) for v in value)
        if isinstance(value, Mapping):
            return (
                int(value.get('top', 0)),
                int(value.get('right', 0)),
                int(value.get('bottom', 0)),
                int(value.get('left', 0)),
            )
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid padding {value!r}, ignoring: {e}")
        return (0, 0)
    logger.warning(f"Unsupported padding {value!r}, ignoring")
    return (0, 0)


def border_box(value: Any) -> Optional[box.Box]:
    if value is None or value is False:
        return None
    if value is True:
        return box.SQUARE
    kind = value.get('type') if isinstance(value, Mapping) else value
    if kind is None or kind == 'none':
        return None
    if not isinstance(kind, str):
        logger.warning(f"Unsupported border {value!r}, drawing a plain line")
        return box.SQUARE
    return BORDER_BOXES.get(kind, box.SQUARE)


class Element:
    """A box on the screen with content, children and input handlers."""

    def __init__(self, screen: 'Screen', name: str, style: Optional[Dict[str, Any]] = None,
                 label: Optional[str] = None, parent: Optional['Element'] = None):
        self.screen = screen
        self.name = name
        self.style: Dict[str, Any] = dict(style or {})
        self.label = label
        self.parent = parent
        self.children: List['Element'] = []
        self.hidden = False
        self.destroyed = False
        self._content = ""
        self._key_handlers: Dict[str, List[Handler]] = {}
        self._event_handlers: Dict[str, List[Handler]] = {}

    @property
    def content(self) -> str:
        return self._content

    def set_content(self, text: Any) -> None:
        self._content = "" if text is None else str(text)

    def get_content(self) -> str:
        return self._content

    @property
    def focused(self) -> bool:
        return self.screen.focused is self

    def append(self, child: 'Element') -> 'Element':
        if child.parent is not None and child.parent is not self:
            child.parent.remove(child)
        child.parent = self
        if child not in self.children:
            self.children.append(child)
        return child

    def remove(self, child: 'Element') -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def box(self, name: str, style: Optional[Dict[str, Any]] = None,
            label: Optional[str] = None) -> 'Element':
        return self.screen.box(name, style=style, label=label, parent=self)

    def focus(self) -> None:
        self.screen.focus(self)

    def blur(self) -> None:
        if self.focused:
            self.screen.focus(None)

    def show(self) -> None:
        self.hidden = False

    def hide(self) -> None:
        self.hidden = True

    def key(self, keys: Union[str, Iterable[str]], handler: Handler) -> None:
        if isinstance(keys, str):
            keys = [keys]
        for k in keys:
            self._key_handlers.setdefault(k, []).append(handler)

    def on(self, event: str, handler: Handler) -> None:
        self._event_handlers.setdefault(event, []).append(handler)

    def bound_keys(self) -> List[str]:
        return list(self._key_handlers)

    def clear_bindings(self) -> None:
        """Drop every key and event handler bound to this element."""
        self._key_handlers.clear()
        self._event_handlers.clear()

    def _dispatch(self, handlers: List[Handler], what: str, *args) -> int:
        called = 0
        for handler in list(handlers):
            try:
                handler(*args)
            except Exception as e:
                logger.error(f"Error in {what} handler on {self.name}: {e}")
            called += 1
        return called

    def emit(self, event: str, *args) -> int:
        if self.destroyed:
            return 0
        return self._dispatch(self._event_handlers.get(event, []), event, *args)

    def press(self, key: str) -> bool:
        """Deliver a key press; returns whether any handler was bound to it."""
        if self.destroyed:
            return False
        handlers = self._key_handlers.get(key, [])
        self._dispatch(handlers, f"key '{key}'", key)
        self.emit('keypress', key)
        return bool(handlers)

    def click(self) -> int:
        return self.emit('click')

    def destroy(self) -> None:
        if self.destroyed:
            return
        for child in list(self.children):
            child.destroy()
        if self.parent is not None:
            self.parent.remove(self)
        self.screen.detach(self)
        self.clear_bindings()
        self.destroyed = True

    def renderable(self) -> Optional[RenderableType]:
        if self.hidden or self.destroyed:
            return None
        parts: List[RenderableType] = []
        if self._content:
            justify = self.style.get('align')
            parts.append(Text(
                self._content,
                style=rich_style(self.style),
                justify=justify if justify in _JUSTIFY else None,
            ))
        for child in self.children:
            rendered = child.renderable()
            if rendered is not None:
                parts.append(rendered)
        body: RenderableType = Group(*parts) if len(parts) != 1 else parts[0]

        frame = border_box(self.style.get('border'))
        pad = padding_tuple(self.style.get('padding'))
        if frame is not None:
            return Panel(
                body,
                box=frame,
                title=self.label,
                title_align='left',
                border_style=rich_style(self.style, color_key='border_fg'),
                padding=pad,
                expand=False,
            )
        if any(pad):
            return Padding(body, pad)
        return body

    def __repr__(self) -> str:
        return f"Element({self.name!r}, children={len(self.children)})"


class Screen:
    """Owns the element tree and the rich console it is drawn on."""

    def __init__(self, console: Optional[Console] = None, refresh_per_second: float = 10):
        self.console = console or Console()
        self.refresh_per_second = refresh_per_second
        self.elements: List[Element] = []
        self.focused: Optional[Element] = None
        self.last_frame = ""
        self.render_count = 0
        self._live: Optional[Live] = None

    @classmethod
    def headless(cls, width: int = 80, height: int = 40) -> 'Screen':
        """In-memory screen without colour, for tests and non-interactive hosts."""
        console = Console(
            file=io.StringIO(),
            width=width,
            height=height,
            color_system=None,
            force_terminal=False,
            legacy_windows=False,
        )
        return cls(console=console)

    def box(self, name: str, style: Optional[Dict[str, Any]] = None,
            label: Optional[str] = None, parent: Optional[Element] = None) -> Element:
        element = Element(self, name, style=style, label=label)
        if parent is not None:
            parent.append(element)
        else:
            self.elements.append(element)
        return element

    def detach(self, element: Element) -> None:
        if element in self.elements:
            self.elements.remove(element)
        if self.focused is element:
            self.focused = None

    def focus(self, element: Optional[Element]) -> None:
        self.focused = element

    def press(self, key: str) -> bool:
        """Send a key to the focused element, or to every top-level element."""
        if self.focused is not None:
            return self.focused.press(key)
        handled = False
        for element in list(self.elements):
            handled = element.press(key) or handled
        return handled

    def frame(self) -> RenderableType:
        rendered = [r for r in (el.renderable() for el in self.elements) if r is not None]
        return Group(*rendered)

    def render(self) -> None:
        frame = self.frame()
        self.render_count += 1
        if self._live is not None:
            self._live.update(frame, refresh=True)
            return
        with self.console.capture() as capture:
            self.console.print(frame)
        self.last_frame = capture.get()

    @property
    def live(self) -> bool:
        return self._live is not None

    def start(self) -> None:
        if self._live is not None:
            return
        self._live = Live(
            self.frame(),
            console=self.console,
            refresh_per_second=self.refresh_per_second,
            transient=False,
        )
        self._live.start()

    def stop(self) -> None:
        if self._live is None:
            return
        live, self._live = self._live, None
        live.stop()

    def __enter__(self) -> 'Screen':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
