"""
Widget lifecycle.

Every widget goes through the same sequence: construct, validate props,
mount elements, render, re-render on updates and refresh ticks, and finally
tear down. Subclasses fill in the hooks (``init_state``, ``mount``,
``render_<part>``, ``key_bindings``, ``on_refresh``, ``on_props_changed``,
``on_cleanup``) and never manage timers, listeners or elements themselves.
"""

import functools
import logging
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..errors import PropsValidationError, WidgetDestroyedError
from ..settings import TuikitSettings, get_settings
from .events import EventBus, Listener, WidgetEvent
from .style import StyleSheet
from .surface import Element, Screen
from .theme import Theme, load_theme, resolve_theme
from .timers import AsyncioScheduler, IntervalTimer, Scheduler
from .validator import ComponentValidator


logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    """Widget lifecycle states."""
    CONSTRUCTING = "constructing"
    VALIDATED = "validated"
    MOUNTED = "mounted"
    RENDERING = "rendering"
    IDLE = "idle"
    DESTROYED = "destroyed"


def guarded(method):
    """Reject calls on a destroyed widget."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        self._ensure_alive(method.__name__)
        return method(self, *args, **kwargs)
    return wrapper


def mutator(method):
    """Reject calls on a destroyed widget and re-render once the call completes."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        self._ensure_alive(method.__name__)
        result = method(self, *args, **kwargs)
        self.render()
        return result
    return wrapper


KeyBinding = Tuple[Iterable[str], Callable[[], Any]]


class Widget:
    """Base class for all tuikit widgets."""

    component_name: ClassVar[str] = ""
    stylesheet: ClassVar[StyleSheet] = StyleSheet("Widget")
    root_part: ClassVar[str] = "container"
    # Props whose change rebuilds the element tree.
    structural_props: ClassVar[Tuple[str, ...]] = ()
    # Props whose change rebinds key and click handlers.
    input_props: ClassVar[Tuple[str, ...]] = ("keys", "mouse")
    fallback_text: ClassVar[str] = "No data available"

    def __init__(self, props: Optional[Mapping[str, Any]] = None, *,
                 screen: Optional[Screen] = None,
                 scheduler: Optional[Scheduler] = None,
                 validator: Optional[ComponentValidator] = None,
                 settings: Optional[TuikitSettings] = None,
                 **prop_kwargs):
        self.lifecycle = LifecycleState.CONSTRUCTING
        self.settings = settings or get_settings()
        self.screen = screen or Screen()
        self.scheduler = scheduler or AsyncioScheduler()
        self.validator = validator or ComponentValidator(strict=self.settings.strict_validation)
        self.render_count = 0
        self._warned: Set[str] = set()

        raw = dict(props or {})
        raw.update(prop_kwargs)
        result = self.validator.validate(self.component_name, raw)
        if not result.success:
            raise PropsValidationError(self.component_name, result.errors, result.warnings)
        self._log_warnings(result.warnings)
        self.props: Dict[str, Any] = result.data
        self.lifecycle = LifecycleState.VALIDATED

        self.events = EventBus(owner=self.component_name)
        self._timers: Dict[str, IntervalTimer] = {}
        self.parts: Dict[str, Element] = {}
        self.styles: Dict[str, Dict[str, Any]] = {}
        self.dynamic_styles: Dict[str, Dict[str, Any]] = {}
        self.root: Optional[Element] = None
        self.theme: Theme = self._resolve_theme()

        try:
            self.init_state()
            self.root = self.screen.box(self.root_part, label=self.label_text())
            self.parts[self.root_part] = self.root
            self.mount()
            self._bind_input()
            self.lifecycle = LifecycleState.MOUNTED
            self._start_refresh()
            self.render()
        except Exception as e:
            logger.error(f"Failed to mount {self.component_name}: {e}")
            self.cleanup()
            raise

        logger.debug(f"Mounted {self.component_name} with parts {list(self.parts)}")

    # -- hooks -------------------------------------------------------------

    def init_state(self) -> None:
        """Set up internal mutable state from ``self.props``."""

    def mount(self) -> None:
        """Create the widget's parts below ``self.root``."""

    def key_bindings(self) -> List[KeyBinding]:
        return []

    def on_click(self) -> None:
        self.emit("click", {})

    def accepts_clicks(self) -> bool:
        return bool(self.props.get("mouse"))

    def before_render(self) -> None:
        """Recompute derived state (filtered or sorted views) ahead of drawing."""

    def on_refresh(self) -> None:
        """Called on every refresh tick before the re-render."""

    def on_props_changed(self, old: Dict[str, Any], new: Dict[str, Any]) -> None:
        """Called after ``update()`` has swapped in validated props."""

    def on_cleanup(self) -> None:
        """Release subclass-owned resources."""

    def label_text(self) -> Optional[str]:
        return self.props.get("label")

    def layout_value(self) -> Optional[str]:
        return None

    def status_value(self) -> Optional[str]:
        return None

    def axis_values(self, part: str) -> Dict[str, Optional[str]]:
        return {
            "variant": self.props.get("variant"),
            "size": self.props.get("size"),
            "layout": self.layout_value(),
            "state": self.props.get("state"),
            "status": self.status_value(),
        }

    # -- properties --------------------------------------------------------

    @property
    def destroyed(self) -> bool:
        return self.lifecycle is LifecycleState.DESTROYED

    @property
    def timers(self) -> Dict[str, IntervalTimer]:
        return dict(self._timers)

    def timer(self, name: str) -> IntervalTimer:
        if name not in self._timers:
            self._timers[name] = IntervalTimer(self.scheduler, name=f"{self.component_name}.{name}")
        return self._timers[name]

    # -- parts & styles ----------------------------------------------------

    def add_part(self, name: str, parent: Optional[Element] = None,
                 label: Optional[str] = None, when: bool = True) -> Optional[Element]:
        if not when:
            return None
        element = (parent or self.root).box(name, label=label)
        self.parts[name] = element
        return element

    def style_overrides(self, part: str) -> Dict[str, Any]:
        """Caller-supplied fragment for the ``custom`` cascade layer."""
        overrides: Dict[str, Any] = {}
        if part == self.root_part:
            if self.props.get("padding") is not None:
                overrides["padding"] = self.props["padding"]
            if self.props.get("radius"):
                overrides["border"] = {"type": "round"}
        style_prop = self.props.get("style")
        if isinstance(style_prop, Mapping) and part in style_prop:
            entry = style_prop[part]
            if isinstance(entry, Mapping):
                overrides.update(entry)
            else:
                self._log_warnings([f"style['{part}'] must be a mapping, ignoring {entry!r}"])
        overrides.update(self.dynamic_styles.get(part, {}))
        return overrides

    def resolve_part_style(self, part: str) -> Dict[str, Any]:
        return self.stylesheet.resolve(part, self.theme, self.axis_values(part), self.style_overrides(part))

    # -- rendering ---------------------------------------------------------

    def render(self) -> None:
        """Restyle and redraw every mounted part; a no-op after cleanup.

        Failures while preparing, styling or drawing are logged and degrade
        the output; they never propagate to the caller or a refresh tick.
        """
        if self.destroyed or self.lifecycle in (LifecycleState.CONSTRUCTING, LifecycleState.VALIDATED):
            return
        self.lifecycle = LifecycleState.RENDERING
        try:
            try:
                self.before_render()
            except Exception as e:
                logger.warning(f"{self.component_name}: preparing render failed: {e}")
            self.root.label = self.label_text()
            for name, element in list(self.parts.items()):
                try:
                    style = self.resolve_part_style(name)
                except Exception as e:
                    logger.warning(f"{self.component_name}: styling part '{name}' failed, rendering unstyled: {e}")
                    style = {}
                self.styles[name] = style
                element.style = style
                renderer = getattr(self, f"render_{name}", None)
                if renderer is None:
                    continue
                try:
                    element.set_content(renderer())
                except Exception as e:
                    logger.warning(f"{self.component_name}: rendering part '{name}' failed: {e}")
                    element.set_content(self.fallback_text)
            try:
                self.screen.render()
            except Exception as e:
                logger.error(f"{self.component_name}: drawing the screen failed: {e}")
            self.render_count += 1
        finally:
            if self.lifecycle is LifecycleState.RENDERING:
                self.lifecycle = LifecycleState.IDLE

    # -- updates -----------------------------------------------------------

    @mutator
    def update(self, partial: Optional[Mapping[str, Any]] = None, **changes) -> Dict[str, Any]:
        """Merge ``partial``/``changes`` into the props and re-render.

        The merged props are re-validated (unless ``revalidate_on_update`` is
        off); an invalid result raises PropsValidationError and leaves the
        widget as it was.
        """
        merged_changes = dict(partial or {})
        merged_changes.update(changes)
        old = dict(self.props)
        candidate = dict(old)
        candidate.update(merged_changes)

        if self.settings.revalidate_on_update:
            result = self.validator.validate(self.component_name, candidate)
            if not result.success:
                raise PropsValidationError(self.component_name, result.errors, result.warnings)
            self._log_warnings(result.warnings)
            new = result.data
        else:
            new = {k: v for k, v in candidate.items() if v is not None}

        self.props = new
        if old.get("theme") != new.get("theme"):
            self.theme = self._resolve_theme()
        self.on_props_changed(old, new)
        if any(old.get(k) != new.get(k) for k in self.structural_props):
            self._remount()
        if any(old.get(k) != new.get(k) for k in self.input_props):
            self._rebind_input()
        if old.get("refresh_interval") != new.get("refresh_interval"):
            self._start_refresh()
        return dict(self.props)

    def set_variant(self, variant: str) -> None:
        self.update(variant=variant)

    def set_size(self, size: str) -> None:
        self.update(size=size)

    def set_state(self, state: str) -> None:
        self.update(state=state)

    def set_refresh_interval(self, interval_ms: Optional[float]) -> None:
        self.update(refresh_interval=interval_ms or 0)

    @guarded
    def get_config(self) -> Dict[str, Any]:
        config = dict(self.props)
        config["component"] = self.component_name
        config["lifecycle"] = self.lifecycle.value
        return config

    # -- events ------------------------------------------------------------

    @guarded
    def on(self, event_type: str, listener: Listener) -> Listener:
        return self.events.on(event_type, listener)

    @guarded
    def off(self, event_type: str, listener: Listener) -> bool:
        return self.events.off(event_type, listener)

    def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> Optional[WidgetEvent]:
        if self.destroyed:
            return None
        return self.events.emit(event_type, data)

    def invoke_callback(self, prop: str, *args) -> Any:
        """Call a function-valued prop; its exceptions are logged, not raised."""
        callback = self.props.get(prop)
        if not callable(callback):
            return None
        try:
            return callback(*args)
        except Exception as e:
            logger.error(f"{self.component_name}.{prop} callback failed: {e}")
            return None

    # -- teardown ----------------------------------------------------------

    def cleanup(self) -> None:
        """Release timers, listeners and elements; safe to call repeatedly."""
        if self.destroyed:
            return
        steps = (
            ("timers", self._cancel_timers),
            ("listeners", self.events.clear),
            ("elements", self._destroy_elements),
            ("hook", self.on_cleanup),
        )
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.error(f"{self.component_name} cleanup step '{name}' failed: {e}")
        self.lifecycle = LifecycleState.DESTROYED
        logger.debug(f"Cleaned up {self.component_name}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()

    # -- internals ---------------------------------------------------------

    def _ensure_alive(self, operation: str) -> None:
        if self.destroyed:
            raise WidgetDestroyedError(self.component_name, operation)

    def _log_warnings(self, warnings: Iterable[str]) -> None:
        for warning in warnings:
            if warning in self._warned:
                continue
            self._warned.add(warning)
            logger.warning(f"{self.component_name}: {warning}")

    def _resolve_theme(self) -> Theme:
        overrides = self.props.get("theme")
        if isinstance(overrides, Theme):
            return overrides
        if self.settings.theme_file:
            theme = load_theme(self.settings.theme_file, base=self.settings.theme)
            return theme.with_overrides(overrides)
        return resolve_theme(overrides, base=self.settings.theme)

    def _bind_input(self) -> None:
        if self.props.get("keys", True):
            for keys, handler in self.key_bindings():
                self.root.key(list(keys), self._input_handler(handler))
        if self.accepts_clicks():
            self.root.on("click", self._input_handler(self.on_click))

    def _rebind_input(self) -> None:
        self.root.clear_bindings()
        self._bind_input()

    def _input_handler(self, handler: Callable[[], Any]) -> Callable[..., None]:
        def dispatch(*_args):
            if self.destroyed:
                return
            handler()
        return dispatch

    def _remount(self) -> None:
        for name, element in list(self.parts.items()):
            if element is not self.root:
                element.destroy()
        self.parts = {self.root_part: self.root}
        self.styles = {}
        self.mount()

    def _start_refresh(self) -> None:
        interval = self.props.get("refresh_interval") or 0
        timer = self.timer("refresh")
        if interval > 0:
            timer.start(interval, self._on_refresh_tick)
        else:
            timer.cancel_if_present()

    def _on_refresh_tick(self) -> None:
        if self.destroyed:
            return
        try:
            self.on_refresh()
        except Exception as e:
            logger.error(f"{self.component_name} refresh hook failed: {e}")
        self.render()

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel_if_present()

    def _destroy_elements(self) -> None:
        if self.root is not None:
            self.root.destroy()
        self.parts = {}
