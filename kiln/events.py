"""Build lifecycle events and project extensions.

Extensions are plain Python modules in the project's ``extensions/``
directory. Each module exposes a ``register(registry)`` function that
subscribes handlers to build events:

    from kiln.events import BuildEvent

    def register(registry):
        registry.on(BuildEvent.PAGE_RENDERED, lambda html, page: html + "<!-- built -->")

Event payloads:
- BUILD_STARTED: ``(config)``
- CONTENT_DISCOVERED: transform of ``pages`` with ``(config)``
- PAGE_RENDERED: transform of ``html`` with ``(page)``
- PAGE_WRITTEN: ``(page, output_file)``
- BUILD_COMPLETED: ``(config, pages)``
"""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ExtensionError

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class BuildEvent(Enum):
    BUILD_STARTED = "build_started"
    CONTENT_DISCOVERED = "content_discovered"
    PAGE_RENDERED = "page_rendered"
    PAGE_WRITTEN = "page_written"
    BUILD_COMPLETED = "build_completed"


class EventRegistry:
    """Ordered handler lists keyed by build event."""

    def __init__(self) -> None:
        self._handlers: dict[BuildEvent, list[Handler]] = {event: [] for event in BuildEvent}

    def on(self, event: BuildEvent, handler: Handler) -> Handler:
        """Subscribe a handler; returns it so ``on`` can wrap a def."""
        self._handlers[event].append(handler)
        return handler

    def dispatch(self, event: BuildEvent, *args: Any) -> None:
        """Notify every handler of an event, in registration order."""
        for handler in self._handlers[event]:
            handler(*args)

    def transform(self, event: BuildEvent, value: Any, *args: Any) -> Any:
        """Pass a value through every handler in order.

        Each handler receives the current value followed by ``args`` and
        returns the new value.

        Args:
            event: Event to fold over.
            value: Initial value.
            *args: Extra context passed to each handler.

        Returns:
            The value returned by the last handler, or ``value`` when no
            handler is subscribed.
        """
        for handler in self._handlers[event]:
            value = handler(value, *args)
        return value

    def listener_count(self, event: BuildEvent) -> int:
        return len(self._handlers[event])


def load_extensions(extensions_path: Path, registry: EventRegistry) -> list[str]:
    """Import project extensions and let each register its handlers.

    Args:
        extensions_path: Directory holding extension modules.
        registry: Registry passed to every ``register`` function.

    Returns:
        Names of the loaded modules, in load order.

    Raises:
        ExtensionError: If a module fails to import or has no callable
            ``register``.
    """
    if not extensions_path.is_dir():
        return []

    loaded: list[str] = []
    for path in sorted(extensions_path.glob("*.py")):
        if path.name.startswith("_"):
            continue
        module = _import_extension(path)
        register = getattr(module, "register", None)
        if not callable(register):
            raise ExtensionError(f"{path}: extension does not define a register(registry) function.")
        register(registry)
        logger.debug("Loaded extension %s", path.name)
        loaded.append(path.stem)
    return loaded


def _import_extension(path: Path):
    module_name = f"kiln_extension_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ExtensionError(f"{path}: unable to load extension module.")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ExtensionError(f"{path}: extension failed to import: {exc}") from exc
    return module
