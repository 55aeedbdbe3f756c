"""Hosts that mount, render and unmount components.

:class:`RenderHost` coalesces re-render requests until :meth:`RenderHost.flush`
is called.  :class:`AsyncioRenderHost` flushes automatically on the next
turn of an asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from streaming_state.binding.component import BuildContext, Component
from streaming_state.exceptions import LifecycleViolationError

_logger = logging.getLogger(__name__)


@dataclass
class _Attached:
    component: Component
    output: Any = None
    build_count: int = 0


class RenderHost:
    """Synchronous host with explicit, coalesced flushing."""

    def __init__(self) -> None:
        self._attached: dict[int, _Attached] = {}
        # Insertion-ordered, so flush renders in request order.
        self._dirty: dict[int, Component] = {}

    @property
    def pending(self) -> int:
        """Number of components waiting to be rendered."""
        return len(self._dirty)

    def is_attached(self, component: Component) -> bool:
        return id(component) in self._attached

    def attach(self, component: Component) -> Any:
        """Mount *component*, render it once and return the output."""
        component.mount(self)
        self._attached[id(component)] = _Attached(component)
        return self._build(component)

    def detach(self, component: Component) -> None:
        """Unmount *component* and forget its output and pending render."""
        if not self.is_attached(component):
            raise LifecycleViolationError(f"{component!r} is not attached to this host")
        try:
            component.unmount()
        finally:
            self._attached.pop(id(component), None)
            self._dirty.pop(id(component), None)

    def schedule_render(self, component: Component) -> None:
        key = id(component)
        if key not in self._attached:
            _logger.debug("Ignoring render request for detached %r", component)
            return
        self._dirty.setdefault(key, component)
        self._on_render_scheduled()

    def flush(self) -> int:
        """Render every dirty component; return how many were rendered."""
        rendered = 0
        while self._dirty:
            key, component = next(iter(self._dirty.items()))
            # Removed before building so a request made during render is kept.
            del self._dirty[key]
            if key not in self._attached:
                continue
            try:
                self._build(component)
            except Exception:
                self._dirty.setdefault(key, component)
                raise
            rendered += 1
        return rendered

    def output(self, component: Component) -> Any:
        return self._record(component).output

    def build_count(self, component: Component) -> int:
        return self._record(component).build_count

    def _record(self, component: Component) -> _Attached:
        try:
            return self._attached[id(component)]
        except KeyError:
            raise LifecycleViolationError(f"{component!r} is not attached to this host") from None

    def _build(self, component: Component) -> Any:
        record = self._record(component)
        context = BuildContext(host=self, component=component, build_count=record.build_count + 1)
        output = component.render(context)
        record.output = output
        record.build_count = context.build_count
        _logger.debug("Rendered %r build=%d", component, record.build_count)
        return output

    def _on_render_scheduled(self) -> None:
        """Hook for hosts that flush on their own."""


class AsyncioRenderHost(RenderHost):
    """Host that flushes once per event-loop turn.

    Must be used from the thread running *loop*.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        super().__init__()
        self._loop = loop or asyncio.get_running_loop()
        self._handle: asyncio.Handle | None = None

    def _on_render_scheduled(self) -> None:
        if self._handle is None:
            self._handle = self._loop.call_soon(self._scheduled_flush)

    def _scheduled_flush(self) -> None:
        self._handle = None
        self.flush()

    def close(self) -> None:
        """Cancel a pending flush, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
