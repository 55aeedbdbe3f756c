"""Component lifecycle base.

A component moves through ``created -> mounted -> unmounted`` exactly once.
The host calls :meth:`Component.mount` and :meth:`Component.unmount`;
subclasses hook into those transitions through :meth:`Component.on_mount`
and :meth:`Component.on_unmount`.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from streaming_state.exceptions import LifecycleViolationError

if TYPE_CHECKING:
    from streaming_state.binding.host import RenderHost

_logger = logging.getLogger(__name__)


class LifecycleState(StrEnum):
    CREATED = "created"
    MOUNTED = "mounted"
    UNMOUNTED = "unmounted"


@dataclass(frozen=True)
class BuildContext:
    """What a render call knows about where it is being rendered."""

    host: RenderHost
    component: Component
    build_count: int


class Component:
    """Base class for anything a :class:`RenderHost` can attach."""

    def __init__(self, *, key: Hashable | None = None) -> None:
        self.key = key
        self._host: RenderHost | None = None
        self._lifecycle = LifecycleState.CREATED

    def __repr__(self) -> str:
        label = f" key={self.key!r}" if self.key is not None else ""
        return f"<{type(self).__name__}{label} {self._lifecycle}>"

    @property
    def lifecycle(self) -> LifecycleState:
        return self._lifecycle

    @property
    def is_mounted(self) -> bool:
        """True between ``on_mount`` returning and unmount starting."""
        return self._lifecycle is LifecycleState.MOUNTED

    @property
    def host(self) -> RenderHost | None:
        return self._host

    def mount(self, host: RenderHost) -> None:
        if self._lifecycle is not LifecycleState.CREATED:
            raise LifecycleViolationError(f"cannot mount {self!r}: already {self._lifecycle}")
        self._host = host
        try:
            self.on_mount()
        except Exception:
            self._host = None
            raise
        self._lifecycle = LifecycleState.MOUNTED
        _logger.debug("Mounted %r", self)

    def unmount(self) -> None:
        if self._lifecycle is not LifecycleState.MOUNTED:
            raise LifecycleViolationError(f"cannot unmount {self!r}: not mounted")
        self._lifecycle = LifecycleState.UNMOUNTED
        self.on_unmount()
        _logger.debug("Unmounted %r", self)

    def on_mount(self) -> None:
        """Called once while mounting, before ``is_mounted`` turns true."""

    def on_unmount(self) -> None:
        """Called once while unmounting, after ``is_mounted`` turned false."""

    def request_rerender(self) -> None:
        """Ask the host to render this component again."""
        if not self.is_mounted or self._host is None:
            _logger.debug("Ignoring rerender request from %r", self)
            return
        self._host.schedule_render(self)

    def render(self, context: BuildContext) -> Any:
        raise NotImplementedError
