"""In-memory observable key-value store.

:class:`MapStream` behaves like a flat ``dict`` whose mutations are pushed
synchronously to registered listeners as :class:`MapUpdate` events.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from streaming_state._redact import redact_changes
from streaming_state.config import StreamingStateConfig
from streaming_state.store.events import MapUpdate, UpdateKind
from streaming_state.store.protocol import UpdateListener

_logger = logging.getLogger(__name__)

_MISSING: Any = object()


@dataclass(eq=False, slots=True)
class _Listener:
    callback: UpdateListener
    keys: frozenset[Any] | None
    active: bool = True


class StreamSubscription:
    """Handle returned by :meth:`MapStream.listen`."""

    __slots__ = ("_stream", "_listener")

    def __init__(self, stream: MapStream, listener: _Listener) -> None:
        self._stream = stream
        self._listener = listener

    def __repr__(self) -> str:
        return f"<StreamSubscription active={self.is_active} stream={self._stream!r}>"

    @property
    def is_active(self) -> bool:
        return self._listener.active

    def cancel(self) -> None:
        """Stop delivery.  Safe to call more than once."""
        if not self._listener.active:
            return
        self._listener.active = False
        self._stream._remove_listener(self._listener)  # noqa: SLF001


class MapStream:
    """Observable flat map.

    Every assignment emits, even when the new value equals the old one;
    deciding whether an update matters is left to subscribers.  Emissions
    made from inside a listener are queued and delivered once the current
    event has reached every listener, so delivery stays FIFO.

    Streams compare and hash by identity so they can key registrations.
    """

    def __init__(
        self,
        initial: Mapping[Any, Any] | None = None,
        *,
        name: str | None = None,
        config: StreamingStateConfig | None = None,
    ) -> None:
        self._data: dict[Any, Any] = dict(initial) if initial else {}
        self._name = name
        self._config = config or StreamingStateConfig()
        self._listeners: list[_Listener] = []
        self._sequence = itertools.count()
        self._pending: deque[MapUpdate] = deque()
        self._dispatching = False

    def __repr__(self) -> str:
        label = f" {self._name!r}" if self._name else ""
        return f"<MapStream{label} keys={len(self._data)} listeners={len(self._listeners)}>"

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def get(self, key: Any, default: Any = None) -> Any:
        return self._data.get(key, default)

    def keys(self) -> Iterable[Any]:
        return self._data.keys()

    def values(self) -> Iterable[Any]:
        return self._data.values()

    def items(self) -> Iterable[tuple[Any, Any]]:
        return self._data.items()

    def snapshot(self) -> dict[Any, Any]:
        """Shallow copy of the current contents."""
        return dict(self._data)

    # ------------------------------------------------------------------
    # Mutation API
    # ------------------------------------------------------------------

    def __setitem__(self, key: Any, value: Any) -> None:
        self.update({key: value})

    def __delitem__(self, key: Any) -> None:
        if key not in self._data:
            raise KeyError(key)
        self.pop(key)

    def update(self, other: Mapping[Any, Any] | Iterable[tuple[Any, Any]] = (), /, **kwargs: Any) -> None:
        """Set several keys at once, emitting a single ``set`` update."""
        changes = dict(other)
        changes.update(kwargs)
        if not changes:
            return
        previous = {key: self._data[key] for key in changes if key in self._data}
        self._data.update(changes)
        self._emit(UpdateKind.SET, changes=changes, previous=previous)

    def pop(self, key: Any, default: Any = _MISSING) -> Any:
        if key not in self._data:
            if default is _MISSING:
                raise KeyError(key)
            return default
        value = self._data.pop(key)
        self._emit(UpdateKind.REMOVE, previous={key: value})
        return value

    def clear(self) -> None:
        if not self._data:
            return
        previous = self._data
        self._data = {}
        self._emit(UpdateKind.CLEAR, previous=previous)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def listen(self, callback: UpdateListener, keys: Sequence[Any] | None = None) -> StreamSubscription:
        """Call *callback* for every update touching *keys* (every update when ``None``)."""
        if not callable(callback):
            raise TypeError("callback must be callable")
        listener = _Listener(callback=callback, keys=frozenset(keys) if keys is not None else None)
        self._listeners.append(listener)
        _logger.debug("%r listener added keys=%s", self, None if keys is None else list(keys))
        return StreamSubscription(self, listener)

    def _remove_listener(self, listener: _Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return
        _logger.debug("%r listener removed", self)

    def _emit(self, kind: UpdateKind, *, changes: dict[Any, Any] | None = None, previous: dict[Any, Any]) -> None:
        update = MapUpdate(
            kind=kind,
            changes=changes or {},
            previous=previous,
            sequence=next(self._sequence),
        )
        self._pending.append(update)
        if self._dispatching:
            # Delivered by the outer dispatch loop once the current event is done.
            return

        self._dispatching = True
        try:
            while self._pending:
                self._dispatch(self._pending.popleft())
        finally:
            self._dispatching = False
            if self._pending:
                _logger.debug("%r discarding %d undelivered update(s)", self, len(self._pending))
                self._pending.clear()

    def _dispatch(self, update: MapUpdate) -> None:
        if self._config.log_update_values:
            _logger.debug(
                "%r dispatch seq=%d kind=%s changes=%s",
                self,
                update.sequence,
                update.kind,
                redact_changes(update.changes, max_string=self._config.log_max_string),
            )
        else:
            _logger.debug("%r dispatch seq=%d kind=%s keys=%d", self, update.sequence, update.kind, len(update.keys))

        for listener in tuple(self._listeners):
            # A listener cancelled earlier in this loop must not be called.
            if not listener.active or not update.touches(listener.keys):
                continue
            try:
                listener.callback(update)
            except Exception:
                if self._config.raise_listener_errors:
                    raise
                _logger.warning("%r listener failed on seq=%d", self, update.sequence, exc_info=True)
