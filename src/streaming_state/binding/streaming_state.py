"""Lifecycle binding between observable stores and a component.

:class:`StreamingState` subscribes to its stores when the host mounts it,
asks the host for a re-render whenever a relevant update arrives, and
cancels every subscription when the host unmounts it.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Self

from streaming_state.binding.component import Component
from streaming_state.binding.policy import UpdatePolicy
from streaming_state.config import StreamingStateConfig
from streaming_state.exceptions import InvalidArgumentError
from streaming_state.store.events import MapUpdate
from streaming_state.store.protocol import ObservableStore, Subscription, UpdateListener

_logger = logging.getLogger(__name__)

Registrations = Mapping[ObservableStore, Iterable[Any] | None] | Iterable[tuple[ObservableStore, Iterable[Any] | None]]


@dataclass(frozen=True, slots=True)
class _Registration:
    map_stream: ObservableStore
    listen_for: tuple[Any, ...] | None


def _normalize_listen_for(listen_for: Iterable[Any] | None) -> tuple[Any, ...] | None:
    if listen_for is None:
        return None
    if isinstance(listen_for, (str, bytes, bytearray)):
        raise InvalidArgumentError(f"listen_for must be a collection of keys, not {type(listen_for).__name__}")
    try:
        # Deduplicated, first occurrence wins.
        return tuple(dict.fromkeys(listen_for))
    except TypeError as exc:
        raise InvalidArgumentError(f"listen_for must be an iterable of hashable keys: {exc}") from exc


def _registration(map_stream: ObservableStore | None, listen_for: Iterable[Any] | None) -> _Registration:
    if map_stream is None:
        raise InvalidArgumentError("map_stream must not be None")
    if not isinstance(map_stream, ObservableStore):
        raise InvalidArgumentError(f"{map_stream!r} does not provide listen()")
    return _Registration(map_stream, _normalize_listen_for(listen_for))


class StreamingState(Component):
    """Component that re-renders when attached stores update.

    Attach a single store, optionally restricted to the keys in
    *listen_for*::

        StreamingState(stream, ["count"])

    or several store/key-filter pairs at once::

        StreamingState.multi_state({settings: None, session: ["user"]})

    Whether a delivered update actually re-renders is decided by
    :meth:`should_update`.  Override it in a subclass, or inject a policy
    ``(update, previous) -> bool`` through *should_update*.
    """

    def __init__(
        self,
        map_stream: ObservableStore | None = None,
        listen_for: Iterable[Any] | None = None,
        *,
        map_streams: Registrations | None = None,
        should_update: UpdatePolicy | None = None,
        key: Hashable | None = None,
        config: StreamingStateConfig | None = None,
    ) -> None:
        super().__init__(key=key)
        self._config = config or StreamingStateConfig()

        if map_streams is None:
            registrations = (_registration(map_stream, listen_for),)
        elif map_stream is not None or listen_for is not None:
            raise InvalidArgumentError("pass either map_stream/listen_for or map_streams, not both")
        else:
            registrations = self._multi_registrations(map_streams)

        if should_update is not None and not callable(should_update):
            raise InvalidArgumentError("should_update must be callable")

        self._registrations: tuple[_Registration, ...] = registrations
        self._update_policy = should_update
        self._previous_updates: list[MapUpdate | None] = [None] * len(registrations)
        self._subscriptions: list[Subscription] = []

    @classmethod
    def multi_state(cls, map_streams: Registrations, **kwargs: Any) -> Self:
        """Attach several stores, each with its own key filter (``None`` for all keys)."""
        return cls(map_streams=map_streams, **kwargs)

    def _multi_registrations(self, map_streams: Registrations) -> tuple[_Registration, ...]:
        pairs = map_streams.items() if isinstance(map_streams, Mapping) else map_streams
        registrations: list[_Registration] = []
        for map_stream, listen_for in pairs:
            registration = _registration(map_stream, listen_for)
            if any(existing.map_stream is registration.map_stream for existing in registrations):
                raise InvalidArgumentError(f"{map_stream!r} registered more than once")
            registrations.append(registration)

        if not registrations:
            if not self._config.allow_empty_registration:
                raise InvalidArgumentError("map_streams must contain at least one store")
            _logger.debug("%r created without stores; it will never re-render", self)
        return tuple(registrations)

    @property
    def registrations(self) -> tuple[tuple[ObservableStore, tuple[Any, ...] | None], ...]:
        return tuple((r.map_stream, r.listen_for) for r in self._registrations)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def previous_update(self, map_stream: ObservableStore) -> MapUpdate | None:
        """Last update delivered from *map_stream*, whether or not it re-rendered."""
        return self._previous_updates[self._index_of(map_stream)]

    def _index_of(self, map_stream: ObservableStore) -> int:
        for index, registration in enumerate(self._registrations):
            if registration.map_stream is map_stream:
                return index
        raise InvalidArgumentError(f"{map_stream!r} is not registered with {self!r}")

    def should_update(self, update: MapUpdate, map_stream: ObservableStore) -> bool:
        """Decide whether *update* from *map_stream* re-renders this component.

        Defaults to the injected policy, or ``True`` without one.  Must not
        have side effects; the previous-update bookkeeping is done by the
        caller after this returns.
        """
        if self._update_policy is None:
            return True
        return self._update_policy(update, self.previous_update(map_stream))

    def on_mount(self) -> None:
        super().on_mount()
        opened: list[Subscription] = []
        try:
            for index, registration in enumerate(self._registrations):
                opened.append(registration.map_stream.listen(self._listener(index), registration.listen_for))
        except Exception:
            for subscription in opened:
                subscription.cancel()
            raise
        self._subscriptions = opened
        _logger.debug("%r subscribed to %d store(s)", self, len(opened))

    def on_unmount(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        failure: Exception | None = None
        # Every subscription is cancelled even if an earlier cancel() fails.
        for subscription in subscriptions:
            try:
                subscription.cancel()
            except Exception as exc:
                _logger.warning("%r failed to cancel %r", self, subscription, exc_info=True)
                if failure is None:
                    failure = exc
        _logger.debug("%r cancelled %d subscription(s)", self, len(subscriptions))
        super().on_unmount()
        if failure is not None:
            raise failure

    def _listener(self, index: int) -> UpdateListener:
        map_stream = self._registrations[index].map_stream

        def _on_update(update: MapUpdate) -> None:
            # The store may have queued this delivery before unmount cancelled it.
            if not self.is_mounted:
                _logger.debug("Dropping update for %r: not mounted", self)
                return
            try:
                if self.should_update(update, map_stream):
                    self.request_rerender()
            finally:
                self._previous_updates[index] = update

        return _on_update
