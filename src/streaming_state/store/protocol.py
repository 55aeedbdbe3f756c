from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from streaming_state.store.events import MapUpdate

UpdateListener = Callable[[MapUpdate], None]


@runtime_checkable
class Subscription(Protocol):
    """A live listener registration.  ``cancel()`` must be idempotent."""

    def cancel(self) -> None: ...


@runtime_checkable
class ObservableStore(Protocol):
    """Anything a component can subscribe to.

    ``listen`` registers *callback* and returns a :class:`Subscription`.
    When *keys* is not ``None`` the store only delivers updates touching
    at least one of those keys.
    """

    def listen(self, callback: UpdateListener, keys: Sequence[Any] | None = None) -> Subscription: ...
