"""Observable store layer.

Defines the contract a store must honour to be bound to a component
(:class:`ObservableStore`), the update event it emits (:class:`MapUpdate`)
and an in-memory reference store (:class:`MapStream`).
"""

from streaming_state.store.events import MapUpdate, UpdateKind
from streaming_state.store.map_stream import MapStream, StreamSubscription
from streaming_state.store.protocol import ObservableStore, Subscription, UpdateListener

__all__ = [
    "MapStream",
    "MapUpdate",
    "ObservableStore",
    "StreamSubscription",
    "Subscription",
    "UpdateKind",
    "UpdateListener",
]
