"""Component binding layer.

Connects observable stores to the re-render trigger of components driven
by a :class:`RenderHost`.
"""

from streaming_state.binding.builder import MapStreamBuilder
from streaming_state.binding.component import BuildContext, Component, LifecycleState
from streaming_state.binding.host import AsyncioRenderHost, RenderHost
from streaming_state.binding.policy import UpdatePolicy
from streaming_state.binding.streaming_state import StreamingState

__all__ = [
    "AsyncioRenderHost",
    "BuildContext",
    "Component",
    "LifecycleState",
    "MapStreamBuilder",
    "RenderHost",
    "StreamingState",
    "UpdatePolicy",
]
