"""streaming_state - observable map streams bound to component lifecycles."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("streaming-state")
except PackageNotFoundError:
    __version__ = "0+local"
from streaming_state.binding import (
    AsyncioRenderHost,
    BuildContext,
    Component,
    LifecycleState,
    MapStreamBuilder,
    RenderHost,
    StreamingState,
    UpdatePolicy,
)
from streaming_state.config import StreamingStateConfig
from streaming_state.exceptions import (
    InvalidArgumentError,
    LifecycleViolationError,
    StreamingStateConfigError,
    StreamingStateError,
)
from streaming_state.store import (
    MapStream,
    MapUpdate,
    ObservableStore,
    StreamSubscription,
    Subscription,
    UpdateKind,
)

__all__ = [
    "__version__",
    "AsyncioRenderHost",
    "BuildContext",
    "Component",
    "InvalidArgumentError",
    "LifecycleState",
    "LifecycleViolationError",
    "MapStream",
    "MapStreamBuilder",
    "MapUpdate",
    "ObservableStore",
    "RenderHost",
    "StreamSubscription",
    "StreamingState",
    "StreamingStateConfig",
    "StreamingStateConfigError",
    "StreamingStateError",
    "Subscription",
    "UpdateKind",
    "UpdatePolicy",
]
