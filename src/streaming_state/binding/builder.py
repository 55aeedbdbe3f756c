from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import Any

from streaming_state.binding.component import BuildContext
from streaming_state.binding.policy import UpdatePolicy
from streaming_state.binding.streaming_state import StreamingState
from streaming_state.config import StreamingStateConfig
from streaming_state.exceptions import InvalidArgumentError
from streaming_state.store.protocol import ObservableStore


class MapStreamBuilder(StreamingState):
    """Component that renders itself from the current state of one map stream.

    *builder* is called with the :class:`BuildContext` on the first render
    and on every re-render triggered by a relevant update.  Its return
    value is the render output, uncached.  It must not mutate the stream
    it is bound to.

    Optional *listen_for* restricts re-renders to updates of those keys.
    """

    def __init__(
        self,
        map_stream: ObservableStore,
        builder: Callable[[BuildContext], Any],
        listen_for: Iterable[Any] | None = None,
        *,
        should_update: UpdatePolicy | None = None,
        key: Hashable | None = None,
        config: StreamingStateConfig | None = None,
    ) -> None:
        if not callable(builder):
            raise InvalidArgumentError("builder must be callable")
        super().__init__(map_stream, listen_for, should_update=should_update, key=key, config=config)
        self._builder = builder

    def render(self, context: BuildContext) -> Any:
        return self._builder(context)
