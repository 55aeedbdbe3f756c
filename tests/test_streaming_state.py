from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pytest

from streaming_state.binding import RenderHost, StreamingState
from streaming_state.binding.component import BuildContext, LifecycleState
from streaming_state.binding.policy import content_changed, never_update
from streaming_state.config import StreamingStateConfig
from streaming_state.exceptions import InvalidArgumentError, LifecycleViolationError
from streaming_state.store import MapStream, MapUpdate, ObservableStore


class _Counter(StreamingState):
    """Counts renders so re-render requests can be observed after flush."""

    renders = 0

    def render(self, context: BuildContext) -> int:
        self.renders += 1
        return self.renders


class _DummySubscription:
    def __init__(self, store: _DummyStore, callback: Callable[[MapUpdate], None]) -> None:
        self._store = store
        self.callback = callback
        self.cancelled = 0

    def cancel(self) -> None:
        self.cancelled += 1
        if self in self._store.live:
            self._store.live.remove(self)


class _DummyStore:
    """Store that records subscriptions and lets tests deliver updates by hand."""

    def __init__(self) -> None:
        self.opened: list[_DummySubscription] = []
        self.live: list[_DummySubscription] = []
        self.filters: list[Sequence[Any] | None] = []

    def listen(self, callback: Callable[[MapUpdate], None], keys: Sequence[Any] | None = None) -> _DummySubscription:
        subscription = _DummySubscription(self, callback)
        self.opened.append(subscription)
        self.live.append(subscription)
        self.filters.append(keys)
        return subscription


class _FailingStore:
    def listen(self, callback: Callable[[MapUpdate], None], keys: Sequence[Any] | None = None) -> Any:
        raise RuntimeError("listen failed")


def _set(**changes: Any) -> MapUpdate:
    return MapUpdate(kind="set", changes=changes)


def _attach(component: StreamingState) -> RenderHost:
    host = RenderHost()
    host.attach(component)
    return host


def test_filtered_key_scenario() -> None:
    stream = MapStream({"a": 0, "b": 0})
    component = _Counter(stream, ["a"])
    host = _attach(component)

    stream["b"] = 1
    assert host.pending == 0
    assert host.flush() == 0

    stream["a"] = 1
    assert host.flush() == 1
    assert component.renders == 2


def test_one_subscription_per_store_and_matching_cancellations() -> None:
    first, second = _DummyStore(), _DummyStore()
    component = _Counter.multi_state({first: None, second: ["x", "x", "y"]})
    host = _attach(component)

    assert component.subscription_count == 2
    assert len(first.opened) == 1
    assert len(second.opened) == 1
    assert second.filters == [("x", "y")]

    host.detach(component)

    assert component.subscription_count == 0
    assert first.live == [] and second.live == []
    assert [s.cancelled for s in first.opened + second.opened] == [1, 1]


def test_update_delivered_after_unmount_has_no_effect() -> None:
    store = _DummyStore()
    component = _Counter(store)
    host = _attach(component)
    late_callback = store.opened[0].callback

    host.detach(component)
    late_callback(_set(a=1))

    assert component.previous_update(store) is None
    assert component.renders == 1
    assert host.pending == 0


def test_update_from_a_real_stream_after_unmount_is_not_delivered() -> None:
    stream = MapStream()
    component = _Counter(stream)
    host = _attach(component)

    host.detach(component)
    stream["a"] = 1

    assert stream.listener_count == 0
    assert component.previous_update(stream) is None


def test_unmount_during_dispatch_drops_the_rest() -> None:
    stream = MapStream()
    component = _Counter(stream)
    host = _attach(component)

    # Runs after the component's own listener for every update.
    stream.listen(lambda update: host.detach(component) if component.is_mounted else None)
    stream["a"] = 1
    stream["a"] = 2

    assert component.lifecycle is LifecycleState.UNMOUNTED
    assert component.previous_update(stream) is not None
    assert component.previous_update(stream).changes == {"a": 1}


def test_never_update_policy_suppresses_every_rerender() -> None:
    stream = MapStream()
    component = _Counter(stream, should_update=never_update)
    host = _attach(component)

    for value in range(50):
        stream["a"] = value

    assert host.flush() == 0
    assert component.renders == 1
    # Previous update is recorded even though the hook declined.
    assert component.previous_update(stream).changes == {"a": 49}


def test_content_changed_policy_suppresses_duplicate_updates() -> None:
    stream = MapStream()
    component = _Counter(stream, should_update=content_changed)
    host = _attach(component)

    stream["a"] = 1
    host.flush()
    stream["a"] = 1
    host.flush()

    assert component.renders == 2


def test_should_update_can_be_overridden_in_a_subclass() -> None:
    seen: list[tuple[MapUpdate, MapUpdate | None]] = []

    class _EvenOnly(_Counter):
        def should_update(self, update: MapUpdate, map_stream: ObservableStore) -> bool:
            seen.append((update, self.previous_update(map_stream)))
            return update.changes.get("n", 1) % 2 == 0

    stream = MapStream()
    component = _EvenOnly(stream)
    host = _attach(component)

    stream["n"] = 1
    assert host.pending == 0
    stream["n"] = 2
    assert host.pending == 1

    assert seen[0][1] is None
    assert seen[1][1] is seen[0][0]


def test_previous_update_recorded_when_hook_raises() -> None:
    def _explode(update: MapUpdate, previous: MapUpdate | None) -> bool:
        raise ValueError("bad hook")

    store = _DummyStore()
    component = _Counter(store, should_update=_explode)
    _attach(component)
    update = _set(a=1)

    with pytest.raises(ValueError, match="bad hook"):
        store.opened[0].callback(update)

    assert component.previous_update(store) is update


def test_two_binders_on_one_store_each_receive_one_callback() -> None:
    stream = MapStream()
    calls: list[str] = []

    class _Tracking(_Counter):
        def should_update(self, update: MapUpdate, map_stream: ObservableStore) -> bool:
            calls.append(str(self.key))
            return True

    left, right = _Tracking(stream, key="left"), _Tracking(stream, key="right")
    host = RenderHost()
    host.attach(left)
    host.attach(right)

    stream["a"] = 1

    assert sorted(calls) == ["left", "right"]
    assert host.flush() == 2


def test_multi_state_tracks_previous_update_per_store() -> None:
    settings, session = MapStream(), MapStream()
    component = _Counter.multi_state([(settings, None), (session, ["user"])])
    host = _attach(component)

    settings["theme"] = "dark"
    session["token"] = "abc"
    session["user"] = "ada"

    assert component.previous_update(settings).changes == {"theme": "dark"}
    assert component.previous_update(session).changes == {"user": "ada"}
    assert host.flush() == 1
    with pytest.raises(InvalidArgumentError):
        component.previous_update(MapStream())


def test_failed_subscription_rolls_back_mount() -> None:
    good = _DummyStore()
    component = _Counter.multi_state({good: None, _FailingStore(): None})
    host = RenderHost()

    with pytest.raises(RuntimeError, match="listen failed"):
        host.attach(component)

    assert component.lifecycle is LifecycleState.CREATED
    assert good.opened[0].cancelled == 1
    assert not host.is_attached(component)


def test_lifecycle_violations() -> None:
    component = _Counter(MapStream())
    host = RenderHost()

    with pytest.raises(LifecycleViolationError):
        component.unmount()

    host.attach(component)
    with pytest.raises(LifecycleViolationError):
        component.mount(host)

    host.detach(component)
    with pytest.raises(LifecycleViolationError):
        component.unmount()
    with pytest.raises(LifecycleViolationError):
        component.mount(RenderHost())


@pytest.mark.parametrize(
    ("args", "kwargs"),
    [
        ((None,), {}),
        ((object(),), {}),
        ((MapStream(), "abc"), {}),
        ((MapStream(), [["unhashable"]]), {}),
        ((MapStream(),), {"map_streams": {MapStream(): None}}),
        ((), {"map_streams": {}}),
        ((MapStream(),), {"should_update": "yes"}),
    ],
)
def test_invalid_construction(args: tuple, kwargs: dict) -> None:
    with pytest.raises(InvalidArgumentError):
        StreamingState(*args, **kwargs)


def test_duplicate_store_rejected() -> None:
    stream = MapStream()

    with pytest.raises(InvalidArgumentError, match="more than once"):
        StreamingState.multi_state([(stream, None), (stream, ["a"])])


def test_empty_registration_allowed_when_configured() -> None:
    component = _Counter.multi_state({}, config=StreamingStateConfig(allow_empty_registration=True))
    host = _attach(component)

    assert component.subscription_count == 0
    assert component.registrations == ()
    host.detach(component)


class _StuckSubscription:
    def cancel(self) -> None:
        raise RuntimeError("cancel failed")


class _StuckStore:
    def listen(self, callback: Callable[[MapUpdate], None], keys: Sequence[Any] | None = None) -> _StuckSubscription:
        return _StuckSubscription()


def test_failed_cancel_does_not_leak_remaining_subscriptions() -> None:
    stream = MapStream()
    other = _DummyStore()
    component = _Counter.multi_state([(_StuckStore(), None), (stream, None), (other, None)])
    host = _attach(component)
    assert stream.listener_count == 1

    with pytest.raises(RuntimeError, match="cancel failed"):
        host.detach(component)

    assert stream.listener_count == 0
    assert other.opened[0].cancelled == 1
    assert component.subscription_count == 0
    assert component.lifecycle is LifecycleState.UNMOUNTED
    assert not host.is_attached(component)


def test_delivered_update_cannot_be_altered_by_a_listener() -> None:
    stream = MapStream({"a": 0})
    seen: list[dict[str, Any]] = []

    def _tamper(update: MapUpdate) -> None:
        update.changes["a"] = "tampered"  # type: ignore[index]

    stream.listen(_tamper)
    stream.listen(lambda update: seen.append(dict(update.changes)))
    component = _Counter(stream)
    _attach(component)

    stream["a"] = 1

    assert seen == [{"a": 1}]
    assert component.previous_update(stream).changes == {"a": 1}
    assert stream["a"] == 1
