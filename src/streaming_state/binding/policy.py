"""Ready-made update policies.

A policy decides whether a store update should re-render a component.  It
receives the incoming update and the previous update delivered from the
same store (``None`` for the first one) and must not have side effects.
"""

from __future__ import annotations

from collections.abc import Callable

from streaming_state.store.events import MapUpdate, UpdateKind

UpdatePolicy = Callable[[MapUpdate, MapUpdate | None], bool]


def always_update(update: MapUpdate, previous: MapUpdate | None) -> bool:
    return True


def never_update(update: MapUpdate, previous: MapUpdate | None) -> bool:
    return False


def content_changed(update: MapUpdate, previous: MapUpdate | None) -> bool:
    """Skip updates carrying exactly the same change as the previous one."""
    return not update.same_content(previous)


def values_changed(update: MapUpdate, previous: MapUpdate | None) -> bool:
    """Skip ``set`` updates that wrote back the values already stored.

    Only the update itself is inspected: a key that did not exist before
    the update always counts as a change.
    """
    if update.kind is not UpdateKind.SET:
        return True
    for key, value in update.changes.items():
        if key not in update.previous or update.previous[key] != value:
            return True
    return False


def all_of(*policies: UpdatePolicy) -> UpdatePolicy:
    """Re-render only when every policy agrees."""

    def _policy(update: MapUpdate, previous: MapUpdate | None) -> bool:
        return all(policy(update, previous) for policy in policies)

    return _policy


def any_of(*policies: UpdatePolicy) -> UpdatePolicy:
    """Re-render when at least one policy asks for it."""

    def _policy(update: MapUpdate, previous: MapUpdate | None) -> bool:
        return any(policy(update, previous) for policy in policies)

    return _policy
