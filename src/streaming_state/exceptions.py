"""Custom exception hierarchy for streaming_state."""

from __future__ import annotations


class StreamingStateError(Exception):
    """Base exception for all streaming_state errors."""


class StreamingStateConfigError(StreamingStateError):
    """Invalid configuration value."""


class InvalidArgumentError(StreamingStateError, ValueError):
    """A component or store was constructed with an unusable argument.

    Raised synchronously from constructors, before any subscription is
    opened: a missing store, an object that does not implement
    ``listen()``, a malformed key filter, a non-callable builder, or an
    empty multi-store registration.
    """


class LifecycleViolationError(StreamingStateError, RuntimeError):
    """A component was mounted or unmounted out of order.

    Components move through ``created -> mounted -> unmounted`` exactly
    once.  Mounting twice, unmounting before mounting, or mounting again
    after unmounting is a programming error.
    """
