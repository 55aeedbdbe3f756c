"""Runtime configuration for streaming_state."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from streaming_state.exceptions import StreamingStateConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as exc:
        raise StreamingStateConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class StreamingStateConfig:
    """Behaviour switches shared by stores and components.

    Parameters
    ----------
    raise_listener_errors : bool
        Re-raise exceptions thrown by store listeners instead of logging
        them and continuing with the remaining listeners.
    allow_empty_registration : bool
        Accept a multi-store binder with no stores.  Such a binder never
        subscribes and never re-renders.  Rejected by default.
    log_update_values : bool
        Include (redacted) update values in DEBUG dispatch logs.  Only
        keys are logged otherwise.
    log_max_string : int
        Truncation length for string values in DEBUG logs.
    """

    raise_listener_errors: bool = False
    allow_empty_registration: bool = False
    log_update_values: bool = False
    log_max_string: int = 120

    @classmethod
    def from_env(cls, **overrides: Any) -> StreamingStateConfig:
        """Create configuration from ``STREAMING_STATE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_BOOL_MAP = {
            "STREAMING_STATE_RAISE_LISTENER_ERRORS": "raise_listener_errors",
            "STREAMING_STATE_ALLOW_EMPTY_REGISTRATION": "allow_empty_registration",
            "STREAMING_STATE_LOG_UPDATE_VALUES": "log_update_values",
        }
        # All boolean switches default to off.
        for env_key, field_name in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), False)

        max_string_env = env.get("STREAMING_STATE_LOG_MAX_STRING")
        if max_string_env is not None and "log_max_string" not in overrides:
            config_kwargs["log_max_string"] = _env_int("STREAMING_STATE_LOG_MAX_STRING", max_string_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
