"""Update events emitted by map streams.

Every mutation of a :class:`~streaming_state.store.MapStream` produces
exactly one :class:`MapUpdate`.  Events are immutable and describe the
whole mutation; there is no structural diffing of nested values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class UpdateKind(StrEnum):
    SET = "set"
    REMOVE = "remove"
    CLEAR = "clear"


class MapUpdate(BaseModel):
    """A single mutation of a map stream."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: UpdateKind
    changes: Mapping[Any, Any] = Field(default_factory=dict, description="Key -> new value (set only)")
    previous: Mapping[Any, Any] = Field(
        default_factory=dict,
        description="Key -> old value, for touched keys that existed before the mutation",
    )
    sequence: int = Field(default=0, ge=0, description="Per-store emission counter")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_kind_payload(self) -> MapUpdate:
        if self.kind is UpdateKind.SET and not self.changes:
            raise ValueError("set updates must carry at least one change")
        if self.kind is not UpdateKind.SET and self.changes:
            raise ValueError(f"{self.kind} updates must not carry changes")
        if not self.previous.keys() <= self.keys:
            raise ValueError("previous values must belong to touched keys")
        # Shared by every listener, so the payloads are handed out read-only.
        object.__setattr__(self, "changes", MappingProxyType(dict(self.changes)))
        object.__setattr__(self, "previous", MappingProxyType(dict(self.previous)))
        return self

    @property
    def keys(self) -> frozenset[Any]:
        """Every key touched by this update."""
        if self.kind is UpdateKind.SET:
            return frozenset(self.changes)
        return frozenset(self.previous)

    def touches(self, keys: Iterable[Any] | None) -> bool:
        """Return ``True`` when the update is relevant to the key filter *keys*.

        ``None`` means "no filter" and matches every update.
        """
        if keys is None:
            return True
        return not self.keys.isdisjoint(keys)

    def same_content(self, other: MapUpdate | None) -> bool:
        """Compare kind and payload, ignoring sequence and timestamp."""
        if other is None:
            return False
        return self.kind is other.kind and self.keys == other.keys and dict(self.changes) == dict(other.changes)
