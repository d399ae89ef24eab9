"""
Timestamped events and element key strategies.

Every add or remove applied to an LWW-Element-Set is recorded as an
immutable TimestampedValue. Which values count as "the same element"
is decided by a key strategy passed to the set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, TypeVar
import hashlib
import json

T = TypeVar("T")

# Maps a value to the hashable key that identifies its element
ElementKey = Callable[[Any], Hashable]


def identity_key(value: Any) -> Hashable:
    """Use the value itself as its key (values must be hashable)."""
    return value


def hash_value(value: Any) -> str:
    """
    Create a deterministic key for any JSON-serializable value.

    Lets dicts and lists be stored as set elements: two values with the
    same JSON encoding (with sorted keys) are the same element.
    """
    serialized = json.dumps(value, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class TimestampedValue(Generic[T]):
    """
    A value with the timestamp of the add or remove that recorded it.

    Two events are equal iff both value and timestamp are equal.
    """
    value: T
    timestamp: Any

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        return {"value": self.value, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimestampedValue[Any]":
        """Deserialize event from dictionary."""
        return cls(value=data["value"], timestamp=data["timestamp"])
