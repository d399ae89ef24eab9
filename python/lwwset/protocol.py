"""
Wire format for exchanging LWW-Element-Set state between replicas.

Defines the state message using Pydantic models for validation and
serialization. Transport is left to the caller: any channel that can
carry a JSON document can carry a set's state.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Union
import json as _json

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Limits on incoming state to keep a hostile peer from exhausting memory
MAX_EVENTS = 100_000
MAX_VALUE_DEPTH = 5
MAX_VALUE_SIZE = 1024 * 100  # 100KB max for individual values

# Wall-clock seconds, a logical counter, or a datetime
Timestamp = Union[int, float, datetime]


def _estimate_size(v: Any) -> int:
    """Estimate the serialized size of a value."""
    try:
        return len(_json.dumps(v, default=str))
    except (TypeError, ValueError):
        return 0


def _validate_value(v: Any, field_name: str = "value", depth: int = 0) -> Any:
    """Recursively check nesting depth, key types and size of an element value."""
    if depth > MAX_VALUE_DEPTH:
        raise ValueError(f"Maximum nesting depth ({MAX_VALUE_DEPTH}) exceeded in {field_name}")

    # Check size at top level only to avoid repeated serialization
    if depth == 0:
        size = _estimate_size(v)
        if size > MAX_VALUE_SIZE:
            raise ValueError(f"Value too large ({size} bytes, max {MAX_VALUE_SIZE}) in {field_name}")

    if isinstance(v, dict):
        for key, item in v.items():
            if not isinstance(key, str):
                raise ValueError(f"Non-string key not allowed in {field_name}")
            _validate_value(item, f"{field_name}.{key}", depth + 1)
    elif isinstance(v, list):
        for i, item in enumerate(v):
            _validate_value(item, f"{field_name}[{i}]", depth + 1)
    return v


class EventModel(BaseModel):
    """One recorded add or remove event."""

    model_config = ConfigDict(extra="forbid")

    value: Any
    timestamp: Timestamp

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: Any) -> Any:
        return _validate_value(v)


class SetState(BaseModel):
    """Full state of an LWW-Element-Set: its add events and remove events."""

    model_config = ConfigDict(extra="forbid")

    adds: List[EventModel] = Field(default_factory=list, max_length=MAX_EVENTS)
    removes: List[EventModel] = Field(default_factory=list, max_length=MAX_EVENTS)

    def to_json(self) -> str:
        """Serialize state to a JSON string."""
        return self.model_dump_json()


def parse_set_state(data: Union[SetState, Dict[str, Any], str, bytes]) -> SetState:
    """
    Parse and validate set state.

    Args:
        data: A SetState, the dict produced by LWWElementSet.state(),
            or its JSON encoding.

    Raises:
        pydantic.ValidationError: If the state is malformed.
    """
    if isinstance(data, SetState):
        return data
    if isinstance(data, (str, bytes)):
        return SetState.model_validate_json(data)
    return SetState.model_validate(data)


def encode_set_state(state: Dict[str, Any]) -> str:
    """Validate a state dict and encode it as JSON for transmission."""
    return parse_set_state(state).to_json()
