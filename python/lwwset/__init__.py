"""
lwwset - A Last-Write-Wins Element Set CRDT for eventually-consistent replicas.
"""

from lwwset.crdt import (
    ElementKey,
    LWWElementSet,
    StateCRDT,
    TimestampedValue,
    hash_value,
    identity_key,
)
from lwwset.errors import PreconditionViolation

# State exchange
from lwwset.protocol import (
    EventModel,
    SetState,
    encode_set_state,
    parse_set_state,
)

# Replicas
from lwwset.replica import Replica

__version__ = "0.1.0"

__all__ = [
    # CRDT types
    "StateCRDT",
    "LWWElementSet",
    "TimestampedValue",
    "ElementKey",
    "hash_value",
    "identity_key",
    # Errors
    "PreconditionViolation",
    # Protocol
    "EventModel",
    "SetState",
    "encode_set_state",
    "parse_set_state",
    # Replica
    "Replica",
]
