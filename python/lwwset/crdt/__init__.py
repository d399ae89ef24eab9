"""
CRDT (Conflict-free Replicated Data Types) module.

Provides the LWW-Element-Set, a set that can be replicated across
multiple nodes and merged automatically without conflicts.
"""

from .base import StateCRDT
from .element import ElementKey, TimestampedValue, hash_value, identity_key
from .set import LWWElementSet

__all__ = [
    # Base classes
    "StateCRDT",
    # Events and element keys
    "ElementKey",
    "TimestampedValue",
    "hash_value",
    "identity_key",
    # CRDT types
    "LWWElementSet",
]
