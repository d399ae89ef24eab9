"""
CRDT base class for state-based replicated types.

State-based CRDTs transmit their full state and converge by merging
with a join-semilattice operation: merges are commutative, associative
and idempotent, and every state is below its merge with another state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

T = TypeVar("T")
C = TypeVar("C", bound="StateCRDT[Any]")


class StateCRDT(ABC, Generic[T]):
    """
    Abstract base class for state-based CRDT types.

    Subclasses must implement:
    - merge: Join with another CRDT of the same type into a new instance
    - compare: The semilattice partial order (self <= other)
    - value: Get the current resolved value
    - state / from_state: Full-state transfer between replicas
    - copy: An independent instance with identical state
    """

    @abstractmethod
    def merge(self: C, other: C) -> C:
        """Return the join of this CRDT and another, leaving both untouched."""
        ...

    @abstractmethod
    def compare(self: C, other: C) -> bool:
        """Return True if this state is less than or equal to the other."""
        ...

    @abstractmethod
    def value(self) -> T:
        """Get the current resolved value."""
        ...

    @abstractmethod
    def state(self) -> dict[str, Any]:
        """Get the full CRDT state for transmission."""
        ...

    @classmethod
    @abstractmethod
    def from_state(cls: type[C], state: dict[str, Any], **kwargs: Any) -> C:
        """Reconstruct CRDT from transmitted state."""
        ...

    @abstractmethod
    def copy(self: C) -> C:
        """Get an independent copy of this CRDT."""
        ...

    def __le__(self: C, other: C) -> bool:
        return self.compare(other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.compare(other) and other.compare(self)

    __hash__ = None  # type: ignore[assignment]
