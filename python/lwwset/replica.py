"""
Replica management for lwwset.

A Replica owns one LWW-Element-Set and serializes every operation on it,
so a set can be shared between threads and fed remote states as they
arrive from whatever transport the application uses.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterator, Union

from .crdt.element import ElementKey, TimestampedValue
from .crdt.set import LWWElementSet
from .errors import PreconditionViolation
from .protocol import SetState

logger = logging.getLogger(__name__)

# Anything receive() can fold into the local set
RemoteState = Union[LWWElementSet[Any], SetState, Dict[str, Any], str, bytes]


class Replica:
    """
    One replica of a replicated LWW-Element-Set.

    Local mutations go through add/remove under a lock, so a remove's
    presence check and its log append happen as one unit. Remote states
    are merged with receive(), which replaces the local set with the
    merge result instead of mutating it.

    Example:
        a = Replica("node-a")
        b = Replica("node-b")
        a.add("apple")
        b.add("banana")
        a.sync(b)
        print(a.value() == b.value())  # True
    """

    def __init__(
        self,
        replica_id: str,
        key: ElementKey | None = None,
        clock: Callable[[], Any] | None = None,
        initial_state: RemoteState | None = None,
    ):
        """
        Initialize a replica.

        Args:
            replica_id: Identifier used in log messages.
            key: Element key strategy for the set.
            clock: Timestamp source for operations without a timestamp.
            initial_state: Optional state to start from.
        """
        self.replica_id = replica_id
        self._clock = clock
        self._set: LWWElementSet[Any] = LWWElementSet(key=key, clock=clock)

        # Lock for thread-safe operations
        self._lock = threading.RLock()
        self._merge_count = 0

        if initial_state is not None:
            self.receive(initial_state)

    @property
    def merge_count(self) -> int:
        """Number of remote states merged so far."""
        return self._merge_count

    def add(self, value: Any, timestamp: Any = None) -> TimestampedValue[Any]:
        """Add a value to the replica's set."""
        with self._lock:
            return self._set.add(value, timestamp)

    def remove(self, value: Any, timestamp: Any = None) -> TimestampedValue[Any]:
        """
        Remove a value from the replica's set.

        Raises:
            PreconditionViolation: If the value is not currently present.
        """
        with self._lock:
            try:
                return self._set.remove(value, timestamp)
            except PreconditionViolation:
                logger.warning(f"Replica {self.replica_id} rejected remove of absent value {value!r}")
                raise

    def lookup(self, value: Any) -> bool:
        """Check whether a value is currently present."""
        with self._lock:
            return self._set.lookup(value)

    def value(self) -> set[Any]:
        """Get the current set contents."""
        with self._lock:
            return self._set.value()

    def __contains__(self, value: object) -> bool:
        return self.lookup(value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._set)

    def __iter__(self) -> Iterator[Any]:
        with self._lock:
            return iter(self._set.to_list())

    def snapshot(self) -> LWWElementSet[Any]:
        """Get an independent copy of the current set."""
        with self._lock:
            return self._set.clone()

    def state(self) -> dict[str, Any]:
        """Get the full set state for transmission."""
        with self._lock:
            return self._set.state()

    def to_json(self) -> str:
        """Get the full set state encoded as JSON."""
        return SetState.model_validate(self.state()).to_json()

    def _as_set(self, remote: RemoteState) -> LWWElementSet[Any]:
        if isinstance(remote, LWWElementSet):
            return remote
        if isinstance(remote, SetState):
            remote = remote.model_dump()
        return LWWElementSet.from_state(remote, key=self._set.key, clock=self._clock)

    def receive(self, remote: RemoteState) -> LWWElementSet[Any]:
        """
        Merge a remote state into this replica.

        Args:
            remote: A set, a SetState, a state dict or its JSON encoding.

        Returns:
            A copy of the merged set now held by the replica.

        Raises:
            pydantic.ValidationError: If a serialized state is malformed.
            ValueError: If the remote state can't be combined with the
                local one (unhashable values, other timestamp kind or
                key strategy). The local set is left unchanged.
        """
        with self._lock:
            before = len(self._set)
            try:
                incoming = self._as_set(remote)
                merged_set = self._set.merge(incoming)
            except ValueError:
                logger.warning(f"Replica {self.replica_id} rejected remote state")
                raise
            self._set = merged_set
            self._merge_count += 1
            after = len(self._set)
            merged = self._set.clone()

        logger.debug(f"Replica {self.replica_id} merged remote state ({before} -> {after} values)")
        return merged

    def sync(self, other: "Replica") -> None:
        """Exchange states with another in-process replica in both directions."""
        mine = self.snapshot()
        theirs = other.snapshot()
        other.receive(mine)
        self.receive(theirs)
        logger.info(f"Replicas {self.replica_id} and {other.replica_id} synchronized")
