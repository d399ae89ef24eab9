"""
LWW-Element-Set (Last-Write-Wins Element Set) CRDT implementation.

The set keeps two logs of timestamped events: one for adds and one for
removes. A value is present when its latest add is newer than its latest
remove. Merging unions both logs, so replicas converge no matter the
order in which they exchange state. Tombstones are never compacted.
"""

from __future__ import annotations

from datetime import datetime
from operator import attrgetter
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, Mapping, Set, TypeVar, Union
import logging
import time

from ..errors import PreconditionViolation
from ..protocol import parse_set_state
from .base import StateCRDT
from .element import ElementKey, TimestampedValue, identity_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

# element key -> timestamp -> event
Log = Dict[Hashable, Dict[Any, TimestampedValue[Any]]]

EventSource = Union[Mapping[Hashable, Iterable[TimestampedValue[Any]]], Iterable[TimestampedValue[Any]]]


def _timestamp_kind(timestamp: Any) -> str:
    """Name the family of a timestamp; only one family is comparable within a set."""
    if isinstance(timestamp, datetime):
        return "aware datetime" if timestamp.tzinfo is not None else "naive datetime"
    if isinstance(timestamp, (int, float)):
        return "number"
    return type(timestamp).__name__


def _restore_tuples(value: Any) -> Any:
    """JSON turns tuples into lists; turn them back so values stay hashable."""
    if isinstance(value, list):
        return tuple(_restore_tuples(item) for item in value)
    return value


def _iter_events(source: EventSource | None) -> Iterator[TimestampedValue[Any]]:
    """Flatten either a key -> events mapping or a plain event iterable."""
    if source is None:
        return
    if isinstance(source, Mapping):
        for events in source.values():
            yield from events
    else:
        yield from source


def _is_subset(log: Log, other: Log) -> bool:
    """Check that every event recorded in log is also recorded in other."""
    for key, events in log.items():
        other_events = other.get(key)
        if other_events is None:
            return False
        if not events.keys() <= other_events.keys():
            return False
    return True


def _union(target: Log, source: Log) -> None:
    """Add every event of source to target, copying the inner containers."""
    for key, events in source.items():
        bucket = target.setdefault(key, {})
        for timestamp, event in events.items():
            bucket.setdefault(timestamp, event)


def _copy_log(log: Log) -> dict[Hashable, list[TimestampedValue[Any]]]:
    """Detached copy of a log, events ordered by timestamp."""
    return {
        key: sorted(events.values(), key=attrgetter("timestamp"))
        for key, events in log.items()
    }


class LWWElementSet(StateCRDT[Set[T]]):
    """
    Last-Write-Wins Element Set.

    Each add and remove is recorded with a timestamp. A value is in the
    set when it has been added and its latest add is strictly newer than
    its latest remove. When an add and a remove for the same value carry
    the exact same timestamp, the add wins: such removes are ignored by
    lookups and dropped when sets are merged.

    Values with equal keys are the same element. The default key is the
    value itself; pass ``key=hash_value`` to store unhashable JSON values.
    Sets only merge or compare when they share the very same key
    function object: two equivalent lambdas count as different strategies,
    so define the key once and pass that function to every replica.

    All timestamps in one set must be of one kind (numbers, naive
    datetimes or aware datetimes) so they stay mutually comparable.
    Recording or merging a timestamp of another kind raises ValueError.

    A single instance is not safe for concurrent mutation; wrap it in a
    Replica when several threads share it.

    Example:
        tags = LWWElementSet[str]()
        tags.add("red", 1.0)
        tags.add("blue", 2.0)
        tags.remove("red", 3.0)
        print(tags.value())  # {"blue"}
    """

    def __init__(
        self,
        key: ElementKey | None = None,
        clock: Callable[[], Any] | None = None,
        adds: EventSource | None = None,
        removes: EventSource | None = None,
    ):
        """
        Initialize a set, optionally pre-seeded with existing events.

        Args:
            key: Maps a value to the hashable key identifying its element.
            clock: Returns the timestamp used when add/remove get none.
                Defaults to time.time.
            adds: Add events, as a key -> events mapping or an iterable.
            removes: Remove events, in the same forms as adds.
        """
        self._key: ElementKey = key or identity_key
        self._clock: Callable[[], Any] = clock or time.time
        self._adds: Log = {}
        self._removes: Log = {}
        self._timestamp_kind: str | None = None

        for event in _iter_events(adds):
            self._record(self._adds, event)
        for event in _iter_events(removes):
            self._record(self._removes, event)

    @property
    def key(self) -> ElementKey:
        """The element key strategy."""
        return self._key

    @property
    def add_log(self) -> dict[Hashable, list[TimestampedValue[T]]]:
        """Get a copy of the add log so the set itself can't be modified."""
        return _copy_log(self._adds)

    @property
    def remove_log(self) -> dict[Hashable, list[TimestampedValue[T]]]:
        """Get a copy of the remove log so the set itself can't be modified."""
        return _copy_log(self._removes)

    def _record(self, log: Log, event: TimestampedValue[Any]) -> TimestampedValue[Any]:
        try:
            key = self._key(event.value)
            hash(key)
        except TypeError as exc:
            raise ValueError(f"Value {event.value!r} has no hashable element key") from exc

        kind = _timestamp_kind(event.timestamp)
        if self._timestamp_kind is None:
            self._timestamp_kind = kind
        elif kind != self._timestamp_kind:
            raise ValueError(
                f"Timestamp {event.timestamp!r} is a {kind}, this set holds {self._timestamp_kind} timestamps"
            )

        # An identical (value, timestamp) event is kept only once
        events = log.setdefault(key, {})
        return events.setdefault(event.timestamp, event)

    def _event(self, value: T, timestamp: Any) -> TimestampedValue[T]:
        if timestamp is None:
            timestamp = self._clock()
        return TimestampedValue(value=value, timestamp=timestamp)

    def _is_present(self, key: Hashable) -> bool:
        additions = self._adds.get(key)
        if not additions:
            return False

        removals = self._removes.get(key)
        if not removals:
            return True

        # Removes sharing a timestamp with an add of the same element lose
        effective = [timestamp for timestamp in removals if timestamp not in additions]
        if not effective:
            return True

        return max(additions) > max(effective)

    def lookup(self, value: T) -> bool:
        """Check whether a value is currently in the set."""
        return self._is_present(self._key(value))

    def contains(self, value: T) -> bool:
        """Check if the set contains a value."""
        return self.lookup(value)

    def add(self, value: T, timestamp: Any = None) -> TimestampedValue[T]:
        """
        Add a value to the set.

        Repeated adds accumulate extra events. Returns the recorded event.
        """
        return self._record(self._adds, self._event(value, timestamp))

    def remove(self, value: T, timestamp: Any = None) -> TimestampedValue[T]:
        """
        Remove a value from the set.

        Raises:
            PreconditionViolation: If the value is not currently present.
                The set is left unchanged.
        """
        if not self.lookup(value):
            raise PreconditionViolation(value)
        return self._record(self._removes, self._event(value, timestamp))

    def _check_compatible(self, other: "LWWElementSet[T]") -> None:
        if not isinstance(other, LWWElementSet):
            raise TypeError(f"Expected LWWElementSet, got {type(other).__name__}")
        if other._key is not self._key:
            raise ValueError("Cannot combine sets that use different element key strategies")
        kinds = {self._timestamp_kind, other._timestamp_kind} - {None}
        if len(kinds) > 1:
            raise ValueError(f"Cannot combine sets with {' and '.join(sorted(kinds))} timestamps")

    def compare(self, other: "LWWElementSet[T]") -> bool:
        """
        Determine if this set is less than or equal to another set.

        True when every add and remove event recorded here is also
        recorded in the other set.
        """
        self._check_compatible(other)
        return _is_subset(self._adds, other._adds) and _is_subset(self._removes, other._removes)

    def merge(self, other: "LWWElementSet[T]") -> "LWWElementSet[T]":
        """
        Merge another set with this one into a new set.

        The result holds the union of both add logs and both remove logs,
        with add/remove timestamp collisions resolved toward the add.
        Neither input is modified.
        """
        self._check_compatible(other)
        merged: LWWElementSet[T] = LWWElementSet(key=self._key, clock=self._clock)
        merged._timestamp_kind = self._timestamp_kind or other._timestamp_kind
        _union(merged._adds, self._adds)
        _union(merged._adds, other._adds)
        _union(merged._removes, self._removes)
        _union(merged._removes, other._removes)
        merged._resolve_conflicts()
        return merged

    def _resolve_conflicts(self) -> None:
        """Drop removes that share a timestamp with an add of the same element."""
        for key, additions in self._adds.items():
            removals = self._removes.get(key)
            if not removals:
                continue

            colliding = removals.keys() & additions.keys()
            if not colliding:
                continue

            for timestamp in colliding:
                del removals[timestamp]
            logger.debug(f"Resolved {len(colliding)} add/remove conflict(s) for element {key!r}")

            if not removals:
                del self._removes[key]

    def clone(self) -> "LWWElementSet[T]":
        """Get an independent copy with identical logs."""
        cloned: LWWElementSet[T] = LWWElementSet(key=self._key, clock=self._clock)
        cloned._timestamp_kind = self._timestamp_kind
        _union(cloned._adds, self._adds)
        _union(cloned._removes, self._removes)
        return cloned

    def copy(self) -> "LWWElementSet[T]":
        return self.clone()

    def _present_values(self) -> Iterator[T]:
        for key, additions in self._adds.items():
            if self._is_present(key):
                # The newest add carries the representative value
                yield max(additions.values(), key=attrgetter("timestamp")).value

    def value(self) -> set[T]:
        """Get the current set contents."""
        return set(self._present_values())

    def to_list(self) -> list[T]:
        """Get the current set contents as a list (for unhashable types)."""
        return list(self._present_values())

    def __contains__(self, value: object) -> bool:
        return self.lookup(value)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[T]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return sum(1 for key in self._adds if self._is_present(key))

    def __repr__(self) -> str:
        return (
            f"LWWElementSet(present={len(self)}, "
            f"adds={sum(map(len, self._adds.values()))}, "
            f"removes={sum(map(len, self._removes.values()))})"
        )

    def state(self) -> dict[str, Any]:
        """Get the full state for transmission."""
        return {
            "adds": [event.to_dict() for events in _copy_log(self._adds).values() for event in events],
            "removes": [event.to_dict() for events in _copy_log(self._removes).values() for event in events],
        }

    @classmethod
    def from_state(
        cls,
        state: dict[str, Any] | str | bytes,
        key: ElementKey | None = None,
        clock: Callable[[], Any] | None = None,
    ) -> "LWWElementSet[Any]":
        """
        Reconstruct set from transmitted state.

        Accepts the dict produced by state() or its JSON encoding. With
        the default key, JSON lists are read back as tuples.

        Raises:
            pydantic.ValidationError: If the state is malformed.
            ValueError: If a value has no hashable key or timestamps
                mix kinds.
        """
        parsed = parse_set_state(state)
        restore = _restore_tuples if key in (None, identity_key) else (lambda value: value)
        return cls(
            key=key,
            clock=clock,
            adds=[TimestampedValue(value=restore(event.value), timestamp=event.timestamp) for event in parsed.adds],
            removes=[
                TimestampedValue(value=restore(event.value), timestamp=event.timestamp) for event in parsed.removes
            ],
        )
