"""Base DAG event, event lists and size metrics."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from vassalo.hashing import HASH_LENGTH, ZERO_EVENT, Event, format_hashes
from vassalo.idx import uint32_to_bytes

ID_TAIL_LENGTH = HASH_LENGTH - 4 - 4


@dataclass(frozen=True)
class Metric:
    """Number of events and their total size."""

    num: int = 0
    size: int = 0

    def __str__(self) -> str:
        return f"{{Num={self.num},Size={self.size}}}"


@dataclass(eq=False)
class BaseEvent:
    """Consensus event without payload or signature.

    The id holds the epoch in bytes 0..4, the Lamport time in bytes 4..8
    and a 24-byte tail supplied by the application.
    """

    epoch: int = 0
    seq: int = 0
    frame: int = 0
    creator: int = 0
    parents: list[Event] = field(default_factory=list)
    lamport: int = 0
    id: Event = ZERO_EVENT

    def self_parent(self) -> Optional[Event]:
        """Return the self-parent id, or None for a first event."""
        if self.seq <= 1 or not self.parents:
            return None
        return self.parents[0]

    def is_self_parent(self, event_id: Event) -> bool:
        parent = self.self_parent()
        return parent is not None and parent == event_id

    def size(self) -> int:
        """Return the approximate encoded size of the event."""
        return 4 + 4 + 4 + 4 + len(self.parents) * HASH_LENGTH + 4 + HASH_LENGTH

    def set_id(self, rid: bytes) -> None:
        """Set the id from the current epoch, Lamport time and a 24-byte tail."""
        rid = bytes(rid)
        if len(rid) != ID_TAIL_LENGTH:
            raise ValueError(f"id tail must be {ID_TAIL_LENGTH} bytes, got {len(rid)}")
        self.id = Event(uint32_to_bytes(self.epoch) + uint32_to_bytes(self.lamport) + rid)

    def build(self, rid: bytes) -> "BaseEvent":
        """Return a copy of the event with its id set; the original is unchanged."""
        built = replace(self, parents=list(self.parents))
        built.set_id(rid)
        return built

    def __str__(self) -> str:
        return (
            f"{{id={self.id.short_id(3)}, p={format_hashes(self.parents)}, "
            f"by={self.creator}, frame={self.frame}}}"
        )


def events_metric(events: Iterable[BaseEvent]) -> Metric:
    """Return the count and summed size of events."""
    num = 0
    size = 0
    for event in events:
        num += 1
        size += event.size()
    return Metric(num=num, size=size)


def events_ids(events: Iterable[BaseEvent]) -> list[Event]:
    return [event.id for event in events]


def events_to_string(events: Iterable[BaseEvent]) -> str:
    return " ".join(str(event) for event in events)