"""Named test events, their canonical encoding and topological ordering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from vassalo.dag import BaseEvent
from vassalo.hashing import Event

_RLPItem = Union[int, bytes, str, list]


def _minimal_bytes(value: int) -> bytes:
    if value < 0:
        raise OverflowError(f"negative value {value} cannot be encoded")
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _length_prefix(length: int, offset: int) -> bytes:
    if length < 56:
        return bytes([offset + length])
    encoded = _minimal_bytes(length)
    return bytes([offset + 55 + len(encoded)]) + encoded


def _rlp_encode(item: _RLPItem) -> bytes:
    if isinstance(item, list):
        payload = b"".join(_rlp_encode(element) for element in item)
        return _length_prefix(len(payload), 0xC0) + payload
    if isinstance(item, int):
        data = _minimal_bytes(item)
    elif isinstance(item, str):
        data = item.encode("utf-8")
    else:
        data = bytes(item)
    if len(data) == 1 and data[0] < 0x80:
        return data
    return _length_prefix(len(data), 0x80) + data


@dataclass(eq=False)
class NamedEvent(BaseEvent):
    """A base event carrying a human readable name."""

    name: str = ""

    def add_parent(self, event_id: Event) -> None:
        self.parents.append(Event(event_id))

    def to_bytes(self) -> bytes:
        """Return the RLP encoding of all fields, name included."""
        return _rlp_encode(
            [
                self.epoch,
                self.seq,
                self.frame,
                self.creator,
                [bytes(parent) for parent in self.parents],
                self.lamport,
                bytes(self.id),
                self.name,
            ]
        )


@dataclass
class ForEachEvent:
    """Callbacks for DAG generators.

    ``build`` is called before the id is computed and may return False to
    drop the event; ``process`` is called for every event that is kept.
    """

    process: Optional[Callable[[BaseEvent, str], None]] = None
    build: Optional[Callable[[NamedEvent, str], Optional[bool]]] = None


def by_parents(events: Iterable[BaseEvent]) -> list[BaseEvent]:
    """Return events ordered so that every parent in the list precedes its children."""
    unsorted = list(events)
    exists = {event.id for event in unsorted}
    ready: set[bytes] = set()
    result: list[BaseEvent] = []

    def is_ready(event: BaseEvent) -> bool:
        return all(parent not in exists or parent in ready for parent in event.parents)

    while unsorted:
        position = next((i for i, event in enumerate(unsorted) if is_ready(event)), None)
        if position is None:
            raise ValueError("events contain a parent cycle")
        event = unsorted.pop(position)
        result.append(event)
        ready.add(event.id)
    return result