import hashlib
import random

import pytest

from vassalo.hashing import Event
from vassalo.tdag.events import NamedEvent, by_parents


def _finish(event):
    event.set_id(hashlib.sha256(event.to_bytes()).digest()[:24])
    return event


def gen_rand_events(nodes, event_count, parent_count, rnd):
    per_node = {node: [] for node in nodes}
    ordered = []
    for i in range(len(nodes) * event_count):
        self_index = i % len(nodes)
        creator = nodes[self_index]
        others = [n for n in rnd.sample(range(len(nodes)), len(nodes)) if n != self_index]
        others = others[: parent_count - 1]
        event = NamedEvent(creator=creator, epoch=1)
        own = per_node[creator]
        if own:
            parent = own[-1]
            event.seq = parent.seq + 1
            event.add_parent(parent.id)
            event.lamport = parent.lamport + 1
        else:
            event.seq = 1
            event.lamport = 1
        for other in others:
            their = per_node[nodes[other]]
            if their:
                parent = their[-1]
                event.add_parent(parent.id)
                if event.lamport <= parent.lamport:
                    event.lamport = parent.lamport + 1
        event.frame = event.seq
        event.name = f"{chr(ord('a') + self_index)}{len(own):03d}"
        _finish(event)
        own.append(event)
        ordered.append(event)
    return ordered


def test_events_by_parents():
    rnd = random.Random(0)
    events = gen_rand_events([1, 2, 3, 4, 5], 10, 3, rnd)
    unordered = rnd.sample(events, len(events))

    ordered = by_parents(unordered)
    position = {event.id: i for i, event in enumerate(ordered)}

    assert len(ordered) == len(events)
    for i, event in enumerate(ordered):
        for parent in event.parents:
            assert position.get(parent, -1) < i


def test_by_parents_ignores_unknown_parents():
    outside = Event(bytes(31) + b"\x07")
    a = _finish(NamedEvent(seq=1, lamport=1, parents=[outside], name="a"))
    b = _finish(NamedEvent(seq=2, lamport=2, parents=[a.id], name="b"))
    assert by_parents([b, a]) == [a, b]


def test_by_parents_detects_cycle():
    a = NamedEvent(id=Event(b"\x01" * 32))
    b = NamedEvent(id=Event(b"\x02" * 32))
    a.parents = [b.id]
    b.parents = [a.id]
    with pytest.raises(ValueError):
        by_parents([a, b])


def test_to_bytes_of_empty_event():
    expected = bytes([0xE8, 0x80, 0x80, 0x80, 0x80, 0xC0, 0x80, 0xA0]) + bytes(32) + b"\x80"
    assert NamedEvent().to_bytes() == expected


def test_to_bytes_small_values_encode_as_single_bytes():
    event = NamedEvent(epoch=5, seq=1, name="a")
    expected = bytes([0xE8, 0x05, 0x01, 0x80, 0x80, 0xC0, 0x80, 0xA0]) + bytes(32) + b"a"
    assert event.to_bytes() == expected


def test_add_parent_appends():
    event = NamedEvent()
    first = Event(b"\x01" * 32)
    second = Event(b"\x02" * 32)
    event.add_parent(first)
    event.add_parent(second)
    assert event.parents == [first, second]


def test_build_keeps_name_and_sets_id():
    event = NamedEvent(epoch=2, lamport=3, name="x")
    built = event.build(b"\x09" * 24)
    assert built.name == "x"
    assert built.id.epoch() == 2
    assert built.id.lamport() == 3
    assert event.id.is_zero()


def test_name_changes_encoding():
    assert NamedEvent(name="a").to_bytes() != NamedEvent(name="b").to_bytes()