import pytest

from vassalo.hashing import (
    ZERO,
    ZERO_EVENT,
    Event,
    Hash,
    big_to_hash,
    bytes_to_event,
    bytes_to_hash,
    fake_epoch,
    fake_event,
    fake_events,
    fake_hash,
    fake_peer,
    format_hashes,
    format_ordered,
    get_event_name,
    get_node_name,
    hash_of,
    hex_to_event,
    hex_to_hash,
    set_event_name,
    set_node_name,
    sort_by_epoch_and_lamport,
)
from vassalo.idx import uint32_to_bytes


def make_event(epoch, lamport, tail=b""):
    rest = tail + bytes(24 - len(tail))
    return Event(uint32_to_bytes(epoch) + uint32_to_bytes(lamport) + rest)


def test_hash_requires_32_bytes():
    with pytest.raises(ValueError):
        Hash(b"\x01\x02")


def test_bytes_to_hash_crops_from_left():
    data = bytes(range(40))
    assert bytes(bytes_to_hash(data)) == data[8:]


def test_bytes_to_hash_pads_on_left():
    h = bytes_to_hash(b"\x01")
    assert h.big() == 1
    assert h[:31] == bytes(31)


def test_big_round_trip():
    h = fake_hash(3)
    assert big_to_hash(h.big()) == h


def test_hex_round_trip():
    h = fake_hash(1)
    text = h.hex()
    assert text.startswith("0x")
    assert len(text) == 66
    assert hex_to_hash(text) == h
    assert str(h) == text


def test_hex_to_event_round_trip():
    e = make_event(4, 8, b"\x12\x34")
    assert hex_to_event(e.hex()) == e
    assert hex_to_event(e.hex()).lamport() == 8


@pytest.mark.parametrize("text", ["", "abcd", "0x123", "0xzz"])
def test_hex_to_hash_rejects_bad_input(text):
    with pytest.raises(ValueError):
        hex_to_hash(text)


def test_terminal_string():
    h = fake_hash(5)
    s = h.terminal_string()
    head, tail = s.split("…")
    assert head == h.hex()[2:8]
    assert tail == h.hex()[-6:]


def test_zero():
    assert ZERO.is_zero()
    assert ZERO_EVENT.is_zero()
    assert not bytes_to_hash(b"\x01").is_zero()


def test_hash_of_concatenates():
    assert hash_of(b"ab", b"c") == hash_of(b"a", b"bc")
    assert hash_of(b"a") != hash_of(b"b")


def test_hash_of_empty_is_sha256_of_nothing():
    assert hash_of().hex() == "0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_fake_hash_seeded_is_deterministic():
    assert fake_hash(7) == fake_hash(7)
    assert fake_hash(7) != fake_hash(8)


def test_fake_event_epoch():
    assert fake_epoch() == 123456
    assert fake_event().epoch() == fake_epoch()


def test_fake_events():
    events = fake_events(4)
    assert len(events) == 4
    assert all(e.epoch() == fake_epoch() for e in events)


def test_fake_peer_range():
    assert 0 <= fake_peer() < 2**32


def test_event_fields():
    e = make_event(5, 9)
    assert e.epoch() == 5
    assert e.lamport() == 9


def test_short_id_without_name():
    e = make_event(5, 9, b"\xab\xcd\xef")
    assert e.short_id(3) == "5:9:abcdef"
    assert str(e) == e.short_id(3)


def test_full_id_covers_all_id_bytes():
    e = make_event(2, 3, bytes(range(1, 25)))
    assert e.full_id() == "2:3:" + bytes(range(1, 25)).hex()


def test_event_name_alias():
    e = make_event(77, 1, b"name-alias-test")
    assert get_event_name(e) == ""
    set_event_name(e, "a001")
    assert get_event_name(e) == "a001"
    assert str(e) == "a001"
    assert e.full_id() == "a001"


def test_node_name_alias():
    node = 4000000001
    assert get_node_name(node) == ""
    set_node_name(node, "nodeA")
    assert get_node_name(node) == "nodeA"


def test_bytes_to_event_pads():
    e = bytes_to_event(b"\x07")
    assert e.epoch() == 0
    assert e[-1] == 7


def test_format_hashes():
    a = make_event(88, 1, b"fmt-a")
    b = make_event(88, 2, b"fmt-b")
    set_event_name(a, "x1")
    set_event_name(b, "x2")
    assert format_hashes([a, b]) == "[x1, x2]"
    assert format_hashes([]) == "[]"
    assert format_ordered([a, b]) == "[x1, x2, ]"
    assert format_ordered([]) == "[]"


def test_sort_by_epoch_and_lamport():
    events = [make_event(2, 1), make_event(1, 5), make_event(1, 2, b"\x02"), make_event(1, 2, b"\x01")]
    ordered = sort_by_epoch_and_lamport(events)
    keys = [(e.epoch(), e.lamport(), bytes(e[8:])) for e in ordered]
    assert keys == sorted(keys)
    assert len(ordered) == len(events)
    assert ordered[0] == make_event(1, 2, b"\x01")


def test_events_usable_in_sets():
    a = make_event(1, 1)
    s = {a, make_event(1, 1), make_event(1, 2)}
    assert len(s) == 2
    assert a in s