"""32-byte hashes, event identifiers and human readable aliases for logs."""

from __future__ import annotations

import hashlib
import random
import threading
from typing import Iterable, Optional

from vassalo.idx import bytes_to_uint32, uint32_to_bytes

HASH_LENGTH = 32


class Hash(bytes):
    """An immutable 32-byte hash."""

    __slots__ = ()

    def __new__(cls, data: bytes = bytes(HASH_LENGTH)):
        data = bytes(data)
        if len(data) != HASH_LENGTH:
            raise ValueError(f"hash must be {HASH_LENGTH} bytes, got {len(data)}")
        return super().__new__(cls, data)

    def hex(self) -> str:  # type: ignore[override]
        """Return the 0x-prefixed hex form."""
        return "0x" + bytes(self).hex()

    def big(self) -> int:
        """Return the hash as an unsigned big-endian integer."""
        return int.from_bytes(self, "big")

    def terminal_string(self) -> str:
        """Return a shortened form for console logging."""
        return f"{bytes(self[:3]).hex()}…{bytes(self[29:]).hex()}"

    def is_zero(self) -> bool:
        return not any(self)

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex()})"


class Event(Hash):
    """Event identifier: epoch in bytes 0..4, Lamport time in bytes 4..8."""

    __slots__ = ()

    def epoch(self) -> int:
        return bytes_to_uint32(self[0:4])

    def lamport(self) -> int:
        return bytes_to_uint32(self[4:8])

    def short_id(self, precision: int) -> str:
        """Return the registered name, or epoch:lamport:hex of the id bytes."""
        name = get_event_name(self)
        if name:
            return name
        return f"{self.epoch()}:{self.lamport()}:{bytes(self[8:8 + precision]).hex()}"

    def full_id(self) -> str:
        return self.short_id(HASH_LENGTH - 4 - 4)

    def __str__(self) -> str:
        return self.short_id(3)


ZERO = Hash()
ZERO_EVENT = Event()


def _fit(data: bytes) -> bytes:
    data = bytes(data)
    if len(data) > HASH_LENGTH:
        data = data[-HASH_LENGTH:]
    return bytes(HASH_LENGTH - len(data)) + data


def bytes_to_hash(data: bytes) -> Hash:
    """Make a hash of data, cropped from the left or zero-padded on the left."""
    return Hash(_fit(data))


def big_to_hash(value: int) -> Hash:
    """Make a hash of the magnitude of an integer."""
    value = abs(value)
    return bytes_to_hash(value.to_bytes((value.bit_length() + 7) // 8, "big"))


def _decode_hex(text: str) -> bytes:
    if not text:
        raise ValueError("empty hex string")
    if not text.startswith(("0x", "0X")):
        raise ValueError("hex string without 0x prefix")
    digits = text[2:]
    if len(digits) % 2:
        raise ValueError("hex string of odd length")
    if any(c not in "0123456789abcdefABCDEF" for c in digits):
        raise ValueError("invalid hex string")
    return bytes.fromhex(digits)


def hex_to_hash(text: str) -> Hash:
    """Parse a 0x-prefixed hex string into a hash."""
    return bytes_to_hash(_decode_hex(text))


def bytes_to_event(data: bytes) -> Event:
    return Event(_fit(data))


def hex_to_event(text: str) -> Event:
    return Event(_fit(_decode_hex(text)))


def hash_of(*args: bytes) -> Hash:
    """Return the SHA-256 of the concatenated arguments."""
    digest = hashlib.sha256()
    for chunk in args:
        digest.update(chunk)
    return Hash(digest.digest())


def fake_hash(seed: Optional[int] = None) -> Hash:
    """Return a random hash; deterministic when a seed is given."""
    rnd = random.Random(seed) if seed is not None else random
    return Hash(rnd.randbytes(HASH_LENGTH))


def fake_peer() -> int:
    """Return a random validator id."""
    return bytes_to_uint32(fake_hash()[:4])


def fake_epoch() -> int:
    return 123456


def fake_event() -> Event:
    """Return a random event id within the fake epoch."""
    return Event(uint32_to_bytes(fake_epoch()) + random.randbytes(HASH_LENGTH - 4))


def fake_events(n: int) -> list[Event]:
    return [fake_event() for _ in range(n)]


def format_hashes(hashes: Iterable[Hash]) -> str:
    """Format hashes as [a, b, c]."""
    return "[" + ", ".join(str(h) for h in hashes) + "]"


def format_ordered(events: Iterable[Event]) -> str:
    """Format events with a trailing separator after each, as [a, b, ]."""
    return "[" + "".join(f"{e}, " for e in events) + "]"


def sort_by_epoch_and_lamport(events: Iterable[Event]) -> list[Event]:
    """Return events sorted by epoch, then Lamport time, then id bytes."""
    return sorted(events, key=bytes)


_node_names: dict[int, str] = {}
_event_names: dict[Event, str] = {}
_node_lock = threading.Lock()
_event_lock = threading.Lock()


def set_node_name(node: int, name: str) -> None:
    with _node_lock:
        _node_names[node] = name


def set_event_name(event: Event, name: str) -> None:
    with _event_lock:
        _event_names[Event(event)] = name


def get_node_name(node: int) -> str:
    with _node_lock:
        return _node_names.get(node, "")


def get_event_name(event: Event) -> str:
    with _event_lock:
        return _event_names.get(bytes(event), "")