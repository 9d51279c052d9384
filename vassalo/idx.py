"""Index numerations used across the DAG and their big-endian byte forms."""

from __future__ import annotations

Epoch = int
Event = int
Block = int
Lamport = int
Frame = int
Pack = int
ValidatorID = int
Validator = int

UINT32_SIZE = 4
UINT64_SIZE = 8


def _to_bytes(value: int, size: int) -> bytes:
    if value < 0:
        raise OverflowError(f"negative value {value} cannot be encoded as unsigned")
    return value.to_bytes(size, "big")


def _from_bytes(data: bytes, size: int) -> int:
    if len(data) < size:
        raise ValueError(f"need at least {size} bytes, got {len(data)}")
    return int.from_bytes(data[:size], "big")


def uint32_to_bytes(value: int) -> bytes:
    """Encode an unsigned 32-bit value as 4 big-endian bytes."""
    return _to_bytes(value, UINT32_SIZE)


def bytes_to_uint32(data: bytes) -> int:
    """Decode the first 4 bytes as an unsigned big-endian 32-bit value."""
    return _from_bytes(bytes(data), UINT32_SIZE)


def uint64_to_bytes(value: int) -> bytes:
    """Encode an unsigned 64-bit value as 8 big-endian bytes."""
    return _to_bytes(value, UINT64_SIZE)


def bytes_to_uint64(data: bytes) -> int:
    """Decode the first 8 bytes as an unsigned big-endian 64-bit value."""
    return _from_bytes(bytes(data), UINT64_SIZE)


def max_lamport(x: Lamport, y: Lamport) -> Lamport:
    """Return the larger of two Lamport times."""
    return x if x > y else y