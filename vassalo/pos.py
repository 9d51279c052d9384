"""Validator groups with weights, quorum calculation and weight counting."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

MAX_UINT32 = 0xFFFFFFFF
_BIG_WEIGHT_BITS = 31


class ValidatorsBuilder(dict):
    """Mutable mapping of validator id to weight; zero weights are dropped."""

    def set(self, validator_id: int, weight: int) -> None:
        if weight < 0:
            raise ValueError(f"negative weight {weight}")
        if weight == 0:
            self.pop(validator_id, None)
        else:
            self[validator_id] = weight

    def build(self) -> "Validators":
        return Validators(self)


class BigValidatorsBuilder(dict):
    """Mapping of validator id to an arbitrarily large weight.

    Building scales all weights down by a power of two so the total fits
    into 31 bits.
    """

    def set(self, validator_id: int, weight: Optional[int]) -> None:
        if weight is not None and weight < 0:
            raise ValueError(f"negative weight {weight}")
        if not weight:
            self.pop(validator_id, None)
        else:
            self[validator_id] = weight

    def total_weight(self) -> int:
        return sum(self.values())

    def build(self) -> "Validators":
        shift = max(0, self.total_weight().bit_length() - _BIG_WEIGHT_BITS)
        builder = ValidatorsBuilder()
        for validator_id, weight in self.items():
            builder.set(validator_id, weight >> shift)
        return builder.build()


class Validators:
    """Read-only validator group of an epoch.

    Validators are ordered by weight descending, then by id ascending;
    that order defines their indexes.
    """

    def __init__(self, values: Mapping[int, int] = None) -> None:
        cleaned = ValidatorsBuilder()
        for validator_id, weight in (values or {}).items():
            cleaned.set(validator_id, weight)
        self._values: dict[int, int] = dict(cleaned)

        ordered = sorted(self._values.items(), key=lambda item: (-item[1], item[0]))
        self._ids: list[int] = [validator_id for validator_id, _ in ordered]
        self._weights: list[int] = [weight for _, weight in ordered]
        self._indexes: dict[int, int] = {vid: i for i, vid in enumerate(self._ids)}
        self._total_weight = sum(self._weights)
        if self._total_weight > MAX_UINT32 // 2:
            raise OverflowError("validators weight overflow")

    def __len__(self) -> int:
        return len(self._values)

    def get(self, validator_id: int) -> int:
        """Return the weight of a validator, 0 if unknown."""
        return self._values.get(validator_id, 0)

    def get_idx(self, validator_id: int) -> int:
        """Return the index of a validator in the group, 0 if unknown."""
        return self._indexes.get(validator_id, 0)

    def get_id(self, index: int) -> int:
        return self._ids[index]

    def get_weight_by_idx(self, index: int) -> int:
        return self._weights[index]

    def exists(self, validator_id: int) -> bool:
        return validator_id in self._values

    def ids(self) -> list[int]:
        return list(self._ids)

    def sorted_ids(self) -> list[int]:
        """Return ids in index order."""
        return list(self._ids)

    def sorted_weights(self) -> list[int]:
        """Return weights in index order."""
        return list(self._weights)

    def idxs(self) -> dict[int, int]:
        return dict(self._indexes)

    def copy(self) -> "Validators":
        return Validators(self._values)

    def builder(self) -> ValidatorsBuilder:
        """Return a mutable copy of the content."""
        return ValidatorsBuilder(self._values)

    def quorum(self) -> int:
        return self._total_weight * 2 // 3 + 1

    def total_weight(self) -> int:
        return self._total_weight

    def new_counter(self) -> "WeightCounter":
        return WeightCounter(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Validators):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __str__(self) -> str:
        return ",".join(f"[{vid}:{w}]" for vid, w in zip(self._ids, self._weights))

    def __repr__(self) -> str:
        return f"Validators({self})"


def equal_weight_validators(ids: Iterable[int], weight: int) -> Validators:
    builder = ValidatorsBuilder()
    for validator_id in ids:
        builder.set(validator_id, weight)
    return builder.build()


def array_to_validators(ids: Sequence[int], weights: Sequence[int]) -> Validators:
    if len(weights) < len(ids):
        raise ValueError("fewer weights than ids")
    builder = ValidatorsBuilder()
    for validator_id, weight in zip(ids, weights):
        builder.set(validator_id, weight)
    return builder.build()


class WeightCounter:
    """Accumulates weights of distinct validators towards a quorum."""

    def __init__(self, validators: Validators) -> None:
        self._validators = validators
        self._quorum = validators.quorum()
        self._already = [False] * len(validators)
        self._sum = 0

    def count(self, validator_id: int) -> bool:
        """Count a validator; return True if it was not counted before."""
        return self.count_by_idx(self._validators.get_idx(validator_id))

    def count_by_idx(self, index: int) -> bool:
        if self._already[index]:
            return False
        self._already[index] = True
        self._sum += self._validators.get_weight_by_idx(index)
        return True

    def has_quorum(self) -> bool:
        return self._sum >= self._quorum

    def sum(self) -> int:
        return self._sum

    def num_counted(self) -> int:
        return sum(self._already)