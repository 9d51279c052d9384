import pytest

from vassalo.pos import (
    BigValidatorsBuilder,
    Validators,
    ValidatorsBuilder,
    array_to_validators,
    equal_weight_validators,
)

MAX = 0xFFFFFFFF >> 1


def max_big(n: int) -> int:
    return (1 << n) - 1


def _five() -> Validators:
    b = ValidatorsBuilder()
    for i in range(1, 6):
        b.set(i, i)
    return b.build()


def test_new_validators():
    b = ValidatorsBuilder()
    assert len(b.build()) == 0
    assert b.build().total_weight() == 0


def test_validators_set():
    b = ValidatorsBuilder()
    for i in range(1, 6):
        b.set(i, i)
    v = b.build()
    assert len(v) == 5
    assert v.total_weight() == 15

    b.set(1, 10)
    b.set(3, 30)
    v = b.build()
    assert len(v) == 5
    assert v.total_weight() == 51

    b.set(2, 0)
    b.set(5, 0)
    v = b.build()
    assert len(v) == 3
    assert v.total_weight() == 44

    b.set(4, 0)
    b.set(3, 0)
    b.set(1, 0)
    v = b.build()
    assert len(v) == 0
    assert v.total_weight() == 0


def test_validators_get():
    b = ValidatorsBuilder()
    b.set(0, 1)
    b.set(2, 2)
    b.set(3, 3)
    b.set(4, 4)
    b.set(7, 5)
    v = b.build()
    assert [v.get(i) for i in range(8)] == [1, 0, 2, 3, 4, 0, 0, 5]


def test_validators_iterate():
    v = _five()
    ids = v.ids()
    assert len(ids) == 5
    assert sum(v.get(i) for i in ids) == 15


def test_validators_copy():
    v = _five()
    vv = v.copy()
    assert vv == v
    assert vv is not v
    assert vv.builder() == v.builder()
    assert vv.builder() is not v.builder()
    assert vv.ids() == v.ids()
    assert vv.sorted_weights() == v.sorted_weights()
    assert vv.idxs() == v.idxs()


def test_validators_big():
    b = BigValidatorsBuilder()

    b.set(1, 1)
    v = b.build()
    assert v.total_weight() == 1
    assert v.get(1) == 1

    b.set(2, MAX - 1)
    v = b.build()
    assert v.total_weight() == MAX
    assert v.get(1) == 1
    assert v.get(2) == MAX - 1

    b.set(3, 1)
    v = b.build()
    assert v.total_weight() == MAX // 2
    assert v.get(1) == 0
    assert v.get(2) == MAX // 2
    assert v.get(3) == 0

    b.set(4, 2)
    v = b.build()
    assert v.total_weight() == MAX // 2 + 1
    assert v.get(1) == 0
    assert v.get(2) == MAX // 2
    assert v.get(3) == 0
    assert v.get(4) == 1

    b.set(5, max_big(60))
    v = b.build()
    assert v.total_weight() == 0x40000000
    assert v.get(1) == 0
    assert v.get(2) == 0x1
    assert v.get(3) == 0
    assert v.get(4) == 0
    assert v.get(5) == MAX // 2

    b.set(1, max_big(501))
    b.set(2, max_big(502))
    b.set(3, max_big(503))
    b.set(4, max_big(504))
    b.set(5, max_big(515))
    v = b.build()
    assert v.total_weight() == 0x400EFFFB
    assert v.get(1) == 0xFFFF
    assert v.get(2) == 0x1FFFF
    assert v.get(3) == 0x3FFFF
    assert v.get(4) == 0x7FFFF
    assert v.get(5) == 0x3FFFFFFF

    for vid in range(1, 5001):
        b.set(vid, vid * max_big(400))
    v = b.build()
    assert v.total_weight() == 0x5F62DE78
    assert v.get(1) == 0x7F
    assert v.get(2) == 0xFF
    assert v.get(3) == 0x17F
    assert v.get(2500) == 0x4E1FF
    assert v.get(4999) == 0x9C37F
    assert v.get(5000) == 0x9C3FF


def test_big_builder_drops_zero_and_none():
    b = BigValidatorsBuilder()
    b.set(1, 5)
    b.set(2, 7)
    b.set(1, 0)
    b.set(2, None)
    assert b.total_weight() == 0
    assert len(b.build()) == 0


def test_sorted_by_weight_then_id():
    v = array_to_validators([1, 2, 3], [5, 10, 10])
    assert v.sorted_ids() == [2, 3, 1]
    assert v.sorted_weights() == [10, 10, 5]
    assert v.idxs() == {2: 0, 3: 1, 1: 2}
    assert v.get_id(0) == 2
    assert v.get_weight_by_idx(2) == 5
    assert v.get_idx(1) == 2


def test_exists_and_unknown_index():
    v = _five()
    assert v.exists(3)
    assert not v.exists(42)
    assert v.get_idx(42) == 0


def test_string_form():
    v = array_to_validators([1, 2], [1, 2])
    assert str(v) == "[2:2],[1:1]"


def test_equal_weight_validators():
    v = equal_weight_validators([4, 2, 9], 3)
    assert len(v) == 3
    assert v.total_weight() == 9
    assert v.sorted_ids() == [2, 4, 9]


def test_weight_overflow():
    b = ValidatorsBuilder()
    b.set(1, MAX)
    b.set(2, 1)
    with pytest.raises(OverflowError):
        b.build()


def test_negative_weight_rejected():
    with pytest.raises(ValueError):
        ValidatorsBuilder().set(1, -1)


def test_quorum():
    v = equal_weight_validators([1, 2, 3, 4], 1)
    assert v.quorum() == v.total_weight() * 2 // 3 + 1
    assert v.quorum() == 3


def test_weight_counter():
    v = equal_weight_validators([1, 2, 3, 4], 1)
    counter = v.new_counter()
    assert counter.count(1) is True
    assert counter.count(1) is False
    assert counter.count(2) is True
    assert not counter.has_quorum()
    assert counter.count(3) is True
    assert counter.has_quorum()
    assert counter.sum() == 3
    assert counter.num_counted() == 3


def test_weight_counter_by_idx():
    v = array_to_validators([1, 2], [3, 1])
    counter = v.new_counter()
    assert counter.count_by_idx(0) is True
    assert counter.count_by_idx(0) is False
    assert counter.sum() == 3
    assert counter.num_counted() == 1
    assert counter.has_quorum() == (3 >= v.quorum())