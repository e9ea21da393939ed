# backend/tests/test_split_logic.py
import pytest

from billsplit.domain.models import Assignment, SplitMethod
from billsplit.domain.split_logic import (
    Allocation,
    ReconciliationError,
    SplitLogicError,
    allocate,
    ensure_reconciled,
    split_cents_largest_remainder,
    split_cents_penny_perfect,
)


def _people(*ids, values=None):
    values = values or {}
    return [Assignment(person_id=pid, value=values.get(pid)) for pid in ids]


def test_equal_split_no_remainder():
    alloc = split_cents_penny_perfect(100, ["a", "b", "c", "d"])
    assert alloc.amounts_cents == (25, 25, 25, 25)
    assert sum(alloc.amounts_cents) == 100


def test_remainder_goes_to_first_r_people():
    # 101 cents split across 4 => base 25, remainder 1
    alloc = split_cents_penny_perfect(101, ["a", "b", "c", "d"])
    assert alloc.amounts_cents == (26, 25, 25, 25)

    # 103 cents split across 4 => base 25, remainder 3
    alloc2 = split_cents_penny_perfect(103, ["a", "b", "c", "d"])
    assert alloc2.amounts_cents == (26, 26, 26, 25)


def test_participant_order_matters_for_remainder_distribution():
    alloc1 = split_cents_penny_perfect(103, ["a", "b", "c", "d"])
    alloc2 = split_cents_penny_perfect(103, ["d", "c", "b", "a"])
    assert alloc1.as_dict()["a"] == 26
    assert alloc2.as_dict()["d"] == 26
    assert alloc2.as_dict()["a"] == 25


def test_zero_total_is_all_zeros():
    alloc = split_cents_penny_perfect(0, ["a", "b", "c"])
    assert alloc.amounts_cents == (0, 0, 0)


def test_invalid_total_type_raises():
    with pytest.raises(SplitLogicError):
        split_cents_penny_perfect("100", ["a", "b"])  # type: ignore[arg-type]


def test_negative_total_raises():
    with pytest.raises(SplitLogicError):
        split_cents_penny_perfect(-1, ["a"])


def test_empty_participants_raises():
    with pytest.raises(SplitLogicError):
        split_cents_penny_perfect(100, [])


def test_blank_or_duplicate_participant_id_raises():
    with pytest.raises(SplitLogicError):
        split_cents_penny_perfect(100, ["a", "  "])
    with pytest.raises(SplitLogicError):
        split_cents_penny_perfect(100, ["a", "a"])


def test_largest_remainder_gives_leftover_to_biggest_fractions():
    # raw shares 499.5, 299.7, 199.8 -> floors 499, 299, 199 -> 2 cents left
    alloc = split_cents_largest_remainder(999, ["a", "b", "c"], [50, 30, 20])
    assert alloc.as_dict() == {"a": 499, "b": 300, "c": 200}


def test_largest_remainder_ties_follow_participant_order():
    alloc = split_cents_largest_remainder(100, ["a", "b", "c"], [1, 1, 1])
    assert alloc.amounts_cents == (34, 33, 33)
    alloc = split_cents_largest_remainder(100, ["c", "b", "a"], [1, 1, 1])
    assert alloc.as_dict() == {"c": 34, "b": 33, "a": 33}


def test_largest_remainder_rejects_all_zero_weights():
    with pytest.raises(SplitLogicError):
        split_cents_largest_remainder(100, ["a", "b"], [0, 0])


def test_ensure_reconciled_raises_on_leak():
    with pytest.raises(ReconciliationError):
        ensure_reconciled(Allocation(total_cents=100, participants=("a", "b"), amounts_cents=(50, 49)))


def test_allocate_even_ten_dollars_three_ways():
    splits = allocate(1000, SplitMethod.EVEN, _people("A", "B", "C"))
    assert splits == {"A": 334, "B": 333, "C": 333}
    assert list(splits) == ["A", "B", "C"]


def test_allocate_percentage_sums_exactly():
    splits = allocate(999, "percentage", _people("A", "B", "C", values={"A": "50", "B": "30", "C": "20"}))
    assert splits == {"A": 499, "B": 300, "C": 200}
    assert sum(splits.values()) == 999


def test_allocate_percentage_not_summing_to_100_is_scaled_by_own_total():
    # 25/25 behaves like 50/50
    splits = allocate(1001, "percentage", _people("A", "B", values={"A": "25", "B": "25"}))
    assert splits == {"A": 501, "B": 500}


def test_allocate_percentage_allows_zero_for_someone():
    splits = allocate(1000, "percentage", _people("A", "B", values={"A": "100", "B": "0"}))
    assert splits == {"A": 1000, "B": 0}


def test_allocate_shares_proportional():
    splits = allocate(1000, "shares", _people("A", "B", values={"A": "2", "B": "1"}))
    # raw 666.67 / 333.33 -> A has the bigger remainder
    assert splits == {"A": 667, "B": 333}


def test_allocate_shares_rejects_zero_share():
    with pytest.raises(SplitLogicError):
        allocate(1000, "shares", _people("A", "B", values={"A": "2", "B": "0"}))


def test_allocate_custom_must_match_total():
    splits = allocate(1000, "custom", _people("A", "B", values={"A": "7.50", "B": "2.50"}))
    assert splits == {"A": 750, "B": 250}

    with pytest.raises(SplitLogicError) as exc:
        allocate(1000, "custom", _people("A", "B", values={"A": "7.50", "B": "2.49"}))
    assert exc.value.field == "assignment"


def test_allocate_no_participants_is_empty():
    assert allocate(1000, "even", []) == {}
    assert allocate(1000, "custom", []) == {}


def test_allocate_unknown_method_raises():
    with pytest.raises(SplitLogicError):
        allocate(1000, "lottery", _people("A"))


@pytest.mark.parametrize("method,values", [
    ("even", {}),
    ("percentage", {"A": "33.3", "B": "33.3", "C": "33.4"}),
    ("shares", {"A": "3", "B": "5", "C": "7"}),
])
@pytest.mark.parametrize("total", [0, 1, 2, 99, 1001, 123457])
def test_allocations_always_add_back_up(method, values, total):
    splits = allocate(total, method, _people("A", "B", "C", values=values))
    assert sum(splits.values()) == total
    assert set(splits) == {"A", "B", "C"}
