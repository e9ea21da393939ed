# backend/tests/test_charges.py
import pytest

from billsplit.domain.charges import distribute
from billsplit.domain.models import ChargeAllocation
from billsplit.domain.split_logic import SplitLogicError


def test_proportional_tax_two_to_one():
    shares = distribute(500, ChargeAllocation.PROPORTIONAL, {"A": 2000, "B": 1000})
    assert shares == {"A": 333, "B": 167}
    assert sum(shares.values()) == 500


def test_even_charge_includes_people_without_items():
    shares = distribute(1000, "even", {"A": 2000, "B": 0, "C": 0})
    assert shares == {"A": 334, "B": 333, "C": 333}


def test_proportional_gives_nothing_to_zero_subtotal():
    shares = distribute(1000, "proportional", {"A": 500, "B": 0})
    assert shares == {"A": 1000, "B": 0}


def test_proportional_with_no_subtotal_falls_back_to_even():
    shares = distribute(101, "proportional", {"A": 0, "B": 0})
    assert shares == {"A": 51, "B": 50}


def test_no_people_means_nothing_to_distribute():
    assert distribute(500, "even", {}) == {}
    assert distribute(500, "proportional", {}) == {}


def test_zero_charge_is_all_zeros():
    assert distribute(0, "proportional", {"A": 100, "B": 300}) == {"A": 0, "B": 0}


def test_invalid_inputs_raise():
    with pytest.raises(SplitLogicError):
        distribute(-1, "even", {"A": 1})
    with pytest.raises(SplitLogicError):
        distribute(100, "specific", {"A": 1})
    with pytest.raises(SplitLogicError):
        distribute(100, "proportional", {"A": -5, "B": 10})
