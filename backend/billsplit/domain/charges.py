# backend/billsplit/domain/charges.py
from __future__ import annotations

from typing import Dict, Mapping

from billsplit.domain.models import ChargeAllocation
from billsplit.domain.split_logic import (
    SplitLogicError,
    split_cents_largest_remainder,
    split_cents_penny_perfect,
)


def distribute(
    charge_cents: int,
    allocation: ChargeAllocation | str,
    person_subtotals: Mapping[str, int],
) -> Dict[str, int]:
    """
    Spread a bill-level charge (tax, tip or discount) over the bill's people.

    person_subtotals must hold every person in the bill, in bill order, with
    their item subtotal in cents (zero for people with no items).

    - even: everyone in the bill pays the same, item participation does not
      matter; leftover cents go to the first people in bill order.
    - proportional: in proportion to subtotal, largest remainder first.
      With no subtotal at all it falls back to even.

    The charge is a magnitude; discounts are subtracted by the caller.
    No people means there is nobody to charge and the result is empty.
    """
    if isinstance(charge_cents, bool) or not isinstance(charge_cents, int) or charge_cents < 0:
        raise SplitLogicError("charge_cents must be an int >= 0")
    try:
        allocation = ChargeAllocation(allocation)
    except ValueError as e:
        raise SplitLogicError(f"unknown charge allocation: {allocation}", field="allocation") from e

    person_ids = list(person_subtotals)
    if not person_ids:
        return {}

    subtotals = [person_subtotals[pid] for pid in person_ids]
    if any(s < 0 for s in subtotals):
        raise SplitLogicError("person subtotals must be >= 0")

    if allocation is ChargeAllocation.PROPORTIONAL and sum(subtotals) > 0:
        alloc = split_cents_largest_remainder(charge_cents, person_ids, subtotals)
    else:
        alloc = split_cents_penny_perfect(charge_cents, person_ids)
    return alloc.as_dict()
