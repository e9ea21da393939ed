# backend/billsplit/domain/summary.py
from __future__ import annotations

from typing import Dict, List

from loguru import logger

from billsplit.domain.charges import distribute
from billsplit.domain.models import Bill, BillSummary, ItemBreakdown, PersonTotal
from billsplit.domain.money import amount_to_cents
from billsplit.domain.split_logic import ReconciliationError, SplitLogicError, allocate


def build_item_breakdowns(bill: Bill) -> List[ItemBreakdown]:
    breakdowns: List[ItemBreakdown] = []
    for item in bill.items:
        total = item.total_cents
        try:
            splits = allocate(total, item.method, item.assignment)
        except SplitLogicError as e:
            # Point the caller at the item that failed.
            raise SplitLogicError(f"item {item.id} ({item.name}): {e}", field=e.field) from e
        breakdowns.append(
            ItemBreakdown(item_id=item.id, item_name=item.name, item_total_cents=total, splits=splits)
        )
    return breakdowns


def summarize(bill: Bill, *, currency: str = "USD") -> BillSummary:
    """
    Per-person totals, per-item breakdowns and the grand total for a bill.

    Pure: reads the bill, never changes it, same input gives the same output.

    Steps:
    - allocate every item among its participants
    - add each person's item shares into a subtotal
    - distribute tax, tip and discount against those subtotals
    - total = subtotal + tax + tip - discount

    The grand total is computed separately from the person totals and the two
    must agree to the cent.
    """
    breakdowns = build_item_breakdowns(bill)

    subtotals: Dict[str, int] = {p.id: 0 for p in bill.people}
    for b in breakdowns:
        for pid, cents in b.splits.items():
            subtotals[pid] += cents

    tax = amount_to_cents(bill.tax, field="tax")
    tip = amount_to_cents(bill.tip, field="tip")
    discount = amount_to_cents(bill.discount, field="discount")

    tax_split = distribute(tax, bill.tax_allocation, subtotals)
    tip_split = distribute(tip, bill.tip_allocation, subtotals)
    discount_split = distribute(discount, bill.discount_allocation, subtotals)

    person_totals = tuple(
        PersonTotal(
            person_id=p.id,
            subtotal_cents=subtotals[p.id],
            tax_cents=tax_split.get(p.id, 0),
            tip_cents=tip_split.get(p.id, 0),
            discount_cents=discount_split.get(p.id, 0),
        )
        for p in bill.people
    )

    subtotal = sum(b.item_total_cents for b in breakdowns)
    unassigned = sum(b.item_total_cents for b in breakdowns if not b.assigned)
    grand_total = subtotal - unassigned
    if bill.people:
        grand_total += tax + tip - discount

    allocated = sum(pt.total_cents for pt in person_totals)
    if allocated != grand_total:
        logger.error("bill {} person totals {} != grand total {}", bill.id, allocated, grand_total)
        raise ReconciliationError(
            f"internal error: person totals sum to {allocated}, grand total is {grand_total}"
        )

    return BillSummary(
        person_totals=person_totals,
        item_breakdowns=tuple(breakdowns),
        subtotal_cents=subtotal,
        unassigned_cents=unassigned,
        tax_cents=tax,
        tip_cents=tip,
        discount_cents=discount,
        grand_total_cents=grand_total,
        currency=currency,
    )
