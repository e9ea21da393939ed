# backend/billsplit/domain/split_logic.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from typing import Dict, List, Sequence, Tuple

from loguru import logger

from billsplit.domain.models import Assignment, SplitMethod
from billsplit.domain.money import MoneyError, decimal_to_cents, parse_amount


class SplitLogicError(ValueError):
    """Raised when split inputs are invalid."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ReconciliationError(RuntimeError):
    """Allocated cents do not add back up to the amount that was split."""


@dataclass(frozen=True)
class Allocation:
    """
    Allocation result for a single amount split among selected participants.

    amounts_cents is ordered to match the provided participants order.
    """
    total_cents: int
    participants: Tuple[str, ...]
    amounts_cents: Tuple[int, ...]

    def as_dict(self) -> Dict[str, int]:
        return dict(zip(self.participants, self.amounts_cents, strict=True))


def _check_total(total_cents: int) -> None:
    if isinstance(total_cents, bool) or not isinstance(total_cents, int):
        raise SplitLogicError("total_cents must be an int")
    if total_cents < 0:
        raise SplitLogicError("total_cents must be >= 0")


def _normalize_ids(participants: Sequence[str]) -> List[str]:
    if not isinstance(participants, (list, tuple)):
        raise SplitLogicError("participants must be a sequence")
    if len(participants) == 0:
        raise SplitLogicError("participants must contain at least 1 participant", field="assignment")

    # Ensure stable ordering and no empty ids
    norm: List[str] = []
    for p in participants:
        if not isinstance(p, str):
            raise SplitLogicError("participant ids must be strings")
        if p.strip() == "":
            raise SplitLogicError("participant ids must be non-empty strings")
        norm.append(p)
    if len(set(norm)) != len(norm):
        raise SplitLogicError("participant ids must be unique", field="assignment")
    return norm


def ensure_reconciled(allocation: Allocation) -> Allocation:
    """
    Hard check that nothing leaked while rounding. A failure here is a bug.
    """
    allocated = sum(allocation.amounts_cents)
    if allocated != allocation.total_cents:
        logger.error(
            "allocation of {} cents summed to {} across {}",
            allocation.total_cents,
            allocated,
            allocation.participants,
        )
        raise ReconciliationError(
            f"internal error: allocation sums to {allocated}, expected {allocation.total_cents}"
        )
    return allocation


def split_cents_penny_perfect(total_cents: int, participants: Sequence[str]) -> Allocation:
    """
    Split an integer number of cents evenly:

      base = total_cents // m
      remainder = total_cents % m
      first 'remainder' participants get base + 1, rest get base

    Returns an Allocation whose amounts align to the participants order.
    """
    _check_total(total_cents)
    norm = _normalize_ids(participants)

    m = len(norm)
    base = total_cents // m
    remainder = total_cents % m

    amounts = [base + 1 if i < remainder else base for i in range(m)]
    return ensure_reconciled(
        Allocation(
            total_cents=total_cents,
            participants=tuple(norm),
            amounts_cents=tuple(amounts),
        )
    )


def split_cents_largest_remainder(
    total_cents: int,
    participants: Sequence[str],
    weights: Sequence[Fraction | Decimal | int],
) -> Allocation:
    """
    Split cents in proportion to weights (largest-remainder method).

    - Each raw share is total * w / sum(w), kept as an exact fraction.
    - Everyone gets the floor of their raw share.
    - Leftover cents go one each to the largest fractional remainders;
      equal remainders are broken by participants order.

    Weights are proportions of their own sum, so percentages that do not add
    up to 100 are scaled rather than rejected.
    """
    _check_total(total_cents)
    norm = _normalize_ids(participants)
    if len(weights) != len(norm):
        raise SplitLogicError("weights must align with participants")

    exact = [Fraction(w) for w in weights]
    if any(w < 0 for w in exact):
        raise SplitLogicError("weights must be >= 0", field="assignment")
    weight_sum = sum(exact, Fraction(0))
    if weight_sum == 0:
        raise SplitLogicError("weights must not all be zero", field="assignment")

    raw = [Fraction(total_cents) * w / weight_sum for w in exact]
    floors = [r.numerator // r.denominator for r in raw]
    leftover = total_cents - sum(floors)

    by_remainder = sorted(range(len(norm)), key=lambda i: (-(raw[i] - floors[i]), i))
    amounts = list(floors)
    for i in by_remainder[:leftover]:
        amounts[i] += 1

    return ensure_reconciled(
        Allocation(
            total_cents=total_cents,
            participants=tuple(norm),
            amounts_cents=tuple(amounts),
        )
    )


def _custom_allocation(total_cents: int, participants: Sequence[Assignment]) -> Allocation:
    pids = _normalize_ids([a.person_id for a in participants])
    amounts: List[int] = []
    for a in participants:
        if a.value is None:
            raise SplitLogicError(f"custom split needs an amount for {a.person_id}", field="assignment")
        try:
            amounts.append(decimal_to_cents(parse_amount(a.value, field="assignment")))
        except MoneyError as e:
            raise SplitLogicError(f"invalid custom amount for {a.person_id}: {e}", field="assignment") from e

    if sum(amounts) != total_cents:
        raise SplitLogicError(
            f"custom amounts sum to {sum(amounts)} cents but the item total is {total_cents}",
            field="assignment",
        )
    return Allocation(total_cents=total_cents, participants=tuple(pids), amounts_cents=tuple(amounts))


def _weights(method: SplitMethod, participants: Sequence[Assignment]) -> List[Decimal]:
    weights: List[Decimal] = []
    for a in participants:
        if a.value is None:
            raise SplitLogicError(f"{method.value} split needs a value for {a.person_id}", field="assignment")
        try:
            w = parse_amount(a.value, field="assignment")
        except MoneyError as e:
            raise SplitLogicError(f"invalid {method.value} value for {a.person_id}: {e}", field="assignment") from e
        if method is SplitMethod.SHARES and w <= 0:
            raise SplitLogicError(f"share count for {a.person_id} must be > 0", field="assignment")
        weights.append(w)
    return weights


def allocate(
    total_cents: int,
    method: SplitMethod | str,
    participants: Sequence[Assignment],
) -> Dict[str, int]:
    """
    Per-person cents for one item total under a split method.

    Keys are exactly the participants, in assignment order. No participants
    means nobody pays for the item and the result is empty.
    """
    _check_total(total_cents)
    try:
        method = SplitMethod(method)
    except ValueError as e:
        raise SplitLogicError(f"unknown split method: {method}", field="method") from e

    if len(participants) == 0:
        return {}

    if method is SplitMethod.EVEN:
        alloc = split_cents_penny_perfect(total_cents, [a.person_id for a in participants])
    elif method is SplitMethod.CUSTOM:
        alloc = _custom_allocation(total_cents, participants)
    else:
        weights = _weights(method, participants)
        if method is SplitMethod.PERCENTAGE and sum(weights) != 100:
            logger.debug("percentages sum to {}, scaling by their own total", sum(weights))
        alloc = split_cents_largest_remainder(
            total_cents, [a.person_id for a in participants], weights
        )

    return ensure_reconciled(alloc).as_dict()
