# backend/billsplit/domain/models.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from billsplit.domain.money import MoneyError, amount_to_cents, item_total_cents, parse_amount

MAX_PERSON_NAME = 50
MAX_ITEM_NAME = 100
MAX_BILL_TITLE = 200
MAX_SHARES = 1000

PERSON_NAME_RE = re.compile(r"[a-zA-Z0-9\s\-'.]+")


class ModelValidationError(ValueError):
    """Raised when bill document fields fail basic validation."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class SplitMethod(str, Enum):
    EVEN = "even"
    PERCENTAGE = "percentage"
    SHARES = "shares"
    CUSTOM = "custom"


class ChargeAllocation(str, Enum):
    PROPORTIONAL = "proportional"
    EVEN = "even"


class BillStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


def _require_text(value: object, *, what: str, limit: int, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ModelValidationError(f"{what} must be a non-empty string", field=field)
    if len(value.strip()) > limit:
        raise ModelValidationError(f"{what} cannot exceed {limit} characters", field=field)


def _require_id(value: object, *, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ModelValidationError(f"{what} must be a non-empty string", field="id")


@dataclass(frozen=True)
class Person:
    """
    Someone sharing the bill. Colour is display only.
    """
    id: str
    name: str
    color: str = ""

    def __post_init__(self) -> None:
        _require_id(self.id, what="Person.id")
        _require_text(self.name, what="Person.name", limit=MAX_PERSON_NAME, field="name")
        if not PERSON_NAME_RE.fullmatch(self.name.strip()):
            raise ModelValidationError("Person.name contains invalid characters", field="name")
        if not isinstance(self.color, str):
            raise ModelValidationError("Person.color must be a string", field="color")


@dataclass(frozen=True)
class Assignment:
    """
    One participant of an item.

    value meaning depends on the item's method:
      even       -> ignored
      percentage -> percent of the item (0..100)
      shares     -> integer share count (1..1000)
      custom     -> literal amount as a decimal string
    """
    person_id: str
    value: Optional[str] = None

    def __post_init__(self) -> None:
        _require_id(self.person_id, what="Assignment.person_id")
        if self.value is not None and not isinstance(self.value, str):
            raise ModelValidationError("Assignment.value must be a string", field="assignment")


@dataclass(frozen=True)
class Item:
    """
    A bill line. price is a non-negative decimal string; the item total is
    price × quantity.
    """
    id: str
    name: str
    price: str
    quantity: int = 1
    method: SplitMethod = SplitMethod.EVEN
    assignment: Tuple[Assignment, ...] = ()

    def __post_init__(self) -> None:
        _require_id(self.id, what="Item.id")
        _require_text(self.name, what="Item.name", limit=MAX_ITEM_NAME, field="name")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ModelValidationError("Item.quantity must be an int >= 1", field="quantity")
        try:
            item_total_cents(self.price, self.quantity)
        except MoneyError as e:
            raise ModelValidationError(f"Item.price invalid: {e}", field=e.field or "price") from e
        if not isinstance(self.method, SplitMethod):
            try:
                object.__setattr__(self, "method", SplitMethod(self.method))
            except ValueError as e:
                raise ModelValidationError(f"unknown split method: {self.method}", field="method") from e
        if not isinstance(self.assignment, tuple):
            object.__setattr__(self, "assignment", tuple(self.assignment))

        seen: set[str] = set()
        for a in self.assignment:
            if not isinstance(a, Assignment):
                raise ModelValidationError("Item.assignment entries must be Assignment", field="assignment")
            if a.person_id in seen:
                raise ModelValidationError(
                    f"person {a.person_id} assigned more than once", field="assignment"
                )
            seen.add(a.person_id)
            self._check_value(a)

    def _check_value(self, a: Assignment) -> None:
        if self.method is SplitMethod.EVEN:
            return
        if a.value is None:
            raise ModelValidationError(
                f"{self.method.value} split needs a value for person {a.person_id}",
                field="assignment",
            )
        try:
            d = parse_amount(a.value, field="assignment")
        except MoneyError as e:
            raise ModelValidationError(
                f"invalid {self.method.value} value for person {a.person_id}: {e}",
                field="assignment",
            ) from e
        if self.method is SplitMethod.PERCENTAGE and d > 100:
            raise ModelValidationError("percentage cannot exceed 100", field="assignment")
        if self.method is SplitMethod.SHARES:
            if d != d.to_integral_value():
                raise ModelValidationError("shares must be whole numbers", field="assignment")
            if d <= 0:
                raise ModelValidationError("shares must be greater than 0", field="assignment")
            if d > MAX_SHARES:
                raise ModelValidationError(f"shares cannot exceed {MAX_SHARES}", field="assignment")

    @property
    def total_cents(self) -> int:
        return item_total_cents(self.price, self.quantity)

    @property
    def person_ids(self) -> Tuple[str, ...]:
        return tuple(a.person_id for a in self.assignment)


@dataclass(frozen=True)
class Bill:
    """
    The bill document. Immutable: edits produce a new Bill.
    people order is the display order and the tie-break order for even charges.
    """
    id: str
    title: str = "New Bill"
    status: BillStatus = BillStatus.DRAFT
    people: Tuple[Person, ...] = ()
    items: Tuple[Item, ...] = ()
    tax: str = ""
    tip: str = ""
    discount: str = ""
    tax_allocation: ChargeAllocation = ChargeAllocation.PROPORTIONAL
    tip_allocation: ChargeAllocation = ChargeAllocation.PROPORTIONAL
    discount_allocation: ChargeAllocation = ChargeAllocation.PROPORTIONAL
    notes: str = ""
    created_at: str = ""
    last_modified: str = ""
    access_count: int = 0

    def __post_init__(self) -> None:
        _require_id(self.id, what="Bill.id")
        _require_text(self.title, what="Bill.title", limit=MAX_BILL_TITLE, field="title")
        for name, enum_cls in (
            ("status", BillStatus),
            ("tax_allocation", ChargeAllocation),
            ("tip_allocation", ChargeAllocation),
            ("discount_allocation", ChargeAllocation),
        ):
            raw = getattr(self, name)
            if not isinstance(raw, enum_cls):
                try:
                    object.__setattr__(self, name, enum_cls(raw))
                except ValueError as e:
                    raise ModelValidationError(f"invalid {name}: {raw}", field=name) from e
        for name in ("people", "items"):
            if not isinstance(getattr(self, name), tuple):
                object.__setattr__(self, name, tuple(getattr(self, name)))
        for name in ("tax", "tip", "discount"):
            try:
                amount_to_cents(getattr(self, name), field=name)
            except MoneyError as e:
                raise ModelValidationError(f"Bill.{name} invalid: {e}", field=name) from e
        if not isinstance(self.notes, str):
            raise ModelValidationError("Bill.notes must be a string", field="notes")
        if isinstance(self.access_count, bool) or not isinstance(self.access_count, int) or self.access_count < 0:
            raise ModelValidationError("Bill.access_count must be an int >= 0", field="access_count")

        pids = [p.id for p in self.people]
        if len(set(pids)) != len(pids):
            raise ModelValidationError("person ids must be unique", field="people")
        iids = [i.id for i in self.items]
        if len(set(iids)) != len(iids):
            raise ModelValidationError("item ids must be unique", field="items")

        pid_set = set(pids)
        for item in self.items:
            for pid in item.person_ids:
                if pid not in pid_set:
                    raise ModelValidationError(
                        f"item {item.id} references unknown person id: {pid}", field="assignment"
                    )

    def find_person(self, person_id: str) -> Optional[Person]:
        return next((p for p in self.people if p.id == person_id), None)

    def find_item(self, item_id: str) -> Optional[Item]:
        return next((i for i in self.items if i.id == item_id), None)


@dataclass(frozen=True)
class PersonTotal:
    """
    What one person owes, in integer cents.
    total = subtotal + tax + tip - discount
    """
    person_id: str
    subtotal_cents: int
    tax_cents: int
    tip_cents: int
    discount_cents: int

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents + self.tax_cents + self.tip_cents - self.discount_cents


@dataclass(frozen=True)
class ItemBreakdown:
    """
    Per-item allocation. splits keys are exactly the assigned people, in
    assignment order; an unassigned item has empty splits.
    """
    item_id: str
    item_name: str
    item_total_cents: int
    splits: Dict[str, int] = field(default_factory=dict)

    @property
    def assigned(self) -> bool:
        return bool(self.splits)


@dataclass(frozen=True)
class BillSummary:
    """
    Output of the summary builder.

    subtotal_cents counts every item; unassigned_cents is the part nobody
    shares. grand_total_cents is what the people owe between them and always
    equals sum(person_totals[i].total_cents).
    """
    person_totals: Tuple[PersonTotal, ...]
    item_breakdowns: Tuple[ItemBreakdown, ...]
    subtotal_cents: int
    unassigned_cents: int
    tax_cents: int
    tip_cents: int
    discount_cents: int
    grand_total_cents: int
    currency: str = "USD"

    def totals_by_person_id(self) -> Dict[str, int]:
        return {pt.person_id: pt.total_cents for pt in self.person_totals}
