# backend/billsplit/domain/actions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from billsplit.domain.models import (
    Assignment,
    Bill,
    BillStatus,
    ChargeAllocation,
    Item,
    ModelValidationError,
    SplitMethod,
)
from billsplit.domain.schema import bill_from_document, item_from_document, migrate_bill_document


class ActionError(ValueError):
    """Raised when an action payload cannot be decoded."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class AddPerson:
    name: str
    color: Optional[str] = None
    person_id: Optional[str] = None


@dataclass(frozen=True)
class RemovePerson:
    person_id: str


@dataclass(frozen=True)
class AddItem:
    name: str
    price: str
    quantity: int = 1
    method: SplitMethod = SplitMethod.EVEN
    assignment: Tuple[Assignment, ...] = ()
    item_id: Optional[str] = None


@dataclass(frozen=True)
class UpdateItem:
    item: Item


@dataclass(frozen=True)
class RemoveItem:
    item_id: str


@dataclass(frozen=True)
class SetTax:
    amount: str


@dataclass(frozen=True)
class SetTip:
    amount: str


@dataclass(frozen=True)
class SetDiscount:
    amount: str


@dataclass(frozen=True)
class SetChargeAllocation:
    charge: str  # "tax" | "tip" | "discount"
    allocation: ChargeAllocation


@dataclass(frozen=True)
class SetBillStatus:
    status: BillStatus


@dataclass(frozen=True)
class SetBillTitle:
    title: str


@dataclass(frozen=True)
class SetNotes:
    notes: str


@dataclass(frozen=True)
class LoadBill:
    bill: Bill


@dataclass(frozen=True)
class NewBill:
    bill_id: Optional[str] = None


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Redo:
    pass


Action = Union[
    AddPerson,
    RemovePerson,
    AddItem,
    UpdateItem,
    RemoveItem,
    SetTax,
    SetTip,
    SetDiscount,
    SetChargeAllocation,
    SetBillStatus,
    SetBillTitle,
    SetNotes,
    LoadBill,
    NewBill,
    Undo,
    Redo,
]

CHARGES = ("tax", "tip", "discount")


def _get(payload: Dict[str, Any], key: str, *, required: bool = True, default: Any = None) -> Any:
    if key not in payload:
        if required:
            raise ActionError(f"missing payload field: {key}", field=key)
        return default
    return payload[key]


def _text(payload: Dict[str, Any], key: str) -> str:
    value = _get(payload, key)
    if not isinstance(value, str):
        raise ActionError(f"'{key}' must be a string", field=key)
    return value


def _assignment(raw: Any) -> Tuple[Assignment, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ActionError("'assignment' must be a list", field="assignment")
    out = []
    for entry in raw:
        if not isinstance(entry, dict) or "personId" not in entry:
            raise ActionError("each assignment needs a 'personId'", field="assignment")
        value = entry.get("value")
        if value is not None and not isinstance(value, str):
            value = str(value)
        out.append(Assignment(person_id=entry["personId"], value=value))
    return tuple(out)


def action_from_dict(data: Any) -> Action:
    """
    Decode a tagged action, e.g. {"type": "SET_TAX", "payload": "5.00"}.

    LOAD_BILL payloads are migrated before the strict parse, so older bill
    documents load. UPDATE_ITEM payloads are parsed strictly and must use
    the current item shape.
    """
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise ActionError("action must be an object with a string 'type'", field="type")
    kind = data["type"]
    payload = data.get("payload")

    try:
        if kind == "UNDO":
            return Undo()
        if kind == "REDO":
            return Redo()
        if kind == "NEW_BILL":
            bill_id = payload.get("id") if isinstance(payload, dict) else None
            if bill_id is not None and (not isinstance(bill_id, str) or not bill_id.strip()):
                raise ActionError("NEW_BILL id must be a non-empty string", field="id")
            return NewBill(bill_id=bill_id)
        if kind in ("REMOVE_PERSON", "REMOVE_ITEM", "SET_TAX", "SET_TIP", "SET_DISCOUNT",
                    "SET_BILL_STATUS", "SET_BILL_TITLE", "SET_NOTES"):
            if not isinstance(payload, str):
                raise ActionError(f"{kind} payload must be a string", field="payload")
            if kind == "REMOVE_PERSON":
                return RemovePerson(person_id=payload)
            if kind == "REMOVE_ITEM":
                return RemoveItem(item_id=payload)
            if kind == "SET_TAX":
                return SetTax(amount=payload)
            if kind == "SET_TIP":
                return SetTip(amount=payload)
            if kind == "SET_DISCOUNT":
                return SetDiscount(amount=payload)
            if kind == "SET_BILL_STATUS":
                try:
                    return SetBillStatus(status=BillStatus(payload))
                except ValueError as e:
                    raise ActionError(f"invalid status: {payload}", field="status") from e
            if kind == "SET_BILL_TITLE":
                return SetBillTitle(title=payload)
            return SetNotes(notes=payload)

        if not isinstance(payload, dict):
            raise ActionError(f"{kind} payload must be an object", field="payload")
        if kind == "ADD_PERSON":
            return AddPerson(
                name=_text(payload, "name"),
                color=_get(payload, "color", required=False),
                person_id=_get(payload, "id", required=False),
            )
        if kind == "ADD_ITEM":
            quantity = _get(payload, "quantity", required=False, default=1)
            method = _get(payload, "method", required=False, default="even")
            try:
                method = SplitMethod(method)
            except ValueError as e:
                raise ActionError(f"unknown split method: {method}", field="method") from e
            return AddItem(
                name=_text(payload, "name"),
                price=_text(payload, "price"),
                quantity=quantity,
                method=method,
                assignment=_assignment(payload.get("assignment")),
                item_id=_get(payload, "id", required=False),
            )
        if kind == "UPDATE_ITEM":
            return UpdateItem(item=item_from_document(payload))
        if kind == "SET_CHARGE_ALLOCATION":
            charge = _text(payload, "charge")
            if charge not in CHARGES:
                raise ActionError(f"unknown charge: {charge}", field="charge")
            raw_allocation = _text(payload, "allocation")
            try:
                allocation = ChargeAllocation(raw_allocation)
            except ValueError as e:
                raise ActionError(f"invalid allocation: {raw_allocation}", field="allocation") from e
            return SetChargeAllocation(charge=charge, allocation=allocation)
        if kind == "LOAD_BILL":
            return LoadBill(bill=bill_from_document(migrate_bill_document(payload)))
    except ModelValidationError as e:
        raise ActionError(str(e), field=e.field) from e

    raise ActionError(f"unknown action type: {kind}", field="type")
