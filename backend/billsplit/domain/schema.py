# backend/billsplit/domain/schema.py
"""
Bill document <-> model conversion.

The document is the JSON form a bill is stored and shared in (camelCase
keys, amounts as decimal strings). migrate_bill_document() upgrades older
documents; bill_from_document() is strict and expects a migrated one.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, DecimalException
from typing import Any, Dict, List, Optional, Set

from billsplit.domain.models import (
    Assignment,
    Bill,
    BillSummary,
    Item,
    ModelValidationError,
    Person,
)
from billsplit.domain.money import cents_to_amount

_LEGACY_METHODS = {"percent": "percentage", "exact": "custom"}

_BILL_REQUIRED = (
    "id",
    "title",
    "status",
    "people",
    "items",
    "tax",
    "tip",
    "discount",
    "taxAllocation",
    "tipAllocation",
    "discountAllocation",
    "createdAt",
    "lastModified",
    "accessCount",
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _amount_text(value: Any) -> str:
    # Old documents stored plain numbers; 0 meant "not set".
    if value is None or value == 0 or value == "":
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(Decimal(str(value)))
    return value


def _legacy_split_value(custom: Any, pid: str) -> Decimal:
    raw = custom.get(pid, 0) if isinstance(custom, dict) else 0
    try:
        value = Decimal(str(raw))
    except DecimalException as e:
        raise ModelValidationError(f"invalid split value for person {pid}", field="assignment") from e
    if not value.is_finite():
        raise ModelValidationError(f"invalid split value for person {pid}", field="assignment")
    return value


def _migrate_item(raw: Any, person_ids: Optional[Set[str]] = None) -> Any:
    if not isinstance(raw, dict):
        return raw
    item = dict(raw)
    if not item.get("quantity"):
        item["quantity"] = 1
    if isinstance(item.get("price"), (int, float)) and not isinstance(item.get("price"), bool):
        item["price"] = str(Decimal(str(item["price"])))
    method = item.get("method", "even")
    item["method"] = _LEGACY_METHODS.get(method, method)

    if "assignment" not in item:
        split_with = item.pop("splitWith", None) or []
        custom = item.pop("customSplits", None) or {}
        assignment = []
        for pid in split_with:
            if person_ids is not None and (not isinstance(pid, str) or pid not in person_ids):
                # stale id, the person is gone
                continue
            entry: Dict[str, Any] = {"personId": pid}
            if item["method"] != "even":
                value = _legacy_split_value(custom, pid)
                if item["method"] == "shares" and value <= 0:
                    # zero shares paid nothing
                    continue
                entry["value"] = str(value)
            assignment.append(entry)
        if item["method"] == "percentage" and all(Decimal(e["value"]) == 0 for e in assignment):
            assignment = []
        item["assignment"] = assignment
    return item


def migrate_bill_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fill in fields older bill documents lack. Returns a new dict.

    - status -> "draft", notes/discount -> "", accessCount -> 0
    - per-item quantity -> 1, legacy splitWith/customSplits -> assignment
    - legacy method names ("percent", "exact") -> current ones
    - taxTipAllocation -> taxAllocation/tipAllocation
    - numeric amounts -> decimal strings
    """
    if not isinstance(doc, dict):
        raise ModelValidationError("bill document must be an object")
    migrated = dict(doc)

    if not migrated.get("status"):
        migrated["status"] = "draft"
    if not migrated.get("notes"):
        migrated["notes"] = ""
    if not migrated.get("title"):
        migrated["title"] = "New Bill"
    for key in ("tax", "tip", "discount"):
        migrated[key] = _amount_text(migrated.get(key))

    legacy = migrated.pop("taxTipAllocation", None) or "proportional"
    migrated.setdefault("taxAllocation", legacy)
    migrated.setdefault("tipAllocation", legacy)
    migrated.setdefault("discountAllocation", "proportional")

    if not migrated.get("accessCount"):
        migrated["accessCount"] = 0
    migrated.setdefault("people", [])
    if isinstance(migrated.get("items"), list):
        person_ids = None
        if isinstance(migrated["people"], list):
            person_ids = {p.get("id") for p in migrated["people"] if isinstance(p, dict)}
        migrated["items"] = [_migrate_item(i, person_ids) for i in migrated["items"]]
    else:
        migrated.setdefault("items", [])

    now = utc_now_iso()
    migrated.setdefault("createdAt", now)
    migrated.setdefault("lastModified", migrated["createdAt"])
    return migrated


def _require(doc: Any, keys, *, what: str) -> None:
    if not isinstance(doc, dict):
        raise ModelValidationError(f"{what} must be an object")
    for key in keys:
        if key not in doc:
            raise ModelValidationError(f"{what} is missing field: {key}", field=key)


def person_from_document(doc: Any) -> Person:
    _require(doc, ("id", "name"), what="person")
    return Person(id=doc["id"], name=doc["name"].strip() if isinstance(doc["name"], str) else doc["name"],
                  color=doc.get("color", ""))


def item_from_document(doc: Any) -> Item:
    _require(doc, ("id", "name", "price", "quantity", "method", "assignment"), what="item")
    raw_assignment = doc["assignment"]
    if not isinstance(raw_assignment, list):
        raise ModelValidationError("item assignment must be a list", field="assignment")
    assignment: List[Assignment] = []
    for entry in raw_assignment:
        _require(entry, ("personId",), what="assignment")
        value = entry.get("value")
        if value is not None and not isinstance(value, str):
            value = str(value)
        assignment.append(Assignment(person_id=entry["personId"], value=value))
    return Item(
        id=doc["id"],
        name=doc["name"].strip() if isinstance(doc["name"], str) else doc["name"],
        price=doc["price"],
        quantity=doc["quantity"],
        method=doc["method"],
        assignment=tuple(assignment),
    )


def bill_from_document(doc: Any) -> Bill:
    _require(doc, _BILL_REQUIRED, what="bill")
    if not isinstance(doc["people"], list) or not isinstance(doc["items"], list):
        raise ModelValidationError("bill people and items must be lists")
    return Bill(
        id=doc["id"],
        title=doc["title"].strip() if isinstance(doc["title"], str) else doc["title"],
        status=doc["status"],
        people=tuple(person_from_document(p) for p in doc["people"]),
        items=tuple(item_from_document(i) for i in doc["items"]),
        tax=doc["tax"],
        tip=doc["tip"],
        discount=doc["discount"],
        tax_allocation=doc["taxAllocation"],
        tip_allocation=doc["tipAllocation"],
        discount_allocation=doc["discountAllocation"],
        notes=doc.get("notes", ""),
        created_at=doc["createdAt"],
        last_modified=doc["lastModified"],
        access_count=doc["accessCount"],
    )


def item_to_document(item: Item) -> Dict[str, Any]:
    assignment = []
    for a in item.assignment:
        entry: Dict[str, Any] = {"personId": a.person_id}
        if a.value is not None:
            entry["value"] = a.value
        assignment.append(entry)
    return {
        "id": item.id,
        "name": item.name,
        "price": item.price,
        "quantity": item.quantity,
        "method": item.method.value,
        "assignment": assignment,
    }


def bill_to_document(bill: Bill) -> Dict[str, Any]:
    return {
        "id": bill.id,
        "title": bill.title,
        "status": bill.status.value,
        "people": [{"id": p.id, "name": p.name, "color": p.color} for p in bill.people],
        "items": [item_to_document(i) for i in bill.items],
        "tax": bill.tax,
        "tip": bill.tip,
        "discount": bill.discount,
        "taxAllocation": bill.tax_allocation.value,
        "tipAllocation": bill.tip_allocation.value,
        "discountAllocation": bill.discount_allocation.value,
        "notes": bill.notes,
        "createdAt": bill.created_at,
        "lastModified": bill.last_modified,
        "accessCount": bill.access_count,
    }


def summary_to_dict(summary: BillSummary) -> Dict[str, Any]:
    return {
        "currency": summary.currency,
        "person_totals": [
            {
                "person_id": pt.person_id,
                "subtotal_cents": pt.subtotal_cents,
                "tax_cents": pt.tax_cents,
                "tip_cents": pt.tip_cents,
                "discount_cents": pt.discount_cents,
                "total_cents": pt.total_cents,
                "total": cents_to_amount(pt.total_cents),
            }
            for pt in summary.person_totals
        ],
        "item_breakdowns": [
            {
                "item_id": b.item_id,
                "item_name": b.item_name,
                "item_total_cents": b.item_total_cents,
                "splits_cents": dict(b.splits),
            }
            for b in summary.item_breakdowns
        ],
        "subtotal_cents": summary.subtotal_cents,
        "unassigned_cents": summary.unassigned_cents,
        "tax_cents": summary.tax_cents,
        "tip_cents": summary.tip_cents,
        "discount_cents": summary.discount_cents,
        "grand_total_cents": summary.grand_total_cents,
        "grand_total": cents_to_amount(summary.grand_total_cents),
    }
