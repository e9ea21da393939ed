# backend/billsplit/domain/history.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from loguru import logger

from billsplit.domain.actions import (
    CHARGES,
    Action,
    AddItem,
    AddPerson,
    LoadBill,
    NewBill,
    Redo,
    RemoveItem,
    RemovePerson,
    SetBillStatus,
    SetBillTitle,
    SetChargeAllocation,
    SetDiscount,
    SetNotes,
    SetTax,
    SetTip,
    Undo,
    UpdateItem,
)
from billsplit.domain.models import Assignment, Bill, Item, ModelValidationError, Person
from billsplit.domain.money import MoneyError
from billsplit.domain.schema import utc_now_iso
from billsplit.domain.split_logic import SplitLogicError
from billsplit.domain.summary import summarize

DEFAULT_MAX_DEPTH = 50

PERSON_COLORS = (
    "#6366f1",
    "#d97706",
    "#dc2626",
    "#22c55e",
    "#f59e0b",
    "#8b5cf6",
    "#06b6d4",
    "#ef4444",
    "#10b981",
    "#f97316",
)


class BillReferenceError(LookupError):
    """Raised when an action names a person or item the bill does not have."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


# Errors that reject an action without touching history.
RECOVERABLE_ERRORS = (ModelValidationError, SplitLogicError, MoneyError, BillReferenceError)


@dataclass(frozen=True)
class HistoryState:
    """
    The current bill plus its undo/redo stacks (oldest first, top is last).
    can_undo/can_redo are read off the stacks.
    """
    current: Bill
    undo_stack: Tuple[Bill, ...] = ()
    redo_stack: Tuple[Bill, ...] = ()
    max_depth: int = DEFAULT_MAX_DEPTH

    @property
    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of one action. applied=False means state is unchanged and
    reason/field say why.
    """
    state: HistoryState
    applied: bool
    reason: Optional[str] = None
    field: Optional[str] = None


def _new_id() -> str:
    return str(uuid.uuid4())


def new_bill(bill_id: str | None = None, *, now: str | None = None) -> Bill:
    stamp = now or utc_now_iso()
    return Bill(id=bill_id or _new_id(), created_at=stamp, last_modified=stamp)


def _pick_color(bill: Bill) -> str:
    used = {p.color for p in bill.people}
    for color in PERSON_COLORS:
        if color not in used:
            return color
    return PERSON_COLORS[len(bill.people) % len(PERSON_COLORS)]


def _check_people(bill: Bill, assignment: Tuple[Assignment, ...]) -> None:
    for a in assignment:
        if bill.find_person(a.person_id) is None:
            raise BillReferenceError(f"unknown person id: {a.person_id}", field="assignment")


def apply_edit(bill: Bill, action: Action, *, new_id: Callable[[], str] = _new_id) -> Bill:
    """
    The bill an edit action produces. Never mutates bill.

    Raises BillReferenceError for unknown ids and ModelValidationError /
    MoneyError for bad field values.
    """
    if isinstance(action, AddPerson):
        person = Person(
            id=action.person_id or new_id(),
            name=action.name.strip() if isinstance(action.name, str) else action.name,
            color=action.color or _pick_color(bill),
        )
        return replace(bill, people=bill.people + (person,))

    if isinstance(action, RemovePerson):
        if bill.find_person(action.person_id) is None:
            raise BillReferenceError(f"unknown person id: {action.person_id}", field="person_id")
        return replace(
            bill,
            people=tuple(p for p in bill.people if p.id != action.person_id),
            items=tuple(
                replace(i, assignment=tuple(a for a in i.assignment if a.person_id != action.person_id))
                for i in bill.items
            ),
        )

    if isinstance(action, AddItem):
        _check_people(bill, action.assignment)
        item = Item(
            id=action.item_id or new_id(),
            name=action.name.strip() if isinstance(action.name, str) else action.name,
            price=action.price.strip() if isinstance(action.price, str) else action.price,
            quantity=action.quantity,
            method=action.method,
            assignment=action.assignment,
        )
        return replace(bill, items=bill.items + (item,))

    if isinstance(action, UpdateItem):
        if bill.find_item(action.item.id) is None:
            raise BillReferenceError(f"unknown item id: {action.item.id}", field="item_id")
        _check_people(bill, action.item.assignment)
        return replace(
            bill, items=tuple(action.item if i.id == action.item.id else i for i in bill.items)
        )

    if isinstance(action, RemoveItem):
        if bill.find_item(action.item_id) is None:
            raise BillReferenceError(f"unknown item id: {action.item_id}", field="item_id")
        return replace(bill, items=tuple(i for i in bill.items if i.id != action.item_id))

    if isinstance(action, SetTax):
        return replace(bill, tax=action.amount.strip())
    if isinstance(action, SetTip):
        return replace(bill, tip=action.amount.strip())
    if isinstance(action, SetDiscount):
        return replace(bill, discount=action.amount.strip())
    if isinstance(action, SetChargeAllocation):
        if action.charge not in CHARGES:
            raise ModelValidationError(f"unknown charge: {action.charge}", field="charge")
        return replace(bill, **{f"{action.charge}_allocation": action.allocation})
    if isinstance(action, SetBillStatus):
        return replace(bill, status=action.status)
    if isinstance(action, SetBillTitle):
        return replace(bill, title=action.title.strip())
    if isinstance(action, SetNotes):
        return replace(bill, notes=action.notes)

    raise ModelValidationError(f"not an edit action: {type(action).__name__}", field="type")


def _rejected(state: HistoryState, action: Action, reason: str, field: str | None = None) -> DispatchResult:
    logger.warning("{} not applied: {}", type(action).__name__, reason)
    return DispatchResult(state=state, applied=False, reason=reason, field=field)


def reduce(
    state: HistoryState,
    action: Action,
    *,
    clock: Callable[[], str] = utc_now_iso,
    new_id: Callable[[], str] = _new_id,
) -> DispatchResult:
    """
    Apply one action to a history state and return the next state.

    Edits push the current bill on the undo stack (dropping the oldest past
    max_depth), clear the redo stack and stamp last_modified. UNDO/REDO move
    bills between the stacks. LOAD_BILL and NEW_BILL start a new history.
    An edit that fails validation or changes nothing leaves state as it was.
    """
    if isinstance(action, Undo):
        if not state.can_undo:
            return DispatchResult(state=state, applied=False, reason="cannot undo")
        return DispatchResult(
            state=replace(
                state,
                current=state.undo_stack[-1],
                undo_stack=state.undo_stack[:-1],
                redo_stack=state.redo_stack + (state.current,),
            ),
            applied=True,
        )

    if isinstance(action, Redo):
        if not state.can_redo:
            return DispatchResult(state=state, applied=False, reason="cannot redo")
        return DispatchResult(
            state=replace(
                state,
                current=state.redo_stack[-1],
                undo_stack=(state.undo_stack + (state.current,))[-state.max_depth:],
                redo_stack=state.redo_stack[:-1],
            ),
            applied=True,
        )

    if isinstance(action, LoadBill):
        logger.debug("loading bill {}", action.bill.id)
        return DispatchResult(state=HistoryState(current=action.bill, max_depth=state.max_depth), applied=True)

    if isinstance(action, NewBill):
        try:
            fresh = new_bill(action.bill_id or new_id(), now=clock())
        except RECOVERABLE_ERRORS as e:
            return _rejected(state, action, str(e), getattr(e, "field", None))
        return DispatchResult(state=HistoryState(current=fresh, max_depth=state.max_depth), applied=True)

    try:
        edited = apply_edit(state.current, action, new_id=new_id)
        if edited == state.current:
            return _rejected(state, action, "no change")
        # The edited bill must still add up before it is accepted.
        summarize(edited)
    except RECOVERABLE_ERRORS as e:
        return _rejected(state, action, str(e), getattr(e, "field", None))

    edited = replace(edited, last_modified=clock())
    logger.debug("applied {} to bill {}", type(action).__name__, edited.id)
    return DispatchResult(
        state=replace(
            state,
            current=edited,
            undo_stack=(state.undo_stack + (state.current,))[-state.max_depth:],
            redo_stack=(),
        ),
        applied=True,
    )


class BillHistory:
    """
    Holds one HistoryState and feeds actions through reduce().

    Single-threaded: each dispatch runs to completion before it returns.
    """

    def __init__(
        self,
        bill: Bill | None = None,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        clock: Callable[[], str] = utc_now_iso,
        new_id: Callable[[], str] = _new_id,
    ) -> None:
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 1:
            raise ValueError("max_depth must be an int >= 1")
        self._clock = clock
        self._new_id = new_id
        self._state = HistoryState(
            current=bill if bill is not None else new_bill(new_id(), now=clock()),
            max_depth=max_depth,
        )

    @property
    def state(self) -> HistoryState:
        return self._state

    @property
    def current(self) -> Bill:
        return self._state.current

    @property
    def can_undo(self) -> bool:
        return self._state.can_undo

    @property
    def can_redo(self) -> bool:
        return self._state.can_redo

    def dispatch(self, action: Action) -> DispatchResult:
        result = reduce(self._state, action, clock=self._clock, new_id=self._new_id)
        self._state = result.state
        return result
