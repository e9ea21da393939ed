# backend/tests/test_history.py
import itertools

import pytest

from billsplit.domain.actions import (
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
from billsplit.domain.history import PERSON_COLORS, BillHistory, HistoryState, new_bill, reduce
from billsplit.domain.models import Assignment, Bill, BillStatus, ChargeAllocation, Item, SplitMethod


@pytest.fixture()
def history():
    ids = (f"id{n}" for n in itertools.count())
    ticks = (f"2026-01-01T00:00:{n:02d}.000Z" for n in itertools.count(1))
    return BillHistory(
        new_bill("bill-1", now="2026-01-01T00:00:00.000Z"),
        max_depth=5,
        clock=lambda: next(ticks),
        new_id=lambda: next(ids),
    )


def _with_people(history, *names):
    for name in names:
        assert history.dispatch(AddPerson(name=name, person_id=name.lower())).applied
    return history


def test_fresh_history_cannot_undo_or_redo(history):
    assert not history.can_undo
    assert not history.can_redo
    assert history.current.status is BillStatus.DRAFT
    assert history.current.people == ()


def test_add_person_assigns_palette_colors(history):
    _with_people(history, "Alice", "Bob")
    assert [p.color for p in history.current.people] == list(PERSON_COLORS[:2])
    history.dispatch(AddPerson(name="Carol", color="#ff0000"))
    assert history.current.people[-1].color == "#ff0000"
    assert history.current.people[-1].id == "id0"


def test_edit_pushes_history_and_stamps_last_modified(history):
    before = history.current
    result = history.dispatch(SetTax(amount="5.00"))
    assert result.applied
    assert history.current.tax == "5.00"
    assert history.current.last_modified != before.last_modified
    assert history.state.undo_stack == (before,)
    assert history.can_undo and not history.can_redo


def test_undo_restores_previous_document(history):
    _with_people(history, "Alice")
    before = history.current
    history.dispatch(AddItem(name="Pizza", price="12.00", assignment=(Assignment("alice"),)))
    assert len(history.current.items) == 1

    history.dispatch(Undo())
    assert history.current == before
    assert history.can_redo


def test_redo_after_undo_round_trips(history):
    _with_people(history, "Alice", "Bob")
    history.dispatch(SetTip(amount="3.00"))
    after = history.current

    history.dispatch(Undo())
    history.dispatch(Redo())
    assert history.current == after
    assert not history.can_redo


def test_new_edit_after_undo_clears_redo(history):
    for n in range(3):
        history.dispatch(AddItem(name=f"Item {n}", price="1.00"))
    history.dispatch(Undo())
    history.dispatch(Undo())
    assert len(history.state.redo_stack) == 2

    history.dispatch(AddPerson(name="Dave"))
    assert len(history.current.items) == 1
    assert history.state.redo_stack == ()
    result = history.dispatch(Redo())
    assert not result.applied
    assert result.reason == "cannot redo"


def test_undo_on_empty_stack_is_reported_not_raised(history):
    result = history.dispatch(Undo())
    assert not result.applied
    assert result.reason == "cannot undo"


def test_undo_stack_is_bounded_dropping_oldest(history):
    for n in range(8):
        history.dispatch(SetNotes(notes=f"note {n}"))
    assert len(history.state.undo_stack) == 5
    assert history.state.undo_stack[0].notes == "note 2"


def test_load_bill_resets_both_stacks(history):
    history.dispatch(SetTax(amount="1.00"))
    history.dispatch(SetTax(amount="2.00"))
    history.dispatch(Undo())
    other = Bill(id="other", title="Brunch")

    result = history.dispatch(LoadBill(bill=other))
    assert result.applied
    assert history.current == other
    assert history.state.undo_stack == ()
    assert history.state.redo_stack == ()
    assert history.state.max_depth == 5


def test_new_bill_starts_a_fresh_draft(history):
    history.dispatch(SetBillTitle(title="Old Bill"))
    history.dispatch(NewBill())
    assert history.current.title == "New Bill"
    assert not history.can_undo


def test_remove_person_drops_them_from_items(history):
    _with_people(history, "Alice", "Bob")
    history.dispatch(
        AddItem(name="Nachos", price="9.00", item_id="nachos", assignment=(Assignment("alice"), Assignment("bob")))
    )
    history.dispatch(RemovePerson(person_id="bob"))
    assert [p.id for p in history.current.people] == ["alice"]
    assert history.current.find_item("nachos").person_ids == ("alice",)


def test_unknown_ids_are_no_ops_without_history(history):
    _with_people(history, "Alice")
    depth = len(history.state.undo_stack)
    state = history.state

    for action in (
        RemovePerson(person_id="ghost"),
        RemoveItem(item_id="ghost"),
        UpdateItem(item=Item(id="ghost", name="Ghost", price="1.00")),
        AddItem(name="Tea", price="2.00", assignment=(Assignment("ghost"),)),
    ):
        result = history.dispatch(action)
        assert not result.applied
        assert result.reason
        assert result.state is state

    assert len(history.state.undo_stack) == depth


def test_invalid_values_are_rejected_with_field(history):
    result = history.dispatch(SetTax(amount="-1"))
    assert not result.applied
    assert result.field == "tax"

    result = history.dispatch(AddItem(name="Soup", price="4.00", quantity=0))
    assert not result.applied
    assert result.field == "quantity"

    result = history.dispatch(AddPerson(name="x" * 51))
    assert not result.applied
    assert result.field == "name"
    assert not history.can_undo


def test_custom_item_must_reconcile_to_be_added(history):
    _with_people(history, "Alice", "Bob")
    result = history.dispatch(
        AddItem(
            name="Wine",
            price="30.00",
            method=SplitMethod.CUSTOM,
            assignment=(Assignment("alice", "20.00"), Assignment("bob", "5.00")),
        )
    )
    assert not result.applied
    assert result.field == "assignment"
    assert history.current.items == ()


def test_removing_person_from_custom_item_is_rejected(history):
    _with_people(history, "Alice", "Bob")
    history.dispatch(
        AddItem(
            name="Wine",
            price="30.00",
            method=SplitMethod.CUSTOM,
            assignment=(Assignment("alice", "20.00"), Assignment("bob", "10.00")),
        )
    )
    before = history.current
    result = history.dispatch(RemovePerson(person_id="bob"))
    assert not result.applied
    assert history.current == before


def test_update_item_replaces_in_place(history):
    _with_people(history, "Alice", "Bob")
    history.dispatch(AddItem(name="Fries", price="4.00", item_id="fries"))
    updated = Item(
        id="fries",
        name="Large Fries",
        price="5.00",
        method=SplitMethod.SHARES,
        assignment=(Assignment("alice", "1"), Assignment("bob", "3")),
    )
    assert history.dispatch(UpdateItem(item=updated)).applied
    assert history.current.items == (updated,)


def test_setting_same_value_is_no_effect(history):
    history.dispatch(SetBillStatus(status=BillStatus.ACTIVE))
    depth = len(history.state.undo_stack)
    result = history.dispatch(SetBillStatus(status=BillStatus.ACTIVE))
    assert not result.applied
    assert result.reason == "no change"
    assert len(history.state.undo_stack) == depth


def test_charge_allocation_and_discount(history):
    history.dispatch(SetChargeAllocation(charge="tip", allocation=ChargeAllocation.EVEN))
    history.dispatch(SetDiscount(amount="2.00"))
    assert history.current.tip_allocation is ChargeAllocation.EVEN
    assert history.current.discount == "2.00"


def test_reduce_is_usable_without_the_wrapper():
    state = HistoryState(current=new_bill("b", now="t0"))
    result = reduce(state, SetBillTitle(title="Lunch"), clock=lambda: "t1")
    assert result.applied
    assert result.state.current.title == "Lunch"
    assert result.state.current.last_modified == "t1"
    assert state.current.title == "New Bill"

    undone = reduce(result.state, Undo())
    assert undone.state.current == state.current


def test_extreme_amounts_are_rejected_not_raised(history):
    state = history.state
    result = history.dispatch(SetTax(amount="1e999999"))
    assert not result.applied
    assert result.field == "tax"

    result = history.dispatch(AddItem(name="Rice", price="1.00", quantity=10**30))
    assert not result.applied
    assert result.field == "quantity"
    assert history.state is state


def test_new_bill_with_bad_id_is_rejected(history):
    history.dispatch(SetBillTitle(title="Keep me"))
    state = history.state
    result = history.dispatch(NewBill(bill_id=5))  # type: ignore[arg-type]
    assert not result.applied
    assert result.field == "id"
    assert history.state is state
    assert history.current.title == "Keep me"


def test_person_name_characters_are_checked(history):
    assert history.dispatch(AddPerson(name="Mary-Jane O'Neil Jr.")).applied
    result = history.dispatch(AddPerson(name="<script>"))
    assert not result.applied
    assert result.field == "name"
