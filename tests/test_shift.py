from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import FIXED_NOW, make_order, place
from till.bank import BankLedger
from till.errors import InvalidEntry, InvalidHandover, NoActiveShift, NotAuthorized, ReportFailure, ShiftAlreadyActive
from till.expenses import ExpenseBook
from till.inventory import InventoryLedger
from till.models import BankTxType
from till.orders import OrderLedger
from till.settings import ShopSettings
from till.shift import ShiftController, same_person

LATER = FIXED_NOW + timedelta(hours=9)


def _end_day(shift, *, orders, expenses, bank, report, inventory=None):
    return shift.end_day(
        "Warda",
        orders=orders,
        inventory=inventory or InventoryLedger(),
        expenses=expenses,
        bank=bank,
        settings=ShopSettings(payment_methods=["Cash"], order_types=["Take-Away"]),
        report=report,
        now=LATER,
    )


def _open_shift() -> ShiftController:
    shift = ShiftController()
    shift.start_shift("Hassan", inventory=InventoryLedger(), now=FIXED_NOW)
    return shift


def test_start_shift_offers_lock_only_when_useful(state):
    assert state.shift.start_shift(" Hassan ", inventory=state.inventory, now=FIXED_NOW) is True
    assert state.shift.current_worker == "Hassan"
    assert state.shift.meta.started_at == FIXED_NOW

    quiet = ShiftController()
    assert quiet.start_shift("Warda", inventory=InventoryLedger()) is False


def test_start_shift_rejects_blank_name_and_second_start(running):
    with pytest.raises(ShiftAlreadyActive):
        running.shift.start_shift("Warda", inventory=running.inventory)
    with pytest.raises(InvalidEntry):
        ShiftController().start_shift("   ", inventory=running.inventory)


def test_change_shift_requires_current_worker():
    shift = _open_shift()
    with pytest.raises(NotAuthorized):
        shift.change_shift("Ahmed", "Warda")
    assert shift.meta.shift_changes == []
    assert shift.current_worker == "Hassan"

    change = shift.change_shift("  hassan ", "Warda", now=LATER)
    assert (change.from_worker, change.to_worker, change.at) == ("Hassan", "Warda", LATER)
    assert shift.current_worker == "Warda"
    assert shift.meta.started_at == FIXED_NOW


def test_change_shift_needs_a_different_successor():
    shift = _open_shift()
    with pytest.raises(InvalidHandover):
        shift.change_shift("Hassan", "HASSAN")
    with pytest.raises(InvalidHandover):
        shift.change_shift("Hassan", "  ")
    with pytest.raises(NoActiveShift):
        ShiftController().change_shift("Hassan", "Warda")


def test_same_person_ignores_case_and_spacing():
    assert same_person("ahmed  ali", "Ahmed Ali")
    assert not same_person("Ahmed", "Ahmad")


@pytest.mark.parametrize(
    ("revenue", "spent", "expected"),
    [
        ("500", "300", (BankTxType.INIT, Decimal("200"))),
        ("200", "300", (BankTxType.ADJUST_DOWN, Decimal("100"))),
        ("300", "300", None),
    ],
)
def test_end_day_posts_margin(report, revenue, spent, expected):
    expenses = ExpenseBook()
    expenses.add("Supplies", qty=1, unit_price=spent)
    bank = BankLedger()

    closed = _end_day(_open_shift(), orders=OrderLedger([make_order(1, revenue)]), expenses=expenses, bank=bank, report=report)

    if expected is None:
        assert closed.transaction is None
        assert bank.transactions == []
    else:
        assert [(tx.tx_type, tx.amount) for tx in bank.transactions] == [expected]
        assert bank.transactions[0].worker == "Warda"
    assert closed.margin == Decimal(revenue) - Decimal(spent)


def test_end_day_resets_the_day(running, report):
    running.inventory.lock(confirmed=True, now=FIXED_NOW)
    place(running, 7)
    running.expenses.add("Ice", qty=1, unit_price=5)

    closed = running.shift.end_day(
        "Hassan",
        orders=running.orders,
        inventory=running.inventory,
        expenses=running.expenses,
        bank=running.bank,
        settings=running.settings,
        report=report,
        now=LATER,
    )

    assert closed.report_path == report.path
    assert len(running.orders) == 0
    assert running.orders.next_order_no == 1
    assert not running.inventory.locked
    assert running.inventory.locked_at is None
    assert running.inventory.snapshot
    assert not running.shift.is_active
    assert len(running.expenses.expenses) == 1

    summary = report.summaries[0]
    assert [order.order_no for order in summary.orders] == [1]
    assert summary.meta.ended_by == "Hassan"
    assert summary.meta.ended_at == LATER
    assert summary.timeline[-1].event == "Day Ended"


def test_failed_report_leaves_day_intact(running):
    place(running, 7)

    def broken(summary):
        raise ReportFailure("disk full")

    with pytest.raises(ReportFailure):
        running.shift.end_day(
            "Hassan",
            orders=running.orders,
            inventory=running.inventory,
            expenses=running.expenses,
            bank=running.bank,
            settings=running.settings,
            report=broken,
        )
    assert len(running.orders) == 1
    assert running.orders.next_order_no == 2
    assert running.bank.transactions == []
    assert running.shift.is_active
    assert running.shift.meta.ended_at is None


def test_end_day_requires_shift_and_name(report):
    with pytest.raises(NoActiveShift):
        _end_day(ShiftController(), orders=OrderLedger(), expenses=ExpenseBook(), bank=BankLedger(), report=report)
    with pytest.raises(InvalidEntry):
        _open_shift().end_day(
            " ",
            orders=OrderLedger(),
            inventory=InventoryLedger(),
            expenses=ExpenseBook(),
            bank=BankLedger(),
            settings=ShopSettings(),
            report=report,
        )
