from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from conftest import FIXED_NOW, place
from till.codec import (
    STATE_KEYS,
    apply_state,
    order_from_document,
    order_to_document,
    pack_state,
    parse_datetime,
    unpack_state,
)
from till.data import default_state
from till.models import BankTxType, OrderState
from till.persistence import bootstrap_schema, load_snapshot, save_snapshot
from till.session import TillSession


def test_snapshot_survives_a_restart(running, tmp_path):
    db_path = tmp_path / "till.db"
    running.inventory.lock(confirmed=True, now=FIXED_NOW)
    order = place(running, 1, extras=(103,), order_type="Delivery", delivery_fee="20")
    running.orders.mark_done(order.order_no)
    running.orders.attach_remote_id(order.order_no, "r1")
    running.shift.change_shift("Hassan", "Warda", now=FIXED_NOW + timedelta(hours=2))
    running.expenses.add("Gas", qty="1", unit_price="80", now=FIXED_NOW)
    running.bank.add(BankTxType.DEPOSIT, "250", worker="Warda", now=FIXED_NOW)
    running.gate.change_pin(2, "2222", "4242")

    bootstrap_schema(db_path)
    save_snapshot(pack_state(running), db_path)
    values = load_snapshot(db_path)
    assert set(values) == set(STATE_KEYS)

    restored = default_state()
    apply_state(restored, unpack_state(values))

    copy = restored.orders.get(order.order_no)
    assert copy.state is OrderState.DONE
    assert copy.remote_id == "r1"
    assert copy.date == FIXED_NOW
    assert copy.total == Decimal("130")
    assert copy.cart[0].extras[0].name == "Cheese"
    assert copy.cart[0].uses == order.cart[0].uses
    assert restored.orders.next_order_no == 2
    assert restored.inventory.locked
    assert restored.inventory.locked_at == FIXED_NOW
    assert restored.inventory.qty("meat") == Decimal("900")
    assert restored.inventory.snapshot == running.inventory.snapshot
    assert restored.shift.current_worker == "Warda"
    assert restored.shift.meta.shift_changes == running.shift.meta.shift_changes
    assert restored.expenses.total() == Decimal("80")
    assert restored.bank.balance() == Decimal("250")
    assert restored.gate.verify_pin(2, "4242")


def test_saving_twice_overwrites_values(tmp_path):
    db_path = tmp_path / "nested" / "till.db"
    bootstrap_schema(db_path)
    save_snapshot({"nextOrderNo": 3}, db_path)
    save_snapshot({"nextOrderNo": 7, "workers": ["Omar"]}, db_path)
    assert load_snapshot(db_path) == {"nextOrderNo": 7, "workers": ["Omar"]}


def test_unpack_skips_malformed_values():
    unpacked = unpack_state({"nextOrderNo": "x", "workers": "Hassan", "inventoryLocked": "yes", "orders": None})
    assert unpacked == {}


def test_unpack_drops_bad_rows_and_keeps_the_rest():
    data = {
        "bankTx": [
            {"type": "Deposit", "amount": "5"},
            {"id": "tx_1", "type": "deposit", "amount": "40", "date": "2026-03-01T09:00:00+00:00"},
        ],
        "catalog": [{"id": "burger", "name": "Broken"}, "not a row", {"id": 9, "name": "Fries", "price": "30"}],
        "dayMeta": {"startedBy": "Hassan", "shiftChanges": ["oops"]},
        "workers": ["Omar"],
    }

    unpacked = unpack_state(data)

    assert [tx.tx_id for tx in unpacked["bankTx"]] == ["tx_1"]
    assert [item.name for item in unpacked["catalog"]] == ["Fries"]
    assert unpacked["dayMeta"].started_by == "Hassan"
    assert unpacked["dayMeta"].shift_changes == []
    assert unpacked["workers"] == ["Omar"]


def test_load_local_survives_a_bad_row(tmp_path):
    db_path = tmp_path / "till.db"
    bootstrap_schema(db_path)
    save_snapshot({"bankTx": [{"type": "Deposit", "amount": "5"}], "workers": ["Omar"]}, db_path)

    session = TillSession(default_state(), printer=None, db_path=db_path)
    session.load_local()

    assert session.state.bank.transactions == []
    assert session.state.settings.workers == ["Omar"]


def test_missing_keys_keep_defaults():
    state = default_state()
    apply_state(state, unpack_state({"workers": ["Omar"]}))
    assert state.settings.workers == ["Omar"]
    assert state.settings.payment_methods == ["Cash", "Card", "Instapay"]
    assert len(state.catalog.items) == 8


def test_admin_pins_merge_over_defaults():
    state = default_state()
    apply_state(state, unpack_state({"adminPins": {"2": "9999", "9": "1234"}}))
    assert state.gate.pins[1] == "1111"
    assert state.gate.pins[2] == "9999"
    assert 9 not in state.gate.pins


def test_parse_datetime_treats_naive_values_as_utc():
    assert parse_datetime("2026-03-01T09:00:00") == FIXED_NOW
    assert parse_datetime(datetime(2026, 3, 1, 9, 0)) == FIXED_NOW
    assert parse_datetime("not a date") is None
    assert parse_datetime(None) is None
    assert parse_datetime("2026-03-01T11:00:00+02:00").astimezone(timezone.utc) == FIXED_NOW


def test_order_document_carries_legacy_flags(running):
    order = place(running, 7)
    running.orders.void_and_restock(order.order_no, inventory=running.inventory, now=FIXED_NOW)
    document = order_to_document(order)
    assert document["voided"] is True
    assert document["done"] is False
    assert document["state"] == "voided"
    assert "remoteId" not in document

    copy = order_from_document("abc123", document)
    assert copy.remote_id == "abc123"
    assert copy.is_voided
    assert copy.restocked_at == FIXED_NOW


def test_legacy_documents_without_state_use_flags():
    document = {"orderNo": 4, "date": "2026-03-01T09:00:00+00:00", "done": True, "cart": [], "itemsTotal": "40"}
    order = order_from_document("x", document)
    assert order.state is OrderState.DONE
    assert order.total == Decimal("40")
