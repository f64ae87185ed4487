from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import FIXED_NOW
from till.auth import AuthorizationGate
from till.errors import ConfirmationRequired, InsufficientStock, InvalidEntry, InventoryLocked, NotAuthorized
from till.inventory import InventoryLedger, slug_for
from till.models import InventoryItem


def _ledger(**levels: str) -> InventoryLedger:
    return InventoryLedger([InventoryItem(item_id=k, name=k.title(), unit="g", qty=Decimal(v)) for k, v in levels.items()])


def test_reserve_deducts_every_requirement():
    inventory = _ledger(meat="300", buns="5")
    inventory.reserve({"meat": Decimal("200"), "buns": Decimal("1")})
    assert inventory.qty("meat") == Decimal("100")
    assert inventory.qty("buns") == Decimal("4")


def test_reserve_shortfall_changes_nothing():
    inventory = _ledger(meat="300", buns="0")
    with pytest.raises(InsufficientStock) as excinfo:
        inventory.reserve({"meat": Decimal("200"), "buns": Decimal("1")})
    assert excinfo.value.item_id == "buns"
    assert excinfo.value.needed == Decimal("1")
    assert excinfo.value.available == Decimal("0")
    assert "Buns" in str(excinfo.value)
    assert inventory.qty("meat") == Decimal("300")


def test_reserve_and_release_skip_untracked_ids():
    inventory = _ledger(meat="100")
    inventory.reserve({"meat": Decimal("50"), "pickles": Decimal("3")})
    inventory.release({"pickles": Decimal("3")})
    assert inventory.qty("meat") == Decimal("50")
    assert "pickles" not in inventory


def test_release_adds_back():
    inventory = _ledger(meat="0")
    inventory.release({"meat": Decimal("100")})
    assert inventory.qty("meat") == Decimal("100")


def test_lock_needs_items_and_confirmation():
    with pytest.raises(InvalidEntry):
        InventoryLedger().lock(confirmed=True)

    inventory = _ledger(meat="100")
    with pytest.raises(ConfirmationRequired):
        inventory.lock(confirmed=False)
    assert not inventory.locked

    assert inventory.lock(confirmed=True, now=FIXED_NOW) is True
    assert inventory.locked_at == FIXED_NOW
    assert [(row.item_id, row.qty_at_lock) for row in inventory.snapshot] == [("meat", Decimal("100"))]
    assert inventory.lock(confirmed=True) is False


def test_locked_inventory_rejects_manual_edits():
    inventory = _ledger(meat="100")
    inventory.lock(confirmed=True)
    with pytest.raises(InventoryLocked):
        inventory.add_item("Onions")
    with pytest.raises(InventoryLocked):
        inventory.delete_item("meat")
    assert inventory.set_qty("meat", 5) is False
    assert inventory.qty("meat") == Decimal("100")


def test_unlock_needs_that_admins_pin():
    inventory = _ledger(meat="100")
    inventory.lock(confirmed=True)
    gate = AuthorizationGate()

    with pytest.raises(NotAuthorized):
        inventory.unlock(1, "2222", gate)
    assert inventory.locked

    assert inventory.unlock(1, "1111", gate) is True
    assert not inventory.locked
    assert inventory.snapshot


def test_add_item_builds_slug_id_and_rejects_duplicates():
    inventory = InventoryLedger()
    item = inventory.add_item("  Pickled Onions! ", unit="jar", qty="-4")
    assert item.item_id == "pickled_onions"
    assert item.qty == Decimal("0")
    with pytest.raises(InvalidEntry):
        inventory.add_item("pickled onions")
    with pytest.raises(InvalidEntry):
        inventory.add_item("   ")


def test_slug_falls_back_when_name_has_no_usable_chars():
    assert slug_for("!!!").startswith("inv_")
    assert len(slug_for("a" * 40)) == 24


def test_usage_rows_compare_snapshot_to_now():
    inventory = _ledger(meat="1000")
    assert inventory.usage_rows() == []
    inventory.lock(confirmed=True)
    inventory.reserve({"meat": Decimal("300")})
    inventory.locked = False
    inventory.add_item("Onions", qty="10")

    rows = {row.item_id: row for row in inventory.usage_rows()}
    assert rows["meat"].start == Decimal("1000")
    assert rows["meat"].now == Decimal("700")
    assert rows["meat"].used == Decimal("300")
    assert rows["onions"].start == Decimal("0")
    assert rows["onions"].used == Decimal("0")


def test_clear_lock_keeps_snapshot():
    inventory = _ledger(meat="10")
    inventory.lock(confirmed=True, now=FIXED_NOW)
    inventory.clear_lock()
    assert not inventory.locked
    assert inventory.locked_at is None
    assert inventory.snapshot
