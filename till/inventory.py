"""Inventory ledger: stock levels, start-of-day lock and reservations."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Mapping
from uuid import uuid4

from till.errors import ConfirmationRequired, InsufficientStock, InvalidEntry, InventoryLocked
from till.models import ZERO, InventoryItem, SnapshotRow, non_negative, normalize_name, to_decimal, utc_now

if TYPE_CHECKING:
    from till.auth import AuthorizationGate

logger = logging.getLogger(__name__)

_SLUG_MAX_LEN = 24


@dataclass(frozen=True)
class UsageRow:
    """Start vs. now row for the inventory report."""

    item_id: str
    name: str
    unit: str
    start: Decimal
    now: Decimal
    used: Decimal


def slug_for(name: str) -> str:
    """Build a stable inventory id from a display name."""
    slug = re.sub(r"\s+", "_", name.strip().lower())
    slug = re.sub(r"[^a-z0-9_]", "", slug)[:_SLUG_MAX_LEN]
    return slug or f"inv_{uuid4().hex[:8]}"


class InventoryLedger:
    """Owns stock quantities; quantities never go negative."""

    def __init__(self, items: list[InventoryItem] | None = None) -> None:
        self.items: list[InventoryItem] = list(items or [])
        self.locked = False
        self.snapshot: tuple[SnapshotRow, ...] = ()
        self.locked_at: datetime | None = None

    def get(self, item_id: str) -> InventoryItem | None:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def __contains__(self, item_id: object) -> bool:
        return isinstance(item_id, str) and self.get(item_id) is not None

    def qty(self, item_id: str) -> Decimal:
        item = self.get(item_id)
        return item.qty if item is not None else ZERO

    def add_item(self, name: str, unit: str = "pcs", qty: object = 0) -> InventoryItem:
        if self.locked:
            raise InventoryLocked()
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidEntry("Enter a name for the inventory item.")
        item_id = slug_for(clean_name)
        if item_id in self:
            raise InvalidEntry(f"An inventory item with id {item_id!r} already exists.")
        item = InventoryItem(item_id=item_id, name=clean_name, unit=normalize_name(unit) or "pcs", qty=non_negative(qty))
        self.items.append(item)
        return item

    def delete_item(self, item_id: str) -> None:
        if self.locked:
            raise InventoryLocked()
        if item_id not in self:
            raise InvalidEntry(f"Unknown inventory item {item_id!r}.")
        self.items = [item for item in self.items if item.item_id != item_id]

    def set_qty(self, item_id: str, qty: object) -> bool:
        """Set a stock level by hand; ignored while locked."""
        if self.locked:
            return False
        item = self.get(item_id)
        if item is None:
            return False
        item.qty = non_negative(qty)
        return True

    def lock(self, *, confirmed: bool, now: datetime | None = None) -> bool:
        if self.locked:
            return False
        if not self.items:
            raise InvalidEntry("Add at least one inventory item first.")
        if not confirmed:
            raise ConfirmationRequired("Locking captures the start-of-day snapshot and needs confirmation.")
        self.snapshot = tuple(
            SnapshotRow(item_id=item.item_id, name=item.name, unit=item.unit, qty_at_lock=item.qty)
            for item in self.items
        )
        self.locked = True
        self.locked_at = now or utc_now()
        logger.info("inventory locked items=%d", len(self.snapshot))
        return True

    def unlock(self, admin_number: int, pin: str, gate: AuthorizationGate) -> bool:
        """Clear the lock flag after an admin challenge; the snapshot is kept."""
        if not self.locked:
            return False
        gate.challenge_inventory_unlock(admin_number, pin)
        self.locked = False
        logger.info("inventory unlocked by admin=%d", admin_number)
        return True

    def clear_lock(self) -> None:
        self.locked = False
        self.locked_at = None

    def reserve(self, requirements: Mapping[str, Decimal]) -> None:
        """Check every requirement first, then deduct all of them; nothing changes on shortfall."""
        needed: list[tuple[InventoryItem, Decimal]] = []
        for item_id, raw_qty in requirements.items():
            qty = to_decimal(raw_qty)
            if qty <= 0:
                continue
            item = self.get(item_id)
            if item is None:
                logger.warning("reserve skipped untracked inventory id=%s", item_id)
                continue
            if item.qty < qty:
                logger.warning("stock short id=%s needed=%s available=%s", item_id, qty, item.qty)
                raise InsufficientStock(item_id, qty, item.qty, name=item.name, unit=item.unit)
            needed.append((item, qty))
        for item, qty in needed:
            item.qty -= qty

    def release(self, give_back: Mapping[str, Decimal]) -> None:
        for item_id, raw_qty in give_back.items():
            qty = to_decimal(raw_qty)
            if qty <= 0:
                continue
            item = self.get(item_id)
            if item is None:
                logger.warning("release skipped untracked inventory id=%s", item_id)
                continue
            item.qty += qty

    def usage_rows(self) -> list[UsageRow]:
        if not self.snapshot:
            return []
        start_by_id = {row.item_id: row.qty_at_lock for row in self.snapshot}
        rows = []
        for item in self.items:
            start = start_by_id.get(item.item_id, ZERO)
            rows.append(
                UsageRow(
                    item_id=item.item_id,
                    name=item.name,
                    unit=item.unit,
                    start=start,
                    now=item.qty,
                    used=max(ZERO, start - item.qty),
                )
            )
        return rows
