"""Convert till state to and from JSON-friendly documents.

Datetimes travel as ISO-8601 strings and decimals as strings; both the local
snapshot and the remote full-state document use the same shape.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, TypeVar

from till.auth import ADMIN_NUMBERS
from till.models import (
    BankTransaction,
    BankTxType,
    CartLine,
    CatalogItem,
    DayMeta,
    Expense,
    InventoryItem,
    Order,
    OrderState,
    ShiftChange,
    SnapshotRow,
    non_negative,
    to_decimal,
    utc_now,
)
from till.state import TillState

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATE_KEYS: tuple[str, ...] = (
    "catalog",
    "extras",
    "orders",
    "inventory",
    "nextOrderNo",
    "workers",
    "paymentMethods",
    "inventoryLocked",
    "inventorySnapshot",
    "inventoryLockedAt",
    "adminPins",
    "orderTypes",
    "defaultDeliveryFee",
    "expenses",
    "dayMeta",
    "bankTx",
)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO string or a driver datetime; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            logger.warning("unparseable timestamp %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _dec(value: Decimal) -> str:
    return str(value)


def _recipe_to_dict(recipe: dict[str, Decimal]) -> dict[str, str]:
    return {key: _dec(qty) for key, qty in recipe.items()}


def _recipe_from_dict(raw: object) -> dict[str, Decimal]:
    if not isinstance(raw, dict):
        return {}
    return {str(key): non_negative(qty) for key, qty in raw.items() if non_negative(qty) > 0}


def catalog_item_to_dict(item: CatalogItem) -> dict[str, Any]:
    return {"id": item.item_id, "name": item.name, "price": _dec(item.price), "recipe": _recipe_to_dict(item.recipe)}


def catalog_item_from_dict(raw: dict[str, Any]) -> CatalogItem:
    return CatalogItem(
        item_id=int(raw.get("id", 0)),
        name=str(raw.get("name", "")),
        price=non_negative(raw.get("price", 0)),
        recipe=_recipe_from_dict(raw.get("recipe", raw.get("uses"))),
    )


def cart_line_to_dict(line: CartLine) -> dict[str, Any]:
    return {
        "id": line.item_id,
        "name": line.name,
        "price": _dec(line.price),
        "recipe": _recipe_to_dict(line.recipe),
        "extras": [catalog_item_to_dict(extra) for extra in line.extras],
        "uses": _recipe_to_dict(line.uses),
    }


def cart_line_from_dict(raw: dict[str, Any]) -> CartLine:
    return CartLine(
        item_id=int(raw.get("id", 0)),
        name=str(raw.get("name", "")),
        price=non_negative(raw.get("price", 0)),
        recipe=_recipe_from_dict(raw.get("recipe")),
        extras=tuple(catalog_item_from_dict(extra) for extra in raw.get("extras") or []),
        uses=_recipe_from_dict(raw.get("uses")),
    )


def _order_state(raw: dict[str, Any]) -> OrderState:
    state = raw.get("state")
    if state in {member.value for member in OrderState}:
        return OrderState(state)
    if raw.get("voided"):
        return OrderState.VOIDED
    if raw.get("done"):
        return OrderState.DONE
    return OrderState.OPEN


def order_to_dict(order: Order) -> dict[str, Any]:
    return {
        "orderNo": order.order_no,
        "date": iso(order.date),
        "worker": order.worker,
        "payment": order.payment,
        "orderType": order.order_type,
        "deliveryFee": _dec(order.delivery_fee),
        "itemsTotal": _dec(order.items_total),
        "total": _dec(order.total),
        "cart": [cart_line_to_dict(line) for line in order.cart],
        "note": order.note,
        "state": order.state.value,
        "restockedAt": iso(order.restocked_at),
        "remoteId": order.remote_id,
    }


def order_from_dict(raw: dict[str, Any], remote_id: str | None = None) -> Order:
    cart = [cart_line_from_dict(line) for line in raw.get("cart") or []]
    delivery_fee = non_negative(raw.get("deliveryFee", 0))
    items_total = sum((line.line_total for line in cart), Decimal("0"))
    if "itemsTotal" in raw:
        items_total = to_decimal(raw["itemsTotal"])
    state = _order_state(raw)
    return Order(
        order_no=int(raw.get("orderNo", 0)),
        date=parse_datetime(raw.get("date") or raw.get("createdAt")) or utc_now(),
        worker=str(raw.get("worker", "")),
        payment=str(raw.get("payment", "")),
        order_type=str(raw.get("orderType", "")),
        delivery_fee=delivery_fee,
        items_total=items_total,
        total=items_total + delivery_fee,
        cart=cart,
        note=str(raw.get("note") or ""),
        state=state,
        restocked_at=parse_datetime(raw.get("restockedAt")) if state is OrderState.VOIDED else None,
        remote_id=remote_id or raw.get("remoteId") or None,
    )


def order_to_document(order: Order) -> dict[str, Any]:
    """Orders-collection shape; keeps the done/voided flags older viewers read."""
    document = order_to_dict(order)
    document.pop("remoteId")
    document["done"] = order.is_done
    document["voided"] = order.is_voided
    return document


def order_from_document(remote_id: str, document: dict[str, Any]) -> Order:
    return order_from_dict(document, remote_id=remote_id)


def order_state_fields(order: Order) -> dict[str, Any]:
    return {
        "state": order.state.value,
        "done": order.is_done,
        "voided": order.is_voided,
        "restockedAt": iso(order.restocked_at),
    }


def day_meta_to_dict(meta: DayMeta) -> dict[str, Any]:
    return {
        "startedBy": meta.started_by,
        "startedAt": iso(meta.started_at),
        "endedAt": iso(meta.ended_at),
        "endedBy": meta.ended_by,
        "lastReportAt": iso(meta.last_report_at),
        "shiftChanges": [
            {"at": iso(change.at), "from": change.from_worker, "to": change.to_worker} for change in meta.shift_changes
        ],
    }


def day_meta_from_dict(raw: dict[str, Any]) -> DayMeta:
    changes = []
    for change in raw.get("shiftChanges") or []:
        if not isinstance(change, dict):
            continue
        at = parse_datetime(change.get("at"))
        if at is None:
            continue
        changes.append(ShiftChange(at=at, from_worker=str(change.get("from", "")), to_worker=str(change.get("to", ""))))
    return DayMeta(
        started_by=str(raw.get("startedBy") or ""),
        started_at=parse_datetime(raw.get("startedAt")),
        ended_at=parse_datetime(raw.get("endedAt")),
        ended_by=str(raw.get("endedBy") or ""),
        last_report_at=parse_datetime(raw.get("lastReportAt")),
        shift_changes=changes,
    )


def expense_to_dict(expense: Expense) -> dict[str, Any]:
    return {
        "id": expense.expense_id,
        "name": expense.name,
        "unit": expense.unit,
        "qty": _dec(expense.qty),
        "unitPrice": _dec(expense.unit_price),
        "date": iso(expense.date),
        "note": expense.note,
    }


def expense_from_dict(raw: dict[str, Any]) -> Expense:
    return Expense(
        expense_id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        unit=str(raw.get("unit") or "pcs"),
        qty=non_negative(raw.get("qty", 0)),
        unit_price=non_negative(raw.get("unitPrice", 0)),
        date=parse_datetime(raw.get("date")) or utc_now(),
        note=str(raw.get("note") or ""),
    )


def bank_tx_to_dict(tx: BankTransaction) -> dict[str, Any]:
    return {
        "id": tx.tx_id,
        "type": tx.tx_type.value,
        "amount": _dec(tx.amount),
        "worker": tx.worker,
        "note": tx.note,
        "date": iso(tx.date),
    }


def bank_tx_from_dict(raw: dict[str, Any]) -> BankTransaction:
    return BankTransaction(
        tx_id=str(raw.get("id", "")),
        tx_type=BankTxType(raw.get("type", BankTxType.DEPOSIT.value)),
        amount=non_negative(raw.get("amount", 0)),
        worker=str(raw.get("worker") or ""),
        note=str(raw.get("note") or ""),
        date=parse_datetime(raw.get("date")) or utc_now(),
    )


def pack_state(state: TillState) -> dict[str, Any]:
    inventory = state.inventory
    return {
        "catalog": [catalog_item_to_dict(item) for item in state.catalog.items],
        "extras": [catalog_item_to_dict(item) for item in state.catalog.extras],
        "orders": [order_to_dict(order) for order in state.orders.orders],
        "inventory": [
            {"id": item.item_id, "name": item.name, "unit": item.unit, "qty": _dec(item.qty)} for item in inventory.items
        ],
        "nextOrderNo": state.orders.next_order_no,
        "workers": list(state.settings.workers),
        "paymentMethods": list(state.settings.payment_methods),
        "inventoryLocked": inventory.locked,
        "inventorySnapshot": [
            {"id": row.item_id, "name": row.name, "unit": row.unit, "qtyAtLock": _dec(row.qty_at_lock)}
            for row in inventory.snapshot
        ],
        "inventoryLockedAt": iso(inventory.locked_at),
        "adminPins": {str(number): pin for number, pin in state.gate.pins.items()},
        "orderTypes": list(state.settings.order_types),
        "defaultDeliveryFee": _dec(state.settings.default_delivery_fee),
        "expenses": [expense_to_dict(expense) for expense in state.expenses.expenses],
        "dayMeta": day_meta_to_dict(state.shift.meta),
        "bankTx": [bank_tx_to_dict(tx) for tx in state.bank.transactions],
    }


def _string_list(value: object) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [str(entry) for entry in value]


def inventory_item_from_dict(raw: dict[str, Any]) -> InventoryItem:
    return InventoryItem(
        item_id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        unit=str(raw.get("unit") or "pcs"),
        qty=non_negative(raw.get("qty", 0)),
    )


def snapshot_row_from_dict(raw: dict[str, Any]) -> SnapshotRow:
    return SnapshotRow(
        item_id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        unit=str(raw.get("unit") or ""),
        qty_at_lock=non_negative(raw.get("qtyAtLock", 0)),
    )


_BAD_ROW = (ValueError, TypeError, AttributeError, KeyError)


def _rows(key: str, raw_rows: list[Any], decode: Callable[[dict[str, Any]], T]) -> list[T]:
    """Decode each row; a malformed row is logged and dropped, the rest survive."""
    rows: list[T] = []
    for index, raw in enumerate(raw_rows):
        try:
            rows.append(decode(raw))
        except _BAD_ROW as exc:
            logger.warning("dropping malformed %s row index=%d: %s", key, index, exc)
    return rows


def unpack_state(data: dict[str, Any]) -> dict[str, Any]:
    """Typed values for every well-formed key present in ``data``; bad rows are skipped."""
    out: dict[str, Any] = {}
    for key, decode in (
        ("catalog", catalog_item_from_dict),
        ("extras", catalog_item_from_dict),
        ("orders", order_from_dict),
        ("inventory", inventory_item_from_dict),
        ("expenses", expense_from_dict),
        ("bankTx", bank_tx_from_dict),
    ):
        if isinstance(data.get(key), list):
            out[key] = _rows(key, data[key], decode)
    if isinstance(data.get("nextOrderNo"), int) and not isinstance(data.get("nextOrderNo"), bool):
        out["nextOrderNo"] = max(1, data["nextOrderNo"])
    for key in ("workers", "paymentMethods", "orderTypes"):
        values = _string_list(data.get(key))
        if values is not None:
            out[key] = values
    if isinstance(data.get("inventoryLocked"), bool):
        out["inventoryLocked"] = data["inventoryLocked"]
    if isinstance(data.get("inventorySnapshot"), list):
        out["inventorySnapshot"] = tuple(_rows("inventorySnapshot", data["inventorySnapshot"], snapshot_row_from_dict))
    if "inventoryLockedAt" in data:
        out["inventoryLockedAt"] = parse_datetime(data["inventoryLockedAt"])
    if isinstance(data.get("adminPins"), dict):
        out["adminPins"] = {
            int(number): str(pin)
            for number, pin in data["adminPins"].items()
            if str(number).isdigit() and int(number) in ADMIN_NUMBERS
        }
    if data.get("defaultDeliveryFee") is not None:
        out["defaultDeliveryFee"] = non_negative(data["defaultDeliveryFee"])
    if isinstance(data.get("dayMeta"), dict):
        try:
            out["dayMeta"] = day_meta_from_dict(data["dayMeta"])
        except _BAD_ROW as exc:
            logger.warning("dropping malformed dayMeta: %s", exc)
    return out


def apply_state(state: TillState, unpacked: dict[str, Any]) -> None:
    """Replace the aggregates' contents with every unpacked value present."""
    if "catalog" in unpacked:
        state.catalog.items = unpacked["catalog"]
    if "extras" in unpacked:
        state.catalog.extras = unpacked["extras"]
    if "orders" in unpacked:
        state.orders.orders = unpacked["orders"]
    if "nextOrderNo" in unpacked:
        state.orders.next_order_no = unpacked["nextOrderNo"]
    if "inventory" in unpacked:
        state.inventory.items = unpacked["inventory"]
    if "inventoryLocked" in unpacked:
        state.inventory.locked = unpacked["inventoryLocked"]
    if "inventorySnapshot" in unpacked:
        state.inventory.snapshot = unpacked["inventorySnapshot"]
    if "inventoryLockedAt" in unpacked:
        state.inventory.locked_at = unpacked["inventoryLockedAt"]
    if "workers" in unpacked:
        state.settings.workers = unpacked["workers"]
    if "paymentMethods" in unpacked:
        state.settings.payment_methods = unpacked["paymentMethods"]
    if "orderTypes" in unpacked:
        state.settings.order_types = unpacked["orderTypes"]
    if "defaultDeliveryFee" in unpacked:
        state.settings.default_delivery_fee = unpacked["defaultDeliveryFee"]
    if "adminPins" in unpacked:
        state.gate.pins.update(unpacked["adminPins"])
    if "expenses" in unpacked:
        state.expenses.expenses = unpacked["expenses"]
    if "dayMeta" in unpacked:
        state.shift.meta = unpacked["dayMeta"]
    if "bankTx" in unpacked:
        state.bank.transactions = unpacked["bankTx"]
