"""Domain models for the till."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable, Mapping

ZERO = Decimal("0")

Recipe = dict[str, Decimal]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: object, default: str = "0") -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal(default)


def non_negative(value: object) -> Decimal:
    return max(ZERO, to_decimal(value))


def normalize_name(value: object) -> str:
    """Trim a free-form name; None becomes an empty string."""
    return str(value if value is not None else "").strip()


def merge_recipes(recipes: Iterable[Mapping[str, Decimal]]) -> Recipe:
    """Sum consumption maps key by key."""
    merged: Recipe = {}
    for recipe in recipes:
        for item_id, qty in recipe.items():
            merged[item_id] = merged.get(item_id, ZERO) + to_decimal(qty)
    return merged


class OrderState(str, Enum):
    OPEN = "open"
    DONE = "done"
    VOIDED = "voided"


class BankTxType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    INIT = "init"
    ADJUST_UP = "adjustUp"
    ADJUST_DOWN = "adjustDown"


CREDIT_TX_TYPES = frozenset({BankTxType.DEPOSIT, BankTxType.INIT, BankTxType.ADJUST_UP})


class CopyKind(str, Enum):
    CUSTOMER = "Customer"
    KITCHEN = "Kitchen"


@dataclass
class CatalogItem:
    """A sellable menu item or extra with its consumption recipe."""

    item_id: int
    name: str
    price: Decimal
    recipe: Recipe = field(default_factory=dict)

    def copy(self) -> CatalogItem:
        return replace(self, recipe=dict(self.recipe))


@dataclass
class InventoryItem:
    """A stock level for one inventory unit."""

    item_id: str
    name: str
    unit: str
    qty: Decimal


@dataclass(frozen=True)
class SnapshotRow:
    """Start-of-day quantity captured when inventory was locked."""

    item_id: str
    name: str
    unit: str
    qty_at_lock: Decimal


@dataclass(frozen=True)
class CartLine:
    """A priced, recipe-resolved line; holds value copies of the catalog entries."""

    item_id: int
    name: str
    price: Decimal
    recipe: Recipe
    extras: tuple[CatalogItem, ...]
    uses: Recipe

    @classmethod
    def from_selection(cls, item: CatalogItem, extras: Iterable[CatalogItem] = ()) -> CartLine:
        extras_copy = tuple(extra.copy() for extra in extras)
        uses = merge_recipes([item.recipe, *(extra.recipe for extra in extras_copy)])
        return cls(
            item_id=item.item_id,
            name=item.name,
            price=item.price,
            recipe=dict(item.recipe),
            extras=extras_copy,
            uses={key: qty for key, qty in uses.items() if qty > 0},
        )

    @property
    def extras_total(self) -> Decimal:
        return sum((extra.price for extra in self.extras), ZERO)

    @property
    def line_total(self) -> Decimal:
        return self.price + self.extras_total


@dataclass
class Order:
    """A committed order and its lifecycle state."""

    order_no: int
    date: datetime
    worker: str
    payment: str
    order_type: str
    delivery_fee: Decimal
    items_total: Decimal
    total: Decimal
    cart: list[CartLine]
    note: str = ""
    state: OrderState = OrderState.OPEN
    restocked_at: datetime | None = None
    remote_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.state is OrderState.OPEN

    @property
    def is_done(self) -> bool:
        return self.state is OrderState.DONE

    @property
    def is_voided(self) -> bool:
        return self.state is OrderState.VOIDED

    def computed_items_total(self) -> Decimal:
        return sum((line.line_total for line in self.cart), ZERO)

    def computed_total(self) -> Decimal:
        return self.computed_items_total() + self.delivery_fee

    def required_stock(self) -> Recipe:
        """Aggregate consumption of this order from its own cart copies."""
        return merge_recipes(line.uses for line in self.cart)


@dataclass(frozen=True)
class ShiftChange:
    at: datetime
    from_worker: str
    to_worker: str


@dataclass
class DayMeta:
    """Shift metadata; no shift is running while started_at is None."""

    started_by: str = ""
    started_at: datetime | None = None
    ended_at: datetime | None = None
    ended_by: str = ""
    last_report_at: datetime | None = None
    shift_changes: list[ShiftChange] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.started_at is not None and self.ended_at is None


@dataclass
class Expense:
    expense_id: str
    name: str
    unit: str
    qty: Decimal
    unit_price: Decimal
    date: datetime
    note: str = ""

    @property
    def total(self) -> Decimal:
        return self.qty * self.unit_price


@dataclass(frozen=True)
class BankTransaction:
    tx_id: str
    tx_type: BankTxType
    amount: Decimal
    worker: str
    note: str
    date: datetime

    @property
    def signed_amount(self) -> Decimal:
        if self.tx_type in CREDIT_TX_TYPES:
            return self.amount
        return -self.amount
