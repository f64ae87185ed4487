"""Order ledger: checkout, order lifecycle and day reporting queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from till.cart import CartBuilder, delivery_fee_for
from till.errors import AlreadyTerminal, IncompleteOrder, InvalidTransition, NoActiveShift, OrderNotFound
from till.models import ZERO, DayMeta, Expense, Order, OrderState, normalize_name, utc_now

if TYPE_CHECKING:
    from till.inventory import InventoryLedger

logger = logging.getLogger(__name__)


class SortKey(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    WORKER = "worker"
    PAYMENT = "payment"


@dataclass
class Totals:
    """Aggregates over non-voided orders; revenue never includes delivery fees."""

    revenue_total: Decimal = ZERO
    delivery_fees_total: Decimal = ZERO
    expenses_total: Decimal = ZERO
    by_payment: dict[str, Decimal] = field(default_factory=dict)
    by_order_type: dict[str, Decimal] = field(default_factory=dict)

    @property
    def margin(self) -> Decimal:
        return self.revenue_total - self.expenses_total


@dataclass
class SalesRow:
    item_id: int
    name: str
    count: int = 0
    revenue: Decimal = ZERO


@dataclass
class SalesFrequency:
    items: list[SalesRow]
    extras: list[SalesRow]


def _ranked(rows: Iterable[SalesRow]) -> list[SalesRow]:
    return sorted(rows, key=lambda row: (-row.count, -row.revenue))


class OrderLedger:
    """Committed orders, most recent first, and the day's order counter."""

    def __init__(self, orders: list[Order] | None = None, next_order_no: int = 1) -> None:
        self.orders: list[Order] = list(orders or [])
        self.next_order_no = max(1, int(next_order_no))

    def __len__(self) -> int:
        return len(self.orders)

    def find(self, order_no: int) -> Order | None:
        for order in self.orders:
            if order.order_no == order_no:
                return order
        return None

    def get(self, order_no: int) -> Order:
        order = self.find(order_no)
        if order is None:
            raise OrderNotFound(order_no)
        return order

    def checkout(
        self,
        cart: CartBuilder,
        *,
        worker: str,
        payment: str,
        order_type: str,
        delivery_fee: object = 0,
        note: str = "",
        inventory: InventoryLedger,
        day: DayMeta,
        now: datetime | None = None,
    ) -> Order:
        if not day.is_active:
            raise NoActiveShift()
        worker = normalize_name(worker)
        payment = normalize_name(payment)
        order_type = normalize_name(order_type)
        missing = [
            label
            for label, present in (
                ("cart items", not cart.is_empty),
                ("worker", bool(worker)),
                ("payment", bool(payment)),
                ("order type", bool(order_type)),
            )
            if not present
        ]
        if missing:
            raise IncompleteOrder(missing)

        inventory.reserve(cart.required_stock())

        fee = delivery_fee_for(order_type, delivery_fee)
        items_total = cart.items_total()
        order = Order(
            order_no=self.next_order_no,
            date=now or utc_now(),
            worker=worker,
            payment=payment,
            order_type=order_type,
            delivery_fee=fee,
            items_total=items_total,
            total=items_total + fee,
            cart=list(cart.lines),
            note=normalize_name(note),
        )
        self.orders.insert(0, order)
        self.next_order_no += 1
        cart.clear()
        logger.info("checkout order_no=%d total=%s worker=%s", order.order_no, order.total, worker)
        return order

    def mark_done(self, order_no: int) -> bool:
        """OPEN -> DONE; returns False when the order was already done."""
        order = self.get(order_no)
        if order.is_done:
            return False
        if order.is_voided:
            raise InvalidTransition(order_no, order.state.value, "mark it done")
        order.state = OrderState.DONE
        logger.info("order done order_no=%d", order_no)
        return True

    def void_and_restock(self, order_no: int, *, inventory: InventoryLedger, now: datetime | None = None) -> Order:
        order = self.get(order_no)
        if not order.is_open:
            raise AlreadyTerminal(order_no, order.state.value, "void it")
        inventory.release(order.required_stock())
        order.state = OrderState.VOIDED
        order.restocked_at = now or utc_now()
        logger.info("order voided order_no=%d", order_no)
        return order

    def attach_remote_id(self, order_no: int, remote_id: str, placed_at: datetime | None = None) -> None:
        order = self.find(order_no)
        if order is None or (placed_at is not None and order.date != placed_at):
            return
        if order.remote_id is None:
            order.remote_id = remote_id

    def replace_all(self, orders: list[Order]) -> int:
        """Overwrite the local list with a remote copy; returns how many local-only orders were dropped."""
        remote_ids = {order.remote_id for order in orders if order.remote_id}
        dropped = sum(1 for order in self.orders if order.remote_id is None or order.remote_id not in remote_ids)
        if dropped:
            logger.warning("order stream replaced local orders; dropped %d local-only order(s)", dropped)
        self.orders = list(orders)
        return dropped

    def reset(self) -> None:
        self.orders = []
        self.next_order_no = 1

    def valid_orders(self) -> list[Order]:
        return [order for order in self.orders if not order.is_voided]

    def sorted_orders(self, criterion: SortKey | str = SortKey.DATE_DESC) -> list[Order]:
        key = SortKey(criterion)
        if key is SortKey.DATE_DESC:
            return sorted(self.orders, key=lambda order: order.date, reverse=True)
        if key is SortKey.DATE_ASC:
            return sorted(self.orders, key=lambda order: order.date)
        if key is SortKey.WORKER:
            return sorted(self.orders, key=lambda order: order.worker.casefold())
        return sorted(self.orders, key=lambda order: order.payment.casefold())

    def totals(
        self,
        *,
        payment_methods: Iterable[str] = (),
        order_types: Iterable[str] = (),
        expenses: Iterable[Expense] = (),
    ) -> Totals:
        totals = Totals(
            by_payment={method: ZERO for method in payment_methods},
            by_order_type={order_type: ZERO for order_type in order_types},
        )
        for order in self.valid_orders():
            totals.revenue_total += order.items_total
            totals.delivery_fees_total += order.delivery_fee
            totals.by_payment[order.payment] = totals.by_payment.get(order.payment, ZERO) + order.items_total
            totals.by_order_type[order.order_type] = totals.by_order_type.get(order.order_type, ZERO) + order.items_total
        totals.expenses_total = sum((expense.total for expense in expenses), ZERO)
        return totals

    def sales_frequency(self) -> SalesFrequency:
        items: dict[int, SalesRow] = {}
        extras: dict[int, SalesRow] = {}
        for order in self.valid_orders():
            for line in order.cart:
                row = items.setdefault(line.item_id, SalesRow(line.item_id, line.name))
                row.count += 1
                row.revenue += line.price
                for extra in line.extras:
                    extra_row = extras.setdefault(extra.item_id, SalesRow(extra.item_id, extra.name))
                    extra_row.count += 1
                    extra_row.revenue += extra.price
        return SalesFrequency(items=_ranked(items.values()), extras=_ranked(extras.values()))
