"""Cart builder for the order being assembled at the till."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from till.config import DELIVERY_ORDER_TYPE
from till.errors import InvalidEntry
from till.models import ZERO, CartLine, CatalogItem, Recipe, merge_recipes, non_negative


def delivery_fee_for(order_type: str, fee: object) -> Decimal:
    """Delivery fee applies only to delivery orders."""
    if order_type != DELIVERY_ORDER_TYPE:
        return ZERO
    return non_negative(fee)


class CartBuilder:
    """Accumulates lines; stock is only checked at checkout."""

    def __init__(self) -> None:
        self.lines: list[CartLine] = []

    def __len__(self) -> int:
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def add_line(self, item: CatalogItem, extras: Iterable[CatalogItem] = ()) -> CartLine:
        line = CartLine.from_selection(item, extras)
        self.lines.append(line)
        return line

    def remove_line(self, index: int) -> CartLine:
        if not (0 <= index < len(self.lines)):
            raise InvalidEntry(f"No cart line at position {index + 1}.")
        return self.lines.pop(index)

    def items_total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), ZERO)

    def cart_total(self, order_type: str = "", delivery_fee: object = 0) -> Decimal:
        return self.items_total() + delivery_fee_for(order_type, delivery_fee)

    def required_stock(self) -> Recipe:
        return merge_recipes(line.uses for line in self.lines)

    def clear(self) -> None:
        self.lines.clear()
