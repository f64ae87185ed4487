"""Editable shop lists: workers, payment methods, order types."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from till.errors import InvalidEntry
from till.models import ZERO, non_negative, normalize_name


def _add_unique(values: list[str], raw: str, label: str) -> str:
    value = normalize_name(raw)
    if not value:
        raise InvalidEntry(f"Enter a {label}.")
    if value in values:
        raise InvalidEntry(f"{value} is already listed.")
    values.append(value)
    return value


def _remove(values: list[str], raw: str) -> None:
    value = normalize_name(raw)
    if value in values:
        values.remove(value)


@dataclass
class ShopSettings:
    """Shop-wide lists the editor maintains, plus the default delivery fee."""

    workers: list[str] = field(default_factory=list)
    payment_methods: list[str] = field(default_factory=list)
    order_types: list[str] = field(default_factory=list)
    default_delivery_fee: Decimal = ZERO

    def add_worker(self, name: str) -> str:
        """Add a worker name; duplicates and blanks raise InvalidEntry."""
        return _add_unique(self.workers, name, "worker name")

    def remove_worker(self, name: str) -> None:
        _remove(self.workers, name)

    def add_payment_method(self, name: str) -> str:
        return _add_unique(self.payment_methods, name, "payment method")

    def remove_payment_method(self, name: str) -> None:
        _remove(self.payment_methods, name)

    def add_order_type(self, name: str) -> str:
        return _add_unique(self.order_types, name, "order type")

    def remove_order_type(self, name: str) -> None:
        _remove(self.order_types, name)

    def set_default_delivery_fee(self, fee: object) -> None:
        """Negative or unparseable fees become 0."""
        self.default_delivery_fee = non_negative(fee)
