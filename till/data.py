"""Typed default aggregates built from the editable seed data."""

from __future__ import annotations

from till.catalog import Catalog
from till.constant import (
    BASE_EXTRAS,
    BASE_INVENTORY,
    BASE_MENU,
    BASE_WORKERS,
    DEFAULT_DELIVERY_FEE,
    DEFAULT_ORDER_TYPES,
    DEFAULT_PAYMENT_METHODS,
)
from till.inventory import InventoryLedger
from till.models import CatalogItem, InventoryItem, non_negative
from till.settings import ShopSettings
from till.state import TillState


def _catalog_item(raw: dict[str, object]) -> CatalogItem:
    recipe = raw.get("recipe") or {}
    return CatalogItem(
        item_id=int(raw["id"]),  # type: ignore[arg-type]
        name=str(raw["name"]),
        price=non_negative(raw["price"]),
        recipe={str(key): non_negative(qty) for key, qty in recipe.items() if non_negative(qty) > 0},  # type: ignore[union-attr]
    )


def default_catalog() -> Catalog:
    return Catalog(
        items=[_catalog_item(raw) for raw in BASE_MENU],
        extras=[_catalog_item(raw) for raw in BASE_EXTRAS],
    )


def default_inventory() -> InventoryLedger:
    return InventoryLedger(
        [
            InventoryItem(item_id=str(raw["id"]), name=str(raw["name"]), unit=str(raw["unit"]), qty=non_negative(raw["qty"]))
            for raw in BASE_INVENTORY
        ]
    )


def default_settings() -> ShopSettings:
    return ShopSettings(
        workers=list(BASE_WORKERS),
        payment_methods=list(DEFAULT_PAYMENT_METHODS),
        order_types=list(DEFAULT_ORDER_TYPES),
        default_delivery_fee=non_negative(DEFAULT_DELIVERY_FEE),
    )


def default_state() -> TillState:
    return TillState(catalog=default_catalog(), inventory=default_inventory(), settings=default_settings())
