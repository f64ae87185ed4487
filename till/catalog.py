"""Catalog of sellable items and extras."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from till.errors import InvalidEntry
from till.models import CatalogItem, non_negative, normalize_name

if TYPE_CHECKING:
    from till.inventory import InventoryLedger

ITEM_KIND = "item"
EXTRA_KIND = "extra"


class Catalog:
    """Base items and extras sharing one id space."""

    def __init__(self, items: list[CatalogItem] | None = None, extras: list[CatalogItem] | None = None) -> None:
        self.items: list[CatalogItem] = list(items or [])
        self.extras: list[CatalogItem] = list(extras or [])

    def __iter__(self) -> Iterator[CatalogItem]:
        yield from self.items
        yield from self.extras

    def next_id(self) -> int:
        return max((entry.item_id for entry in self), default=0) + 1

    def find(self, item_id: int) -> CatalogItem | None:
        for entry in self:
            if entry.item_id == item_id:
                return entry
        return None

    def get(self, item_id: int) -> CatalogItem:
        entry = self.find(item_id)
        if entry is None:
            raise InvalidEntry(f"Unknown catalog item {item_id}.")
        return entry

    def kind_of(self, item_id: int) -> str:
        if any(entry.item_id == item_id for entry in self.extras):
            return EXTRA_KIND
        self.get(item_id)
        return ITEM_KIND

    def add_item(self, name: str, price: object, *, extra: bool = False) -> CatalogItem:
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidEntry("Enter a name for the item.")
        entry = CatalogItem(item_id=self.next_id(), name=clean_name, price=non_negative(price))
        (self.extras if extra else self.items).append(entry)
        return entry

    def rename(self, item_id: int, name: str) -> None:
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidEntry("Enter a name for the item.")
        self.get(item_id).name = clean_name

    def set_price(self, item_id: int, price: object) -> None:
        self.get(item_id).price = non_negative(price)

    def set_recipe_entry(self, item_id: int, inventory_id: str, qty: object, *, inventory: InventoryLedger) -> None:
        """Set one consumption entry; zero removes it so recipes stay sparse."""
        entry = self.get(item_id)
        if inventory_id not in inventory:
            raise InvalidEntry(f"Unknown inventory item {inventory_id!r}.")
        amount = non_negative(qty)
        if amount == 0:
            entry.recipe.pop(inventory_id, None)
        else:
            entry.recipe[inventory_id] = amount

    def delete(self, item_id: int) -> None:
        self.get(item_id)
        self.items = [entry for entry in self.items if entry.item_id != item_id]
        self.extras = [entry for entry in self.extras if entry.item_id != item_id]
