from __future__ import annotations

from decimal import Decimal

import pytest

from till.cart import CartBuilder, delivery_fee_for
from till.catalog import EXTRA_KIND, ITEM_KIND
from till.errors import InvalidEntry
from till.settings import ShopSettings


def test_ids_are_shared_across_items_and_extras(state):
    catalog = state.catalog
    assert catalog.next_id() == 109
    burger = catalog.add_item("Mushroom Swiss", "-10")
    sauce = catalog.add_item("Garlic Sauce", "5", extra=True)
    assert (burger.item_id, burger.price) == (109, Decimal("0"))
    assert sauce.item_id == 110
    assert catalog.kind_of(110) == EXTRA_KIND
    assert catalog.kind_of(1) == ITEM_KIND
    with pytest.raises(InvalidEntry):
        catalog.kind_of(999)


def test_recipe_entries_validate_inventory_ids(state):
    catalog = state.catalog
    with pytest.raises(InvalidEntry):
        catalog.set_recipe_entry(1, "pickles", "2", inventory=state.inventory)
    catalog.set_recipe_entry(1, "cheese", "2", inventory=state.inventory)
    assert catalog.get(1).recipe["cheese"] == Decimal("2")
    catalog.set_recipe_entry(1, "cheese", "0", inventory=state.inventory)
    assert "cheese" not in catalog.get(1).recipe


def test_rename_price_and_delete(state):
    catalog = state.catalog
    catalog.rename(4, " Curly Fries ")
    catalog.set_price(4, "30")
    assert (catalog.get(4).name, catalog.get(4).price) == ("Curly Fries", Decimal("30"))
    with pytest.raises(InvalidEntry):
        catalog.rename(4, "")
    catalog.delete(4)
    assert catalog.find(4) is None
    with pytest.raises(InvalidEntry):
        catalog.delete(4)


def test_cart_lines_are_value_copies(state):
    cart = CartBuilder()
    line = cart.add_line(state.catalog.get(1), [state.catalog.get(101)])
    state.catalog.set_price(1, "500")
    state.catalog.get(101).recipe["meat"] = Decimal("999")
    assert line.price == Decimal("95")
    assert line.extras[0].recipe == {"meat": Decimal("100")}
    assert cart.required_stock() == {"meat": Decimal("200"), "buns": Decimal("1")}


def test_cart_totals_and_removal(state):
    cart = CartBuilder()
    cart.add_line(state.catalog.get(4))
    cart.add_line(state.catalog.get(7), [state.catalog.get(103)])
    assert cart.items_total() == Decimal("60")
    assert cart.cart_total("Delivery", "20") == Decimal("80")
    assert cart.cart_total("Dine-in", "20") == Decimal("60")
    with pytest.raises(InvalidEntry):
        cart.remove_line(5)
    assert cart.remove_line(0).name == "Classic Fries"
    assert len(cart) == 1


def test_delivery_fee_never_negative():
    assert delivery_fee_for("Delivery", "-3") == Decimal("0")
    assert delivery_fee_for("Take-Away", "15") == Decimal("0")


def test_settings_lists_reject_blanks_and_duplicates():
    settings = ShopSettings(workers=["Hassan"])
    assert settings.add_worker(" Omar ") == "Omar"
    with pytest.raises(InvalidEntry):
        settings.add_worker("Hassan")
    with pytest.raises(InvalidEntry):
        settings.add_payment_method("")
    settings.remove_worker("Nobody")
    settings.remove_worker("Hassan")
    assert settings.workers == ["Omar"]
    settings.set_default_delivery_fee("-5")
    assert settings.default_delivery_fee == Decimal("0")
