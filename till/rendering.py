"""Rendering helpers for the terminal front end."""

from __future__ import annotations

from decimal import Decimal

from rich.text import Text

from till.models import CartLine, CatalogItem, InventoryItem, Order, OrderState


def money(value: Decimal) -> str:
    return f"{value:.2f}"


def badge_style(state: OrderState) -> str:
    """Return a consistent badge style for order states."""
    if state is OrderState.VOIDED:
        return "bold #ffffff on #b23a48"
    if state is OrderState.DONE:
        return "bold #ffffff on #2f6db5"
    return "bold #0b1f0f on #5fbf72"


def format_order_row(order: Order) -> Text:
    text = Text()
    text.append(f" {order.state.value.upper()} ", style=badge_style(order.state))
    text.append(f" #{order.order_no} ")
    text.append(order.date.astimezone().strftime("%H:%M"), style="dim")
    text.append(f"  {order.worker}  {order.payment}/{order.order_type}  ")
    text.append(money(order.total), style="bold")
    if order.is_voided:
        text.stylize("strike", 0)
    return text


def format_cart_line(index: int, line: CartLine) -> Text:
    text = Text()
    text.append(f"{index + 1}. {line.name}  {money(line.price)}")
    for extra in line.extras:
        text.append(f"\n      + {extra.name}  {money(extra.price)}", style="white")
    return text


def format_menu_item(item: CatalogItem) -> str:
    return f"{item.name}  {money(item.price)}"


def format_inventory_row(item: InventoryItem) -> Text:
    text = Text()
    text.append(f"{item.name:<18}", style="bold" if item.qty > 0 else "dim")
    text.append(f" {item.qty} {item.unit}")
    if item.qty <= 0:
        text.append("  out", style="bold #ffb3b3")
    return text


def format_recipe(recipe: dict[str, Decimal]) -> str:
    return ", ".join(f"{inventory_id} {qty}" for inventory_id, qty in recipe.items()) or "no recipe"


def format_catalog_row(item: CatalogItem, *, extra: bool = False) -> Text:
    text = Text()
    text.append("+ " if extra else "  ", style="dim")
    text.append(format_menu_item(item), style="bold")
    text.append(f"  [{format_recipe(item.recipe)}]", style="dim")
    return text
