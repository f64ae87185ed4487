"""Editable seed menu, extras, inventory and shop lists."""

from __future__ import annotations

BASE_MENU: list[dict[str, object]] = [
    {"id": 1, "name": "Single Smash", "price": "95", "recipe": {"meat": "100", "buns": "1"}},
    {"id": 2, "name": "Double Smash", "price": "140", "recipe": {"meat": "200", "buns": "1", "cheese": "1"}},
    {"id": 3, "name": "Triple Smash", "price": "160", "recipe": {"meat": "300", "buns": "1", "cheese": "2"}},
    {"id": 4, "name": "Classic Fries", "price": "25", "recipe": {"potatoes": "150"}},
    {"id": 5, "name": "Cheese Fries", "price": "40", "recipe": {"potatoes": "150", "cheese": "1"}},
    {"id": 6, "name": "Chicken Wrap", "price": "80", "recipe": {"chicken": "120"}},
    {"id": 7, "name": "Soda", "price": "20", "recipe": {"soda": "1"}},
    {"id": 8, "name": "Water", "price": "10", "recipe": {}},
]

BASE_EXTRAS: list[dict[str, object]] = [
    {"id": 101, "name": "Extra Patty", "price": "40", "recipe": {"meat": "100"}},
    {"id": 102, "name": "Bacon", "price": "20", "recipe": {}},
    {"id": 103, "name": "Cheese", "price": "15", "recipe": {"cheese": "1"}},
    {"id": 104, "name": "Ranch", "price": "15", "recipe": {}},
    {"id": 105, "name": "Mushroom", "price": "15", "recipe": {}},
    {"id": 106, "name": "Caramelized Onion", "price": "10", "recipe": {}},
    {"id": 107, "name": "Jalapeno", "price": "10", "recipe": {}},
    {"id": 108, "name": "Extra Bun", "price": "10", "recipe": {"buns": "1"}},
]

BASE_INVENTORY: list[dict[str, object]] = [
    {"id": "meat", "name": "Meat", "unit": "g", "qty": "0"},
    {"id": "cheese", "name": "Cheese", "unit": "slices", "qty": "0"},
    {"id": "buns", "name": "Buns", "unit": "pcs", "qty": "0"},
    {"id": "potatoes", "name": "Potatoes", "unit": "g", "qty": "0"},
    {"id": "chicken", "name": "Chicken", "unit": "g", "qty": "0"},
    {"id": "soda", "name": "Soda", "unit": "cans", "qty": "0"},
]

BASE_WORKERS: list[str] = ["Hassan", "Warda", "Ahmed"]
DEFAULT_PAYMENT_METHODS: list[str] = ["Cash", "Card", "Instapay"]
DEFAULT_ORDER_TYPES: list[str] = ["Take-Away", "Dine-in", "Delivery"]
DEFAULT_DELIVERY_FEE = "20"
