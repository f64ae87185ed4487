"""Menu editor screen, opened with the editor PIN."""

from __future__ import annotations

from rich.text import Text

from till.choice_modal import ChoiceModal
from till.list_modal import SessionListModal
from till.models import CatalogItem
from till.prompt_modal import PromptModal
from till.rendering import format_catalog_row, money

_SETTING_ACTIONS = {
    "Add worker": ("add", "worker"),
    "Remove worker": ("remove", "worker"),
    "Add payment method": ("add", "payment"),
    "Remove payment method": ("remove", "payment"),
    "Add order type": ("add", "order_type"),
    "Remove order type": ("remove", "order_type"),
}
_DELIVERY_FEE = "Default delivery fee"


class EditorModal(SessionListModal):
    """Menu items and extras with their recipes, plus the shop settings lists."""

    BINDINGS = SessionListModal.BINDINGS + [
        ("a", "add_item(False)", "Add item"),
        ("e", "add_item(True)", "Add extra"),
        ("n", "rename", "Rename"),
        ("p", "set_price", "Set price"),
        ("r", "set_recipe", "Recipe entry"),
        ("x", "delete", "Delete"),
        ("s", "settings", "Settings"),
    ]

    HELP = "A add item, E add extra, N rename, P price, R recipe, X delete, S settings"

    def _entries(self) -> list[tuple[CatalogItem, bool]]:
        catalog = self.session.state.catalog
        return [(item, False) for item in catalog.items] + [(extra, True) for extra in catalog.extras]

    def _current(self) -> CatalogItem | None:
        entries = self._entries()
        if not entries:
            return None
        return entries[min(self.cursor_index, len(entries) - 1)][0]

    def title_text(self) -> str:
        return "Menu editor (+ marks extras)"

    def row_labels(self) -> list[Text | str]:
        return [format_catalog_row(item, extra=extra) for item, extra in self._entries()]

    def action_add_item(self, extra: bool) -> None:
        kind = "extra" if extra else "item"
        self._ask(
            PromptModal(f"New {kind}", "Name"),
            lambda name: self._ask(
                PromptModal(f"New {kind}", "Price", numeric=True),
                lambda price: self._run(
                    lambda: self.session.add_catalog_item(str(name), price, extra=extra), f"Added {name}"
                ),
            ),
        )

    def action_rename(self) -> None:
        item = self._current()
        if item is None:
            return
        self._ask(
            PromptModal(f"Rename {item.name}", "New name"),
            lambda name: self._run(lambda: self.session.rename_catalog_item(item.item_id, str(name)), f"Renamed to {name}"),
        )

    def action_set_price(self) -> None:
        item = self._current()
        if item is None:
            return
        self._ask(
            PromptModal(f"Price of {item.name}", f"Now {money(item.price)}", numeric=True),
            lambda price: self._run(lambda: self.session.set_catalog_price(item.item_id, price), f"{item.name} repriced"),
        )

    def action_set_recipe(self) -> None:
        item = self._current()
        if item is None:
            return
        inventory = self.session.state.inventory.items
        labels = {f"{stock.name} ({stock.unit})": stock.item_id for stock in inventory}

        def _qty(label: object) -> None:
            inventory_id = labels[str(label)]
            self._ask(
                PromptModal(f"{item.name} uses {label}", "Quantity per sale, 0 removes it", numeric=True),
                lambda qty: self._run(
                    lambda: self.session.set_recipe_entry(item.item_id, inventory_id, qty), f"Recipe for {item.name} updated"
                ),
            )

        self._ask(ChoiceModal(f"Which stock does {item.name} use?", list(labels)), _qty)

    def action_delete(self) -> None:
        item = self._current()
        if item is None:
            return
        self._ask(
            ChoiceModal(f"Delete {item.name} from the menu?", ["No", "Yes"]),
            lambda answer: answer == "Yes"
            and self._run(lambda: self.session.delete_catalog_item(item.item_id), f"Deleted {item.name}"),
        )

    def action_settings(self) -> None:
        def _picked(choice: object) -> None:
            if choice == _DELIVERY_FEE:
                fee = money(self.session.state.settings.default_delivery_fee)
                self._ask(
                    PromptModal(_DELIVERY_FEE, f"Now {fee}", numeric=True),
                    lambda value: self._run(lambda: self.session.set_default_delivery_fee(value), "Delivery fee saved"),
                )
                return
            verb, kind = _SETTING_ACTIONS[str(choice)]
            if verb == "add":
                self._ask(
                    PromptModal(str(choice), "Name"),
                    lambda value: self._run(lambda: self.session.add_setting(kind, str(value)), f"Added {value}"),
                )
                return
            self._ask(
                ChoiceModal(str(choice), self._setting_values(kind)),
                lambda value: self._run(lambda: self.session.remove_setting(kind, str(value)), f"Removed {value}"),
            )

        self._ask(ChoiceModal("Shop settings", [*_SETTING_ACTIONS, _DELIVERY_FEE]), _picked)

    def _setting_values(self, kind: str) -> list[str]:
        settings = self.session.state.settings
        return {
            "worker": settings.workers,
            "payment": settings.payment_methods,
            "order_type": settings.order_types,
        }[kind]
