"""Inventory screen: stock levels, new items and removals."""

from __future__ import annotations

from rich.text import Text

from till.choice_modal import ChoiceModal
from till.list_modal import SessionListModal
from till.models import InventoryItem
from till.prompt_modal import PromptModal
from till.rendering import format_inventory_row


class InventoryModal(SessionListModal):
    """Edit stock by hand. Edits are refused while the inventory is locked."""

    BINDINGS = SessionListModal.BINDINGS + [
        ("s", "set_qty", "Set quantity"),
        ("enter", "set_qty", "Set quantity"),
        ("a", "add_item", "Add item"),
        ("x", "delete_item", "Delete item"),
    ]

    HELP = "S/Enter set qty, A add item, X delete item"

    def _items(self) -> list[InventoryItem]:
        return self.session.state.inventory.items

    def _current(self) -> InventoryItem | None:
        items = self._items()
        if not items:
            return None
        return items[min(self.cursor_index, len(items) - 1)]

    def title_text(self) -> str:
        inventory = self.session.state.inventory
        if inventory.locked:
            return "Inventory (locked: unlock with an admin PIN to edit)"
        return "Inventory"

    def row_labels(self) -> list[Text | str]:
        return [format_inventory_row(item) for item in self._items()]

    def action_set_qty(self) -> None:
        item = self._current()
        if item is None:
            return
        if self.session.state.inventory.locked:
            self.message = "Inventory is locked; quantities change only through sales and voids."
            self._refresh_content()
            return

        def _set(qty: object) -> None:
            if self._run(lambda: self.session.set_inventory_qty(item.item_id, qty)):
                self.message = f"{item.name} set to {self.session.state.inventory.qty(item.item_id)} {item.unit}"
                self._refresh_content()

        self._ask(PromptModal(f"Stock for {item.name}", f"Quantity in {item.unit}", numeric=True), _set)

    def action_add_item(self) -> None:
        self._ask(
            PromptModal("Add inventory item", "Name"),
            lambda name: self._ask(
                PromptModal("Add inventory item", "Unit (g, pcs, slices...)"),
                lambda unit: self._ask(
                    PromptModal("Add inventory item", "Starting quantity", numeric=True, required=False),
                    lambda qty: self._run(
                        lambda: self.session.add_inventory_item(str(name), str(unit), qty or 0), f"Added {name}"
                    ),
                ),
            ),
        )

    def action_delete_item(self) -> None:
        item = self._current()
        if item is None:
            return
        self._ask(
            ChoiceModal(f"Delete {item.name} from inventory?", ["No", "Yes"]),
            lambda answer: answer == "Yes"
            and self._run(lambda: self.session.delete_inventory_item(item.item_id), f"Deleted {item.name}"),
        )
