"""Error taxonomy for till operations."""

from __future__ import annotations

from decimal import Decimal


class TillError(Exception):
    """Base class for every error a till command can raise."""


class NoActiveShift(TillError):
    """Raised when an action needs a running shift."""

    def __init__(self) -> None:
        super().__init__("Start a shift first.")


class IncompleteOrder(TillError):
    """Checkout is missing something the order needs."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Order incomplete: missing {', '.join(missing)}.")
        self.missing = missing


class InsufficientStock(TillError):
    """The first inventory item a reservation could not cover."""

    def __init__(self, item_id: str, needed: Decimal, available: Decimal, name: str = "", unit: str = "") -> None:
        label = name or item_id
        suffix = f" {unit}" if unit else ""
        super().__init__(f"Not enough {label} in stock. Need {needed}{suffix}, have {available}{suffix}.")
        self.item_id = item_id
        self.needed = needed
        self.available = available


class OrderNotFound(TillError):
    """No order with that number in the current day."""

    def __init__(self, order_no: int) -> None:
        super().__init__(f"Order #{order_no} not found.")
        self.order_no = order_no


class InvalidTransition(TillError):
    """An order state change the state machine does not allow."""

    def __init__(self, order_no: int, state: str, action: str) -> None:
        super().__init__(f"Order #{order_no} is {state}; cannot {action}.")
        self.order_no = order_no
        self.state = state
        self.action = action


class AlreadyTerminal(InvalidTransition):
    """The order is already done or voided."""


class NotAuthorized(TillError):
    """A PIN or handover name did not match."""


class NoPinSet(TillError):
    """The admin slot has an empty PIN."""

    def __init__(self, admin_number: int) -> None:
        super().__init__(f"Admin {admin_number} has no PIN set.")
        self.admin_number = admin_number


class InvalidHandover(TillError):
    """Handover to an empty name or to the worker already on shift."""


class ShiftAlreadyActive(TillError):
    """A shift is already running."""

    def __init__(self, started_by: str) -> None:
        super().__init__(f"Shift already started by {started_by}.")
        self.started_by = started_by


class InventoryLocked(TillError):
    """Inventory edits are blocked until an admin unlocks it."""

    def __init__(self) -> None:
        super().__init__("Inventory is locked; unlock with an admin PIN or end the day.")


class ConfirmationRequired(TillError):
    """The operator has to confirm before this runs."""


class InvalidEntry(TillError):
    """User input the command cannot accept."""


class SyncFailure(TillError):
    """A remote read or write failed; local state is unaffected."""


class ReportFailure(TillError):
    """The report document could not be written."""


class PrintRefused(TillError):
    """Voided orders never print; done orders print customer copies only."""

    def __init__(self, order_no: int, reason: str) -> None:
        super().__init__(f"Cannot print order #{order_no}: {reason}.")
        self.reason = reason
        self.order_no = order_no
