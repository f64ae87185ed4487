"""Admin PIN challenges guarding destructive and financial views."""

from __future__ import annotations

import hmac
import logging
from enum import Enum

from till.config import DEFAULT_ADMIN_PINS, EDITOR_PIN
from till.errors import InvalidEntry, NoPinSet, NotAuthorized
from till.models import normalize_name

logger = logging.getLogger(__name__)

ADMIN_NUMBERS: tuple[int, ...] = (1, 2, 3, 4, 5, 6)


class Scope(str, Enum):
    INVENTORY_UNLOCK = "inventory_unlock"
    BANK_VIEW = "bank_view"
    PIN_EDIT = "pin_edit"


def parse_admin_number(raw: object) -> int | None:
    """Parse an admin slot answer; None means the prompt was cancelled."""
    if raw is None:
        return None
    text = normalize_name(raw)
    if not text:
        return None
    if not text.isdigit() or int(text) not in ADMIN_NUMBERS:
        raise InvalidEntry("Please enter a number from 1 to 6.")
    return int(text)


def _same_secret(expected: str, attempt: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), attempt.encode("utf-8"))


class AuthorizationGate:
    """
    Per-slot admin PINs plus the shared editor PIN.

    Every challenge checks the PIN of the slot it names; a success for one
    slot never unlocks another slot's row.
    """

    def __init__(self, pins: dict[int, str] | None = None, editor_pin: str = EDITOR_PIN) -> None:
        self.pins: dict[int, str] = dict(DEFAULT_ADMIN_PINS)
        if pins:
            self.pins.update({int(number): str(pin) for number, pin in pins.items() if int(number) in ADMIN_NUMBERS})
        self.editor_pin = editor_pin
        self.bank_unlocked = False
        self.editor_unlocked = False
        self.pin_rows_unlocked: set[int] = set()

    def verify_pin(self, admin_number: int, attempt: object) -> bool:
        if admin_number not in ADMIN_NUMBERS:
            return False
        expected = normalize_name(self.pins.get(admin_number))
        if not expected:
            return False
        return _same_secret(expected, normalize_name(attempt))

    def challenge(self, scope: Scope, admin_number: int, attempt: object) -> int:
        if admin_number not in ADMIN_NUMBERS:
            raise InvalidEntry("Please enter a number from 1 to 6.")
        if not normalize_name(self.pins.get(admin_number)):
            logger.warning("challenge scope=%s admin=%d refused: no pin set", scope.value, admin_number)
            raise NoPinSet(admin_number)
        if not self.verify_pin(admin_number, attempt):
            logger.warning("challenge scope=%s admin=%d refused: wrong pin", scope.value, admin_number)
            raise NotAuthorized("Invalid PIN.")
        logger.info("challenge scope=%s admin=%d granted", scope.value, admin_number)
        return admin_number

    def challenge_inventory_unlock(self, admin_number: int, attempt: object) -> int:
        return self.challenge(Scope.INVENTORY_UNLOCK, admin_number, attempt)

    def open_bank(self, admin_number: int, attempt: object) -> bool:
        """Unlock the bank view once for the rest of the session."""
        if self.bank_unlocked:
            return True
        self.challenge(Scope.BANK_VIEW, admin_number, attempt)
        self.bank_unlocked = True
        return True

    def unlock_pin_row(self, admin_number: int, attempt: object) -> None:
        self.challenge(Scope.PIN_EDIT, admin_number, attempt)
        self.pin_rows_unlocked.add(admin_number)

    def lock_pin_row(self, admin_number: int) -> None:
        self.pin_rows_unlocked.discard(admin_number)

    def change_pin(self, admin_number: int, current_pin: object, new_pin: object) -> None:
        """Rotate a slot's PIN; only the holder of the current PIN may do it."""
        self.challenge(Scope.PIN_EDIT, admin_number, current_pin)
        fresh = normalize_name(new_pin)
        if not fresh:
            raise InvalidEntry("The new PIN cannot be empty.")
        self.pins[admin_number] = fresh
        self.pin_rows_unlocked.discard(admin_number)

    def unlock_editor(self, attempt: object) -> bool:
        if self.editor_unlocked:
            return True
        if not _same_secret(normalize_name(self.editor_pin), normalize_name(attempt)):
            logger.warning("editor unlock refused")
            raise NotAuthorized("Wrong PIN.")
        self.editor_unlocked = True
        return True

    def end_session(self) -> None:
        self.bank_unlocked = False
        self.editor_unlocked = False
        self.pin_rows_unlocked.clear()
