from __future__ import annotations

import pytest

from till.auth import AuthorizationGate, Scope, parse_admin_number
from till.errors import InvalidEntry, NoPinSet, NotAuthorized


@pytest.mark.parametrize(("raw", "expected"), [("3", 3), (" 6 ", 6), ("", None), (None, None)])
def test_parse_admin_number(raw, expected):
    assert parse_admin_number(raw) == expected


@pytest.mark.parametrize("raw", ["0", "7", "x", "1.5"])
def test_parse_admin_number_rejects_other_input(raw):
    with pytest.raises(InvalidEntry):
        parse_admin_number(raw)


def test_verify_pin_is_per_slot():
    gate = AuthorizationGate()
    assert gate.verify_pin(1, " 1111 ")
    assert not gate.verify_pin(1, "2222")
    assert not gate.verify_pin(9, "1111")


def test_empty_slot_never_verifies():
    gate = AuthorizationGate({4: ""})
    assert not gate.verify_pin(4, "")
    with pytest.raises(NoPinSet):
        gate.challenge(Scope.INVENTORY_UNLOCK, 4, "")


def test_challenge_rejects_wrong_pin():
    gate = AuthorizationGate()
    with pytest.raises(NotAuthorized):
        gate.challenge(Scope.BANK_VIEW, 2, "1111")
    assert gate.challenge(Scope.BANK_VIEW, 2, "2222") == 2


def test_pin_row_unlock_uses_that_slots_pin():
    gate = AuthorizationGate()
    with pytest.raises(NotAuthorized):
        gate.unlock_pin_row(2, "1111")
    assert 2 not in gate.pin_rows_unlocked
    gate.unlock_pin_row(2, "2222")
    assert gate.pin_rows_unlocked == {2}
    gate.lock_pin_row(2)
    assert gate.pin_rows_unlocked == set()


def test_bank_opens_once_per_session():
    gate = AuthorizationGate()
    with pytest.raises(NotAuthorized):
        gate.open_bank(3, "0000")
    assert not gate.bank_unlocked
    assert gate.open_bank(3, "3333")
    assert gate.open_bank(3, "wrong")
    gate.end_session()
    assert not gate.bank_unlocked


def test_change_pin_requires_current_pin():
    gate = AuthorizationGate()
    with pytest.raises(NotAuthorized):
        gate.change_pin(5, "1111", "9999")
    with pytest.raises(InvalidEntry):
        gate.change_pin(5, "5555", " ")
    gate.change_pin(5, "5555", "9999")
    assert gate.verify_pin(5, "9999")
    assert not gate.verify_pin(5, "5555")


def test_editor_pin_is_separate_from_admin_pins():
    gate = AuthorizationGate(editor_pin="0512")
    with pytest.raises(NotAuthorized):
        gate.unlock_editor("1111")
    assert gate.unlock_editor("0512")
    assert gate.editor_unlocked
