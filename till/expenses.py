"""Day expenses, counted against revenue at day end."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from till.errors import InvalidEntry
from till.models import ZERO, Expense, non_negative, normalize_name, utc_now


class ExpenseBook:
    """Expenses for the day, newest first."""

    def __init__(self, expenses: list[Expense] | None = None) -> None:
        self.expenses: list[Expense] = list(expenses or [])

    def add(
        self,
        name: str,
        *,
        unit: str = "pcs",
        qty: object = 1,
        unit_price: object = 0,
        note: str = "",
        now: datetime | None = None,
    ) -> Expense:
        """Record an expense; qty and unit price are clamped to 0 or more."""
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidEntry("Enter expense name.")
        expense = Expense(
            expense_id=f"exp_{uuid4().hex[:12]}",
            name=clean_name,
            unit=normalize_name(unit) or "pcs",
            qty=non_negative(qty),
            unit_price=non_negative(unit_price),
            date=now or utc_now(),
            note=normalize_name(note),
        )
        self.expenses.insert(0, expense)
        return expense

    def delete(self, expense_id: str) -> None:
        """Remove one expense by id; unknown ids raise InvalidEntry."""
        remaining = [expense for expense in self.expenses if expense.expense_id != expense_id]
        if len(remaining) == len(self.expenses):
            raise InvalidEntry(f"Unknown expense {expense_id!r}.")
        self.expenses = remaining

    def total(self) -> Decimal:
        """Sum of qty x unit price."""
        return sum((expense.total for expense in self.expenses), ZERO)
