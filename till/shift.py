"""Shift and day lifecycle: start, handover and end-of-day settlement."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from till.errors import InvalidEntry, InvalidHandover, NoActiveShift, NotAuthorized, ReportFailure, ShiftAlreadyActive
from till.models import BankTransaction, DayMeta, ShiftChange, normalize_name, utc_now
from till.report import DaySummary, build_day_summary

if TYPE_CHECKING:
    from till.bank import BankLedger
    from till.expenses import ExpenseBook
    from till.inventory import InventoryLedger
    from till.orders import OrderLedger
    from till.settings import ShopSettings

logger = logging.getLogger(__name__)

ReportWriter = Callable[[DaySummary], Path]


def same_person(left: str, right: str) -> bool:
    """Compare worker names ignoring case and surrounding/repeated whitespace."""
    return " ".join(left.split()).casefold() == " ".join(right.split()).casefold()


@dataclass(frozen=True)
class DayClose:
    ended_by: str
    margin: Decimal
    transaction: BankTransaction | None
    report_path: Path
    summary: DaySummary


class ShiftController:
    def __init__(self, meta: DayMeta | None = None) -> None:
        self.meta = meta or DayMeta()

    @property
    def is_active(self) -> bool:
        return self.meta.is_active

    @property
    def current_worker(self) -> str:
        return self.meta.started_by if self.is_active else ""

    def start_shift(self, worker_name: str, *, inventory: InventoryLedger, now: datetime | None = None) -> bool:
        """Start a shift; returns True when the operator should be offered an inventory lock."""
        if self.is_active:
            raise ShiftAlreadyActive(self.meta.started_by)
        name = normalize_name(worker_name)
        if not name:
            raise InvalidEntry("Worker name required.")
        self.meta = DayMeta(started_by=name, started_at=now or utc_now())
        logger.info("shift started by=%s", name)
        return bool(inventory.items) and not inventory.locked

    def change_shift(self, confirm_current: str, new_name: str, *, now: datetime | None = None) -> ShiftChange:
        if not self.is_active:
            raise NoActiveShift()
        current = self.meta.started_by
        if not same_person(normalize_name(confirm_current), current):
            logger.warning("handover refused: confirmation does not match active worker")
            raise NotAuthorized(f"Only {current} can hand over the shift.")
        successor = normalize_name(new_name)
        if not successor:
            raise InvalidHandover("New worker name required.")
        if same_person(successor, current):
            raise InvalidHandover("New worker must be different from current worker.")
        change = ShiftChange(at=now or utc_now(), from_worker=current, to_worker=successor)
        self.meta = replace(self.meta, started_by=successor, shift_changes=[*self.meta.shift_changes, change])
        logger.info("shift changed %s -> %s", current, successor)
        return change

    def generate_report(
        self,
        *,
        orders: OrderLedger,
        inventory: InventoryLedger,
        expenses: ExpenseBook,
        settings: ShopSettings,
        report: ReportWriter,
        now: datetime | None = None,
    ) -> Path:
        """Write a report of the running shift and stamp ``last_report_at``; nothing else changes."""
        if not self.is_active:
            raise NoActiveShift()
        moment = now or utc_now()
        summary = build_day_summary(
            self.meta, orders=orders, inventory=inventory, expenses=expenses, settings=settings, generated_at=moment
        )
        path = report(summary)
        self.meta.last_report_at = moment
        logger.info("shift report written path=%s", path)
        return path

    def end_day(
        self,
        ended_by: str,
        *,
        orders: OrderLedger,
        inventory: InventoryLedger,
        expenses: ExpenseBook,
        bank: BankLedger,
        settings: ShopSettings,
        report: ReportWriter,
        now: datetime | None = None,
    ) -> DayClose:
        """
        Close the day: report, post the margin, then reset orders, counter, lock and shift.

        The report is written from the closing day's data before anything is
        reset. A failed report raises ReportFailure and leaves every ledger
        untouched so the operator can retry.
        """
        if not self.is_active:
            raise NoActiveShift()
        name = normalize_name(ended_by)
        if not name:
            raise InvalidEntry("Name is required.")
        moment = now or utc_now()
        report_meta = replace(self.meta, ended_at=moment, ended_by=name, shift_changes=list(self.meta.shift_changes))
        summary = build_day_summary(report_meta, orders=orders, inventory=inventory, expenses=expenses, settings=settings)
        try:
            report_path = report(summary)
        except ReportFailure:
            logger.error("day end aborted: report failed, nothing was reset")
            raise

        margin = summary.totals.margin
        transaction = bank.post_margin(margin, name, now=moment)
        orders.reset()
        inventory.clear_lock()
        self.meta = DayMeta()
        logger.info("day ended by=%s margin=%s", name, margin)
        return DayClose(ended_by=name, margin=margin, transaction=transaction, report_path=report_path, summary=summary)
