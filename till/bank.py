"""Append-only bank ledger."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from till.errors import InvalidEntry
from till.models import ZERO, BankTransaction, BankTxType, normalize_name, to_decimal, utc_now

logger = logging.getLogger(__name__)


class BankLedger:
    """Bank transactions, newest first. Entries are never edited or removed."""

    def __init__(self, transactions: list[BankTransaction] | None = None) -> None:
        self.transactions: list[BankTransaction] = list(transactions or [])

    def add(
        self,
        tx_type: BankTxType | str,
        amount: object,
        *,
        worker: str = "",
        note: str = "",
        now: datetime | None = None,
    ) -> BankTransaction:
        """Append one transaction; the amount must be positive."""
        try:
            kind = BankTxType(tx_type)
        except ValueError as exc:
            raise InvalidEntry(f"Unknown transaction type {tx_type!r}.") from exc
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidEntry("Enter amount.")
        tx = BankTransaction(
            tx_id=f"tx_{uuid4().hex[:12]}",
            tx_type=kind,
            amount=value,
            worker=normalize_name(worker),
            note=normalize_name(note),
            date=now or utc_now(),
        )
        self.transactions.insert(0, tx)
        return tx

    def balance(self) -> Decimal:
        """Deposits, inits and upward adjustments minus withdrawals and downward adjustments."""
        return sum((tx.signed_amount for tx in self.transactions), ZERO)

    def post_margin(self, margin: Decimal, worker: str, now: datetime | None = None) -> BankTransaction | None:
        """Carry a day's margin into the ledger; a zero margin posts nothing."""
        if margin > 0:
            tx = self.add(BankTxType.INIT, margin, worker=worker, note="Auto init from day margin", now=now)
        elif margin < 0:
            tx = self.add(BankTxType.ADJUST_DOWN, -margin, worker=worker, note="Auto adjust down (negative margin)", now=now)
        else:
            return None
        logger.info("margin posted type=%s amount=%s", tx.tx_type.value, tx.amount)
        return tx
