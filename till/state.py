"""The till's aggregates, bundled so commands can pass them explicitly."""

from __future__ import annotations

from dataclasses import dataclass, field

from till.auth import AuthorizationGate
from till.bank import BankLedger
from till.cart import CartBuilder
from till.catalog import Catalog
from till.expenses import ExpenseBook
from till.inventory import InventoryLedger
from till.orders import OrderLedger
from till.settings import ShopSettings
from till.shift import ShiftController


@dataclass
class TillState:
    catalog: Catalog = field(default_factory=Catalog)
    inventory: InventoryLedger = field(default_factory=InventoryLedger)
    orders: OrderLedger = field(default_factory=OrderLedger)
    shift: ShiftController = field(default_factory=ShiftController)
    expenses: ExpenseBook = field(default_factory=ExpenseBook)
    bank: BankLedger = field(default_factory=BankLedger)
    gate: AuthorizationGate = field(default_factory=AuthorizationGate)
    settings: ShopSettings = field(default_factory=ShopSettings)
    cart: CartBuilder = field(default_factory=CartBuilder)
