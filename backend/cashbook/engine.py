# Overview: Wires the catalog, ledger, sales, debt and bill services over one collection store.

from __future__ import annotations

from typing import Callable, Mapping

from flask import Flask, current_app

from .services.bill_service import DEFAULT_BILL_CATEGORY, BillService
from .services.debt_service import DebtService
from .services.identity_service import generate_id
from .services.inventory_service import LOW_STOCK_THRESHOLD, InventoryService
from .services.ledger_service import LedgerService
from .services.sales_service import SalesService
from .storage import CollectionStore
from .time_utils import utcnow

EXTENSION_KEY = "cashbook"


class LedgerEngine:
    """
    Every manager is stateless between calls: each operation re-reads its
    collection from the store, so one engine can be shared by any number of views.
    """

    def __init__(
        self,
        store: CollectionStore,
        *,
        clock: Callable = utcnow,
        id_factory: Callable[[], str] = generate_id,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
        default_bill_category: str = DEFAULT_BILL_CATEGORY,
        enforce_sale_stock: bool = True,
    ):
        self.store = store
        self.ledger = LedgerService(store, clock=clock, id_factory=id_factory)
        self.inventory = InventoryService(
            store,
            clock=clock,
            id_factory=id_factory,
            low_stock_threshold=low_stock_threshold,
        )
        self.sales = SalesService(self.inventory, self.ledger, enforce_stock=enforce_sale_stock)
        self.debts = DebtService(store, self.ledger, clock=clock, id_factory=id_factory)
        self.bills = BillService(
            store,
            self.ledger,
            clock=clock,
            id_factory=id_factory,
            default_category=default_bill_category,
        )

    @classmethod
    def from_config(cls, store: CollectionStore, config: Mapping, **kwargs) -> "LedgerEngine":
        return cls(
            store,
            low_stock_threshold=config.get("LOW_STOCK_THRESHOLD", LOW_STOCK_THRESHOLD),
            default_bill_category=config.get("DEFAULT_BILL_CATEGORY", DEFAULT_BILL_CATEGORY),
            enforce_sale_stock=config.get("SALE_ENFORCE_STOCK", True),
            **kwargs,
        )


def get_engine(app: Flask | None = None) -> LedgerEngine:
    """Engine attached to app (or the current app) by create_app."""
    app = app or current_app
    return app.extensions[EXTENSION_KEY]
