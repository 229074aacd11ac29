# Overview: Service-layer operations for the cash-flow ledger; append-only transactions.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from ..models import Transaction, TransactionItem, TransactionType
from ..storage import TRANSACTIONS_KEY, CollectionStore, Unsubscribe
from ..time_utils import DateLike, coerce_datetime, end_of_day, truncate_to_millis, utcnow
from ..validation import coerce_choice
from .identity_service import generate_id
"""
Cashbook Ledger Invariants (authoritative)

- Append-only: there is no update or delete; corrections are new entries.
- Transactions are frozen once created; items are a snapshot taken at sale time.
- Queries return newest first; start/end bounds are inclusive and end_date
  covers the whole calendar day (23:59:59.999).
"""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSummary:
    total_inflow: float
    total_outflow: float
    count: int

    @property
    def net(self) -> float:
        return self.total_inflow - self.total_outflow

    def to_dict(self) -> dict:
        return {
            "totalInflow": self.total_inflow,
            "totalOutflow": self.total_outflow,
            "net": self.net,
            "count": self.count,
        }


def _as_item(value) -> TransactionItem:
    if isinstance(value, TransactionItem):
        return value
    if "productId" in value:
        return TransactionItem.from_dict(value)
    return TransactionItem(**value)


class LedgerService:
    def __init__(
        self,
        store: CollectionStore,
        *,
        clock: Callable = utcnow,
        id_factory: Callable[[], str] = generate_id,
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    def _load(self) -> list[Transaction]:
        return [Transaction.from_dict(row) for row in self.store.get(TRANSACTIONS_KEY)]

    def add_transaction(
        self,
        transaction_type: TransactionType | str,
        description: str,
        amount: float,
        category: str | None = None,
        payment_method: str | None = None,
        items: Optional[Iterable] = None,
    ) -> Transaction:
        """Append one immutable transaction stamped with the current time."""
        rows = self.store.get(TRANSACTIONS_KEY)

        tx = Transaction(
            id=self.id_factory(),
            type=coerce_choice(TransactionType, transaction_type, "type"),
            description=description,
            amount=amount,
            timestamp=truncate_to_millis(self.clock()),
            category=category,
            payment_method=payment_method,
            items=tuple(_as_item(i) for i in items) if items is not None else None,
        )

        rows.append(tx.to_dict())
        self.store.put(TRANSACTIONS_KEY, rows)
        logger.info("Ledger %s %s: %s", tx.type.value, tx.amount, tx.description)
        return tx

    def get_all(self) -> list[Transaction]:
        """All transactions in append order."""
        return self._load()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for tx in self._load():
            if tx.id == transaction_id:
                return tx
        return None

    def list_transactions(
        self,
        start_date: DateLike | None = None,
        end_date: DateLike | None = None,
        transaction_type: TransactionType | str | None = None,
        search_term: str | None = None,
    ) -> list[Transaction]:
        transactions = self._load()

        if start_date:
            start = coerce_datetime(start_date, "start_date")
            transactions = [t for t in transactions if t.timestamp >= start]
        if end_date:
            end = end_of_day(end_date)
            transactions = [t for t in transactions if t.timestamp <= end]

        if transaction_type:
            wanted = coerce_choice(TransactionType, transaction_type, "type")
            transactions = [t for t in transactions if t.type == wanted]

        if search_term:
            term = search_term.lower()
            transactions = [
                t for t in transactions
                if term in t.description.lower()
                or (t.category and term in t.category.lower())
            ]

        return sorted(transactions, key=lambda t: t.timestamp, reverse=True)

    def summarize(self, **filters) -> LedgerSummary:
        """Inflow/outflow totals over list_transactions(**filters)."""
        transactions = self.list_transactions(**filters)
        inflow = sum(t.amount for t in transactions if t.type == TransactionType.INFLOW)
        outflow = sum(t.amount for t in transactions if t.type == TransactionType.OUTFLOW)
        return LedgerSummary(total_inflow=inflow, total_outflow=outflow, count=len(transactions))

    def subscribe(self, callback: Callable[[list[Transaction]], None]) -> Unsubscribe:
        callback(self._load())
        return self.store.on_change(TRANSACTIONS_KEY, lambda event: callback(self._load()))
