# Overview: Service-layer operations for receivables/payables; derived overdue status and settlement.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..models import DebtEntry, DebtStatus, DebtType, Transaction, TransactionType
from ..storage import DEBTS_KEY, CollectionStore, Unsubscribe
from ..time_utils import DateLike, coerce_datetime, truncate_to_millis, utcnow
from ..validation import AlreadyPaidError, NotFoundError, coerce_choice
from .identity_service import generate_id
from .ledger_service import LedgerService
"""
Debt Lifecycle (authoritative)

    pending --(due_date < now, on read)--> overdue
    pending --mark_as_paid--> paid
    overdue --mark_as_paid--> paid
    paid is terminal.

- Overdue is derived at read time from (status, due_date, now); no timer writes it.
- A paid debt always carries paid_at and linked_transaction_id; the ledger entry
  is written first, the debt only after it exists.
- status, paid_at and linked_transaction_id are not reachable through update_debt.
"""

logger = logging.getLogger(__name__)

DEBT_MUTABLE_FIELDS = {"type", "counterparty", "amount", "description", "due_date", "category", "notes"}


def derive_status(status: DebtStatus, due_date: datetime, now: datetime) -> DebtStatus:
    if status == DebtStatus.PENDING and due_date < now:
        return DebtStatus.OVERDUE
    return status


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


@dataclass(frozen=True)
class DebtStats:
    total_receivables_pending: float
    total_payables_pending: float
    overdue_receivables: int
    overdue_payables: int
    total_pending_debts: int

    @property
    def net_balance(self) -> float:
        return self.total_receivables_pending - self.total_payables_pending

    def to_dict(self) -> dict:
        return {
            "totalReceivablesPending": self.total_receivables_pending,
            "totalPayablesPending": self.total_payables_pending,
            "netBalance": self.net_balance,
            "overdueReceivables": self.overdue_receivables,
            "overduePayables": self.overdue_payables,
            "totalPendingDebts": self.total_pending_debts,
        }


class DebtService:
    def __init__(
        self,
        store: CollectionStore,
        ledger: LedgerService,
        *,
        clock: Callable = utcnow,
        id_factory: Callable[[], str] = generate_id,
    ):
        self.store = store
        self.ledger = ledger
        self.clock = clock
        self.id_factory = id_factory

    def _load(self) -> list[DebtEntry]:
        return [DebtEntry.from_dict(row) for row in self.store.get(DEBTS_KEY)]

    def _save(self, debts: list[DebtEntry]) -> None:
        self.store.put(DEBTS_KEY, [d.to_dict() for d in debts])

    def _derived(self, debts: list[DebtEntry]) -> list[DebtEntry]:
        now = truncate_to_millis(self.clock())
        for debt in debts:
            debt.status = derive_status(debt.status, debt.due_date, now)
        return debts

    @staticmethod
    def _index_of(debts: list[DebtEntry], debt_id: str) -> int:
        for i, d in enumerate(debts):
            if d.id == debt_id:
                return i
        raise NotFoundError("Debt", debt_id)

    def list_debts(
        self,
        debt_type: DebtType | str | None = None,
        status: DebtStatus | str | None = None,
        search_term: str | None = None,
    ) -> list[DebtEntry]:
        """
        Debts newest-created first, with overdue re-derived before filtering.

        search_term matches counterparty, description or category (case-insensitive).
        """
        debts = self._derived(self._load())

        if debt_type:
            wanted_type = coerce_choice(DebtType, debt_type, "type")
            debts = [d for d in debts if d.type == wanted_type]

        if status:
            wanted_status = coerce_choice(DebtStatus, status, "status")
            debts = [d for d in debts if d.status == wanted_status]

        if search_term:
            term = search_term.lower()
            debts = [
                d for d in debts
                if term in d.counterparty.lower()
                or term in d.description.lower()
                or (d.category and term in d.category.lower())
            ]

        return sorted(debts, key=lambda d: d.created_at, reverse=True)

    def get_debt(self, debt_id: str) -> Optional[DebtEntry]:
        for debt in self._derived(self._load()):
            if debt.id == debt_id:
                return debt
        return None

    def create_debt(
        self,
        debt_type: DebtType | str,
        counterparty: str,
        amount: float,
        description: str,
        due_date: DateLike,
        category: str | None = None,
        notes: str | None = None,
    ) -> DebtEntry:
        debts = self._load()
        now = truncate_to_millis(self.clock())
        due = coerce_datetime(due_date, "due_date")

        debt = DebtEntry(
            id=self.id_factory(),
            type=coerce_choice(DebtType, debt_type, "type"),
            counterparty=counterparty.strip(),
            amount=amount,
            description=description.strip(),
            due_date=due,
            status=DebtStatus.OVERDUE if due < now else DebtStatus.PENDING,
            created_at=now,
            category=_clean_optional(category),
            notes=_clean_optional(notes),
        )

        debts.append(debt)
        self._save(debts)
        logger.debug("Created %s debt id=%s status=%s", debt.type.value, debt.id, debt.status.value)
        return debt

    def update_debt(self, debt_id: str, patch: dict) -> DebtEntry:
        """
        Apply a partial update. Keys outside DEBT_MUTABLE_FIELDS are ignored.

        When due_date is supplied and the stored status is pending, the status is
        re-derived against the new date. Stored overdue is never reverted.

        Raises:
            NotFoundError: If no debt has debt_id
        """
        debts = self._load()
        index = self._index_of(debts, debt_id)
        debt = debts[index]
        patch = {k: v for k, v in patch.items() if k in DEBT_MUTABLE_FIELDS}

        if "type" in patch:
            debt.type = coerce_choice(DebtType, patch["type"], "type")
        if "counterparty" in patch:
            debt.counterparty = (patch["counterparty"] or "").strip() or debt.counterparty
        if "description" in patch:
            debt.description = (patch["description"] or "").strip() or debt.description
        if "amount" in patch:
            debt.amount = patch["amount"]
        if "category" in patch:
            debt.category = _clean_optional(patch["category"])
        if "notes" in patch:
            debt.notes = _clean_optional(patch["notes"])

        if patch.get("due_date"):
            debt.due_date = coerce_datetime(patch["due_date"], "due_date")
            if debt.status == DebtStatus.PENDING:
                debt.status = derive_status(debt.status, debt.due_date, truncate_to_millis(self.clock()))

        debts[index] = debt
        self._save(debts)
        return debt

    def delete_debt(self, debt_id: str) -> None:
        debts = self._load()
        self._save([d for d in debts if d.id != debt_id])

    def mark_as_paid(self, debt_id: str) -> tuple[DebtEntry, Transaction]:
        """
        Settle a pending or overdue debt.

        Writes an inflow (receivable) or outflow (payable) ledger entry first,
        then marks the debt paid and links it to that entry.

        Raises:
            NotFoundError: If no debt has debt_id
            AlreadyPaidError: If the debt is already paid (no transaction is created)
        """
        debts = self._load()
        index = self._index_of(debts, debt_id)
        debt = debts[index]

        if debt.status == DebtStatus.PAID:
            raise AlreadyPaidError(debt_id)

        if debt.type == DebtType.RECEIVABLE:
            tx_type = TransactionType.INFLOW
            tx_description = f"Cobro: {debt.counterparty} - {debt.description}"
        else:
            tx_type = TransactionType.OUTFLOW
            tx_description = f"Pago: {debt.counterparty} - {debt.description}"

        transaction = self.ledger.add_transaction(
            tx_type,
            tx_description,
            debt.amount,
            category=debt.category,
        )

        debt.status = DebtStatus.PAID
        debt.paid_at = truncate_to_millis(self.clock())
        debt.linked_transaction_id = transaction.id

        debts[index] = debt
        self._save(debts)
        logger.info("Debt %s settled by transaction %s", debt.id, transaction.id)
        return debt, transaction

    def stats(self) -> DebtStats:
        debts = self.list_debts()
        open_statuses = (DebtStatus.PENDING, DebtStatus.OVERDUE)

        receivables = [d for d in debts if d.type == DebtType.RECEIVABLE]
        payables = [d for d in debts if d.type == DebtType.PAYABLE]

        return DebtStats(
            total_receivables_pending=sum(d.amount for d in receivables if d.status in open_statuses),
            total_payables_pending=sum(d.amount for d in payables if d.status in open_statuses),
            overdue_receivables=sum(1 for d in receivables if d.status == DebtStatus.OVERDUE),
            overdue_payables=sum(1 for d in payables if d.status == DebtStatus.OVERDUE),
            total_pending_debts=sum(1 for d in debts if d.status in open_statuses),
        )

    def subscribe(self, callback: Callable[[list[DebtEntry]], None]) -> Unsubscribe:
        callback(self.list_debts())
        return self.store.on_change(DEBTS_KEY, lambda event: callback(self.list_debts()))
