# Overview: Service-layer operations for recurring bills; paid toggle that records an outflow.

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..models import Bill, BillFrequency, TransactionType
from ..storage import BILLS_KEY, CollectionStore, Unsubscribe
from ..time_utils import DateLike, coerce_datetime, truncate_to_millis, utcnow
from ..validation import NotFoundError, coerce_choice
from .identity_service import generate_id
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)

DEFAULT_BILL_CATEGORY = "Gastos Fijos"

BILL_MUTABLE_FIELDS = {"name", "amount", "due_date", "frequency", "category", "notes", "is_paid"}


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _frequency(value) -> BillFrequency:
    return coerce_choice(BillFrequency, value, "frequency")


class BillService:
    """
    Bills are caller-managed: is_paid is authoritative and never time-derived,
    and recurring bills are not advanced to their next due date.
    """

    def __init__(
        self,
        store: CollectionStore,
        ledger: LedgerService,
        *,
        clock: Callable = utcnow,
        id_factory: Callable[[], str] = generate_id,
        default_category: str = DEFAULT_BILL_CATEGORY,
    ):
        self.store = store
        self.ledger = ledger
        self.clock = clock
        self.id_factory = id_factory
        self.default_category = default_category

    def _load(self) -> list[Bill]:
        return [Bill.from_dict(row) for row in self.store.get(BILLS_KEY)]

    def _save(self, bills: list[Bill]) -> None:
        self.store.put(BILLS_KEY, [b.to_dict() for b in bills])

    @staticmethod
    def _index_of(bills: list[Bill], bill_id: str) -> int:
        for i, b in enumerate(bills):
            if b.id == bill_id:
                return i
        raise NotFoundError("Bill", bill_id)

    def list_bills(self) -> list[Bill]:
        return self._load()

    def get_bill(self, bill_id: str) -> Optional[Bill]:
        for bill in self._load():
            if bill.id == bill_id:
                return bill
        return None

    def create_bill(
        self,
        name: str,
        amount: float,
        due_date: DateLike,
        frequency: BillFrequency | str,
        category: str | None = None,
        notes: str | None = None,
    ) -> Bill:
        bills = self._load()

        bill = Bill(
            id=self.id_factory(),
            name=name.strip(),
            amount=amount,
            due_date=coerce_datetime(due_date, "due_date"),
            frequency=_frequency(frequency),
            is_paid=False,
            created_at=truncate_to_millis(self.clock()),
            category=_clean_optional(category),
            notes=_clean_optional(notes),
        )

        bills.append(bill)
        self._save(bills)
        return bill

    def update_bill(self, bill_id: str, patch: dict) -> Bill:
        """
        Apply a partial update. Keys outside BILL_MUTABLE_FIELDS are ignored.

        Raises:
            NotFoundError: If no bill has bill_id
        """
        bills = self._load()
        index = self._index_of(bills, bill_id)
        bill = bills[index]
        patch = {k: v for k, v in patch.items() if k in BILL_MUTABLE_FIELDS}

        if "name" in patch:
            bill.name = (patch["name"] or "").strip() or bill.name
        if "amount" in patch:
            bill.amount = patch["amount"]
        if patch.get("due_date"):
            bill.due_date = coerce_datetime(patch["due_date"], "due_date")
        if "frequency" in patch:
            bill.frequency = _frequency(patch["frequency"])
        if "category" in patch:
            bill.category = _clean_optional(patch["category"])
        if "notes" in patch:
            bill.notes = _clean_optional(patch["notes"])
        if "is_paid" in patch:
            bill.is_paid = bool(patch["is_paid"])

        bills[index] = bill
        self._save(bills)
        return bill

    def delete_bill(self, bill_id: str) -> None:
        bills = self._load()
        self._save([b for b in bills if b.id != bill_id])

    def toggle_paid(self, bill_id: str, create_transaction: bool = True) -> Bill:
        """
        Flip is_paid. The bill is written first; only a false -> true flip with
        create_transaction records an outflow. Un-paying never reverses it.

        Raises:
            NotFoundError: If no bill has bill_id
        """
        bills = self._load()
        index = self._index_of(bills, bill_id)
        bill = bills[index]

        bill.is_paid = not bill.is_paid
        bills[index] = bill
        self._save(bills)

        if bill.is_paid and create_transaction:
            self.ledger.add_transaction(
                TransactionType.OUTFLOW,
                f"Pago: {bill.name}",
                bill.amount,
                category=bill.category or self.default_category,
            )
        logger.info("Bill %s is_paid=%s", bill.id, bill.is_paid)
        return bill

    def subscribe(self, callback: Callable[[list[Bill]], None]) -> Unsubscribe:
        callback(self._load())
        return self.store.on_change(BILLS_KEY, lambda event: callback(self._load()))
