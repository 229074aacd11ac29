# Overview: Pytest coverage for debt lifecycle, derived overdue status and settlement.

from datetime import datetime, timedelta

import pytest

from cashbook.models import DebtStatus, DebtType, TransactionType
from cashbook.services.debt_service import derive_status
from cashbook.storage import DEBTS_KEY
from cashbook.validation import AlreadyPaidError, NotFoundError, ValidationError


@pytest.fixture
def yesterday(clock):
    return clock.now - timedelta(days=1)


@pytest.fixture
def next_week(clock):
    return clock.now + timedelta(days=7)


class TestDeriveStatus:
    def test_pending_past_due_is_overdue(self):
        now = datetime(2026, 1, 15)
        assert derive_status(DebtStatus.PENDING, datetime(2026, 1, 14), now) == DebtStatus.OVERDUE
        assert derive_status(DebtStatus.PENDING, datetime(2026, 1, 16), now) == DebtStatus.PENDING

    def test_paid_is_terminal(self):
        now = datetime(2026, 1, 15)
        assert derive_status(DebtStatus.PAID, datetime(2020, 1, 1), now) == DebtStatus.PAID


class TestCreateDebt:
    def test_past_due_date_is_overdue_at_creation(self, debts, yesterday):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice 12", yesterday)
        assert debt.status == DebtStatus.OVERDUE

    def test_future_due_date_is_pending(self, debts, next_week, clock):
        debt = debts.create_debt(DebtType.RECEIVABLE, " Ana ", 50, " Préstamo ", next_week, category=" ", notes=" call first ")
        assert debt.status == DebtStatus.PENDING
        assert debt.counterparty == "Ana"
        assert debt.description == "Préstamo"
        assert debt.category is None
        assert debt.notes == "call first"
        assert debt.created_at == clock.now

    def test_unknown_type_is_a_validation_error(self, debts, next_week):
        with pytest.raises(ValidationError):
            debts.create_debt("loan", "Ana", 50, "Préstamo", next_week)
        with pytest.raises(ValidationError):
            debts.list_debts(status="forgiven")

    def test_returned_debt_matches_stored_precision(self, debts, clock):
        clock.now = datetime(2026, 1, 15, 12, 0, 0, 987654)
        due = datetime(2026, 2, 1, 8, 30, 0, 555555)
        debt = debts.create_debt("receivable", "Ana", 50, "Préstamo", due)

        assert debt.created_at == datetime(2026, 1, 15, 12, 0, 0, 987000)
        assert debt.due_date == datetime(2026, 2, 1, 8, 30, 0, 555000)
        assert debts.get_debt(debt.id) == debt

    def test_accepts_iso_date_strings(self, debts):
        debt = debts.create_debt("payable", "Acme", 10, "x", "2026-02-01")
        assert debt.due_date == datetime(2026, 2, 1)


class TestListDebts:
    def test_pending_becomes_overdue_on_read_without_writes(self, debts, store, clock, next_week):
        debt = debts.create_debt("receivable", "Ana", 50, "Préstamo", next_week)
        clock.advance(days=8)

        first = debts.list_debts()
        second = debts.list_debts()

        assert first[0].status == DebtStatus.OVERDUE
        assert [d.status for d in second] == [d.status for d in first]
        assert store.get(DEBTS_KEY)[0]["status"] == "pending"
        assert debts.get_debt(debt.id).status == DebtStatus.OVERDUE

    def test_sorted_newest_created_first(self, debts, clock, next_week):
        a = debts.create_debt("receivable", "Ana", 1, "a", next_week)
        clock.advance(seconds=1)
        b = debts.create_debt("payable", "Bob", 2, "b", next_week)
        assert [d.id for d in debts.list_debts()] == [b.id, a.id]

    def test_filters(self, debts, clock, yesterday, next_week):
        late = debts.create_debt("payable", "Acme", 100, "Invoice", yesterday, category="Proveedores")
        clock.advance(seconds=1)
        due = debts.create_debt("receivable", "Ana", 50, "Préstamo", next_week)

        assert [d.id for d in debts.list_debts(debt_type="payable")] == [late.id]
        assert [d.id for d in debts.list_debts(status="overdue")] == [late.id]
        assert [d.id for d in debts.list_debts(status=DebtStatus.PENDING)] == [due.id]
        assert [d.id for d in debts.list_debts(search_term="proveed")] == [late.id]
        assert [d.id for d in debts.list_debts(search_term="ANA")] == [due.id]
        assert debts.list_debts(debt_type="receivable", status="overdue") == []


class TestUpdateDebt:
    def test_missing_debt_raises_not_found(self, debts):
        with pytest.raises(NotFoundError):
            debts.update_debt("ghost", {"amount": 1})

    def test_new_past_due_date_rederives_pending(self, debts, next_week, yesterday):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice", next_week)
        updated = debts.update_debt(debt.id, {"due_date": yesterday})
        assert updated.status == DebtStatus.OVERDUE

    def test_overdue_is_not_reverted_by_future_due_date(self, debts, next_week, yesterday):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice", yesterday)
        updated = debts.update_debt(debt.id, {"due_date": next_week})
        assert updated.status == DebtStatus.OVERDUE
        assert updated.due_date == next_week

    def test_pending_stored_entry_can_move_back_to_pending(self, debts, clock, next_week):
        """Re-derivation runs from the stored pending status, not the derived one."""
        debt = debts.create_debt("payable", "Acme", 100, "Invoice", next_week)
        clock.advance(days=8)
        updated = debts.update_debt(debt.id, {"due_date": clock.now + timedelta(days=3)})
        assert updated.status == DebtStatus.PENDING

    def test_partial_fields_and_protected_fields(self, debts, next_week):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice", next_week, category="Proveedores")
        updated = debts.update_debt(debt.id, {
            "amount": 80,
            "counterparty": "  ",
            "status": "paid",
            "linked_transaction_id": "forged",
        })
        assert updated.amount == 80
        assert updated.counterparty == "Acme"
        assert updated.category == "Proveedores"
        assert updated.status == DebtStatus.PENDING
        assert updated.linked_transaction_id is None

    def test_delete_is_idempotent(self, debts, next_week):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice", next_week)
        debts.delete_debt(debt.id)
        debts.delete_debt(debt.id)
        assert debts.get_debt(debt.id) is None


class TestMarkAsPaid:
    def test_payable_example(self, debts, ledger, clock, yesterday):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice 12", yesterday, category="Proveedores")
        clock.advance(hours=1)

        paid, tx = debts.mark_as_paid(debt.id)

        assert paid.status == DebtStatus.PAID
        assert paid.paid_at == clock.now
        assert paid.linked_transaction_id == tx.id
        assert tx.type == TransactionType.OUTFLOW
        assert tx.amount == 100
        assert tx.description == "Pago: Acme - Invoice 12"
        assert tx.category == "Proveedores"
        assert ledger.get_all() == [tx]
        assert debts.get_debt(debt.id).linked_transaction_id == tx.id

    def test_receivable_creates_inflow(self, debts, next_week):
        debt = debts.create_debt("receivable", "Ana", 50, "Préstamo", next_week)
        paid, tx = debts.mark_as_paid(debt.id)
        assert tx.type == TransactionType.INFLOW
        assert tx.description == "Cobro: Ana - Préstamo"

    def test_second_settlement_fails_without_new_transaction(self, debts, ledger, next_week):
        debt = debts.create_debt("receivable", "Ana", 50, "Préstamo", next_week)
        debts.mark_as_paid(debt.id)

        with pytest.raises(AlreadyPaidError) as exc:
            debts.mark_as_paid(debt.id)

        assert str(exc.value) == "Debt is already marked as paid"
        assert len(ledger.get_all()) == 1

    def test_missing_debt(self, debts, ledger):
        with pytest.raises(NotFoundError):
            debts.mark_as_paid("ghost")
        assert ledger.get_all() == []

    def test_paid_debt_never_turns_overdue(self, debts, clock, next_week):
        debt = debts.create_debt("receivable", "Ana", 50, "Préstamo", next_week)
        debts.mark_as_paid(debt.id)
        clock.advance(days=30)
        assert debts.get_debt(debt.id).status == DebtStatus.PAID

    def test_ledger_failure_leaves_debt_unpaid(self, debts, ledger, next_week, monkeypatch):
        debt = debts.create_debt("payable", "Acme", 100, "Invoice", next_week)

        def broken(*args, **kwargs):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(ledger, "add_transaction", broken)
        with pytest.raises(RuntimeError):
            debts.mark_as_paid(debt.id)

        assert debts.get_debt(debt.id).status == DebtStatus.PENDING


class TestStatsAndSubscribe:
    def test_stats_over_derived_list(self, debts, clock, yesterday, next_week):
        debts.create_debt("receivable", "Ana", 50, "a", yesterday)
        debts.create_debt("receivable", "Bea", 30, "b", next_week)
        debts.create_debt("payable", "Acme", 100, "c", next_week)
        settled = debts.create_debt("payable", "Beta", 999, "d", next_week)
        debts.mark_as_paid(settled.id)

        stats = debts.stats()

        assert stats.to_dict() == {
            "totalReceivablesPending": 80,
            "totalPayablesPending": 100,
            "netBalance": -20,
            "overdueReceivables": 1,
            "overduePayables": 0,
            "totalPendingDebts": 3,
        }

    def test_subscribe_delivers_derived_statuses(self, debts, clock, next_week):
        debts.create_debt("payable", "Acme", 100, "Invoice", next_week)
        clock.advance(days=8)

        seen = []
        unsubscribe = debts.subscribe(lambda items: seen.append([d.status for d in items]))
        assert seen == [[DebtStatus.OVERDUE]]

        debts.create_debt("payable", "Beta", 1, "x", clock.now + timedelta(days=1))
        assert len(seen) == 2
        unsubscribe()
