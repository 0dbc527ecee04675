"""
Tests for nexus/services/ledger_service.py
"""
import pytest
from decimal import Decimal

from nexus.models.ontology import LedgerEntry, LedgerEntryType
from nexus.services.ledger_service import LedgerService


class TestRecord:

    def test_record_is_not_committed(self, db_session):
        svc = LedgerService(db_session)
        svc.record(1, LedgerEntryType.DEBIT, Decimal("100"), "Room Charges & Tax", "1")
        db_session.rollback()
        assert db_session.query(LedgerEntry).count() == 0

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_amount_rejected(self, db_session, amount):
        with pytest.raises(ValueError):
            LedgerService(db_session).record(1, LedgerEntryType.CREDIT, amount, "x")


class TestDelta:

    def test_increase_debits(self, db_session):
        entry = LedgerService(db_session).record_delta(1, Decimal("5600"), Decimal("8400"), "1")
        assert entry.entry_type == LedgerEntryType.DEBIT
        assert entry.amount == Decimal("2800")

    def test_decrease_credits_absolute_value(self, db_session):
        entry = LedgerService(db_session).record_delta(1, Decimal("5600"), Decimal("4480"), "1")
        assert entry.entry_type == LedgerEntryType.CREDIT
        assert entry.amount == Decimal("1120")
        assert entry.description == "Booking Update: Reduction Adjustment"

    def test_no_change_no_entry(self, db_session):
        assert LedgerService(db_session).record_delta(1, Decimal("10"), Decimal("10")) is None


class TestSummary:

    def test_balance_and_summary(self, db_session):
        svc = LedgerService(db_session)
        svc.record(1, LedgerEntryType.DEBIT, Decimal("5600"), "Room Charges & Tax", "1")
        svc.record(1, LedgerEntryType.CREDIT, Decimal("5000"), "Payment Received: Advance (Cash)", "1")
        svc.record(2, LedgerEntryType.DEBIT, Decimal("2500"), "Room Charges & Tax", "2")
        db_session.commit()

        assert svc.balance(1) == Decimal("600")
        summary = svc.account_summary()
        assert summary["total_debit"] == Decimal("8100")
        assert summary["total_credit"] == Decimal("5000")
        assert summary["outstanding"] == Decimal("3100")
        assert summary["transaction_count"] == 3
