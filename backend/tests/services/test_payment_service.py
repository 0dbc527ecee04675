"""
Tests for nexus/services/payment_service.py
"""
import pytest
from datetime import date
from decimal import Decimal

from nexus.errors import BookingNotFound, InvalidAmount
from nexus.models.ontology import (
    Booking, BookingStatus, LedgerEntry, LedgerEntryType, Payment, PaymentCategory, PaymentMode
)
from nexus.services.payment_service import PaymentService


def _booking(db, room, total="5000"):
    b = Booking(
        room_id=room.id, guest_first_name="Asha", guest_last_name="Rao",
        guest_phone="9876543210", check_in_date=date(2026, 4, 1),
        check_out_date=date(2026, 4, 3), status=BookingStatus.CONFIRMED,
        total_amount=Decimal(total), paid_amount=Decimal("0"),
    )
    db.add(b)
    db.commit()
    db.refresh(b)
    return b


class TestPay:

    def test_payment_updates_paid_and_credits_ledger(self, db_session, audit, sample_room, receptionist):
        booking = _booking(db_session, sample_room)
        svc = PaymentService(db_session, audit=audit)

        payment = svc.pay(booking.id, Decimal("2000"), PaymentMode.UPI,
                          PaymentCategory.ADVANCE, receptionist)

        assert payment.recorded_by == receptionist.display_name
        db_session.refresh(booking)
        assert booking.paid_amount == Decimal("2000")
        entry = db_session.query(LedgerEntry).one()
        assert entry.entry_type == LedgerEntryType.CREDIT
        assert entry.description == "Payment Received: Advance (UPI)"
        assert entry.reference_id == str(payment.id)
        assert audit.get_by_action("PAYMENT_RECEIVED")

    def test_payments_accumulate(self, db_session, audit, sample_room, receptionist):
        booking = _booking(db_session, sample_room)
        svc = PaymentService(db_session, audit=audit)
        svc.pay(booking.id, Decimal("1000"), PaymentMode.CASH, PaymentCategory.ADVANCE, receptionist)
        svc.pay(booking.id, Decimal("250.50"), PaymentMode.CARD, PaymentCategory.SERVICES, receptionist)

        db_session.refresh(booking)
        assert booking.paid_amount == Decimal("1250.50")
        assert svc.total_paid(booking.id) == Decimal("1250.50")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-100")])
    def test_invalid_amount(self, db_session, audit, sample_room, receptionist, amount):
        booking = _booking(db_session, sample_room)
        with pytest.raises(InvalidAmount):
            PaymentService(db_session, audit=audit).pay(
                booking.id, amount, PaymentMode.CASH, PaymentCategory.OTHER, receptionist
            )
        assert db_session.query(Payment).count() == 0

    def test_unknown_booking(self, db_session, audit, receptionist):
        with pytest.raises(BookingNotFound):
            PaymentService(db_session, audit=audit).pay(
                999, Decimal("10"), PaymentMode.CASH, PaymentCategory.OTHER, receptionist
            )
        assert db_session.query(LedgerEntry).count() == 0

    def test_idempotent_retry(self, db_session, audit, sample_room, receptionist):
        booking = _booking(db_session, sample_room)
        svc = PaymentService(db_session, audit=audit)

        first = svc.pay(booking.id, Decimal("500"), PaymentMode.CASH,
                        PaymentCategory.ADVANCE, receptionist, idempotency_key="k-1")
        second = svc.pay(booking.id, Decimal("500"), PaymentMode.CASH,
                         PaymentCategory.ADVANCE, receptionist, idempotency_key="k-1")

        assert first.id == second.id
        db_session.refresh(booking)
        assert booking.paid_amount == Decimal("500")
        assert db_session.query(LedgerEntry).count() == 1

    def test_idempotency_key_bound_to_booking(self, db_session, audit, sample_room, sample_room_102, receptionist):
        a = _booking(db_session, sample_room)
        b = _booking(db_session, sample_room_102)
        svc = PaymentService(db_session, audit=audit)
        svc.pay(a.id, Decimal("500"), PaymentMode.CASH, PaymentCategory.ADVANCE,
                receptionist, idempotency_key="k-2")

        with pytest.raises(ValueError):
            svc.pay(b.id, Decimal("500"), PaymentMode.CASH, PaymentCategory.ADVANCE,
                    receptionist, idempotency_key="k-2")

    def test_racing_duplicate_key_returns_first(self, db_session, audit, sample_room, receptionist, monkeypatch):
        booking = _booking(db_session, sample_room)
        svc = PaymentService(db_session, audit=audit)
        first = svc.pay(booking.id, Decimal("500"), PaymentMode.CASH,
                        PaymentCategory.ADVANCE, receptionist, idempotency_key="k-3")
        first_id = first.id

        # 并发请求在首笔提交前完成了重复键检查
        original = svc._existing_payment
        lookups = []

        def missed_once(booking_id, key):
            lookups.append(key)
            return None if len(lookups) == 1 else original(booking_id, key)

        monkeypatch.setattr(svc, "_existing_payment", missed_once)
        second = svc.pay(booking.id, Decimal("500"), PaymentMode.CASH,
                         PaymentCategory.ADVANCE, receptionist, idempotency_key="k-3")

        assert second.id == first_id
        assert len(lookups) == 2
        db_session.refresh(booking)
        assert booking.paid_amount == Decimal("500")
        assert db_session.query(LedgerEntry).count() == 1

    def test_sub_cent_amount_rounded_to_cent(self, db_session, audit, sample_room, receptionist):
        booking = _booking(db_session, sample_room)
        payment = PaymentService(db_session, audit=audit).pay(
            booking.id, Decimal("100.005"), PaymentMode.CASH, PaymentCategory.ADVANCE, receptionist
        )

        assert payment.amount == Decimal("100.01")
        assert db_session.query(LedgerEntry).one().amount == Decimal("100.01")
        db_session.refresh(booking)
        assert booking.paid_amount == Decimal("100.01")

    def test_amount_rounding_to_zero_is_invalid(self, db_session, audit, sample_room, receptionist):
        booking = _booking(db_session, sample_room)
        with pytest.raises(InvalidAmount):
            PaymentService(db_session, audit=audit).pay(
                booking.id, Decimal("0.004"), PaymentMode.CASH, PaymentCategory.OTHER, receptionist
            )

    def test_list_payments_filters_by_booking(self, db_session, audit, sample_room, sample_room_102, receptionist):
        a = _booking(db_session, sample_room)
        b = _booking(db_session, sample_room_102)
        svc = PaymentService(db_session, audit=audit)
        svc.pay(a.id, Decimal("100"), PaymentMode.CASH, PaymentCategory.ADVANCE, receptionist)
        svc.pay(b.id, Decimal("200"), PaymentMode.CASH, PaymentCategory.ADVANCE, receptionist)

        assert [p.amount for p in svc.list_payments(a.id)] == [Decimal("100")]
        assert len(svc.list_payments()) == 2
