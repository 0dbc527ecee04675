"""
收款 API 测试
"""
from datetime import date
from decimal import Decimal

from fastapi.testclient import TestClient

from core.engine.audit import AuditSeverity, audit_engine
from nexus.models.ontology import Booking, BookingStatus


def _booking(db, room):
    b = Booking(
        room_id=room.id, guest_first_name="Asha", guest_phone="9876543210",
        check_in_date=date(2026, 9, 1), check_out_date=date(2026, 9, 3),
        status=BookingStatus.CONFIRMED, total_amount=Decimal("5000"),
    )
    db.add(b)
    db.commit()
    db.refresh(b)
    return b


class TestPaymentsApi:

    def test_record_payment(self, client: TestClient, receptionist_auth_headers, db_session, sample_room):
        booking = _booking(db_session, sample_room)
        response = client.post("/payments", headers=receptionist_auth_headers, json={
            "booking_id": booking.id, "amount": "1500", "mode": "Card", "category": "Advance"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["recorded_by"] == "李前台"
        assert Decimal(data["amount"]) == Decimal("1500")

        listing = client.get("/payments", headers=receptionist_auth_headers,
                             params={"booking_id": booking.id}).json()
        assert len(listing) == 1

    def test_non_positive_amount(self, client: TestClient, receptionist_auth_headers, db_session, sample_room):
        booking = _booking(db_session, sample_room)
        response = client.post("/payments", headers=receptionist_auth_headers, json={
            "booking_id": booking.id, "amount": "0", "mode": "Cash"
        })
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidAmount"

    def test_unknown_booking(self, client: TestClient, receptionist_auth_headers):
        response = client.post("/payments", headers=receptionist_auth_headers, json={
            "booking_id": 999, "amount": "10", "mode": "Cash"
        })
        assert response.status_code == 404

    def test_idempotency_key(self, client: TestClient, receptionist_auth_headers, db_session, sample_room):
        booking = _booking(db_session, sample_room)
        body = {"booking_id": booking.id, "amount": "500", "mode": "Cash", "idempotency_key": "pay-1"}

        first = client.post("/payments", headers=receptionist_auth_headers, json=body).json()
        second = client.post("/payments", headers=receptionist_auth_headers, json=body).json()
        assert first["id"] == second["id"]

    def test_guest_cannot_record(self, client: TestClient, guest_auth_headers, db_session, sample_room):
        booking = _booking(db_session, sample_room)
        response = client.post("/payments", headers=guest_auth_headers, json={
            "booking_id": booking.id, "amount": "10", "mode": "Cash"
        })
        assert response.status_code == 403

    def test_role_refusal_is_audited(self, client: TestClient, guest_auth_headers, guest_user,
                                     db_session, sample_room):
        booking = _booking(db_session, sample_room)
        before = len(audit_engine.get_by_action("UNAUTHORIZED_ATTEMPT", limit=1_000_000))

        response = client.post("/payments", headers=guest_auth_headers, json={
            "booking_id": booking.id, "amount": "10", "mode": "Cash"
        })

        assert response.status_code == 403
        denials = audit_engine.get_by_action("UNAUTHORIZED_ATTEMPT", limit=1_000_000)
        assert len(denials) == before + 1
        assert denials[-1].severity == AuditSeverity.CRITICAL
        assert denials[-1].actor_id == guest_user.id
        assert "POST /payments" in denials[-1].detail

    def test_sub_cent_amount_rejected(self, client: TestClient, receptionist_auth_headers,
                                      db_session, sample_room):
        booking = _booking(db_session, sample_room)
        response = client.post("/payments", headers=receptionist_auth_headers, json={
            "booking_id": booking.id, "amount": "10.005", "mode": "Cash"
        })
        assert response.status_code == 422
