"""
房间 API 测试
"""
from fastapi.testclient import TestClient


class TestRoomsApi:

    def test_list_rooms(self, client: TestClient, guest_auth_headers, sample_room, non_ac_room):
        response = client.get("/rooms", headers=guest_auth_headers)
        assert response.status_code == 200
        rooms = {r["number"]: r for r in response.json()}
        assert rooms["101"]["is_ac_capable"] is True
        assert rooms["103"]["is_ac_capable"] is False

    def test_admin_creates_room(self, client: TestClient, admin_auth_headers):
        response = client.post("/rooms", headers=admin_auth_headers, json={
            "number": "401", "room_type": "Suite", "price": "7000", "ac_price": "8500"
        })
        assert response.status_code == 200
        assert response.json()["status"] == "Vacant"

    def test_receptionist_cannot_create_room(self, client: TestClient, receptionist_auth_headers):
        response = client.post("/rooms", headers=receptionist_auth_headers, json={
            "number": "401", "room_type": "Suite", "price": "7000"
        })
        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "PermissionDenied"

    def test_housekeeping_updates_status(self, client: TestClient, housekeeping_auth_headers, sample_room):
        response = client.patch(f"/rooms/{sample_room.id}/status",
                                headers=housekeeping_auth_headers, json={"status": "Cleaning"})
        assert response.status_code == 200
        assert response.json()["status"] == "Cleaning"

    def test_guest_cannot_update_status(self, client: TestClient, guest_auth_headers, sample_room):
        response = client.patch(f"/rooms/{sample_room.id}/status",
                                headers=guest_auth_headers, json={"status": "Cleaning"})
        assert response.status_code == 403

    def test_unknown_room(self, client: TestClient, receptionist_auth_headers):
        response = client.get("/rooms/999", headers=receptionist_auth_headers)
        assert response.status_code == 404
