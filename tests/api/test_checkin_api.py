"""
Tests for Check-in API endpoints.
"""

import pytest


@pytest.fixture
def issued_ticket(client, create_event, host_headers, alice_headers):
    event = create_event(host_headers)
    response = client.post("/api/v1/tickets/join", json={"event_id": event["id"]}, headers=alice_headers)
    return response.json()["ticket"]


class TestVerifyAPI:

    def test_verify_requires_authentication(self, client):
        response = client.post("/api/v1/check-in/verify", json={"payload": "abc"})

        assert response.status_code in (401, 403)

    def test_verify_then_confirm_then_verify(self, client, issued_ticket, host_headers):
        payload = {"payload": issued_ticket["qr_code_data"]}

        first = client.post("/api/v1/check-in/verify", json=payload, headers=host_headers)
        confirm = client.post(f"/api/v1/check-in/{issued_ticket['id']}/confirm", headers=host_headers)
        second = client.post("/api/v1/check-in/verify", json=payload, headers=host_headers)

        assert first.status_code == 200
        assert first.json()["valid"] is True
        assert first.json()["state"] == "valid"
        assert first.json()["message"] == "Valid Ticket"
        assert first.json()["ticket"]["id"] == issued_ticket["id"]

        assert confirm.status_code == 200
        assert confirm.json() == {"success": True, "ticket_id": issued_ticket["id"], "message": "Checked in"}

        assert second.json()["state"] == "used"
        assert second.json()["message"] == "Already Checked In"
        assert second.json()["ticket"]["status"] == "used"
        assert second.json()["ticket"]["redeemed_at"] is not None

    def test_verify_unknown_ticket(self, client, host_headers):
        response = client.post(
            "/api/v1/check-in/verify",
            json={"payload": '{"id": "nonexistent", "event_id": "e1"}'},
            headers=host_headers
        )

        assert response.status_code == 200
        assert response.json() == {
            "valid": False,
            "state": "invalid",
            "message": "Ticket not found",
            "ticket": None,
        }

    def test_verify_hides_ticket_from_other_users(self, client, issued_ticket, bob_headers):
        for payload in (issued_ticket["id"], issued_ticket["qr_code_data"]):
            response = client.post("/api/v1/check-in/verify", json={"payload": payload}, headers=bob_headers)

            assert response.status_code == 200
            assert response.json() == {
                "valid": False,
                "state": "invalid",
                "message": "Ticket not found",
                "ticket": None,
            }

    def test_holder_can_verify_own_ticket(self, client, issued_ticket, alice_headers):
        response = client.post(
            "/api/v1/check-in/verify",
            json={"payload": issued_ticket["id"]},
            headers=alice_headers
        )

        assert response.json()["valid"] is True
        assert response.json()["ticket"]["user_name"] == "Alice"

    def test_verify_garbage_payload(self, client, host_headers):
        response = client.post("/api/v1/check-in/verify", json={"payload": "%%% not a ticket %%%"}, headers=host_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Invalid QR code"


class TestConfirmAPI:

    def test_second_confirmation_fails(self, client, issued_ticket, host_headers):
        url = f"/api/v1/check-in/{issued_ticket['id']}/confirm"

        client.post(url, headers=host_headers)
        response = client.post(url, headers=host_headers)

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_attendee_cannot_confirm(self, client, issued_ticket, alice_headers):
        response = client.post(f"/api/v1/check-in/{issued_ticket['id']}/confirm", headers=alice_headers)

        assert response.status_code == 403
        assert response.json()["error_code"] == "PERMISSION_DENIED"

    def test_admin_can_confirm(self, client, issued_ticket, admin_headers):
        response = client.post(f"/api/v1/check-in/{issued_ticket['id']}/confirm", headers=admin_headers)

        assert response.json()["success"] is True

    def test_confirm_missing_ticket(self, client, host_headers):
        response = client.post("/api/v1/check-in/missing/confirm", headers=host_headers)

        assert response.status_code == 404
