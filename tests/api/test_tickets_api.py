"""
Tests for Ticket API endpoints.
Joining events, ticket lookup and QR images.
"""

import pytest


def join(client, headers, **payload):
    return client.post("/api/v1/tickets/join", json=payload, headers=headers)


class TestJoinEventAPI:

    def test_join_requires_authentication(self, client):
        response = client.post("/api/v1/tickets/join", json={"event_id": "any"})

        assert response.status_code in (401, 403)

    def test_join_issues_ticket(self, client, create_event, host_headers, alice_headers):
        event = create_event(host_headers)

        response = join(client, alice_headers, event_id=event["id"])

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        ticket = body["ticket"]
        assert ticket["event_id"] == event["id"]
        assert ticket["user_id"] == "user-alice"
        assert ticket["user_name"] == "Alice"
        assert ticket["status"] == "active"
        assert ticket["seat_number"] == 1
        assert ticket["price_paid"] == 25.0
        assert ticket["redeemed_at"] is None
        assert ticket["qr_code_data"]

    def test_join_requires_event_reference(self, client, alice_headers):
        response = join(client, alice_headers)

        assert response.status_code == 422

    def test_join_unknown_event(self, client, alice_headers):
        response = join(client, alice_headers, event_id="missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "EVENT_NOT_FOUND"

    def test_join_external_event(self, client, alice_headers, bob_headers):
        external = {"title": "Harbour Food Festival", "category": "food", "price_value": "12.00"}

        first = join(client, alice_headers, event_id="ext-harbour", event=external)
        second = join(client, bob_headers, event_id="ext-harbour", event=external)

        assert first.status_code == 201
        assert second.status_code == 201
        assert second.json()["ticket"]["seat_number"] == 2

        event = client.get("/api/v1/events/ext-harbour", headers=alice_headers).json()
        assert event["creator_id"] is None
        assert event["is_user_created"] is False
        assert event["sold_seats"] == 2

    def test_duplicate_join_conflict(self, client, create_event, host_headers, alice_headers):
        event = create_event(host_headers, max_seats=10)
        first = join(client, alice_headers, event_id=event["id"]).json()["ticket"]

        response = join(client, alice_headers, event_id=event["id"])

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "DUPLICATE_TICKET"
        assert body["details"]["ticket_id"] == first["id"]

    def test_sold_out(self, client, create_event, host_headers, headers_for):
        event = create_event(host_headers, max_seats=2)

        assert join(client, headers_for("user-1"), event_id=event["id"]).status_code == 201
        assert join(client, headers_for("user-2"), event_id=event["id"]).status_code == 201
        response = join(client, headers_for("user-3"), event_id=event["id"])

        assert response.status_code == 409
        assert response.json()["error_code"] == "SOLD_OUT"
        stats = client.get(f"/api/v1/events/{event['id']}/stats", headers=host_headers).json()
        assert stats["sold_seats"] == 2


class TestTicketLookupAPI:

    def test_list_my_tickets(self, client, create_event, host_headers, alice_headers, bob_headers):
        event = create_event(host_headers)
        join(client, alice_headers, event_id=event["id"])

        mine = client.get("/api/v1/tickets/", headers=alice_headers).json()
        theirs = client.get("/api/v1/tickets/", headers=bob_headers).json()

        assert [ticket["user_id"] for ticket in mine] == ["user-alice"]
        assert theirs == []

    def test_owner_and_host_can_read_ticket(self, client, create_event, host_headers, alice_headers):
        event = create_event(host_headers)
        ticket = join(client, alice_headers, event_id=event["id"]).json()["ticket"]

        assert client.get(f"/api/v1/tickets/{ticket['id']}", headers=alice_headers).status_code == 200
        assert client.get(f"/api/v1/tickets/{ticket['id']}", headers=host_headers).status_code == 200

    def test_other_user_cannot_read_ticket(self, client, create_event, host_headers, alice_headers, bob_headers):
        event = create_event(host_headers)
        ticket = join(client, alice_headers, event_id=event["id"]).json()["ticket"]

        response = client.get(f"/api/v1/tickets/{ticket['id']}", headers=bob_headers)

        assert response.status_code == 404

    def test_missing_ticket(self, client, alice_headers):
        response = client.get("/api/v1/tickets/missing", headers=alice_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "TICKET_NOT_FOUND"

    def test_qr_svg(self, client, create_event, host_headers, alice_headers):
        event = create_event(host_headers)
        ticket = join(client, alice_headers, event_id=event["id"]).json()["ticket"]

        response = client.get(f"/api/v1/tickets/{ticket['id']}/qr", headers=alice_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert b"<svg" in response.content
