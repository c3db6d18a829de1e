"""
Tests for Preferences API endpoints.
"""

import pytest


class TestPreferencesAPI:

    def test_defaults(self, client, alice_headers):
        response = client.get("/api/v1/preferences/", headers=alice_headers)

        assert response.status_code == 200
        assert response.json() == {
            "user_id": "user-alice",
            "saved_events": [],
            "reminders": [],
            "history": [],
            "updated_at": None,
        }

    def test_sync_merges(self, client, alice_headers):
        client.put(
            "/api/v1/preferences/",
            json={"saved_events": [{"id": "evt-1", "title": "Jazz"}]},
            headers=alice_headers
        )
        response = client.put("/api/v1/preferences/", json={"reminders": ["evt-1"]}, headers=alice_headers)

        body = response.json()
        assert response.status_code == 200
        assert body["saved_events"] == [{"id": "evt-1", "title": "Jazz"}]
        assert body["reminders"] == ["evt-1"]
        assert body["updated_at"] is not None

    def test_preferences_are_per_user(self, client, alice_headers, bob_headers):
        client.put("/api/v1/preferences/", json={"reminders": ["evt-1"]}, headers=alice_headers)

        response = client.get("/api/v1/preferences/", headers=bob_headers)

        assert response.json()["reminders"] == []

    def test_requires_authentication(self, client):
        assert client.get("/api/v1/preferences/").status_code in (401, 403)
