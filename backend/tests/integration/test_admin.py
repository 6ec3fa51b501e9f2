"""
tests/integration/test_admin.py — Moderation and venue endpoints.

Every /admin route requires an ADMIN token: 401 without a token, 403 for a
USER token, and a rejected call must not change anything.
"""

from __future__ import annotations

from .conftest import auth_headers, get_posting, make_admin, make_posting, register


_VENUE = {
    "title": "Meeple Cafe",
    "address": "Abay 10, Almaty",
    "opening_time": "10:00",
    "closing_time": "23:30",
    "phone_number": "+7 700 000 0000",
    "rating": "4.7",
    "photos": ["/api/v1/uploads/abc_front.png"],
}


class TestAdminAccess:

    def test_user_token_is_forbidden_and_status_unchanged(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        card = make_posting(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/admin/postings/{card['id']}",
            json={"status": "inactive"},
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"
        assert get_posting(client, alice["access_token"], card["id"])["status"] == "active"

    def test_missing_token_is_unauthorized(self, client):
        resp = client.get("/api/v1/admin/postings")
        assert resp.status_code == 401


class TestAdminPostings:

    def test_set_status_with_json_body(self, app, client):
        alice = register(client, "Alice")
        admin = make_admin(app, client)
        card = make_posting(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/admin/postings/{card['id']}",
            json={"status": "moderating"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "moderating"

    def test_set_status_with_form_field(self, app, client):
        alice = register(client, "Alice")
        admin = make_admin(app, client)
        card = make_posting(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/admin/postings/{card['id']}",
            data={"status": "inactive"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "inactive"

    def test_admin_can_reopen_closed_card(self, app, client):
        alice = register(client, "Alice")
        admin = make_admin(app, client)
        card = make_posting(client, alice["access_token"])
        headers = auth_headers(admin["access_token"])
        client.post(f"/api/v1/admin/postings/{card['id']}", json={"status": "inactive"}, headers=headers)

        resp = client.post(f"/api/v1/admin/postings/{card['id']}", json={"status": "active"}, headers=headers)
        assert resp.get_json()["data"]["status"] == "active"

    def test_unknown_status_returns_invalid_status(self, app, client):
        alice = register(client, "Alice")
        admin = make_admin(app, client)
        card = make_posting(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/admin/postings/{card['id']}",
            json={"status": "archived"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_STATUS"
        assert error["field"] == "status"
        assert get_posting(client, alice["access_token"], card["id"])["status"] == "active"

    def test_unknown_posting_returns_404(self, app, client):
        admin = make_admin(app, client)
        resp = client.post(
            "/api/v1/admin/postings/999999",
            json={"status": "inactive"},
            headers=auth_headers(admin["access_token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "POSTING_NOT_FOUND"

    def test_list_includes_every_status(self, app, client):
        alice = register(client, "Alice")
        admin = make_admin(app, client)
        headers = auth_headers(admin["access_token"])
        first = make_posting(client, alice["access_token"], title="First")
        second = make_posting(client, alice["access_token"], title="Second")
        client.post(f"/api/v1/admin/postings/{first['id']}", json={"status": "inactive"}, headers=headers)

        data = client.get("/api/v1/admin/postings", headers=headers).get_json()["data"]
        assert {c["id"] for c in data["items"]} == {first["id"], second["id"]}
        assert data["meta"]["total"] == 2

        single = client.get(f"/api/v1/admin/postings/{first['id']}", headers=headers)
        assert single.status_code == 200
        assert single.get_json()["data"]["status"] == "inactive"


class TestAdminVenues:

    def test_create_get_list_and_patch_venue(self, app, client):
        admin = make_admin(app, client)
        headers = auth_headers(admin["access_token"])

        created = client.post("/api/v1/admin/venues", json=_VENUE, headers=headers)
        assert created.status_code == 201
        venue = created.get_json()["data"]
        assert venue["title"] == "Meeple Cafe"
        assert venue["opening_time"] == "10:00"
        assert venue["closing_time"] == "23:30"
        assert venue["photos"] == ["/api/v1/uploads/abc_front.png"]

        fetched = client.get(f"/api/v1/admin/venues/{venue['id']}", headers=headers)
        assert fetched.get_json()["data"]["address"] == "Abay 10, Almaty"

        patched = client.patch(
            f"/api/v1/admin/venues/{venue['id']}",
            json={"phone_number": "+7 701 111 1111", "title": ""},
            headers=headers,
        ).get_json()["data"]
        assert patched["phone_number"] == "+7 701 111 1111"
        assert patched["title"] == "Meeple Cafe"

        listed = client.get("/api/v1/admin/venues", headers=headers).get_json()["data"]
        assert [v["id"] for v in listed] == [venue["id"]]

    def test_unknown_venue_returns_404(self, app, client):
        admin = make_admin(app, client)
        resp = client.get("/api/v1/admin/venues/999999", headers=auth_headers(admin["access_token"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "VENUE_NOT_FOUND"

    def test_user_cannot_create_venue(self, client):
        alice = register(client, "Alice")
        resp = client.post("/api/v1/admin/venues", json=_VENUE, headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 403
