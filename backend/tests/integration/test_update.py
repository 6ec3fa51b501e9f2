"""
tests/integration/test_update.py — PATCH /postings/:id (host-only sparse update).

Field-presence contract:
  - Keys absent, null, "" or 0 leave the stored value as it is.
  - max_players may never drop below the seats already taken.
  - Lowering max_players to exactly the seats taken closes the card and
    materialises its chat, the same as a filling join.
"""

from __future__ import annotations

from .conftest import auth_headers, get_posting, join, make_posting, register


def _patch(client, token: str, posting_id: int, body: dict):
    return client.patch(
        f"/api/v1/postings/{posting_id}",
        json=body,
        headers=auth_headers(token),
    )


class TestSparseUpdate:

    def test_title_only_update_leaves_other_fields(self, client):
        alice = register(client, "Alice")
        card = make_posting(client, alice["access_token"], max_players=6, category="chess")

        resp = _patch(client, alice["access_token"], card["id"], {"title": "Blitz night"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["title"] == "Blitz night"
        for key in ("description", "city", "category", "max_players", "min_players", "scheduled_time"):
            assert data[key] == card[key]

    def test_zero_null_and_empty_values_are_ignored(self, client):
        alice = register(client, "Alice")
        card = make_posting(client, alice["access_token"], max_players=6)

        resp = _patch(client, alice["access_token"], card["id"], {
            "title": "",
            "description": None,
            "max_players": 0,
            "min_players": 0,
            "city": "Shymkent",
        })
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["title"] == card["title"]
        assert data["description"] == card["description"]
        assert data["max_players"] == 6
        assert data["min_players"] == 1
        assert data["city"] == "Shymkent"

    def test_raising_capacity_keeps_card_active(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        card = make_posting(client, alice["access_token"], max_players=3)
        join(client, bob["access_token"], card["id"])

        data = _patch(client, alice["access_token"], card["id"], {"max_players": 8}).get_json()["data"]
        assert data["max_players"] == 8
        assert data["status"] == "active"

    def test_min_players_above_stored_max_is_rejected(self, client):
        alice = register(client, "Alice")
        card = make_posting(client, alice["access_token"], max_players=4)

        resp = _patch(client, alice["access_token"], card["id"], {"min_players": 5})
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "min_players"


class TestUpdateAuthorization:

    def test_non_host_is_forbidden_and_nothing_changes(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        card = make_posting(client, alice["access_token"], title="Original")

        resp = _patch(client, bob["access_token"], card["id"], {"title": "Hijacked"})
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"
        assert get_posting(client, alice["access_token"], card["id"])["title"] == "Original"

    def test_unknown_posting_returns_404(self, client):
        alice = register(client, "Alice")
        resp = _patch(client, alice["access_token"], 999999, {"title": "x"})
        assert resp.status_code == 404


class TestCapacityChanges:

    def test_capacity_below_seats_taken_is_rejected(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        carol = register(client, "Carol")
        card = make_posting(client, alice["access_token"], max_players=5)
        join(client, bob["access_token"], card["id"])
        join(client, carol["access_token"], card["id"])

        resp = _patch(client, alice["access_token"], card["id"], {"max_players": 2})
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "CAPACITY_BELOW_PLAYERS"
        assert error["field"] == "max_players"

        after = get_posting(client, alice["access_token"], card["id"])
        assert after["max_players"] == 5
        assert after["current_players"] == 3

    def test_lowering_capacity_to_seats_taken_closes_card_with_chat(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        card = make_posting(client, alice["access_token"], max_players=5)
        join(client, bob["access_token"], card["id"])

        resp = _patch(client, alice["access_token"], card["id"], {"max_players": 2})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["max_players"] == 2
        assert data["status"] == "inactive"

        chats = client.get(
            "/api/v1/users/me/chats", headers=auth_headers(bob["access_token"])
        ).get_json()["data"]
        assert [c["game_card_id"] for c in chats] == [card["id"]]
        assert len(chats[0]["members"]) == 2

    def test_lowering_capacity_to_one_closes_card_with_host_only_chat(self, client):
        alice = register(client, "Alice")
        card = make_posting(client, alice["access_token"], max_players=4)

        data = _patch(client, alice["access_token"], card["id"], {"max_players": 1}).get_json()["data"]
        assert data["max_players"] == 1
        assert data["status"] == "inactive"

        chats = client.get(
            "/api/v1/users/me/chats", headers=auth_headers(alice["access_token"])
        ).get_json()["data"]
        assert [m["user_id"] for m in chats[0]["members"]] == [alice["user"]["id"]]
