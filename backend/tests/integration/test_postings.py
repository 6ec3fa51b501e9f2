"""
tests/integration/test_postings.py — Creating, reading and listing postings.

Endpoints covered:
  POST /postings                → 201
  GET  /postings                → 200  active feed (caller's own cards excluded)
  GET  /postings/filters        → 200
  GET  /postings/:id            → 200
  GET  /users/:id/postings      → 200
"""

from __future__ import annotations

from .conftest import auth_headers, future_iso, make_posting, register


class TestCreatePosting:

    def test_create_returns_201_with_host_snapshot(self, client):
        alice = register(client, "Alice", city="Almaty")
        card = make_posting(client, alice["access_token"], max_players=4)

        assert card["status"] == "active"
        assert card["current_players"] == 1
        assert card["max_players"] == 4
        assert card["min_players"] == 1
        assert card["matched_players"] == []
        assert card["host_user"]["user_id"] == alice["user"]["id"]
        assert card["host_user"]["first_name"] == "Alice"

    def test_scheduled_time_round_trips_as_utc(self, client):
        alice = register(client, "Alice")
        card = make_posting(client, alice["access_token"], scheduled_time="2030-05-01T18:00:00+02:00")
        assert card["scheduled_time"] == "2030-05-01T16:00:00+00:00"

    def test_single_seat_card_is_closed_with_host_only_chat(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        resp = client.post("/api/v1/postings", json={
            "title": "Solo",
            "description": "x",
            "city": "Almaty",
            "max_players": 1,
            "scheduled_time": future_iso(),
        }, headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 201
        card = resp.get_json()["data"]
        assert card["max_players"] == 1
        assert card["current_players"] == 1
        assert card["status"] == "inactive"

        chats = client.get(
            "/api/v1/users/me/chats", headers=auth_headers(alice["access_token"])
        ).get_json()["data"]
        assert [c["game_card_id"] for c in chats] == [card["id"]]
        assert [m["user_id"] for m in chats[0]["members"]] == [alice["user"]["id"]]

        join = client.put(
            "/api/v1/postings/join",
            json={"posting_id": card["id"]},
            headers=auth_headers(bob["access_token"]),
        )
        assert join.status_code == 400
        assert join.get_json()["error"]["code"] == "NOT_ACCEPTING_MEMBERS"

    def test_non_positive_capacity_is_rejected(self, client):
        alice = register(client, "Alice")
        resp = client.post("/api/v1/postings", json={
            "title": "Nobody",
            "description": "x",
            "city": "Almaty",
            "max_players": 0,
            "scheduled_time": future_iso(),
        }, headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_FIELD"
        assert error["field"] == "max_players"

    def test_missing_title_returns_missing_field(self, client):
        alice = register(client, "Alice")
        resp = client.post("/api/v1/postings", json={
            "description": "x",
            "city": "Almaty",
            "max_players": 4,
            "scheduled_time": future_iso(),
        }, headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"

    def test_requires_authentication(self, client):
        resp = client.post("/api/v1/postings", json={"title": "x"})
        assert resp.status_code == 401


class TestGetPosting:

    def test_get_returns_card(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        card = make_posting(client, alice["access_token"], title="Chess")

        resp = client.get(f"/api/v1/postings/{card['id']}", headers=auth_headers(bob["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["title"] == "Chess"

    def test_unknown_posting_returns_404(self, client):
        alice = register(client, "Alice")
        resp = client.get("/api/v1/postings/999999", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "POSTING_NOT_FOUND"


class TestActiveFeed:

    def test_feed_excludes_callers_own_cards(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        make_posting(client, alice["access_token"], title="Alice's game")
        bobs = make_posting(client, bob["access_token"], title="Bob's game")

        resp = client.get("/api/v1/postings", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [c["id"] for c in data["items"]] == [bobs["id"]]
        assert data["meta"] == {"current": 1, "total": 1, "page_size": 10}

    def test_feed_filters_city_and_category_case_insensitively(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        wanted = make_posting(client, bob["access_token"], city="Almaty", category="Board Games")
        make_posting(client, bob["access_token"], city="Astana", category="Board Games")
        make_posting(client, bob["access_token"], city="Almaty", category="Football")

        resp = client.get(
            "/api/v1/postings?city=almaty&category=board%20games",
            headers=auth_headers(alice["access_token"]),
        )
        items = resp.get_json()["data"]["items"]
        assert [c["id"] for c in items] == [wanted["id"]]

    def test_feed_filters_by_scheduled_window(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        soon = make_posting(client, bob["access_token"], scheduled_time="2030-01-10T12:00:00+00:00")
        make_posting(client, bob["access_token"], scheduled_time="2030-03-10T12:00:00+00:00")

        resp = client.get(
            "/api/v1/postings",
            query_string={"from": "2030-01-01T00:00:00+00:00", "to": "2030-01-31T00:00:00+00:00"},
            headers=auth_headers(alice["access_token"]),
        )
        assert [c["id"] for c in resp.get_json()["data"]["items"]] == [soon["id"]]

    def test_feed_paginates_and_sorts(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        ids = [make_posting(client, bob["access_token"], title=f"Game {i}")["id"] for i in range(3)]

        page_two = client.get(
            "/api/v1/postings?page=2&limit=2",
            headers=auth_headers(alice["access_token"]),
        ).get_json()["data"]
        assert [c["id"] for c in page_two["items"]] == [ids[2]]
        assert page_two["meta"] == {"current": 2, "total": 3, "page_size": 2}

        newest_first = client.get(
            "/api/v1/postings?sort=desc",
            headers=auth_headers(alice["access_token"]),
        ).get_json()["data"]
        assert [c["id"] for c in newest_first["items"]] == list(reversed(ids))

    def test_feed_hides_closed_cards(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        carol = register(client, "Carol")
        card = make_posting(client, bob["access_token"], max_players=2)
        client.put(
            "/api/v1/postings/join",
            json={"posting_id": card["id"]},
            headers=auth_headers(carol["access_token"]),
        )

        resp = client.get("/api/v1/postings", headers=auth_headers(alice["access_token"]))
        assert resp.get_json()["data"]["items"] == []

    def test_invalid_paging_and_sort_fall_back_to_defaults(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        ids = [make_posting(client, bob["access_token"], title=f"Game {i}")["id"] for i in range(2)]

        resp = client.get(
            "/api/v1/postings?page=0&limit=500&sort=sideways",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [c["id"] for c in data["items"]] == ids
        assert data["meta"] == {"current": 1, "total": 2, "page_size": 10}


class TestFilterValues:

    def test_returns_distinct_sorted_cities_and_categories(self, client):
        alice = register(client, "Alice")
        make_posting(client, alice["access_token"], city="Astana", category="chess")
        make_posting(client, alice["access_token"], city="Almaty", category="board games")
        make_posting(client, alice["access_token"], city="Almaty", category=None)

        resp = client.get("/api/v1/postings/filters", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {
            "cities": ["Almaty", "Astana"],
            "categories": ["board games", "chess"],
        }


class TestUserPostings:

    def test_lists_cards_hosted_by_user_with_status_filter(self, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        open_card = make_posting(client, alice["access_token"], max_players=5)
        full_card = make_posting(client, alice["access_token"], max_players=2)
        client.put(
            "/api/v1/postings/join",
            json={"posting_id": full_card["id"]},
            headers=auth_headers(bob["access_token"]),
        )

        url = f"/api/v1/users/{alice['user']['id']}/postings"
        everything = client.get(url, headers=auth_headers(bob["access_token"])).get_json()["data"]
        assert {c["id"] for c in everything["items"]} == {open_card["id"], full_card["id"]}
        assert everything["meta"]["total"] == 2

        inactive = client.get(
            url + "?status=inactive", headers=auth_headers(bob["access_token"])
        ).get_json()["data"]
        assert [c["id"] for c in inactive["items"]] == [full_card["id"]]

    def test_unknown_user_returns_404(self, client):
        alice = register(client, "Alice")
        resp = client.get("/api/v1/users/999999/postings", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"
