"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against a SQLite database file in a per-session temp directory.
    Enums are stored as VARCHAR (native_enum=False) so no type setup is needed.
  - The app is created once per session using create_app("testing", overrides).
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.
  - Uploaded files go to a per-session temp folder.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)      → dict with user + tokens
  - login(client, ...)         → dict with user + tokens
  - auth_headers(token)        → {"Authorization": "Bearer <token>"}
  - make_admin(app, client)    → dict with admin user + tokens
  - make_posting(client, ...)  → posting dict
  - join(client, token, id)    → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from backend.playmatch import create_app
from backend.playmatch.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig pointed at a temp SQLite file.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    base = tmp_path_factory.mktemp("playmatch")
    flask_app = create_app("testing", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{base / 'test.db'}",
        "UPLOAD_FOLDER": str(base / "uploads"),
    })

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests, children before parents.

    autouse=True means this runs after EVERY test in the integration suite
    without needing to be declared in each test function.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM chat_messages"))
            conn.execute(text("DELETE FROM chat_members"))
            conn.execute(text("DELETE FROM chats"))
            conn.execute(text("DELETE FROM matched_players"))
            conn.execute(text("DELETE FROM game_cards"))
            conn.execute(text("DELETE FROM refresh_tokens"))
            conn.execute(text("DELETE FROM venues"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    first_name: str = "Alice",
    email: str | None = None,
    password: str = "Password1",
    **profile,
) -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    if email is None:
        email = f"{first_name.lower()}@test.com"
    payload = {
        "email": email,
        "password": password,
        "first_name": first_name,
        "last_name": profile.pop("last_name", "Tester"),
        **profile,
    }
    resp = client.post("/api/v1/auth/register", json=payload)
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, email: str, password: str = "Password1") -> dict:
    """
    Logs in a user and returns the response data dict.
    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    resp = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_admin(app, client, email: str = "admin@test.com", password: str = "Password1") -> dict:
    """Creates an ADMIN through the service (as `flask create-admin` does) and logs in."""
    from backend.playmatch.services.auth_service import create_admin

    with app.app_context():
        create_admin(
            {
                "email": email,
                "password": password,
                "first_name": "Ada",
                "last_name": "Admin",
            },
            _db.session,
        )
        _db.session.commit()
    return login(client, email, password)


def future_iso(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def past_iso(hours: int = 1) -> str:
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()


def make_posting(
    client,
    token: str,
    max_players: int = 4,
    title: str = "Catan night",
    city: str = "Almaty",
    category: str | None = "board games",
    scheduled_time: str | None = None,
    **extra,
) -> dict:
    """Creates a posting hosted by the token owner and returns the posting dict."""
    payload = {
        "title": title,
        "description": "Bring snacks",
        "city": city,
        "category": category,
        "max_players": max_players,
        "scheduled_time": scheduled_time or future_iso(),
        **extra,
    }
    resp = client.post("/api/v1/postings", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, f"make_posting failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, posting_id: int):
    """Joins a posting. Returns the HTTP response."""
    return client.put(
        "/api/v1/postings/join",
        json={"posting_id": posting_id},
        headers=auth_headers(token),
    )


def get_posting(client, token: str, posting_id: int) -> dict:
    resp = client.get(f"/api/v1/postings/{posting_id}", headers=auth_headers(token))
    assert resp.status_code == 200, f"get_posting failed: {resp.get_json()}"
    return resp.get_json()["data"]
