"""
tests/integration/test_sweeper.py — Expiry sweeper and CLI commands.

What this file proves:
  - An active card whose scheduled time has passed is closed by a sweep
  - A second sweep finds nothing left to close
  - Future cards and cards already closed are untouched
  - `flask sweep` and `flask create-admin` drive the same services
"""

from __future__ import annotations

from backend.playmatch.extensions import db
from backend.playmatch.scheduler import SweepScheduler, run_sweep
from backend.playmatch.services.sweeper import sweep_expired_game_cards

from .conftest import auth_headers, get_posting, login, make_admin, make_posting, past_iso, register


class TestSweep:

    def test_expired_card_is_closed_exactly_once(self, app, client):
        alice = register(client, "Alice")
        expired = make_posting(client, alice["access_token"], scheduled_time=past_iso())
        upcoming = make_posting(client, alice["access_token"])

        with app.app_context():
            assert sweep_expired_game_cards(db.session) == 1
            assert sweep_expired_game_cards(db.session) == 0

        assert get_posting(client, alice["access_token"], expired["id"])["status"] == "inactive"
        assert get_posting(client, alice["access_token"], upcoming["id"])["status"] == "active"

    def test_card_in_moderation_is_not_touched(self, app, client):
        alice = register(client, "Alice")
        admin = make_admin(app, client)
        card = make_posting(client, alice["access_token"], scheduled_time=past_iso())
        client.post(
            f"/api/v1/admin/postings/{card['id']}",
            json={"status": "moderating"},
            headers=auth_headers(admin["access_token"]),
        )

        assert run_sweep(app) == 0
        assert get_posting(client, alice["access_token"], card["id"])["status"] == "moderating"

    def test_expired_card_rejects_joins_after_sweep(self, app, client):
        alice = register(client, "Alice")
        bob = register(client, "Bob")
        card = make_posting(client, alice["access_token"], scheduled_time=past_iso())

        assert run_sweep(app) == 1

        resp = client.put(
            "/api/v1/postings/join",
            json={"posting_id": card["id"]},
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "NOT_ACCEPTING_MEMBERS"


def test_scheduler_start_and_shutdown(app):
    scheduler = SweepScheduler(app)
    scheduler.start()
    try:
        assert scheduler.running
    finally:
        scheduler.shutdown()
    assert not scheduler.running


class TestCommands:

    def test_sweep_command_reports_closed_cards(self, app, client):
        alice = register(client, "Alice")
        make_posting(client, alice["access_token"], scheduled_time=past_iso())

        result = app.test_cli_runner().invoke(args=["sweep"])
        assert result.exit_code == 0
        assert "Closed 1 expired game card(s)." in result.output

    def test_create_admin_command_creates_loginable_admin(self, app, client):
        result = app.test_cli_runner().invoke(args=[
            "create-admin",
            "--email", "Root@Test.com",
            "--password", "Password1",
            "--first-name", "Root",
            "--last-name", "Admin",
        ])
        assert result.exit_code == 0, result.output
        assert "Administrator created successfully!" in result.output

        data = login(client, "root@test.com")
        assert data["user"]["user_type"] == "ADMIN"

    def test_create_admin_command_rejects_taken_email(self, app, client):
        register(client, "Alice")
        result = app.test_cli_runner().invoke(args=[
            "create-admin",
            "--email", "alice@test.com",
            "--password", "Password1",
            "--first-name", "Alice",
            "--last-name", "Again",
        ])
        assert result.exit_code == 1
        assert "Error:" in result.output
