# tests/conftest.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from todo_tracker import db
from todo_tracker import notifier as notifier_module
from todo_tracker.app import create_app
from todo_tracker.config import Settings
from todo_tracker.models import Todo

from .fakes import FakeSMTP

USERNAME = "alice"
PASSWORD = "s3cret pass"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings built directly (no environment reads) with a per-test database.
    SMTP is left unconfigured; use `mail_settings` for a configured one.
    """
    return Settings(
        app_env="test",
        port=3000,
        base_url="http://localhost:3000",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        db_path=tmp_path / "data" / "todos.sqlite3",
        timezone="UTC",
        enable_scheduled_emails=False,
        smtp_host=None,
        smtp_port=587,
        smtp_secure=False,
        smtp_user=None,
        smtp_password=None,
        smtp_from=None,
        smtp_timeout=5,
        auth_username=USERNAME,
        auth_password=PASSWORD,
        session_secret="test-session-secret",
        session_max_age_hours=12,
    )


@pytest.fixture()
def mail_settings(settings: Settings) -> Settings:
    return replace(
        settings,
        smtp_host="smtp.example.com",
        smtp_user="mailer",
        smtp_password="mailer-pass",
        smtp_from="tracker@example.com",
    )


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.reset()
    monkeypatch.setattr(notifier_module.smtplib, "SMTP", FakeSMTP)
    monkeypatch.setattr(notifier_module.smtplib, "SMTP_SSL", FakeSMTP)
    yield FakeSMTP
    FakeSMTP.reset()


@pytest.fixture()
def app(settings: Settings):
    app = create_app(settings, start_scheduler=False)
    app.config["TESTING"] = True
    yield app
    db.engine.dispose()


@pytest.fixture()
def mail_app(mail_settings: Settings):
    app = create_app(mail_settings, start_scheduler=False)
    app.config["TESTING"] = True
    yield app
    db.engine.dispose()


def _login(client):
    resp = client.post("/api/auth/login", json={"username": USERNAME, "password": PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture()
def client(app):
    """Unauthenticated Flask test client."""
    return app.test_client()


@pytest.fixture()
def auth_client(app):
    return _login(app.test_client())


@pytest.fixture()
def mail_client(mail_app):
    return _login(mail_app.test_client())


def mark_completed_at(todo_id: int, when: datetime) -> None:
    """Force a completion timestamp (naive UTC) for report tests."""
    with db.SessionLocal() as s:
        t = s.get(Todo, todo_id)
        t.completed = True
        t.completed_at = when
        s.commit()
