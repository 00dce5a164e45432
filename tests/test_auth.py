# tests/test_auth.py

from __future__ import annotations

import time

import pytest

from todo_tracker.auth import AUTH_COOKIE_NAME, issue_token, verify_token

from .conftest import PASSWORD, USERNAME

SECRET = "unit-test-secret"


def _mutate(s: str, i: int) -> str:
    repl = "A" if s[i] != "A" else "B"
    return s[:i] + repl + s[i + 1:]


def test_token_verifies_immediately_and_expires() -> None:
    now = 1_700_000_000.0
    token = issue_token("alice", SECRET, max_age_seconds=3600, now=now)

    assert verify_token(token, SECRET, now=now) == "alice"
    assert verify_token(token, SECRET, now=now + 3599) == "alice"
    assert verify_token(token, SECRET, now=now + 3600) is None
    assert verify_token(token, SECRET, now=now + 7200) is None


def test_token_rejected_with_other_secret() -> None:
    token = issue_token("alice", SECRET, max_age_seconds=60)
    assert verify_token(token, "rotated-secret") is None


def test_any_single_character_mutation_is_rejected() -> None:
    now = time.time()
    token = issue_token("alice", SECRET, max_age_seconds=3600, now=now)
    for i in range(len(token)):
        assert verify_token(_mutate(token, i), SECRET, now=now) is None, i


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "no-delimiter",
        ".",
        "abc.",
        ".abc",
        "a.b.c",
        "!!!not-base64!!!.deadbeef",
        "café.éé",
    ],
)
def test_malformed_tokens_are_rejected_not_raised(token) -> None:
    assert verify_token(token, SECRET) is None


def test_signed_but_malformed_payloads_are_rejected() -> None:
    from todo_tracker.auth import _b64encode, sign_value

    for raw in [
        b"not json",
        b"[1, 2]",
        b'{"u": "alice"}',
        b'{"e": 99999999999999}',
        b'{"u": "", "e": 99999999999999}',
        b'{"u": "alice", "e": true}',
        b'{"u": "alice", "e": NaN}',
        b'{"u": "alice", "e": Infinity}',
    ]:
        payload = _b64encode(raw)
        assert verify_token(f"{payload}.{sign_value(payload, SECRET)}", SECRET) is None

    bad_b64 = "a"  # one char is never valid base64
    assert verify_token(f"{bad_b64}.{sign_value(bad_b64, SECRET)}", SECRET) is None


# ---------- HTTP ----------

def test_login_sets_cookie_with_flags(client) -> None:
    resp = client.post("/api/auth/login", json={"username": f"  {USERNAME} ", "password": PASSWORD})
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}

    cookie = resp.headers.get("Set-Cookie")
    assert cookie.startswith(f"{AUTH_COOKIE_NAME}=")
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie
    assert "Path=/" in cookie
    assert "Max-Age=43200" in cookie
    assert "Secure" not in cookie


def test_login_rejects_wrong_credentials(client) -> None:
    resp = client.post("/api/auth/login", json={"username": USERNAME, "password": PASSWORD + "x"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid credentials"}
    assert "Set-Cookie" not in resp.headers

    assert client.post("/api/auth/login", json={}).status_code == 401


def test_secure_flag_in_production(settings) -> None:
    from dataclasses import replace

    from todo_tracker.app import create_app

    app = create_app(replace(settings, app_env="production"), start_scheduler=False)
    resp = app.test_client().post(
        "/api/auth/login", json={"username": USERNAME, "password": PASSWORD}
    )
    assert "Secure" in resp.headers.get("Set-Cookie")


def test_status_reflects_session(client) -> None:
    assert client.get("/api/auth/status").get_json() == {"authenticated": False, "user": None}
    client.post("/api/auth/login", json={"username": USERNAME, "password": PASSWORD})
    assert client.get("/api/auth/status").get_json() == {"authenticated": True, "user": USERNAME}


def test_logout_clears_cookie(auth_client) -> None:
    resp = auth_client.post("/api/auth/logout")
    assert resp.status_code == 200
    cookie = resp.headers.get("Set-Cookie")
    assert cookie.startswith(f"{AUTH_COOKIE_NAME}=;")
    assert "Max-Age=0" in cookie

    assert auth_client.get("/api/todos").status_code == 401


def test_api_routes_require_auth(client) -> None:
    for method, path in [
        ("get", "/api/todos"),
        ("post", "/api/todos"),
        ("patch", "/api/todos/1/complete"),
        ("delete", "/api/todos/1"),
        ("get", "/api/settings/email"),
        ("get", "/api/reports/daily"),
    ]:
        resp = getattr(client, method)(path)
        assert resp.status_code == 401, path
        assert resp.get_json() == {"error": "Unauthorized"}


def test_public_routes_do_not_require_auth(client) -> None:
    health = client.get("/api/health")
    assert health.status_code == 200
    assert health.get_json()["ok"] is True

    assert client.get("/login").status_code == 200
    assert client.get("/login.js").status_code == 200


def test_pages_redirect_to_login(client) -> None:
    for path in ["/", "/index.html", "/app.js"]:
        resp = client.get(path)
        assert resp.status_code == 302, path
        assert resp.headers["Location"].endswith("/login")


def test_dot_segment_paths_to_pages_are_gated(client) -> None:
    for path in ["/./index.html", "/static/../index.html", "/./app.js", "/static/../app.js"]:
        resp = client.get(path)
        assert resp.status_code == 302, path
        assert resp.headers["Location"].endswith("/login")

    assert client.get("/./styles.css").status_code == 200


def test_pages_served_when_authenticated(auth_client) -> None:
    assert auth_client.get("/").status_code == 200
    assert auth_client.get("/app.js").status_code == 200

    resp = auth_client.get("/login")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/")


def test_tampered_cookie_is_rejected(client) -> None:
    token = issue_token(USERNAME, "wrong-secret", max_age_seconds=3600)
    client.set_cookie(AUTH_COOKIE_NAME, token)
    assert client.get("/api/todos").status_code == 401
