"""
Stateless session tokens carried in a cookie.

Token format: <urlsafe-b64(json {"u": username, "e": expires_ms})>.<hex hmac-sha256>

There is no server-side session table. A token cannot be revoked before it
expires; rotating the session secret invalidates every outstanding token.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import math
import time
from typing import Optional

from flask import Response, request

AUTH_COOKIE_NAME = "todo_tracker_auth"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


def sign_value(value: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_token(username: str, secret: str, max_age_seconds: int, now: float | None = None) -> str:
    now = time.time() if now is None else now
    expires_ms = int((now + max_age_seconds) * 1000)
    payload = _b64encode(
        json.dumps({"u": username, "e": expires_ms}, separators=(",", ":")).encode("utf-8")
    )
    return f"{payload}.{sign_value(payload, secret)}"


def verify_token(token: str | None, secret: str, now: float | None = None) -> Optional[str]:
    """Return the username for a valid, unexpired token; None otherwise."""
    if not token:
        return None

    parts = token.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    payload, signature = parts

    expected = sign_value(payload, secret)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii")):
        return None

    try:
        claims = json.loads(_b64decode(payload).decode("utf-8"))
    except ValueError:
        # bad base64, bad utf-8 and bad json are all ValueErrors
        return None

    if not isinstance(claims, dict):
        return None
    username = claims.get("u")
    expires_ms = claims.get("e")
    if not isinstance(username, str) or not username:
        return None
    if isinstance(expires_ms, bool) or not isinstance(expires_ms, (int, float)):
        return None
    if not math.isfinite(expires_ms):
        return None

    now = time.time() if now is None else now
    if now * 1000 >= expires_ms:
        return None
    return username


def check_credentials(settings, username: str, password: str) -> bool:
    user_ok = hmac.compare_digest(username.encode("utf-8"), settings.auth_username.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), settings.auth_password.encode("utf-8"))
    return user_ok and pass_ok


# ---------- cookie helpers (need a request context) ----------

def read_auth_user(settings) -> Optional[str]:
    return verify_token(request.cookies.get(AUTH_COOKIE_NAME), settings.session_secret)


def set_auth_cookie(resp: Response, settings, username: str) -> Response:
    token = issue_token(username, settings.session_secret, settings.session_max_age_seconds)
    resp.set_cookie(
        AUTH_COOKIE_NAME,
        token,
        max_age=settings.session_max_age_seconds,
        path="/",
        httponly=True,
        samesite="Lax",
        secure=settings.is_production,
    )
    return resp


def clear_auth_cookie(resp: Response, settings) -> Response:
    resp.set_cookie(
        AUTH_COOKIE_NAME,
        "",
        max_age=0,
        path="/",
        httponly=True,
        samesite="Lax",
        secure=settings.is_production,
    )
    return resp
