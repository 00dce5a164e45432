"""Settings loaded from environment variables (+ optional .env).

One frozen Settings object for the whole app. Defaults are only suitable for
local development.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "TODO"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _auth_password() -> str:
    encoded = os.getenv(_k("AUTH_PASSWORD_B64"))
    if encoded:
        try:
            return base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ValueError(f"{_k('AUTH_PASSWORD_B64')} is not valid base64") from None
    return _env(_k("AUTH_PASSWORD"), "change-me")


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_env: str
    port: int
    base_url: str
    log_level: str
    log_dir: Path

    # ---- Storage ----
    db_path: Path

    # ---- Scheduling ----
    timezone: str
    enable_scheduled_emails: bool

    # ---- SMTP ----
    smtp_host: Optional[str]
    smtp_port: int
    smtp_secure: bool
    smtp_user: Optional[str]
    smtp_password: Optional[str]
    smtp_from: Optional[str]
    smtp_timeout: int

    # ---- Auth ----
    auth_username: str
    auth_password: str
    session_secret: str
    session_max_age_hours: int

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_hours * 60 * 60

    def has_smtp_config(self) -> bool:
        return bool(
            self.smtp_host
            and self.smtp_port
            and self.smtp_user
            and self.smtp_password
            and self.smtp_from
        )

    @staticmethod
    def from_env() -> "Settings":
        app_env = _first_env(_k("ENV"), "APP_ENV", default="development") or "development"
        port = _env_int(_k("PORT"), _env_int("PORT", 3000))
        base_url = _env(_k("BASE_URL"), "http://localhost:3000")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        db_path = _env_path(_k("DB_PATH"), Path("data") / "todos.sqlite3")
        log_dir = _env_path(_k("LOG_DIR"), Path("data") / "logs")

        timezone = _env(_k("TIMEZONE"), "UTC") or "UTC"
        enable_scheduled_emails = _env_bool(_k("ENABLE_SCHEDULED_EMAILS"), True)

        smtp_user = _first_env(_k("SMTP_USER"), default=None)

        return Settings(
            app_env=app_env,
            port=port,
            base_url=base_url,
            log_level=log_level,
            log_dir=log_dir,
            db_path=db_path,
            timezone=timezone,
            enable_scheduled_emails=enable_scheduled_emails,
            smtp_host=_first_env(_k("SMTP_HOST"), default=None),
            smtp_port=_env_int(_k("SMTP_PORT"), 587),
            smtp_secure=_env_bool(_k("SMTP_SECURE"), False),
            smtp_user=smtp_user,
            smtp_password=_first_env(_k("SMTP_PASS"), _k("SMTP_PASSWORD"), default=None),
            smtp_from=_first_env(_k("SMTP_FROM"), default=smtp_user),
            smtp_timeout=_env_int(_k("SMTP_TIMEOUT"), 30),
            auth_username=_env(_k("AUTH_USERNAME"), "admin"),
            auth_password=_auth_password(),
            session_secret=_env(_k("AUTH_SESSION_SECRET"), "change-this-session-secret"),
            session_max_age_hours=_env_int(_k("AUTH_SESSION_MAX_AGE_HOURS"), 12),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
