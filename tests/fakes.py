# tests/fakes.py

from __future__ import annotations

import smtplib
from email.message import EmailMessage


class FakeSMTP:
    """
    Stand-in for smtplib.SMTP / SMTP_SSL.

    Every instance is recorded on the class so tests can inspect what was sent.
    Set `fail_with` to make send_message raise.
    """

    instances: list["FakeSMTP"] = []
    fail_with: Exception | None = None
    offers_starttls: bool = True

    def __init__(self, host: str, port: int, timeout: float | None = None) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.started_tls = False
        self.logged_in_as: str | None = None
        self.sent: list[EmailMessage] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def ehlo(self) -> None:
        return None

    def has_extn(self, name: str) -> bool:
        return name == "starttls" and self.offers_starttls

    def starttls(self) -> None:
        self.started_tls = True

    def login(self, user: str, password: str) -> None:
        self.logged_in_as = user

    def send_message(self, msg: EmailMessage) -> None:
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.sent.append(msg)

    @classmethod
    def reset(cls) -> None:
        cls.instances = []
        cls.fail_with = None
        cls.offers_starttls = True

    @classmethod
    def all_sent(cls) -> list[EmailMessage]:
        return [m for inst in cls.instances for m in inst.sent]


class RefusingSMTP(FakeSMTP):
    def send_message(self, msg: EmailMessage) -> None:
        raise smtplib.SMTPRecipientsRefused({msg["To"]: (550, b"no such user")})


class RecordingNotifier:
    """Notifier double for scheduler tests."""

    def __init__(self, result: bool = True, raises: Exception | None = None) -> None:
        self.result = result
        self.raises = raises
        self.calls: list[tuple[str, object]] = []

    def notify(self, event, payload) -> bool:
        self.calls.append((str(getattr(event, "value", event)), payload))
        if self.raises is not None:
            raise self.raises
        return self.result
