"""Best-effort email notifications.

Notifier.notify() never raises: missing SMTP config, missing recipient and
transport errors all come back as False (and a log line).
"""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from enum import Enum
from typing import Callable, Optional

from .config import Settings
from .models import Todo
from .reports import Report, report_to_text
from .serializers import iso_utc

logger = logging.getLogger(__name__)


class NotifyEvent(str, Enum):
    CREATED = "created"
    COMPLETED = "completed"
    REOPENED = "reopened"
    EDITED = "edited"
    REPORT = "report"


# event -> (subject prefix, lead line, timestamp label)
_TASK_TEMPLATES = {
    NotifyEvent.CREATED: ("Task Created", "A new task was created.", "Created at"),
    NotifyEvent.COMPLETED: ("Task Completed", "A task was marked as completed.", "Completed at"),
    NotifyEvent.REOPENED: ("Task Reopened", "A task was reopened.", "Reopened at"),
    NotifyEvent.EDITED: ("Task Updated", "A task was edited.", "Edited at"),
}


def build_task_message(event: NotifyEvent, task: Todo, now: datetime | None = None) -> tuple[str, str]:
    """Return (subject, body) for a task lifecycle event."""
    prefix, lead, ts_label = _TASK_TEMPLATES[event]
    if event == NotifyEvent.CREATED:
        ts = iso_utc(task.created_at)
    elif event == NotifyEvent.COMPLETED:
        ts = iso_utc(task.completed_at)
    else:
        ts = iso_utc(now or datetime.now(timezone.utc))

    body = "\n".join([
        lead,
        "",
        f"Title: {task.title}",
        f"Notes: {task.notes or ''}",
        f"Due date: {task.due_date.isoformat() if task.due_date else ''}",
        f"{ts_label}: {ts or ''}",
    ])
    return f"{prefix}: {task.title}", body


def build_report_message(report: Report) -> tuple[str, str]:
    subject = f"Todo {report.period} report: {report.completed_count} completed"
    return subject, report_to_text(report)


class Notifier:
    def __init__(
        self,
        settings: Settings,
        get_recipient: Callable[[], Optional[str]],
    ) -> None:
        self._settings = settings
        self._get_recipient = get_recipient

    def notify(self, event: NotifyEvent | str, payload) -> bool:
        try:
            event = NotifyEvent(event)
            if event == NotifyEvent.REPORT:
                subject, body = build_report_message(payload)
            else:
                subject, body = build_task_message(event, payload)
            return self._send(subject, body)
        except Exception:
            logger.exception("Email notification failed event=%s", event)
            return False

    def _send(self, subject: str, body: str) -> bool:
        s = self._settings
        if not s.has_smtp_config():
            logger.warning("SMTP is not configured; skipping email send.")
            return False

        recipient = self._get_recipient()
        if not recipient:
            logger.warning("No recipient email configured; skipping email send.")
            return False

        msg = EmailMessage()
        msg["From"] = s.smtp_from
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)

        if s.smtp_secure:
            with smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout) as smtp:
                smtp.login(s.smtp_user, s.smtp_password)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout) as smtp:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
                smtp.login(s.smtp_user, s.smtp_password)
                smtp.send_message(msg)

        logger.info("Email sent subject=%r", subject)
        return True
