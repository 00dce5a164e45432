from datetime import date, datetime, timezone
import re

from .models import Todo

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def iso_utc(d: datetime | None):
    """Safe ISO string for JSON. Returns None if d is None."""
    if d is None:
        return None
    if d.tzinfo:
        d = d.astimezone(timezone.utc).replace(tzinfo=None)
    return d.replace(microsecond=0).isoformat() + "Z"


def parse_iso_date(s: str | None):
    """Strict YYYY-MM-DD -> date. Returns None for anything else."""
    if not s or not DATE_RE.match(s):
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def todo_to_dict(t: Todo) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "notes": t.notes,
        "due_date": t.due_date.isoformat() if t.due_date else None,
        "completed": bool(t.completed),
        "notify_on_complete": bool(t.notify_on_complete),
        "created_at": iso_utc(t.created_at),
        "completed_at": iso_utc(t.completed_at),
    }
