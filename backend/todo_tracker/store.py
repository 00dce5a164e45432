"""Task Store: CRUD over todos plus the single-row email setting.

Every function opens its own short session and commits before returning.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select, func

from .db import SessionLocal, utcnow
from .models import AppSetting, Todo

logger = logging.getLogger(__name__)

TODO_STATUSES = ("all", "active", "completed")


def count_todos() -> int:
    with SessionLocal() as db:
        return int(db.scalar(select(func.count()).select_from(Todo)) or 0)


def create_todo(
    title: str,
    notes: str | None = None,
    due_date: date | None = None,
    notify_on_complete: bool = False,
) -> Todo:
    title = (title or "").strip()
    if not title:
        raise ValueError("title is required")
    notes = (notes or "").strip() or None

    with SessionLocal() as db:
        t = Todo(
            title=title,
            notes=notes,
            due_date=due_date,
            completed=False,
            notify_on_complete=bool(notify_on_complete),
            created_at=utcnow(),
            completed_at=None,
        )
        db.add(t)
        db.commit()
        logger.debug("Todo created id=%s notify=%s", t.id, t.notify_on_complete)
        return t


def list_todos(status: str = "all") -> list[Todo]:
    stmt = select(Todo)
    if status == "active":
        stmt = stmt.where(Todo.completed.is_(False)).order_by(Todo.created_at.desc())
    elif status == "completed":
        stmt = stmt.where(Todo.completed.is_(True)).order_by(Todo.completed_at.desc())
    elif status == "all":
        stmt = stmt.order_by(Todo.completed.asc(), Todo.created_at.desc())
    else:
        raise ValueError(f"unknown status: {status!r}")

    with SessionLocal() as db:
        return list(db.execute(stmt).scalars().all())


def get_todo(todo_id: int) -> Todo | None:
    with SessionLocal() as db:
        return db.get(Todo, todo_id)


def set_completed(todo_id: int, completed: bool) -> Todo | None:
    """Complete (stamping completed_at = now) or reopen. Returns None if absent."""
    with SessionLocal() as db:
        t = db.get(Todo, todo_id)
        if not t:
            return None
        t.completed = completed
        t.completed_at = utcnow() if completed else None
        db.commit()
        return t


def update_details(todo_id: int, title: str, notes: str | None) -> Todo | None:
    with SessionLocal() as db:
        t = db.get(Todo, todo_id)
        if not t:
            return None
        t.title = title
        t.notes = notes
        db.commit()
        return t


def delete_todo(todo_id: int) -> bool:
    with SessionLocal() as db:
        t = db.get(Todo, todo_id)
        if not t:
            return False
        db.delete(t)
        db.commit()
        return True


def completed_in_range(start: datetime, end: datetime) -> list[Todo]:
    """Completed todos with start <= completed_at < end, oldest completion first.

    start/end are naive UTC.
    """
    stmt = (
        select(Todo)
        .where(Todo.completed.is_(True))
        .where(Todo.completed_at >= start)
        .where(Todo.completed_at < end)
        .order_by(Todo.completed_at.asc())
    )
    with SessionLocal() as db:
        return list(db.execute(stmt).scalars().all())


def get_email_recipient() -> str | None:
    with SessionLocal() as db:
        row = db.get(AppSetting, 1)
        return row.email_recipient if row else None


def set_email_recipient(email: str) -> str:
    with SessionLocal() as db:
        row = db.get(AppSetting, 1)
        if row is None:
            row = AppSetting(id=1)
            db.add(row)
        row.email_recipient = email
        db.commit()
    logger.info("Email recipient updated")
    return email
