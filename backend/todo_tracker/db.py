import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()
SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)
engine = None


def utcnow() -> datetime:
    """Naive UTC 'now' (what we store in SQLite)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_engine(db_path):
    """Bind SessionLocal to a SQLite file, creating its directory. Failures propagate."""
    global engine
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if engine is not None:
        engine.dispose()
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    SessionLocal.configure(bind=engine)
    return engine


# --- lightweight migrations ---
def ensure_schema():
    with engine.begin() as conn:
        cols = [row[1] for row in conn.execute(text("PRAGMA table_info(todos)"))]
        if "created_at" not in cols:
            conn.execute(text("ALTER TABLE todos ADD COLUMN created_at TIMESTAMP NULL"))
            conn.execute(
                text("UPDATE todos SET created_at = :now WHERE created_at IS NULL"),
                {"now": utcnow().isoformat(sep=" ")},
            )
            logger.info("Schema migration: added todos.created_at")
        if "notify_on_complete" not in cols:
            conn.execute(
                text("ALTER TABLE todos ADD COLUMN notify_on_complete BOOLEAN NOT NULL DEFAULT 0")
            )
            logger.info("Schema migration: added todos.notify_on_complete")

        conn.execute(
            text("CREATE INDEX IF NOT EXISTS idx_todos_completed ON todos (completed, completed_at)")
        )
        conn.execute(
            text("INSERT OR IGNORE INTO app_settings (id, email_recipient) VALUES (1, NULL)")
        )
