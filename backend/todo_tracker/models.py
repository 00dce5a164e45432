# models.py
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, CheckConstraint
from .db import Base, utcnow

class Todo(Base):
    __tablename__ = "todos"

    id                 = Column(Integer, primary_key=True, autoincrement=True)
    title              = Column(String(255), nullable=False)
    notes              = Column(Text)
    due_date           = Column(Date, nullable=True)
    completed          = Column(Boolean, nullable=False, default=False)
    notify_on_complete = Column(Boolean, nullable=False, default=False)

    # UTC, stored naive
    created_at         = Column(DateTime, nullable=False, default=utcnow)
    completed_at       = Column(DateTime, nullable=True)  # set iff completed

class AppSetting(Base):
    """Single-row settings record (id is always 1)."""
    __tablename__ = "app_settings"
    __table_args__ = (CheckConstraint("id = 1", name="single_row"),)

    id              = Column(Integer, primary_key=True)
    email_recipient = Column(String(320), nullable=True)
