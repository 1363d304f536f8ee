"""Tables de sélection du jour, highlight et rollover"""

from sqlalchemy import Column, BigInteger, String, DateTime, Boolean
from datetime import datetime, timezone
from taskpilot.core.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class SelectedForTodayRecord(Base):
    __tablename__ = "selected_for_today"

    # clé composite: une ligne par (tâche, jour)
    task_id = Column(BigInteger, primary_key=True, autoincrement=False)
    selected_date = Column(String, primary_key=True, index=True)


class DailyHighlightRecord(Base):
    __tablename__ = "daily_highlights"

    date = Column(String, primary_key=True)
    task_id = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class TaskRolloverStatusRecord(Base):
    __tablename__ = "task_rollover_status"

    task_id = Column(BigInteger, primary_key=True, autoincrement=False)
    original_selected_date = Column(String, nullable=False)
    rollover_reason = Column(String, nullable=True)  # "incomplete", "dismissed"
    is_active = Column(Boolean, default=True)
    dismissed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
