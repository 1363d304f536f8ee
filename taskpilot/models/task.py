"""Task tables (open + completed)"""

from sqlalchemy import Column, BigInteger, Integer, String, DateTime
from datetime import datetime, timezone
from taskpilot.core.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class TaskRecord(Base):
    __tablename__ = "tasks"

    # id fourni par l'app (timestamp ms), pas d'autoincrement
    id = Column(BigInteger, primary_key=True, autoincrement=False)
    text = Column(String, nullable=False)
    parent_id = Column(BigInteger, nullable=True, index=True)
    parent_text = Column(String, nullable=True)
    level = Column(Integer, default=0)

    description = Column(String, nullable=True)
    jira_ticket = Column(String, nullable=True)
    github_pr = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)


class CompletedTaskRecord(Base):
    __tablename__ = "completed_tasks"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    text = Column(String, nullable=False)
    parent_id = Column(BigInteger, nullable=True)
    parent_text = Column(String, nullable=True)
    level = Column(Integer, default=0)

    description = Column(String, nullable=True)
    jira_ticket = Column(String, nullable=True)
    github_pr = Column(String, nullable=True)

    completed_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    completed_date = Column(String, nullable=False, index=True)  # clé jour "YYYY-MM-DD"
    created_at = Column(DateTime(timezone=True), default=_utcnow)
