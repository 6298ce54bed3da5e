"""
Task model: a unit of work assigned to exactly one user.

Model-level rules are explicit steps (``check_schedule`` / ``touch``)
that the endpoints call before every write, rather than ORM event hooks.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, CheckConstraint, Column, DateTime, ForeignKey,
                        Index, Integer, String)
from sqlalchemy.orm import relationship

from taskdesk.core.exceptions import BadRequest
from taskdesk.db.base import Base

DESCRIPTION_MAX_LENGTH = 1250


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalise a potentially-naive timestamp (SQLite) to UTC-aware."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_tasks_end_after_start"),
        Index("ix_tasks_assigned_created", "assigned_to", "created_at"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(DESCRIPTION_MAX_LENGTH), nullable=True)  # type: ignore[assignment]
    start_date: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    end_date: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    completion_date: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    is_completed: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    assigned_to: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    created_by: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    assigned_to_user = relationship("User", foreign_keys=[assigned_to], lazy="raise")
    created_by_user = relationship("User", foreign_keys=[created_by], lazy="raise")

    def check_schedule(self) -> None:
        """Reject an end date earlier than the start date."""
        start, end = ensure_utc(self.start_date), ensure_utc(self.end_date)
        if start is not None and end is not None and end < start:
            raise BadRequest("End date must be after or equal to start date")

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
