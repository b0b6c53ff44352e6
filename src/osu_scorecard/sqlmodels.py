"""SQLAlchemy models for local SQLite storage.

Scorecards themselves are never stored; only a running count of exports.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

COUNTER_ROW_ID = 1


class Base(DeclarativeBase):
    pass


class ScorecardStats(Base):
    """Single-row table holding how many scorecards have been generated."""

    __tablename__ = "stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
