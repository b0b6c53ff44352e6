"""Scorecard counter — how many scorecards have been exported."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update

from .db import Database
from .sqlmodels import COUNTER_ROW_ID, ScorecardStats

logger = logging.getLogger(__name__)


async def increment_scorecard_count(db: Database) -> int:
    """Add one to the counter and return the new total."""
    async with db.sessions()() as session:
        await session.execute(
            update(ScorecardStats)
            .where(ScorecardStats.id == COUNTER_ROW_ID)
            .values(count=ScorecardStats.count + 1, updated_at=datetime.utcnow())
        )
        await session.commit()
        count = await session.scalar(select(ScorecardStats.count).where(ScorecardStats.id == COUNTER_ROW_ID))
    logger.info("Scorecard count is now %s", count)
    return count or 0


async def get_scorecard_count(db: Database) -> int:
    async with db.sessions()() as session:
        count = await session.scalar(select(ScorecardStats.count).where(ScorecardStats.id == COUNTER_ROW_ID))
    return count or 0
