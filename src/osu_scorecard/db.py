"""SQLite storage for the scorecard counter.

Data is stored in ~/.osu-scorecard/scorecards.db by default (override the
directory with DATA_DIR). WAL mode lets count reads proceed while an export
is incrementing.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .sqlmodels import COUNTER_ROW_ID, Base, ScorecardStats

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.expanduser("~/.osu-scorecard")
DB_FILENAME = "scorecards.db"


def get_data_dir() -> Path:
    """Get the data directory, creating it if needed."""
    data_dir = Path(os.environ.get("DATA_DIR", DEFAULT_DATA_DIR))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_url(data_dir: Optional[Path] = None) -> str:
    db_path = (data_dir or get_data_dir()) / DB_FILENAME
    return f"sqlite+aiosqlite:///{db_path}"


def _set_wal_mode(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


class Database:
    """Owns the async engine for one process; opened and closed by the server lifespan."""

    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def url(self) -> str:
        if self._url is None:
            self._url = get_db_url()
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self.url, echo=False)
            event.listen(self._engine.sync_engine, "connect", _set_wal_mode)
        return self._engine

    def sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        return self._session_factory

    async def init(self) -> None:
        """Create the schema and the single counter row if missing."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with self.sessions()() as session:
            row = await session.scalar(select(ScorecardStats).where(ScorecardStats.id == COUNTER_ROW_ID))
            if row is None:
                session.add(ScorecardStats(id=COUNTER_ROW_ID, count=0))
                await session.commit()
        logger.info("Database initialized at %s", self.url)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
