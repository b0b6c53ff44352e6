"""Tests for the persisted scorecard counter."""

import asyncio

from osu_scorecard.counters import get_scorecard_count, increment_scorecard_count
from osu_scorecard.db import DB_FILENAME, Database, get_db_url


class TestCounter:
    def test_starts_at_zero_and_increments(self, tmp_path):
        async def scenario():
            db = Database(get_db_url(tmp_path))
            await db.init()
            try:
                first = await get_scorecard_count(db)
                a = await increment_scorecard_count(db)
                b = await increment_scorecard_count(db)
                return first, a, b, await get_scorecard_count(db)
            finally:
                await db.close()

        assert asyncio.run(scenario()) == (0, 1, 2, 2)
        assert (tmp_path / DB_FILENAME).exists()

    def test_count_persists_across_connections(self, tmp_path):
        async def scenario():
            db = Database(get_db_url(tmp_path))
            await db.init()
            await increment_scorecard_count(db)
            await db.close()

            reopened = Database(get_db_url(tmp_path))
            await reopened.init()
            try:
                return await get_scorecard_count(reopened)
            finally:
                await reopened.close()

        assert asyncio.run(scenario()) == 1

    def test_data_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
        assert get_db_url().endswith(f"data/{DB_FILENAME}")
        assert (tmp_path / "data").is_dir()
