"""Tests for the lazily created database engine and session factory."""

import pytest
from sqlalchemy import select

from cms_viewer import database
from cms_viewer.models.db_models import ViewerSettingsRecord
from helpers import run


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'viewer.db'}"


class TestDatabaseLifecycle:
    def test_init_store_and_close(self, db_url):
        async def scenario():
            database.init_database_engine(db_url)
            try:
                await database.init_db()
                async with database.AsyncSessionLocal() as session:
                    session.add(ViewerSettingsRecord(storage_key="wpApiViewerSettings", data="{}"))
                    await session.commit()
                async with database.AsyncSessionLocal() as session:
                    rows = (await session.execute(select(ViewerSettingsRecord))).scalars().all()
                return [(r.storage_key, r.data) for r in rows]
            finally:
                await database.close_db()

        assert run(scenario()) == [("wpApiViewerSettings", "{}")]
        assert database.engine is None
        assert database.AsyncSessionLocal is None

    def test_engine_is_created_once(self, db_url, tmp_path):
        async def scenario():
            database.init_database_engine(db_url)
            try:
                first = database.engine
                database.init_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'other.db'}")
                return first is database.engine
            finally:
                await database.close_db()

        assert run(scenario()) is True
