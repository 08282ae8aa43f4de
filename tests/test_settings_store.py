"""Tests for persisted viewer settings (SQLite via aiosqlite stands in for MySQL)."""

import json

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cms_viewer.database import Base
from cms_viewer.models.db_models import ViewerSettingsRecord
from cms_viewer.models.viewer import ContentViewMode, ItemSize, MainViewMode, ViewerSettings
from cms_viewer.services.settings_store import SettingsStore, parse_settings_blob
from helpers import run

STORAGE_KEYS = {
    "apiBaseUrl",
    "itemsPerPage",
    "sortDescending",
    "mainViewMode",
    "itemSize",
    "contentViewMode",
    "loadMoreEnabled",
    "apiSource",
    "customApiUrl",
}


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'settings.db'}"


async def _with_store(db_url, scenario, raw=None):
    """建表，可选写入原始数据，然后在 SettingsStore 上执行 scenario"""
    engine = create_async_engine(db_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        if raw is not None:
            async with factory() as session:
                session.add(ViewerSettingsRecord(storage_key="wpApiViewerSettings", data=raw))
                await session.commit()
        return await scenario(SettingsStore(factory), factory)
    finally:
        await engine.dispose()


class TestParseSettingsBlob:
    def test_missing(self):
        assert parse_settings_blob(None) == ViewerSettings()

    def test_corrupt_json(self):
        assert parse_settings_blob("{not json") == ViewerSettings()

    def test_not_an_object(self):
        assert parse_settings_blob("[1, 2]") == ViewerSettings()

    def test_invalid_values(self):
        assert parse_settings_blob(json.dumps({"mainViewMode": "masonry"})) == ViewerSettings()

    def test_partial_blob_keeps_defaults(self):
        parsed = parse_settings_blob(json.dumps({"itemSize": "large", "itemsPerPage": 50}))
        assert parsed.item_size == ItemSize.LARGE
        assert parsed.items_per_page == 20
        assert parsed.main_view_mode == MainViewMode.FEED
        assert parsed.load_more_enabled is True


class TestViewerSettings:
    def test_defaults(self):
        viewer = ViewerSettings()
        assert viewer.items_per_page == 5
        assert viewer.sort_descending is True
        assert viewer.main_view_mode == MainViewMode.FEED
        assert viewer.item_size == ItemSize.MEDIUM
        assert viewer.content_view_mode == ContentViewMode.PAGE
        assert viewer.api_source == "current"

    def test_storage_layout_uses_camel_case(self):
        assert set(ViewerSettings().to_storage()) == STORAGE_KEYS

    def test_items_per_page_is_clamped(self):
        assert ViewerSettings(items_per_page=0).items_per_page == 1
        assert ViewerSettings(itemsPerPage=99).items_per_page == 20


class TestSettingsStore:
    def test_empty_store_yields_defaults(self, db_url):
        async def scenario(store, factory):
            return await store.load()

        assert run(_with_store(db_url, scenario)) == ViewerSettings()

    def test_corrupt_row_yields_defaults(self, db_url):
        async def scenario(store, factory):
            return await store.load()

        loaded = run(_with_store(db_url, scenario, raw="{{{"))
        assert loaded == ViewerSettings()

    def test_partial_row_is_completed(self, db_url):
        async def scenario(store, factory):
            return await store.load()

        loaded = run(_with_store(db_url, scenario, raw=json.dumps({"mainViewMode": "grid"})))
        assert loaded.main_view_mode == MainViewMode.GRID
        assert loaded.items_per_page == 5

    def test_save_then_load(self, db_url):
        async def scenario(store, factory):
            await store.save(ViewerSettings(
                items_per_page=12,
                main_view_mode=MainViewMode.CAROUSEL,
                api_source="custom",
                custom_api_url="https://blog.test/wp-json/wp/v2",
            ))
            reloaded = await SettingsStore(factory).load()
            async with factory() as session:
                record = await session.get(ViewerSettingsRecord, 1)
                return reloaded, json.loads(record.data)

        reloaded, stored = run(_with_store(db_url, scenario))
        assert reloaded.items_per_page == 12
        assert reloaded.main_view_mode == MainViewMode.CAROUSEL
        assert reloaded.custom_api_url == "https://blog.test/wp-json/wp/v2"
        assert set(stored) == STORAGE_KEYS
        assert stored["mainViewMode"] == "carousel"

    def test_saving_twice_updates_the_same_row(self, db_url):
        async def scenario(store, factory):
            await store.update({"itemSize": "small"})
            await store.update({"item_size": "large", "sortDescending": False})
            reloaded = await SettingsStore(factory).load()
            return reloaded

        reloaded = run(_with_store(db_url, scenario))
        assert reloaded.item_size == ItemSize.LARGE
        assert reloaded.sort_descending is False

    def test_invalid_update_keeps_current(self, db_url):
        async def scenario(store, factory):
            await store.update({"itemSize": "small"})
            with pytest.raises(ValidationError):
                await store.update({"mainViewMode": "masonry"})
            return store.current, await SettingsStore(factory).load()

        current, reloaded = run(_with_store(db_url, scenario))
        assert current.item_size == ItemSize.SMALL
        assert current.main_view_mode == MainViewMode.FEED
        assert reloaded.item_size == ItemSize.SMALL

    def test_memory_only_store(self):
        store = SettingsStore()
        saved = run(store.update({"load_more_enabled": False}))
        assert saved.load_more_enabled is False
        assert store.current.load_more_enabled is False
