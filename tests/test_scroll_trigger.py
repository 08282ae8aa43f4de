"""Tests for the infinite-scroll sentinel trigger."""

import pytest

from cms_viewer.models.viewer import MainViewMode, ViewerSettings
from cms_viewer.services.loader import FeedLoader, LoadStatus
from cms_viewer.services.scroll_trigger import InfiniteScrollTrigger, TriggerState
from helpers import run, wp_item


@pytest.fixture
def viewer():
    return {"settings": ViewerSettings()}


@pytest.fixture
def loader(cms, api, source):
    cms.pages["posts"] = [[wp_item(1)], [wp_item(2)], [wp_item(3)]]
    return FeedLoader(api, source, page_size=1)


@pytest.fixture
def trigger(loader, viewer):
    return InfiniteScrollTrigger(loader, lambda: viewer["settings"])


class TestInfiniteScrollTrigger:
    def test_loads_next_page_in_feed_mode(self, trigger, loader):
        outcome = run(trigger.on_sentinel_visible())
        assert outcome.status == LoadStatus.LOADED
        assert [i.id for i in loader.state.items] == [1]
        assert trigger.state == TriggerState.ARMED

    def test_loads_in_grid_mode(self, trigger, viewer, loader):
        viewer["settings"] = ViewerSettings(main_view_mode=MainViewMode.GRID)
        run(trigger.on_sentinel_visible())
        assert len(loader.state.items) == 1

    def test_carousel_never_auto_loads(self, trigger, viewer, cms):
        viewer["settings"] = ViewerSettings(main_view_mode=MainViewMode.CAROUSEL)
        assert run(trigger.on_sentinel_visible()) is None
        assert cms.requests == []

    def test_disabled_auto_load(self, trigger, viewer, cms):
        viewer["settings"] = ViewerSettings(load_more_enabled=False)
        assert run(trigger.on_sentinel_visible()) is None
        assert cms.requests == []

    def test_no_more_items(self, trigger, loader, cms):
        loader.state.has_more = False
        assert run(trigger.on_sentinel_visible()) is None
        assert cms.requests == []

    def test_while_loading(self, trigger, loader, cms):
        loader.state.is_loading = True
        assert trigger.should_load() is False
        assert run(trigger.on_sentinel_visible()) is None
        assert cms.requests == []

    def test_stale_sentinel_is_ignored(self, trigger, cms):
        old = trigger.sentinel_id
        new = trigger.replace_sentinel()
        assert new != old
        assert run(trigger.on_sentinel_visible(old)) is None
        assert cms.requests == []

        outcome = run(trigger.on_sentinel_visible(new))
        assert outcome.status == LoadStatus.LOADED

    def test_rearms_after_each_check(self, trigger, loader):
        run(trigger.on_sentinel_visible())
        run(trigger.on_sentinel_visible())
        run(trigger.on_sentinel_visible())
        assert [i.id for i in loader.state.items] == [1, 2, 3]
        assert loader.state.has_more is False
        assert run(trigger.on_sentinel_visible()) is None
        assert trigger.state == TriggerState.ARMED
