"""Tests for projecting feed state and detail content into view trees."""

import pytest

from cms_viewer.models.content import ContentTypeDescriptor, PageCursor
from cms_viewer.models.errors import ApiError
from cms_viewer.models.viewer import ContentViewMode, ItemSize, MainViewMode, ViewerSettings
from cms_viewer.services.content_state import LoadState
from cms_viewer.services.decoder import decode_item
from cms_viewer.services.detail_overlay import DetailOverlay, OverlayState
from cms_viewer.services.view_renderer import (
    PROTECTED_PLACEHOLDER,
    metadata_rows,
    render_card,
    render_detail,
    render_feed,
    render_items,
    render_load_more,
)
from helpers import wp_item


def _items(*ids, **kwargs):
    return [decode_item(wp_item(i, **kwargs), "posts", "current", "posts") for i in ids]


@pytest.fixture
def state(source):
    return LoadState(source=source, items=_items(1, 2, 3, categories=[(3, "News")]), cursor=PageCursor(page=2))


class TestRenderItems:
    def test_feed_is_a_list_of_cards(self, state):
        node = render_items(state.items, MainViewMode.FEED, ItemSize.MEDIUM)
        assert node.kind == "list"
        assert [c.props["id"] for c in node.children] == [1, 2, 3]

    @pytest.mark.parametrize("size, columns", [(ItemSize.SMALL, 4), (ItemSize.MEDIUM, 3), (ItemSize.LARGE, 2)])
    def test_grid_columns_follow_item_size(self, state, size, columns):
        node = render_items(state.items, MainViewMode.GRID, size)
        assert node.kind == "grid"
        assert node.props["columns"] == columns

    def test_carousel_slides(self, state):
        node = render_items(state.items, MainViewMode.CAROUSEL, ItemSize.MEDIUM)
        assert node.kind == "carousel"
        assert node.props == {"active_index": 0, "count": 3}
        assert [s.props["active"] for s in node.children] == [True, False, False]

    def test_empty_carousel(self):
        node = render_items([], MainViewMode.CAROUSEL, ItemSize.MEDIUM)
        assert node.props["count"] == 0
        assert node.children == []


class TestRenderCard:
    def test_small_cards_show_title_only(self):
        card = render_card(_items(1, categories=[(3, "News")])[0], ItemSize.SMALL)
        assert card.props["title"] == "Item 1"
        assert "excerpt" not in card.props
        assert "categories" not in card.props

    def test_medium_card_details(self):
        card = render_card(_items(1, categories=[(3, "News")], acf={"subtitle": "Hi"})[0], ItemSize.MEDIUM)
        assert card.props["excerpt"] == "<p>Excerpt 1</p>"
        assert card.props["categories"] == ["News"]
        assert card.props["fields"] == [{"label": "Subtitle", "value": "Hi"}]

    def test_protected_card(self):
        raw = wp_item(1)
        raw["excerpt"] = {"rendered": "", "protected": True}
        card = render_card(decode_item(raw, "posts"), ItemSize.LARGE)
        assert card.props["protected"] is True
        assert card.props["excerpt"] == PROTECTED_PLACEHOLDER


class TestLoadMore:
    def test_states(self, state):
        assert render_load_more(state, MainViewMode.FEED).props == {"label": "Load More", "disabled": False}

        state.is_loading = True
        assert render_load_more(state, MainViewMode.FEED).props["label"] == "Loading..."

        state.is_loading = False
        state.has_more = False
        assert render_load_more(state, MainViewMode.GRID).props == {"label": "No More Items", "disabled": True}

    def test_carousel_disables_button(self, state):
        node = render_load_more(state, MainViewMode.CAROUSEL)
        assert node.props == {"label": "Switch to Grid/List to Load", "disabled": True}


class TestRenderFeed:
    def test_page_structure(self, state):
        types = [ContentTypeDescriptor(name="posts", rest_base="posts", label="Posts")]
        page = render_feed(state, ViewerSettings(), sentinel_id=4, content_types=types)

        kinds = [c.kind for c in page.children]
        assert kinds == ["header", "navigation", "counter", "list", "load_more", "sentinel"]
        assert page.find("sentinel")[0].props["id"] == 4
        assert page.find("type_tab")[0].props["active"] is True
        assert [c.props["id"] for c in page.find("category_filter")] == ["all", 3]

    def test_counter_and_no_results(self, state):
        state.active_category = 99
        page = render_feed(state, ViewerSettings(), sentinel_id=1)
        assert page.find("counter")[0].props["visible"] == 0
        assert page.find("counter")[0].props["loaded"] == 3
        assert page.find("no_results")
        assert not page.find("list")

    def test_empty_feed(self, source):
        page = render_feed(LoadState(source=source, has_more=False), ViewerSettings(), sentinel_id=1)
        assert page.find("empty")[0].props["message"] == "No items found"

    def test_error_keeps_loaded_items(self, state):
        state.last_error = ApiError.http(500)
        page = render_feed(state, ViewerSettings(), sentinel_id=1)
        error = page.find("error")[0]
        assert error.props["status"] == 500
        assert error.props["retry"] is True
        assert len(page.find("card")) == 3

    def test_missing_configuration_prompts_for_setup(self, state):
        state.last_error = ApiError.configuration_missing()
        page = render_feed(state, ViewerSettings(), sentinel_id=1)
        assert [c.kind for c in page.children] == ["header", "config_prompt"]
        assert not page.find("error")

    def test_view_mode_switch_is_a_pure_rerender(self, state):
        grid = render_feed(state, ViewerSettings(main_view_mode=MainViewMode.GRID), sentinel_id=1)
        carousel = render_feed(state, ViewerSettings(main_view_mode=MainViewMode.CAROUSEL), sentinel_id=1)
        assert grid.find("grid") and not grid.find("carousel")
        assert carousel.find("carousel")
        assert len(state.items) == 3


class TestRenderDetail:
    def _overlay(self, api, item):
        overlay = DetailOverlay(api)
        overlay.state = OverlayState.LOADED
        overlay.summary = item
        overlay.item = item
        return overlay

    def test_page_view(self, api):
        item = _items(1, categories=[(3, "News")])[0]
        node = render_detail(self._overlay(api, item), ContentViewMode.PAGE)
        page = node.find("page_view")[0]
        assert page.find("html")[0].props["html"].startswith("<p>Body 1</p>")
        rows = {r["label"]: r["value"] for r in page.find("metadata")[0].props["rows"]}
        assert rows["ID"] == "1"
        assert rows["Categories"] == "News"

    def test_blocks_grid(self, api):
        node = render_detail(self._overlay(api, _items(1)[0]), ContentViewMode.GRID)
        blocks = node.find("block")
        assert [b.props["html"] for b in blocks] == ["<p>Body 1</p>", "<h2>Section</h2>"]
        assert node.props["content_view_mode"] == "grid"

    def test_blocks_carousel(self, api):
        node = render_detail(self._overlay(api, _items(1)[0]), ContentViewMode.CAROUSEL)
        carousel = node.find("blocks_carousel")[0]
        assert carousel.props["count"] == 2

    def test_protected_detail_hides_content(self, api):
        raw = wp_item(1)
        raw["content"] = {"rendered": "<p>secret</p>", "protected": True}
        item = decode_item(raw, "posts")
        page = render_detail(self._overlay(api, item), ContentViewMode.PAGE)
        assert page.find("protected")
        assert not page.find("html")
        grid = render_detail(self._overlay(api, item), ContentViewMode.GRID)
        assert grid.find("blocks_grid")[0].props["message"] == "No content blocks found"

    def test_metadata_skips_empty_values(self):
        item = decode_item({"id": 5}, "pages")
        assert metadata_rows(item) == [("ID", "5"), ("Type", "pages")]
