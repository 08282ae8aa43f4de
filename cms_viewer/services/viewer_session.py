"""查看器会话：把设置、API 客户端、Loader、滚动触发器与详情浮层组装在一起"""
from typing import Any, Dict, List, Optional

from cms_viewer.config import get_api_sources, derive_parent_url, settings
from cms_viewer.models.content import ContentItem
from cms_viewer.models.view import ViewNode
from cms_viewer.models.viewer import ApiSource, ContentViewMode, CUSTOM_SOURCE_ID, MainViewMode, ViewerSettings
from cms_viewer.services.api_client import ContentApiClient
from cms_viewer.services.detail_overlay import DetailOverlay, OverlayState
from cms_viewer.services.filter_engine import set_filters
from cms_viewer.services.loader import FeedLoader, LoadOutcome
from cms_viewer.services.scroll_trigger import InfiniteScrollTrigger
from cms_viewer.services.settings_store import SettingsStore
from cms_viewer.services.view_renderer import render_detail, render_feed
from cms_viewer.utils.logger import logger

# 改动这些设置会改变服务端查询，需要整体重新加载
_RELOAD_KEYS = ("items_per_page", "sort_descending")
_SOURCE_KEYS = ("api_source", "custom_api_url", "api_base_url")


class ViewerSession:
    """一个查看器实例（主 feed + 详情浮层）"""

    def __init__(
        self,
        store: SettingsStore,
        api: Optional[ContentApiClient] = None,
        sources: Optional[List[Dict[str, Any]]] = None,
    ):
        self.store = store
        self.api = api or ContentApiClient()
        self._registry = sources if sources is not None else get_api_sources()
        viewer = store.current
        self.loader = FeedLoader(
            self.api,
            self.resolve_source(viewer),
            page_size=viewer.items_per_page,
            sort_descending=viewer.sort_descending,
        )
        self.trigger = InfiniteScrollTrigger(self.loader, lambda: self.store.current)
        self.overlay = DetailOverlay(self.api)

    @property
    def viewer(self) -> ViewerSettings:
        return self.store.current

    def _registry_urls(self) -> Dict[str, Dict[str, Any]]:
        return {str(s.get("id")): s for s in self._registry if s.get("id")}

    def resolve_source(self, viewer: ViewerSettings) -> ApiSource:
        """根据设置解析当前数据源；未知 ID 退回 current"""
        current_url = viewer.api_base_url or settings.cms_api_base_url
        source_id = viewer.api_source
        registry = self._registry_urls()

        if source_id == CUSTOM_SOURCE_ID:
            return ApiSource(id=CUSTOM_SOURCE_ID, name="Custom URL", base_url=(viewer.custom_api_url or "").rstrip("/"))
        if source_id not in registry:
            logger.warning(f"未知数据源 {source_id}，退回 current")
            source_id = "current"

        entry = registry.get(source_id, {"id": source_id, "name": "Current Site"})
        url = entry.get("url") or ""
        if source_id == "current":
            url = url or current_url
        elif source_id == "parent":
            url = url or derive_parent_url(current_url)
        return ApiSource(id=source_id, name=entry.get("name") or source_id, base_url=url.rstrip("/"))

    def list_sources(self) -> List[ApiSource]:
        """所有可选数据源（含当前的自定义地址）"""
        sources = []
        for source_id in self._registry_urls():
            sources.append(self.resolve_source(self.viewer.model_copy(update={"api_source": source_id})))
        sources.append(ApiSource(id=CUSTOM_SOURCE_ID, name="Custom URL", base_url=self.viewer.custom_api_url or ""))
        return sources

    async def start(self) -> LoadOutcome:
        """读取设置，发现内容类型并加载第一页"""
        viewer = await self.store.load()
        self.loader.configure(page_size=viewer.items_per_page, sort_descending=viewer.sort_descending)
        self.trigger.replace_sentinel()
        return await self.loader.switch_source(self.resolve_source(viewer))

    async def switch_source(self, source_id: str, custom_api_url: Optional[str] = None) -> LoadOutcome:
        """
        切换数据源并持久化选择

        Raises:
            ValueError: 未知的数据源 ID
        """
        if source_id != CUSTOM_SOURCE_ID and source_id not in self._registry_urls():
            raise ValueError(f"无效的数据源: {source_id}")
        changes: Dict[str, Any] = {"api_source": source_id}
        if custom_api_url is not None:
            changes["custom_api_url"] = custom_api_url
        viewer = await self.store.update(changes)
        return await self._apply_source(viewer)

    async def _apply_source(self, viewer: ViewerSettings) -> LoadOutcome:
        self.overlay.close()
        self.loader.configure(page_size=viewer.items_per_page, sort_descending=viewer.sort_descending)
        self.trigger.replace_sentinel()
        source = self.resolve_source(viewer)
        outcome = await self.loader.switch_source(source)
        # 旧数据源的客户端不再使用
        await self.api.release_clients(keep=[source])
        return outcome

    async def select_content_type(self, content_type: str) -> LoadOutcome:
        """切换内容类型"""
        self.trigger.replace_sentinel()
        return await self.loader.reset_and_load(content_type)

    async def reload(self) -> LoadOutcome:
        """显式重新加载当前类型"""
        self.trigger.replace_sentinel()
        return await self.loader.reset_and_load()

    async def load_more(self) -> LoadOutcome:
        """“加载更多”按钮；轮播模式下按钮不可用"""
        if self.viewer.main_view_mode == MainViewMode.CAROUSEL:
            return LoadOutcome.skipped()
        return await self.loader.load_next_page()

    async def on_sentinel(self, sentinel_id: Optional[int] = None) -> Optional[LoadOutcome]:
        """前端上报哨兵进入视口"""
        return await self.trigger.on_sentinel_visible(sentinel_id)

    def set_filters(self, category=None, tag=None) -> None:
        """修改分类 / 标签过滤（仅客户端过滤，不重新拉取）"""
        set_filters(self.loader.state, category=category, tag=tag)

    async def search(self, term: str) -> LoadOutcome:
        """修改搜索词并重新加载"""
        self.loader.state.search_term = (term or "").strip()
        return await self.reload()

    async def update_settings(self, changes: Dict[str, Any]) -> ViewerSettings:
        """保存设置；根据改动的字段决定切换数据源、重新加载或只重新渲染"""
        before = self.viewer
        after = await self.store.update(changes)
        if any(getattr(before, key) != getattr(after, key) for key in _SOURCE_KEYS):
            await self._apply_source(after)
        elif any(getattr(before, key) != getattr(after, key) for key in _RELOAD_KEYS):
            self.loader.configure(page_size=after.items_per_page, sort_descending=after.sort_descending)
            await self.reload()
        return after

    def find_item(self, item_id: int) -> Optional[ContentItem]:
        """在已加载的条目中查找（作用域为当前数据源与内容类型）"""
        for item in self.loader.state.items:
            if item.id == item_id:
                return item
        return None

    async def open_detail(self, item_id: int) -> OverlayState:
        """
        打开详情浮层

        Raises:
            LookupError: 条目不在已加载列表中
        """
        item = self.find_item(item_id)
        if item is None:
            raise LookupError(f"条目未加载: {item_id}")
        return await self.overlay.open(item, self.loader.state.source)

    def close_detail(self) -> None:
        self.overlay.close()

    async def set_content_view_mode(self, mode: ContentViewMode) -> ViewerSettings:
        return await self.store.update({"content_view_mode": mode})

    def render(self) -> ViewNode:
        """当前 feed 的视图树"""
        return render_feed(
            self.loader.state,
            self.viewer,
            self.trigger.sentinel_id,
            self.loader.content_types,
        )

    def render_detail(self) -> ViewNode:
        """详情浮层的视图树"""
        return render_detail(self.overlay, self.viewer.content_view_mode)

    async def close(self):
        await self.api.close()
