"""Loader：驱动分页拉取、去重并发调用、合并结果到内容状态"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel

from cms_viewer.config import FALLBACK_CONTENT_TYPES
from cms_viewer.models.content import ContentItem, ContentTypeDescriptor, PageCursor
from cms_viewer.models.errors import ApiError
from cms_viewer.models.viewer import ApiSource
from cms_viewer.services.api_client import ContentApiClient, ListFilters
from cms_viewer.services.content_state import LoadState
from cms_viewer.utils.logger import logger

# 置顶排序只作用于 REST base 为 posts 的类型（发现得到的类型名是 post）
STICKY_REST_BASE = "posts"


class LoadStatus(str, Enum):
    """一次 load_next_page 调用的结果"""
    LOADED = "loaded"
    SKIPPED = "skipped"
    FAILED = "failed"


class LoadOutcome(BaseModel):
    """load_next_page 的返回值"""
    status: LoadStatus
    added: int = 0
    error: Optional[ApiError] = None

    @classmethod
    def skipped(cls) -> "LoadOutcome":
        return cls(status=LoadStatus.SKIPPED)


def sticky_first(items: List[ContentItem]) -> List[ContentItem]:
    """置顶条目排在前面，两组内部保持原有顺序（稳定排序）"""
    return sorted(items, key=lambda item: not item.sticky)


class FeedLoader:
    """
    一个 feed 实例的加载器，独占持有 LoadState。

    同一时刻最多只有一次在途拉取：is_loading 为 True 时新的调用直接丢弃（不排队）。
    重置会使在途请求作废，其结果到达后被丢弃，也不会改动新的 is_loading。
    """

    def __init__(
        self,
        api: ContentApiClient,
        source: ApiSource,
        content_type: str = "posts",
        page_size: int = 5,
        sort_descending: bool = True,
        name: str = "main",
    ):
        self.api = api
        self.name = name
        self.sort_descending = sort_descending
        self.state = LoadState(source=source, content_type=content_type, cursor=PageCursor(page_size=page_size))
        self.content_types: List[ContentTypeDescriptor] = []
        self._generation = 0

    @property
    def generation(self) -> int:
        """每次重置加一，用于识别过期的在途请求"""
        return self._generation

    def configure(self, page_size: Optional[int] = None, sort_descending: Optional[bool] = None) -> None:
        """更新每页条数 / 排序方向（下一次请求生效，调用方决定是否重新加载）"""
        if page_size is not None:
            self.state.cursor.page_size = page_size
        if sort_descending is not None:
            self.sort_descending = sort_descending

    def _build_filters(self) -> ListFilters:
        state = self.state
        return ListFilters(
            category=state.active_category,
            tag=state.active_tag,
            search=state.search_term,
            sort_descending=self.sort_descending,
        )

    async def load_next_page(self) -> LoadOutcome:
        """
        拉取下一页并合并到状态

        正在加载或已无更多数据时为空操作；失败时条目保持不变，错误记录在
        state.last_error 并返回给调用方；无论成功失败，结束时都会清除 is_loading。

        置顶条目只在 REST base 为 posts 的类型中、且只在本页内提前；
        判断依据是解析后的 REST base，所以发现得到的 "post" 类型同样适用。
        """
        state = self.state
        if state.is_loading:
            logger.debug(f"[{self.name}] 已有请求在途，忽略本次加载")
            return LoadOutcome.skipped()
        if not state.has_more:
            logger.debug(f"[{self.name}] 没有更多数据，忽略本次加载")
            return LoadOutcome.skipped()

        state.is_loading = True
        generation = self._generation
        try:
            source = state.source
            content_type = state.content_type
            cursor = state.cursor.model_copy()
            result = await self.api.list_content(source, content_type, cursor, self._build_filters())

            if generation != self._generation:
                logger.info(f"[{self.name}] 状态已重置，丢弃过期结果 type={content_type}, page={cursor.page}")
                return LoadOutcome.skipped()

            if not result.ok:
                state.last_error = result.error
                return LoadOutcome(status=LoadStatus.FAILED, error=result.error)

            page = result.value
            new_items = page.items
            if self.api.rest_base_for(source, content_type) == STICKY_REST_BASE:
                new_items = sticky_first(new_items)

            state.items.extend(new_items)
            state.has_more = state.cursor.page < page.total_pages
            state.cursor.advance()
            state.merge_terms(new_items)
            state.total_items = page.total_items
            state.last_error = None
            logger.info(
                f"[{self.name}] 加载完成 type={content_type}, 新增={len(new_items)}, "
                f"已加载={len(state.items)}, 下一页={state.cursor.page}, has_more={state.has_more}"
            )
            return LoadOutcome(status=LoadStatus.LOADED, added=len(new_items))

        except Exception as e:
            logger.exception(f"[{self.name}] 加载过程中出现意外错误: {e}")
            error = ApiError.unexpected_format(f"{type(e).__name__}: {e}")
            if generation == self._generation:
                state.last_error = error
            return LoadOutcome(status=LoadStatus.FAILED, error=error)

        finally:
            if generation == self._generation:
                state.is_loading = False

    def reset(self, content_type: Optional[str] = None, source: Optional[ApiSource] = None) -> None:
        """整体重置状态，并使在途请求作废"""
        self._generation += 1
        self.state.reset(content_type=content_type, source=source)
        self.state.is_loading = False
        logger.info(
            f"[{self.name}] 重置状态 source={self.state.source.id}, type={self.state.content_type}"
        )

    async def reset_and_load(self, content_type: Optional[str] = None) -> LoadOutcome:
        """重置后加载第一页；content_type 为空时重新加载当前类型"""
        self.reset(content_type=content_type)
        return await self.load_next_page()

    async def discover_content_types(self) -> List[ContentTypeDescriptor]:
        """获取当前数据源的内容类型；失败时退回 posts / pages / media"""
        source = self.state.source
        result = await self.api.list_content_types(source)
        if result.ok and result.value:
            self.content_types = result.value
        else:
            reason = result.error.message if result.error else "没有可用类型"
            logger.warning(f"[{self.name}] 内容类型发现失败，使用默认类型: {reason}")
            self.api.register_type_bases(source, {name: name for name in FALLBACK_CONTENT_TYPES})
            self.content_types = [
                ContentTypeDescriptor(name=name, rest_base=name, label=name.capitalize())
                for name in FALLBACK_CONTENT_TYPES
            ]
        return self.content_types

    async def switch_source(self, source: ApiSource) -> LoadOutcome:
        """
        切换数据源：先整体重置，再发现内容类型，最后加载第一个类型的第一页
        """
        logger.info(f"[{self.name}] 切换数据源: {self.state.source.id} -> {source.id}")
        self.reset(source=source)
        types = await self.discover_content_types()
        return await self.reset_and_load(types[0].name)
