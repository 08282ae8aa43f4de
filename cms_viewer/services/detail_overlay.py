"""
详情浮层：Closed -> Opening(摘要) -> Loaded(完整内容) | Failed(摘要) -> Closed

浮层拥有自己独立的单条状态，不读写 feed 的 LoadState。关闭后到达的请求结果
通过 token 比对丢弃，不会重新打开或修改浮层。
"""
from enum import Enum
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from cms_viewer.models.content import ContentItem
from cms_viewer.models.errors import ApiError, ApiResult
from cms_viewer.models.viewer import ApiSource
from cms_viewer.services.api_client import ContentApiClient, MEDIA_REST_BASE
from cms_viewer.utils.logger import logger


class OverlayState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    LOADED = "loaded"
    FAILED = "failed"


def split_content_blocks(html: str) -> List[str]:
    """
    把正文拆成顶层结构片段（供区块网格 / 区块轮播使用）。
    只有文本、没有顶层元素的内容视为一个不透明区块。
    """
    if not html or not html.strip():
        return []
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        logger.warning(f"正文解析失败，按单个区块处理: {e}")
        return [html]
    blocks = [str(element) for element in soup.children if isinstance(element, Tag)]
    return blocks or [html]


class DetailOverlay:
    """单条内容详情浮层"""

    def __init__(self, api: ContentApiClient):
        self.api = api
        self.state = OverlayState.CLOSED
        self.summary: Optional[ContentItem] = None
        self.item: Optional[ContentItem] = None
        self.error: Optional[ApiError] = None
        self._token = 0

    @property
    def token(self) -> int:
        """每次打开 / 关闭都会变化"""
        return self._token

    @property
    def is_open(self) -> bool:
        return self.state != OverlayState.CLOSED

    @property
    def displayed_item(self) -> Optional[ContentItem]:
        """当前应展示的条目：加载成功用完整内容，其余情况用摘要"""
        if self.state == OverlayState.CLOSED:
            return None
        if self.state == OverlayState.LOADED and self.item is not None:
            return self.item
        return self.summary

    async def open(self, summary: ContentItem, source: ApiSource) -> OverlayState:
        """
        打开浮层：先展示已有的摘要，再后台拉取完整内容

        Args:
            summary: feed 中已有的条目
            source: 条目所属数据源

        Returns:
            本次打开结束时的浮层状态（若期间被关闭或重新打开，返回当时的状态）
        """
        self._token += 1
        token = self._token
        self.state = OverlayState.OPENING
        self.summary = summary
        self.item = None
        self.error = None

        # 媒体条目没有更丰富的单条表示，直接用摘要
        if self.api.rest_base_for(source, summary.content_type) == MEDIA_REST_BASE:
            self.item = summary
            self.state = OverlayState.LOADED
            return self.state

        try:
            result = await self.api.get_item(source, summary.content_type, summary.id)
        except Exception as e:
            logger.exception(f"详情请求出现意外错误 id={summary.id}: {e}")
            result = ApiResult.failure(ApiError.unexpected_format(f"{type(e).__name__}: {e}"))

        if token != self._token:
            logger.debug(f"详情请求已过期，丢弃结果 id={summary.id}")
            return self.state

        if result.ok:
            self.item = result.value
            self.state = OverlayState.LOADED
        else:
            self.error = result.error
            self.state = OverlayState.FAILED
            logger.warning(f"详情加载失败，展示摘要 id={summary.id}: {result.error.kind.value} {result.error.message}")
        return self.state

    def close(self) -> None:
        """任何非关闭状态都可关闭；在途请求的结果之后会被丢弃"""
        if self.state == OverlayState.CLOSED:
            return
        self._token += 1
        self.state = OverlayState.CLOSED
        self.summary = None
        self.item = None
        self.error = None
