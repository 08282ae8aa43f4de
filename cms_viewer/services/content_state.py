"""内容状态：一个 feed 实例已加载的条目、分页游标、加载标记与过滤条件"""
from typing import Iterable, List, Optional, Union
from pydantic import BaseModel, Field

from cms_viewer.models.content import ContentItem, PageCursor, Term
from cms_viewer.models.errors import ApiError
from cms_viewer.models.viewer import ApiSource

ALL = "all"

FilterValue = Union[int, str]


def normalize_filter(value: Optional[FilterValue]) -> FilterValue:
    """过滤值只能是 "all" 或整数 ID"""
    if value is None or value == "" or value == ALL:
        return ALL
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"无效的过滤值: {value!r}")


class LoadState(BaseModel):
    """
    单个 feed 的可变状态，由 Loader 独占修改；
    过滤引擎只修改 active_category / active_tag。
    """
    source: ApiSource
    content_type: str = "posts"
    items: List[ContentItem] = Field(default_factory=list)
    cursor: PageCursor = Field(default_factory=PageCursor)
    has_more: bool = True
    is_loading: bool = False
    categories: List[Term] = Field(default_factory=list)
    tags: List[Term] = Field(default_factory=list)
    active_category: FilterValue = ALL
    active_tag: FilterValue = ALL
    search_term: str = ""
    total_items: Optional[int] = None
    last_error: Optional[ApiError] = None

    def reset(self, content_type: Optional[str] = None, source: Optional[ApiSource] = None) -> None:
        """
        整体重置：清空条目与分类/标签，游标回到第 1 页，has_more 置 True，过滤条件回到 "all"。
        中间没有 await，调用方看到的要么是旧状态要么是完整的新状态。
        """
        if content_type is not None:
            self.content_type = content_type
        if source is not None:
            self.source = source
        self.items = []
        self.cursor = PageCursor(page=1, page_size=self.cursor.page_size)
        self.has_more = True
        self.categories = []
        self.tags = []
        self.active_category = ALL
        self.active_tag = ALL
        self.total_items = None
        self.last_error = None

    def merge_terms(self, items: Iterable[ContentItem]) -> None:
        """把新条目中的分类 / 标签并入已见集合（按 id 去重，保持首次出现顺序）"""
        seen_categories = {c.id for c in self.categories}
        seen_tags = {t.id for t in self.tags}
        for item in items:
            for category in item.categories:
                if category.id not in seen_categories:
                    seen_categories.add(category.id)
                    self.categories.append(category)
            for tag in item.tags:
                if tag.id not in seen_tags:
                    seen_tags.add(tag.id)
                    self.tags.append(tag)
