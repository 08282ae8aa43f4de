"""过滤引擎：在已加载的条目上按分类 / 标签计算可见集合，不触发网络请求"""
from typing import List, Optional

from cms_viewer.models.content import ContentItem
from cms_viewer.services.content_state import ALL, FilterValue, LoadState, normalize_filter


def matches(item: ContentItem, category: FilterValue = ALL, tag: FilterValue = ALL) -> bool:
    """条目是否同时满足分类与标签条件"""
    if category != ALL and category not in item.category_ids:
        return False
    if tag != ALL and tag not in item.tag_ids:
        return False
    return True


def visible_items(state: LoadState) -> List[ContentItem]:
    """当前过滤条件下可见的条目，保持加载顺序；只读，不修改状态"""
    category, tag = state.active_category, state.active_tag
    if category == ALL and tag == ALL:
        return list(state.items)
    return [item for item in state.items if matches(item, category, tag)]


def set_filters(
    state: LoadState,
    category: Optional[FilterValue] = None,
    tag: Optional[FilterValue] = None,
) -> None:
    """
    修改过滤条件；传 None 表示保持不变。
    不重置游标、不清空条目、不影响 has_more。
    """
    if category is not None:
        state.active_category = normalize_filter(category)
    if tag is not None:
        state.active_tag = normalize_filter(tag)


def filter_summary(state: LoadState) -> dict:
    """计数信息：可见条数 / 已加载条数，以及过滤后是否为空"""
    visible = len(visible_items(state))
    total = len(state.items)
    return {
        "visible": visible,
        "loaded": total,
        "no_results": visible == 0 and total > 0,
    }
