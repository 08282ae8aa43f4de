"""
视图渲染：把 (条目, 视图模式, 条目尺寸) 投影为视图树。

所有函数都是纯函数，只读输入；任何状态变化之后调用 render_feed / render_detail
重新生成整棵树即可，不需要分散的局部刷新。
"""
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from cms_viewer.models.content import ContentItem, ContentTypeDescriptor, CustomField, FieldKind
from cms_viewer.models.view import ViewNode
from cms_viewer.models.viewer import ApiSource, ContentViewMode, ItemSize, MainViewMode, ViewerSettings
from cms_viewer.services.content_state import LoadState
from cms_viewer.services.detail_overlay import DetailOverlay, OverlayState, split_content_blocks
from cms_viewer.services.filter_engine import visible_items

GRID_COLUMNS = {
    ItemSize.SMALL: 4,
    ItemSize.MEDIUM: 3,
    ItemSize.LARGE: 2,
}

PROTECTED_PLACEHOLDER = "This content is password protected."
PREVIEW_FIELD_LIMIT = 3
PREVIEW_VALUE_LENGTH = 50


def _date(item: ContentItem) -> Optional[str]:
    return item.date.isoformat() if item.date else None


def _field_preview(fields: Sequence[CustomField]) -> List[dict]:
    """卡片上只预览前几个文本字段，过长的值截断"""
    preview = []
    for field in fields:
        if field.kind != FieldKind.TEXT:
            continue
        text = field.text if len(field.text) <= PREVIEW_VALUE_LENGTH else field.text[:PREVIEW_VALUE_LENGTH] + "..."
        preview.append({"label": field.label, "value": text})
        if len(preview) >= PREVIEW_FIELD_LIMIT:
            break
    return preview


def render_card(item: ContentItem, item_size: ItemSize) -> ViewNode:
    """单个条目卡片"""
    props = {
        "id": item.id,
        "content_type": item.content_type,
        "title": item.title,
        "date": _date(item),
        "size": item_size.value,
        "sticky": item.sticky,
    }
    if item.password:
        props.update(protected=True, excerpt=item.excerpt or PROTECTED_PLACEHOLDER)
        return ViewNode(kind="card", props=props)

    if item_size != ItemSize.SMALL:
        props.update(
            image=item.featured_image.url if item.featured_image else None,
            excerpt=item.excerpt,
            categories=[c.name for c in item.categories],
            tags=[t.name for t in item.tags],
            fields=_field_preview(item.custom_fields),
        )
    return ViewNode(kind="card", props=props)


def render_list(items: Sequence[ContentItem], item_size: ItemSize) -> ViewNode:
    """列表视图"""
    return ViewNode(kind="list", children=[render_card(item, item_size) for item in items])


def render_grid(items: Sequence[ContentItem], item_size: ItemSize) -> ViewNode:
    """网格视图，列数取决于条目尺寸"""
    return ViewNode(
        kind="grid",
        props={"columns": GRID_COLUMNS[item_size]},
        children=[render_card(item, item_size) for item in items],
    )


def render_carousel(items: Sequence[ContentItem], item_size: ItemSize, active_index: int = 0) -> ViewNode:
    """轮播视图：只展示已加载的条目，不触发加载"""
    count = len(items)
    active = active_index % count if count else 0
    slides = [
        ViewNode(kind="slide", props={"index": i, "active": i == active}, children=[render_card(item, item_size)])
        for i, item in enumerate(items)
    ]
    return ViewNode(kind="carousel", props={"active_index": active, "count": count}, children=slides)


VIEW_STRATEGIES: Dict[MainViewMode, Callable[[Sequence[ContentItem], ItemSize], ViewNode]] = {
    MainViewMode.FEED: render_list,
    MainViewMode.GRID: render_grid,
    MainViewMode.CAROUSEL: render_carousel,
}


def render_items(items: Sequence[ContentItem], view_mode: MainViewMode, item_size: ItemSize) -> ViewNode:
    """按视图模式选择渲染策略"""
    return VIEW_STRATEGIES[view_mode](items, item_size)


def render_load_more(state: LoadState, view_mode: MainViewMode) -> ViewNode:
    """加载更多按钮的文案与可用状态"""
    if view_mode == MainViewMode.CAROUSEL:
        label, disabled = "Switch to Grid/List to Load", True
    elif state.is_loading:
        label, disabled = "Loading...", True
    elif not state.has_more:
        label, disabled = "No More Items", True
    else:
        label, disabled = "Load More", False
    return ViewNode(kind="load_more", props={"label": label, "disabled": disabled})


def _render_navigation(
    state: LoadState,
    content_types: Sequence[ContentTypeDescriptor],
) -> ViewNode:
    types = [
        ViewNode(kind="type_tab", props={"name": t.name, "label": t.label or t.name, "active": t.name == state.content_type})
        for t in content_types
    ]
    categories = [ViewNode(kind="category_filter", props={"id": "all", "name": "All", "active": state.active_category == "all"})]
    categories += [
        ViewNode(kind="category_filter", props={"id": c.id, "name": c.name, "active": state.active_category == c.id})
        for c in state.categories
    ]
    tags = [ViewNode(kind="tag_filter", props={"id": "all", "name": "All", "active": state.active_tag == "all"})]
    tags += [
        ViewNode(kind="tag_filter", props={"id": t.id, "name": t.name, "active": state.active_tag == t.id})
        for t in state.tags
    ]
    return ViewNode(
        kind="navigation",
        children=[
            ViewNode(kind="content_types", children=types),
            ViewNode(kind="categories", children=categories),
            ViewNode(kind="tags", children=tags),
        ],
    )


def render_feed(
    state: LoadState,
    viewer: ViewerSettings,
    sentinel_id: int,
    content_types: Sequence[ContentTypeDescriptor] = (),
    source: Optional[ApiSource] = None,
) -> ViewNode:
    """
    整个 feed 页面的视图树

    Args:
        state: feed 状态
        viewer: 查看偏好（视图模式、条目尺寸等）
        sentinel_id: 无限滚动哨兵 ID
        content_types: 可选内容类型
        source: 当前数据源
    """
    source = source or state.source
    header = ViewNode(
        kind="header",
        props={
            "source_id": source.id,
            "source_name": source.name or source.id,
            "content_type": state.content_type,
            "view_mode": viewer.main_view_mode.value,
            "item_size": viewer.item_size.value,
            "sort_descending": viewer.sort_descending,
            "search": state.search_term,
        },
    )

    # 未配置数据源：提示配置，而不是显示错误
    if state.last_error is not None and state.last_error.is_setup_state:
        return ViewNode(
            kind="page",
            children=[header, ViewNode(kind="config_prompt", props={"message": state.last_error.message})],
        )

    visible = visible_items(state)
    counter = ViewNode(
        kind="counter",
        props={"visible": len(visible), "loaded": len(state.items), "total": state.total_items},
    )
    children = [header, _render_navigation(state, content_types), counter]

    if not state.items and not state.is_loading and state.last_error is None:
        children.append(ViewNode(kind="empty", props={"message": "No items found"}))
    elif not visible and state.items:
        children.append(ViewNode(kind="no_results", props={"message": "No items match the selected filters"}))
    else:
        children.append(render_items(visible, viewer.main_view_mode, viewer.item_size))

    if state.is_loading:
        children.append(ViewNode(kind="loading"))
    if state.last_error is not None:
        # 失败不清空已加载的条目，只追加一个可重试的提示
        children.append(ViewNode(
            kind="error",
            props={
                "kind": state.last_error.kind.value,
                "status": state.last_error.status,
                "message": state.last_error.message,
                "retry": True,
            },
        ))
    children.append(render_load_more(state, viewer.main_view_mode))
    children.append(ViewNode(kind="sentinel", props={"id": sentinel_id}))
    return ViewNode(kind="page", children=children)


def metadata_rows(item: ContentItem) -> List[Tuple[str, str]]:
    """详情中的元数据表"""
    rows: List[Tuple[str, str]] = [("ID", str(item.id))]
    optional = [
        ("Slug", item.slug),
        ("Status", item.status),
        ("Type", item.content_type),
        ("Link", item.link),
        ("Created", item.date.isoformat() if item.date else ""),
        ("Modified", item.modified.isoformat() if item.modified else ""),
        ("Author Name", item.author_name or ""),
        ("Categories", ", ".join(c.name for c in item.categories)),
        ("Tags", ", ".join(t.name for t in item.tags)),
        ("Sticky", "Yes" if item.sticky else ""),
        ("Template", item.template),
        ("Format", item.format),
    ]
    rows.extend((label, value) for label, value in optional if value)
    if item.featured_image:
        rows.append(("Media Title", item.featured_image.title or "N/A"))
        rows.append(("Media Alt Text", item.featured_image.alt or "N/A"))
    return rows


def _render_field(field: CustomField) -> ViewNode:
    return ViewNode(kind=f"field_{field.kind.value}", props=field.model_dump(mode="json", exclude_none=True))


def render_page_view(item: ContentItem) -> ViewNode:
    """详情的整页视图"""
    children = []
    if item.featured_image:
        children.append(ViewNode(kind="image", props={"url": item.featured_image.url, "alt": item.featured_image.alt}))
    if item.password:
        children.append(ViewNode(kind="protected", props={"message": PROTECTED_PLACEHOLDER}))
    else:
        children.append(ViewNode(kind="html", props={"html": item.content or item.excerpt}))
    if item.custom_fields:
        children.append(ViewNode(kind="fields", children=[_render_field(f) for f in item.custom_fields]))
    children.append(ViewNode(
        kind="metadata",
        props={"rows": [{"label": label, "value": value} for label, value in metadata_rows(item)]},
    ))
    return ViewNode(kind="page_view", props={"title": item.title, "date": _date(item)}, children=children)


def _content_blocks(item: ContentItem) -> List[str]:
    # 受保护的正文不参与拆分
    return [] if item.password else split_content_blocks(item.content)


def render_blocks_grid(item: ContentItem) -> ViewNode:
    """详情的区块网格视图"""
    blocks = _content_blocks(item)
    if not blocks:
        return ViewNode(kind="blocks_grid", props={"title": item.title, "message": "No content blocks found"})
    return ViewNode(
        kind="blocks_grid",
        props={"title": item.title},
        children=[ViewNode(kind="block", props={"index": i + 1, "html": html}) for i, html in enumerate(blocks)],
    )


def render_blocks_carousel(item: ContentItem, active_index: int = 0) -> ViewNode:
    """详情的区块轮播视图"""
    blocks = _content_blocks(item)
    count = len(blocks)
    active = active_index % count if count else 0
    return ViewNode(
        kind="blocks_carousel",
        props={"title": item.title, "active_index": active, "count": count},
        children=[
            ViewNode(kind="slide", props={"index": i, "active": i == active}, children=[
                ViewNode(kind="block", props={"index": i + 1, "html": html}),
            ])
            for i, html in enumerate(blocks)
        ],
    )


CONTENT_VIEW_STRATEGIES: Dict[ContentViewMode, Callable[[ContentItem], ViewNode]] = {
    ContentViewMode.PAGE: render_page_view,
    ContentViewMode.GRID: render_blocks_grid,
    ContentViewMode.CAROUSEL: render_blocks_carousel,
}


def render_detail(overlay: DetailOverlay, content_view_mode: ContentViewMode) -> ViewNode:
    """详情浮层的视图树；加载失败时退回摘要，不会是空白"""
    item = overlay.displayed_item
    if item is None:
        return ViewNode(kind="overlay", props={"open": False, "state": overlay.state.value})

    props = {"open": True, "state": overlay.state.value, "id": item.id, "content_type": item.content_type}
    if overlay.state == OverlayState.OPENING:
        # 先展示摘要并附带加载提示
        return ViewNode(kind="overlay", props=props, children=[
            ViewNode(kind="loading"),
            render_page_view(item),
        ])
    return ViewNode(kind="overlay", props={**props, "content_view_mode": content_view_mode.value}, children=[
        CONTENT_VIEW_STRATEGIES[content_view_mode](item),
    ])
