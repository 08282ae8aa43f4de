"""Feed API 路由：分页加载、类型切换、过滤、搜索与数据源切换"""
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from cms_viewer.models.common import ApiResponse
from cms_viewer.services.filter_engine import filter_summary
from cms_viewer.services.loader import LoadOutcome
from cms_viewer.services.viewer_session import ViewerSession
from cms_viewer.routers.deps import get_viewer

router = APIRouter()


class FilterUpdate(BaseModel):
    """过滤条件；字段为空表示不变"""
    category: Optional[Union[int, str]] = Field(None, description='分类 ID 或 "all"')
    tag: Optional[Union[int, str]] = Field(None, description='标签 ID 或 "all"')


class SearchUpdate(BaseModel):
    term: str = Field(default="", description="搜索词，空字符串表示清除")


class SourceUpdate(BaseModel):
    api_source: str = Field(..., description="数据源 ID 或 custom")
    custom_api_url: Optional[str] = Field(None, description="自定义 API 地址")


def _feed_payload(viewer: ViewerSession, outcome: Optional[LoadOutcome] = None) -> dict:
    state = viewer.loader.state
    data = {
        "view": viewer.render().model_dump(mode="json"),
        "state": {
            "source": state.source.id,
            "content_type": state.content_type,
            "page": state.cursor.page,
            "page_size": state.cursor.page_size,
            "has_more": state.has_more,
            "is_loading": state.is_loading,
            "active_category": state.active_category,
            "active_tag": state.active_tag,
            **filter_summary(state),
        },
    }
    if outcome is not None:
        data["outcome"] = outcome.model_dump(mode="json")
    return data


@router.get("/feed", response_model=ApiResponse[dict])
async def get_feed(viewer: ViewerSession = Depends(get_viewer)):
    """当前 feed 的视图树与状态"""
    return ApiResponse.success(data=_feed_payload(viewer))


@router.post("/feed/load-more", response_model=ApiResponse[dict])
async def load_more(viewer: ViewerSession = Depends(get_viewer)):
    """“加载更多”按钮"""
    outcome = await viewer.load_more()
    return ApiResponse.success(data=_feed_payload(viewer, outcome))


@router.post("/feed/scroll", response_model=ApiResponse[dict])
async def sentinel_visible(
    sentinel: Optional[int] = Query(default=None, description="进入视口的哨兵 ID"),
    viewer: ViewerSession = Depends(get_viewer),
):
    """无限滚动：哨兵进入视口"""
    outcome = await viewer.on_sentinel(sentinel)
    return ApiResponse.success(data=_feed_payload(viewer, outcome))


@router.post("/feed/reload", response_model=ApiResponse[dict])
async def reload_feed(viewer: ViewerSession = Depends(get_viewer)):
    """重新加载当前类型"""
    outcome = await viewer.reload()
    return ApiResponse.success(data=_feed_payload(viewer, outcome))


@router.post("/feed/type/{content_type}", response_model=ApiResponse[dict])
async def select_content_type(content_type: str, viewer: ViewerSession = Depends(get_viewer)):
    """切换内容类型"""
    outcome = await viewer.select_content_type(content_type)
    return ApiResponse.success(data=_feed_payload(viewer, outcome))


@router.put("/feed/filters", response_model=ApiResponse[dict])
async def update_filters(body: FilterUpdate, viewer: ViewerSession = Depends(get_viewer)):
    """修改分类 / 标签过滤，只在已加载条目上生效"""
    try:
        viewer.set_filters(category=body.category, tag=body.tag)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse.success(data=_feed_payload(viewer))


@router.put("/feed/search", response_model=ApiResponse[dict])
async def update_search(body: SearchUpdate, viewer: ViewerSession = Depends(get_viewer)):
    """修改搜索词并重新加载"""
    outcome = await viewer.search(body.term)
    return ApiResponse.success(data=_feed_payload(viewer, outcome))


@router.get("/content-types", response_model=ApiResponse[list])
async def list_content_types(viewer: ViewerSession = Depends(get_viewer)):
    """当前数据源的可选内容类型"""
    return ApiResponse.success(data=[t.model_dump() for t in viewer.loader.content_types])


@router.get("/sources", response_model=ApiResponse[dict])
async def list_sources(viewer: ViewerSession = Depends(get_viewer)):
    """可选数据源及当前选择"""
    return ApiResponse.success(data={
        "active": viewer.viewer.api_source,
        "sources": [s.model_dump() for s in viewer.list_sources()],
    })


@router.put("/sources", response_model=ApiResponse[dict])
async def switch_source(body: SourceUpdate, viewer: ViewerSession = Depends(get_viewer)):
    """切换数据源：整体重置，重新发现内容类型并加载第一页"""
    try:
        outcome = await viewer.switch_source(body.api_source, body.custom_api_url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse.success(data=_feed_payload(viewer, outcome), message="数据源已切换")
