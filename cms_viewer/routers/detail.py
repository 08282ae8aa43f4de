"""详情浮层 API 路由"""
from fastapi import APIRouter, Depends, HTTPException

from cms_viewer.models.common import ApiResponse
from cms_viewer.models.viewer import ContentViewMode
from cms_viewer.services.viewer_session import ViewerSession
from cms_viewer.routers.deps import get_viewer

router = APIRouter()


@router.post("/detail/{item_id}", response_model=ApiResponse[dict])
async def open_detail(item_id: int, viewer: ViewerSession = Depends(get_viewer)):
    """打开详情：先显示摘要，再拉取完整内容；失败时仍显示摘要"""
    try:
        await viewer.open_detail(item_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ApiResponse.success(data=viewer.render_detail().model_dump(mode="json"))


@router.get("/detail", response_model=ApiResponse[dict])
async def get_detail(viewer: ViewerSession = Depends(get_viewer)):
    """当前详情浮层的视图树"""
    return ApiResponse.success(data=viewer.render_detail().model_dump(mode="json"))


@router.delete("/detail", response_model=ApiResponse[dict])
async def close_detail(viewer: ViewerSession = Depends(get_viewer)):
    """关闭详情浮层"""
    viewer.close_detail()
    return ApiResponse.success(data=viewer.render_detail().model_dump(mode="json"))


@router.put("/detail/view-mode", response_model=ApiResponse[dict])
async def set_content_view_mode(mode: ContentViewMode, viewer: ViewerSession = Depends(get_viewer)):
    """切换详情内容视图：page / grid / carousel"""
    await viewer.set_content_view_mode(mode)
    return ApiResponse.success(data=viewer.render_detail().model_dump(mode="json"))
