"""偏好设置 API 路由"""
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from cms_viewer.models.common import ApiResponse
from cms_viewer.services.viewer_session import ViewerSession
from cms_viewer.routers.deps import get_viewer

router = APIRouter()


@router.get("/settings", response_model=ApiResponse[dict])
async def get_settings(viewer: ViewerSession = Depends(get_viewer)):
    """当前偏好设置（camelCase，与持久化格式一致）"""
    return ApiResponse.success(data=viewer.viewer.to_storage())


@router.put("/settings", response_model=ApiResponse[dict])
async def update_settings(
    changes: Dict[str, Any] = Body(..., description="要修改的设置项，可只传部分字段"),
    viewer: ViewerSession = Depends(get_viewer),
):
    """保存设置；数据源、每页条数、排序变化时会重新加载"""
    try:
        updated = await viewer.update_settings(changes)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return ApiResponse.success(data=updated.to_storage(), message="设置已保存")
