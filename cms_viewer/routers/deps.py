"""路由依赖"""
from fastapi import HTTPException, Request

from cms_viewer.services.viewer_session import ViewerSession


def get_viewer(request: Request) -> ViewerSession:
    """获取应用级查看器会话；启动未完成时返回 503"""
    viewer = getattr(request.app.state, "viewer", None)
    if viewer is None:
        raise HTTPException(status_code=503, detail="查看器尚未初始化")
    return viewer
