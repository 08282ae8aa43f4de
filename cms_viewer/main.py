"""FastAPI应用入口"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from cms_viewer.config import settings
from cms_viewer.routers import feed, detail, settings as settings_router
from cms_viewer.database import close_db
from cms_viewer.utils.logger import logger
from cms_viewer.models.common import ApiResponse

# 创建FastAPI应用
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="CMS REST API 内容查看器：分页加载、过滤、多视图渲染与详情浮层",
    docs_url="/docs",
    redoc_url="/redoc",
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(feed.router, prefix="/api/v1", tags=["内容列表"])
app.include_router(detail.router, prefix="/api/v1", tags=["内容详情"])
app.include_router(settings_router.router, prefix="/api/v1", tags=["偏好设置"])


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """全局异常处理器"""
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ApiResponse.error(
            code=500,
            message="服务器内部错误",
            data=None
        ).model_dump()
    )


@app.on_event("startup")
async def startup_event():
    """应用启动事件"""
    logger.info(f"{settings.app_name} v{settings.app_version} 启动成功")
    logger.info(f"API文档地址: http://{settings.host}:{settings.port}/docs")

    from cms_viewer.services.settings_store import SettingsStore
    from cms_viewer.services.viewer_session import ViewerSession

    # 初始化数据库（可选，失败时设置只保存在内存中）
    session_factory = None
    try:
        from cms_viewer import database
        database.init_database_engine()
        await database.init_db()
        session_factory = database.AsyncSessionLocal
        logger.info("数据库连接成功，偏好设置将持久化")
    except Exception as e:
        logger.warning(f"数据库初始化失败（偏好设置只保存在内存中）: {e}")

    if getattr(app.state, "viewer", None) is None:
        app.state.viewer = ViewerSession(SettingsStore(session_factory))

    outcome = await app.state.viewer.start()
    logger.info(f"首屏加载: {outcome.status.value}, 条数={outcome.added}")


@app.on_event("shutdown")
async def shutdown_event():
    """应用关闭事件"""
    logger.info(f"{settings.app_name} 正在关闭...")
    viewer = getattr(app.state, "viewer", None)
    if viewer is not None:
        await viewer.close()
    await close_db()


@app.get("/")
async def root():
    """根路径"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health")
async def health_check():
    """健康检查"""
    return {"status": "healthy"}
