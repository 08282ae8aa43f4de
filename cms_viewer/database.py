"""数据库连接和会话管理"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from cms_viewer.config import settings, get_database_url
from cms_viewer.utils.logger import logger

# 创建基础模型类（先创建，避免循环导入）
Base = declarative_base()

# 延迟初始化数据库引擎（在需要时创建）
engine = None
AsyncSessionLocal = None


def init_database_engine(url: str = ""):
    """初始化数据库引擎（延迟初始化）"""
    global engine, AsyncSessionLocal

    if engine is not None:
        return

    database_url = url or get_database_url()
    try:
        options = {"echo": settings.debug}
        if not database_url.startswith("sqlite"):
            options.update(pool_pre_ping=True, pool_recycle=3600)
        engine = create_async_engine(database_url, **options)

        # 创建异步会话工厂
        AsyncSessionLocal = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

        logger.info("数据库引擎初始化成功")
    except Exception as e:
        logger.warning(f"数据库引擎初始化失败: {e}")
        raise


async def init_db():
    """初始化数据库，创建所有表"""
    from cms_viewer.models import db_models  # noqa: F401  # 确保 viewer_settings 表已注册
    if engine is None:
        init_database_engine()

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("数据库表创建完成")
    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise


async def close_db():
    """关闭数据库连接"""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        engine = None
        AsyncSessionLocal = None
        logger.info("数据库连接已关闭")
