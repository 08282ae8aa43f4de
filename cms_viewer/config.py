"""配置管理模块"""
from pydantic_settings import BaseSettings
from typing import Dict, Any, List
import json


# 站点内部类型（模板、导航、字体等），不对访客展示
EXCLUDED_CONTENT_TYPES = (
    "nav_menu_item",
    "wp_template",
    "wp_template_part",
    "wp_global_styles",
    "wp_navigation",
    "wp_font_family",
    "wp_font_face",
    "blocks",
    "block-types",
)

# 类型发现失败时的兜底类型（名称即 REST base）
FALLBACK_CONTENT_TYPES = ("posts", "pages", "media")

# 每页条数范围
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 20


def _default_api_sources() -> List[Dict[str, Any]]:
    """默认 API 数据源（current / parent 的 url 在运行时解析）"""
    return [
        {"id": "current", "name": "Current Site", "url": ""},
        {"id": "parent", "name": "Parent Site", "url": ""},
        {"id": "svagency", "name": "SV Agency", "url": "https://sv.agency/wp-json/wp/v2"},
        {"id": "maxfx", "name": "MaxFX", "url": "https://maxfx.local/wp-json/wp/v2"},
        {"id": "coingeek", "name": "CoinGeek", "url": "https://coingeek.com/wp-json/wp/v2"},
    ]


class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    app_name: str = "CMS Content Viewer"
    app_version: str = "1.0.0"
    debug: bool = False

    # 服务器配置
    host: str = "0.0.0.0"
    port: int = 8000

    # 宿主站点注入的 REST API 地址与 nonce，如 https://example.org/wp-json/wp/v2
    cms_api_base_url: str = ""
    cms_nonce: str = ""
    cms_timeout: int = 15
    cms_retry_count: int = 1  # 1 表示不重试
    cms_retry_delay: float = 1.0

    # 日志配置
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    # 数据库配置（db_url 非空时优先使用）
    db_url: str = ""
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "cms_viewer"
    db_charset: str = "utf8mb4"

    # 用户偏好存储键
    settings_storage_key: str = "wpApiViewerSettings"

    # API 数据源（JSON 数组，可覆盖默认列表）
    # 每项: {"id":"xxx","name":"xxx","url":"https://.../wp-json/wp/v2"}
    api_sources: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# 全局配置实例
settings = Settings()


def get_database_url() -> str:
    """获取数据库连接地址"""
    if settings.db_url:
        return settings.db_url
    return (
        f"mysql+aiomysql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}?charset={settings.db_charset}"
    )


def get_api_sources() -> List[Dict[str, Any]]:
    """获取 API 数据源列表（支持 .env 中 API_SOURCES JSON 覆盖默认）"""
    if not settings.api_sources or not settings.api_sources.strip():
        return _default_api_sources()

    # logger 依赖 settings，这里延迟导入
    from cms_viewer.utils.logger import logger
    try:
        sources = json.loads(settings.api_sources)
    except json.JSONDecodeError as e:
        logger.warning(f"API_SOURCES 不是合法 JSON，使用默认数据源: {e}")
        return _default_api_sources()
    if not isinstance(sources, list):
        logger.warning(f"API_SOURCES 不是 JSON 数组，使用默认数据源: {type(sources).__name__}")
        return _default_api_sources()
    return sources


def derive_parent_url(current_url: str) -> str:
    """由当前站点地址推出父站点地址：去掉 /wp-json/wp/v2 与最后一段路径"""
    if not current_url:
        return ""
    base = current_url.rstrip("/")
    if base.endswith("/wp-json/wp/v2"):
        base = base[: -len("/wp-json/wp/v2")]
    head, sep, _tail = base.rpartition("/")
    if sep and "://" in head:
        base = head
    return f"{base}/wp-json/wp/v2"
