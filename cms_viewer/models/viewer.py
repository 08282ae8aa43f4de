"""查看器偏好设置与数据源模型"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cms_viewer.models.content import clamp_page_size


class MainViewMode(str, Enum):
    """主视图模式"""
    FEED = "feed"
    GRID = "grid"
    CAROUSEL = "carousel"


class ItemSize(str, Enum):
    """条目尺寸"""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class ContentViewMode(str, Enum):
    """详情内容视图模式"""
    PAGE = "page"
    GRID = "grid"
    CAROUSEL = "carousel"


CUSTOM_SOURCE_ID = "custom"


class ViewerSettings(BaseModel):
    """
    用户可调整的查看偏好，持久化为一个 JSON（camelCase 键）。
    所有字段都有默认值，保存前整体校验，避免写入不完整的结构。
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=False)

    api_base_url: str = Field(default="", description="当前站点 API 地址")
    items_per_page: int = Field(default=5, description="每页条数，1~20")
    sort_descending: bool = Field(default=True, description="按日期倒序")
    main_view_mode: MainViewMode = MainViewMode.FEED
    item_size: ItemSize = ItemSize.MEDIUM
    content_view_mode: ContentViewMode = ContentViewMode.PAGE
    load_more_enabled: bool = Field(default=True, description="滚动到底部时自动加载")
    api_source: str = Field(default="current", description="数据源 ID 或 custom")
    custom_api_url: Optional[str] = Field(None, description="自定义 API 地址")

    @field_validator("items_per_page", mode="before")
    @classmethod
    def _clamp_items_per_page(cls, v):
        return clamp_page_size(v)

    @field_validator("api_source", mode="before")
    @classmethod
    def _default_api_source(cls, v):
        return v or "current"

    def to_storage(self) -> dict:
        """转为持久化用的 camelCase 字典"""
        return self.model_dump(mode="json", by_alias=True)


class ApiSource(BaseModel):
    """一个可选的 API 数据源"""
    id: str = Field(..., description="数据源 ID")
    name: str = Field(default="", description="显示名称")
    base_url: str = Field(default="", description="REST API 地址，如 https://example.org/wp-json/wp/v2")

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)
