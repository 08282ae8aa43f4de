"""内容数据模型"""
from enum import Enum
from typing import Any, List, Optional, Tuple
from datetime import datetime
from pydantic import BaseModel, Field

from cms_viewer.config import MIN_PAGE_SIZE, MAX_PAGE_SIZE


class Term(BaseModel):
    """分类 / 标签"""
    id: int = Field(..., description="分类或标签 ID")
    name: str = Field(default="", description="显示名称")


class FeaturedImage(BaseModel):
    """特色图片（来自嵌入的 wp:featuredmedia）"""
    url: str = Field(..., description="图片地址")
    alt: str = Field(default="", description="替代文本")
    title: str = Field(default="", description="媒体标题")
    caption: str = Field(default="", description="媒体说明（HTML）")


class FieldKind(str, Enum):
    """自定义字段类型"""
    TEXT = "text"
    LINK = "link"
    MEDIA = "media"
    DATE = "date"
    LOCATION = "location"
    UNKNOWN = "unknown"


class CustomField(BaseModel):
    """解析后的自定义字段（ACF），在解码阶段一次性确定类型"""
    key: str = Field(..., description="字段名")
    label: str = Field(..., description="显示用字段名")
    kind: FieldKind = Field(..., description="字段类型")
    text: str = Field(default="", description="文本值或链接文字")
    url: Optional[str] = Field(None, description="Link / Media 地址")
    thumbnail: Optional[str] = Field(None, description="Media 缩略图")
    date: Optional[datetime] = Field(None, description="Date 值")
    lat: Optional[float] = Field(None, description="Location 纬度")
    lng: Optional[float] = Field(None, description="Location 经度")
    address: Optional[str] = Field(None, description="Location 地址")


class ContentItem(BaseModel):
    """远程 API 返回的单条内容"""
    id: int = Field(..., description="内容 ID，仅在 (内容类型, 数据源) 内唯一")
    content_type: str = Field(..., description="所属内容类型")
    source_id: str = Field(default="", description="所属数据源 ID")
    title: str = Field(default="Untitled", description="标题（HTML）")
    excerpt: str = Field(default="", description="摘要（HTML）")
    content: str = Field(default="", description="正文（HTML）")
    date: Optional[datetime] = Field(None, description="发布时间")
    modified: Optional[datetime] = Field(None, description="修改时间")
    slug: str = ""
    status: str = ""
    link: str = ""
    format: str = ""
    template: str = ""
    author_name: Optional[str] = None
    categories: List[Term] = Field(default_factory=list)
    tags: List[Term] = Field(default_factory=list)
    featured_image: Optional[FeaturedImage] = None
    sticky: bool = False
    password: bool = Field(default=False, description="受密码保护，正文不可渲染")
    custom_fields: List[CustomField] = Field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str, int]:
        """带作用域的唯一标识"""
        return (self.source_id, self.content_type, self.id)

    @property
    def category_ids(self) -> set:
        return {c.id for c in self.categories}

    @property
    def tag_ids(self) -> set:
        return {t.id for t in self.tags}


class ContentTypeDescriptor(BaseModel):
    """内容类型描述（来自 /types 接口）"""
    name: str = Field(..., description="类型名，如 post")
    rest_base: str = Field(..., description="REST base，如 posts")
    label: str = Field(default="", description="显示名称")
    description: str = ""
    hierarchical: bool = False
    viewable: bool = True


class PageCursor(BaseModel):
    """分页游标"""
    page: int = Field(default=1, ge=1, description="下一次请求的页码")
    page_size: int = Field(default=5, description="每页条数")

    def advance(self) -> None:
        """成功拉取一页后前进一页"""
        self.page += 1


def clamp_page_size(value: Any) -> int:
    """将每页条数限制在 [1, 20]"""
    try:
        size = int(value)
    except (TypeError, ValueError):
        return MIN_PAGE_SIZE
    return max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, size))


class ContentPage(BaseModel):
    """一页列表结果"""
    items: List[ContentItem] = Field(default_factory=list)
    total_pages: int = Field(default=1, description="X-WP-TotalPages")
    total_items: int = Field(default=0, description="X-WP-Total")
