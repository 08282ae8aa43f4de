"""数据模型模块"""
from cms_viewer.models.common import ApiResponse
from cms_viewer.models.content import (
    ContentItem,
    ContentPage,
    ContentTypeDescriptor,
    CustomField,
    FeaturedImage,
    FieldKind,
    PageCursor,
    Term,
)
from cms_viewer.models.errors import ApiError, ApiErrorKind, ApiResult
from cms_viewer.models.view import ViewNode
from cms_viewer.models.viewer import ApiSource, ContentViewMode, ItemSize, MainViewMode, ViewerSettings

__all__ = [
    "ApiResponse",
    "ContentItem",
    "ContentPage",
    "ContentTypeDescriptor",
    "CustomField",
    "FeaturedImage",
    "FieldKind",
    "PageCursor",
    "Term",
    "ApiError",
    "ApiErrorKind",
    "ApiResult",
    "ViewNode",
    "ApiSource",
    "ContentViewMode",
    "ItemSize",
    "MainViewMode",
    "ViewerSettings",
]
