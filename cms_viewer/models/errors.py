"""远程内容 API 的错误类型与结果封装"""
from enum import Enum
from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiErrorKind(str, Enum):
    """错误分类"""
    NETWORK_UNREACHABLE = "NetworkUnreachable"
    HTTP_ERROR = "HttpError"
    UNEXPECTED_FORMAT = "UnexpectedFormat"
    INVALID_CONTENT_TYPE = "InvalidContentType"
    CONFIGURATION_MISSING = "ConfigurationMissing"


class ApiError(BaseModel):
    """一次失败请求的描述"""
    kind: ApiErrorKind = Field(..., description="错误分类")
    status: Optional[int] = Field(None, description="HTTP 状态码，仅 HttpError 有值")
    message: str = Field(default="", description="便于排查的错误信息")

    @classmethod
    def http(cls, status: int, message: str = "") -> "ApiError":
        return cls(kind=ApiErrorKind.HTTP_ERROR, status=status, message=message or f"HTTP {status}")

    @classmethod
    def unreachable(cls, message: str = "") -> "ApiError":
        return cls(kind=ApiErrorKind.NETWORK_UNREACHABLE, message=message)

    @classmethod
    def unexpected_format(cls, message: str = "") -> "ApiError":
        return cls(kind=ApiErrorKind.UNEXPECTED_FORMAT, message=message)

    @classmethod
    def invalid_content_type(cls, content_type: str) -> "ApiError":
        return cls(kind=ApiErrorKind.INVALID_CONTENT_TYPE, message=f"无法解析内容类型: {content_type!r}")

    @classmethod
    def configuration_missing(cls, message: str = "") -> "ApiError":
        return cls(kind=ApiErrorKind.CONFIGURATION_MISSING, message=message or "尚未配置 API 地址")

    @property
    def is_setup_state(self) -> bool:
        """ConfigurationMissing 属于待配置状态，而非请求失败"""
        return self.kind == ApiErrorKind.CONFIGURATION_MISSING


class ApiResult(BaseModel, Generic[T]):
    """API 客户端的返回值：成功时带 value，失败时带 error，不抛异常"""
    value: Optional[T] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        """成功结果"""
        return cls(value=value)

    @classmethod
    def failure(cls, error: ApiError) -> "ApiResult[T]":
        """失败结果"""
        return cls(error=error)
