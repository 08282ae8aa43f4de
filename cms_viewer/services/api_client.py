"""内容 API 客户端：把 (内容类型, 页码, 过滤条件) 转为 REST 请求，并把失败归一为 ApiError"""
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import httpx
from pydantic import BaseModel

from cms_viewer.config import settings, EXCLUDED_CONTENT_TYPES
from cms_viewer.models.content import (
    ContentItem,
    ContentPage,
    ContentTypeDescriptor,
    PageCursor,
    clamp_page_size,
)
from cms_viewer.models.errors import ApiError, ApiResult
from cms_viewer.models.viewer import ApiSource
from cms_viewer.services.content_state import ALL
from cms_viewer.services.decoder import DECODE_ERRORS, decode_content_types, decode_item, decode_items
from cms_viewer.utils.http_client import HttpClient
from cms_viewer.utils.logger import logger

MEDIA_REST_BASE = "media"


class ListFilters(BaseModel):
    """列表请求的过滤与排序条件；值为 "all" 的分类/标签不发送"""
    category: Union[int, str] = ALL
    tag: Union[int, str] = ALL
    search: str = ""
    sort_descending: bool = True


class _RequestFailed(Exception):
    """内部使用：携带已归一化的 ApiError"""

    def __init__(self, error: ApiError):
        super().__init__(error.message)
        self.error = error


def types_endpoint(base_url: str) -> str:
    """
    由数据源地址推出类型发现接口地址

    https://example.org/wp-json/wp/v2 -> https://example.org/wp-json/wp/v2/types
    https://example.org               -> https://example.org/wp-json/wp/v2/types
    """
    base = base_url.rstrip("/")
    if "/wp-json/" in base + "/":
        root = base.split("/wp-json")[0] + "/wp-json"
    else:
        root = base + "/wp-json"
    return f"{root}/wp/v2/types"


class ContentApiClient:
    """远程内容 API 客户端，不修改任何共享状态，也不对 4xx/5xx 抛异常"""

    def __init__(
        self,
        nonce: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_count: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化客户端

        Args:
            nonce: 会话 nonce，非空时以 X-WP-Nonce 请求头发送
            timeout: 请求超时（秒）
            retry_count: 传输层总尝试次数
            transport: 自定义传输层（测试用）
        """
        self.nonce = settings.cms_nonce if nonce is None else nonce
        self.timeout = settings.cms_timeout if timeout is None else timeout
        self.retry_count = settings.cms_retry_count if retry_count is None else retry_count
        self.transport = transport
        self._clients: Dict[str, HttpClient] = {}
        # base_url -> {类型名: REST base}
        self._type_bases: Dict[str, Dict[str, str]] = {}

    def _client_for(self, source: ApiSource) -> HttpClient:
        """每个数据源地址复用一个 HttpClient"""
        if not source.is_configured:
            raise _RequestFailed(ApiError.configuration_missing(f"数据源 {source.id} 未配置地址"))
        base_url = source.base_url.rstrip("/")
        if base_url not in self._clients:
            headers = {"X-WP-Nonce": self.nonce} if self.nonce else None
            self._clients[base_url] = HttpClient(
                base_url=base_url,
                timeout=self.timeout,
                retry_count=self.retry_count,
                retry_delay=settings.cms_retry_delay,
                headers=headers,
                transport=self.transport,
            )
            logger.info(f"创建数据源客户端: {source.id} -> {base_url}")
        return self._clients[base_url]

    async def close(self):
        """关闭所有 HTTP 客户端"""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()

    @property
    def client_urls(self) -> List[str]:
        """当前持有客户端的数据源地址"""
        return list(self._clients)

    async def release_clients(self, keep: Iterable[ApiSource] = ()) -> None:
        """关闭并移除不在 keep 中的数据源客户端（切换数据源后调用）"""
        keep_urls = {source.base_url.rstrip("/") for source in keep}
        for base_url in [url for url in self._clients if url not in keep_urls]:
            await self._clients.pop(base_url).close()
            logger.info(f"释放数据源客户端: {base_url}")

    def register_type_bases(self, source: ApiSource, mapping: Dict[str, str]) -> None:
        """记录类型名到 REST base 的映射"""
        self._type_bases[source.base_url.rstrip("/")] = dict(mapping)

    def rest_base_for(self, source: ApiSource, content_type: str) -> str:
        """类型名对应的 REST base，没有映射时返回类型名本身"""
        mapping = self._type_bases.get(source.base_url.rstrip("/"), {})
        return mapping.get(content_type) or content_type

    def resolve_rest_base(self, source: ApiSource, content_type: str) -> str:
        """
        解析内容类型的 REST base；未在映射中时直接用类型名

        Raises:
            _RequestFailed: 类型名为空
        """
        content_type = (content_type or "").strip().strip("/")
        if not content_type:
            raise _RequestFailed(ApiError.invalid_content_type(content_type))
        return self.rest_base_for(source, content_type)

    async def _fetch_json(
        self, source: ApiSource, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[Any, httpx.Response]:
        """发送 GET 并解析 JSON，任何失败都转为 _RequestFailed"""
        client = self._client_for(source)
        try:
            response = await client.get(endpoint, params=params)
        except httpx.HTTPStatusError as e:
            raise _RequestFailed(ApiError.http(e.response.status_code, f"{e.request.url} -> {e.response.status_code}"))
        except httpx.RequestError as e:
            raise _RequestFailed(ApiError.unreachable(f"{type(e).__name__}: {e}"))

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type.lower():
            raise _RequestFailed(ApiError.unexpected_format(f"响应不是 JSON: {content_type or '未声明'}"))
        try:
            return response.json(), response
        except ValueError as e:
            raise _RequestFailed(ApiError.unexpected_format(f"JSON 解析失败: {e}"))

    def build_list_params(self, rest_base: str, cursor: PageCursor, filters: ListFilters) -> Dict[str, Any]:
        """构建列表查询参数，每页条数先限制在 [1, 20]"""
        params: Dict[str, Any] = {
            "_embed": "true",
            "per_page": clamp_page_size(cursor.page_size),
            "page": cursor.page,
            "orderby": "date",
            "order": "desc" if filters.sort_descending else "asc",
        }
        if rest_base == MEDIA_REST_BASE:
            params["media_type"] = "image"
        else:
            params["acf"] = 1
        if filters.search.strip():
            params["search"] = filters.search.strip()
        if filters.category != ALL:
            params["categories"] = filters.category
        if filters.tag != ALL:
            params["tags"] = filters.tag
        return params

    async def list_content(
        self,
        source: ApiSource,
        content_type: str,
        cursor: PageCursor,
        filters: Optional[ListFilters] = None,
    ) -> ApiResult[ContentPage]:
        """
        拉取一页内容

        Args:
            source: 数据源
            content_type: 内容类型名
            cursor: 分页游标
            filters: 过滤与排序条件

        Returns:
            ApiResult[ContentPage]，total_pages 来自 X-WP-TotalPages（缺省为 1）
        """
        filters = filters or ListFilters()
        try:
            rest_base = self.resolve_rest_base(source, content_type)
            params = self.build_list_params(rest_base, cursor, filters)
            data, response = await self._fetch_json(source, f"/{rest_base}", params)
        except _RequestFailed as e:
            logger.warning(f"拉取列表失败 source={source.id}, type={content_type}, page={cursor.page}: {e.error.kind.value} {e.error.message}")
            return ApiResult.failure(e.error)

        if not isinstance(data, list):
            logger.warning(f"列表响应不是数组 source={source.id}, type={content_type}")
            return ApiResult.failure(ApiError.unexpected_format("列表响应不是数组"))

        try:
            items = decode_items(data, content_type, source.id, rest_base)
            page = ContentPage(
                items=items,
                total_pages=_header_int(response, "X-WP-TotalPages", 1),
                total_items=_header_int(response, "X-WP-Total", len(data)),
            )
        except Exception as e:
            logger.exception(f"列表响应解码失败 source={source.id}, type={content_type}, page={cursor.page}: {e}")
            return ApiResult.failure(ApiError.unexpected_format(f"{type(e).__name__}: {e}"))

        logger.info(
            f"拉取列表成功 source={source.id}, type={content_type}, page={cursor.page}, "
            f"条数={len(items)}, 总页数={page.total_pages}"
        )
        return ApiResult.success(page)

    async def get_item(self, source: ApiSource, content_type: str, item_id: int) -> ApiResult[ContentItem]:
        """拉取单条内容的完整表示"""
        try:
            rest_base = self.resolve_rest_base(source, content_type)
            data, _ = await self._fetch_json(source, f"/{rest_base}/{int(item_id)}", {"_embed": "true"})
            item = decode_item(data, content_type, source.id, rest_base)
        except _RequestFailed as e:
            logger.warning(f"拉取详情失败 source={source.id}, type={content_type}, id={item_id}: {e.error.kind.value} {e.error.message}")
            return ApiResult.failure(e.error)
        except DECODE_ERRORS as e:
            logger.warning(f"详情响应格式错误 source={source.id}, type={content_type}, id={item_id}: {type(e).__name__}: {e}")
            return ApiResult.failure(ApiError.unexpected_format(f"{type(e).__name__}: {e}"))
        except Exception as e:
            logger.exception(f"拉取详情出现意外错误 source={source.id}, type={content_type}, id={item_id}: {e}")
            return ApiResult.failure(ApiError.unexpected_format(f"{type(e).__name__}: {e}"))
        return ApiResult.success(item)

    async def list_content_types(self, source: ApiSource) -> ApiResult[List[ContentTypeDescriptor]]:
        """
        发现数据源的内容类型，过滤掉系统内部类型与没有 REST base 的类型，
        成功后记录类型名到 REST base 的映射
        """
        try:
            data, _ = await self._fetch_json(source, types_endpoint(source.base_url))
            types = decode_content_types(data, EXCLUDED_CONTENT_TYPES)
        except _RequestFailed as e:
            logger.warning(f"获取内容类型失败 source={source.id}: {e.error.kind.value} {e.error.message}")
            return ApiResult.failure(e.error)
        except DECODE_ERRORS as e:
            logger.warning(f"内容类型响应格式错误 source={source.id}: {e}")
            return ApiResult.failure(ApiError.unexpected_format(str(e)))

        self.register_type_bases(source, {t.name: t.rest_base for t in types})
        logger.info(f"数据源 {source.id} 可用内容类型: {[t.name for t in types]}")
        return ApiResult.success(types)


def _header_int(response: httpx.Response, name: str, default: int) -> int:
    try:
        return int(response.headers.get(name, ""))
    except ValueError:
        return default
