"""HTTP客户端封装"""
import asyncio
from typing import Dict, Any, Optional
import httpx
from cms_viewer.utils.logger import logger


class HttpClient:
    """异步HTTP客户端"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15,
        retry_count: int = 1,
        retry_delay: float = 1.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化HTTP客户端

        Args:
            base_url: API基础URL
            timeout: 请求超时时间（秒）
            retry_count: 总尝试次数，1 表示不重试
            retry_delay: 重试延迟（秒）
            headers: 每个请求都携带的请求头（如 X-WP-Nonce）
            transport: 自定义传输层（测试时注入 httpx.MockTransport）
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_count = max(1, retry_count)
        self.retry_delay = retry_delay
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "application/json", **(headers or {})},
            transport=transport,
        )

    async def close(self):
        """关闭客户端"""
        await self.client.aclose()

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        发送GET请求

        Args:
            endpoint: API端点（相对路径，或完整 URL）
            params: 查询参数
            headers: 请求头

        Returns:
            状态码为 2xx 的响应（调用方自行读取 JSON 与分页头）

        Raises:
            httpx.HTTPStatusError: 非 2xx 状态
            httpx.RequestError: 网络错误或超时
        """
        url = endpoint if endpoint.startswith(("http://", "https://")) else f"{self.base_url}{endpoint}"
        last_exception = None

        for attempt in range(self.retry_count):
            try:
                logger.debug(f"GET请求: {url}, 参数: {params}, 尝试次数: {attempt + 1}")
                response = await self.client.get(
                    url,
                    params=params,
                    headers=headers,
                )
                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP状态错误: {e.response.status_code}, 地址: {url}")
                last_exception = e
                if e.response.status_code < 500:  # 4xx错误不重试
                    raise

            except httpx.RequestError as e:
                logger.warning(f"请求错误: {e!r}, 尝试次数: {attempt + 1}/{self.retry_count}")
                last_exception = e

            if attempt < self.retry_count - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        # 所有重试都失败
        raise last_exception
