"""基于 httpx 的默认传输实现。

本模块负责：

1. 用 httpx.AsyncClient 以流式方式发出 POST 请求。
2. 把 httpx 的网络异常统一包装成 TransportError。
3. 暴露响应状态与字节流，读取过程中的异常同样包装为 TransportError。

超时策略属于调用方关心的事，这里只透传构造时给定的 timeout。
"""

from typing import Any, AsyncIterator, Dict, Optional

import httpx

from chat_core.domain.exceptions import TransportError


class HttpxResponse:
    """把 httpx.Response 适配为 TransportResponse。"""

    def __init__(self, response: httpx.Response):
        self._response = response
        self.status_code = response.status_code
        self.reason_phrase = response.reason_phrase
        self.body: Optional[AsyncIterator[bytes]] = self._iter_body()

    @property
    def ok(self) -> bool:
        return self._response.is_success

    async def _iter_body(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                if chunk:
                    yield chunk
        except (httpx.TransportError, httpx.StreamError) as e:
            # 读流中断：连接被重置、对端提前关闭等
            raise TransportError(code="STREAM_ERROR", message=str(e) or type(e).__name__) from e

    async def aclose(self) -> None:
        if self.body is not None:
            await self.body.aclose()
        await self._response.aclose()


class HttpxTransport:
    """默认 Transport 实现。

    - client: 可注入的 httpx.AsyncClient（测试时配合 httpx.MockTransport 使用）；
      未注入时按需创建，并在 aclose() 时关闭。
    - timeout: 透传给 httpx 的超时（秒），None 表示不限制。
    """

    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, trust_env=False)
        return self._client

    async def post(self, url: str, headers: Dict[str, str], json_body: Dict[str, Any]) -> HttpxResponse:
        client = self._get_client()
        request = client.build_request("POST", url, json=json_body, headers=headers)
        try:
            response = await client.send(request, stream=True)
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝、超时等
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, url=url) from e
        return HttpxResponse(response)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
