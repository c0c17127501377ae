"""传输层抽象接口。

引擎只依赖这里的形状，不依赖具体 HTTP 库：

- Transport.post(url, headers, json_body) 发出请求并返回 TransportResponse。
- TransportResponse.body 是按到达顺序产出字节块的异步迭代器（可能为 None）。
- 无论成功失败，引擎都会调用 TransportResponse.aclose() 释放连接。
"""

from typing import Any, AsyncIterator, Dict, Optional, Protocol


class TransportResponse(Protocol):
    status_code: int
    reason_phrase: str
    body: Optional[AsyncIterator[bytes]]

    @property
    def ok(self) -> bool:
        ...

    async def aclose(self) -> None:
        ...


class Transport(Protocol):
    async def post(self, url: str, headers: Dict[str, str], json_body: Dict[str, Any]) -> TransportResponse:
        ...
