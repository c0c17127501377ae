"""Provider 适配器抽象。

引擎不直接感知具体后端的线协议，而是依赖此接口：

- 每种方言实现一个 ProviderAdapter（native-stream / sse-compatible）。
- 负责：把 Transcript 转成 HTTP 请求，以及从响应流的单行中提取增量文本。

两种方言的差异（分帧方式、payload 形状）全部收敛在子类里，
引擎只调用 build_request / extract_fragment 两个方法。
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional

from chat_core.domain.exceptions import DecodeError
from chat_core.domain.models import PreparedRequest, ProviderConfig
from chat_core.domain.transcript import Transcript
from chat_core.infrastructure.logging.logger import log_event


class ProviderAdapter(ABC):
    """方言适配器基类。

    子类需要提供：
    - dialect: 方言标识。
    - endpoint: 固定的接口后缀，如 "/api/chat"。
    - extract_fragment(line): 从一行原始响应中取出增量文本。
    """

    dialect: ClassVar[str]
    endpoint: ClassVar[str]

    def __init__(self, config: ProviderConfig):
        self._config = config

    def build_request(self, transcript: Transcript) -> PreparedRequest:
        """根据当前 Transcript 构造请求（url/headers/body）。"""

        return PreparedRequest(
            url=self.build_url(),
            headers=self.build_headers(),
            body={
                "model": self._config.model,
                "stream": True,
                "messages": transcript.to_messages(),
            },
        )

    def build_url(self) -> str:
        """去掉 base_url 末尾的斜杠，再拼接方言后缀（已带后缀则原样返回）。"""

        base = self._config.base_url.rstrip("/")
        if base.endswith(self.endpoint):
            return base
        return base + self.endpoint

    def build_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    @abstractmethod
    def extract_fragment(self, raw_line: str) -> Optional[str]:
        """返回该行携带的非空增量文本，没有则返回 None。"""

        ...

    def _parse_json(self, payload: str) -> Any:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise DecodeError(code="DECODE_ERROR", message=str(e), line=payload)

    def _parse_or_skip(self, payload: str) -> Optional[Dict[str, Any]]:
        """解析 JSON；失败时记录告警并跳过该行，流式不中断。"""

        try:
            data = self._parse_json(payload)
        except DecodeError as e:
            log_event(
                logging.WARNING,
                "Skipped malformed stream line",
                {"dialect": self.dialect},
                error=e.message,
                line=payload[:200],
            )
            return None
        return data if isinstance(data, dict) else None


def non_empty_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None
