"""统一异常模型。

引擎对外报告的错误都继承自 ChatCoreError，
便于调用方（UI 绑定层、服务层）按 code 统一捕获与提示。
"""

from typing import Optional


class ChatCoreError(Exception):
    """异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 对应的 HTTP 状态码（仅 HTTP 层错误有值）。
        extra: 其他补充字段（例如 exchange_id、url 等）。
    """

    def __init__(self, code: str, message: str, http_status: Optional[int] = None, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(ChatCoreError):
    """网络层错误：连接失败、DNS 失败、读流中断或外部中止。"""


class HttpStatusError(ChatCoreError):
    """服务端返回非 2xx 状态码。"""


class RateLimitError(HttpStatusError):
    """服务端返回 429，不做自动重试，由上层决定退避策略。"""


class EmptyBodyError(ChatCoreError):
    """状态码成功但没有可读取的响应体。"""


class DecodeError(ChatCoreError):
    """单行响应不是合法 JSON，只在 Adapter 内部被捕获并跳过。"""


class ConcurrentExchangeError(ChatCoreError):
    """同一个引擎上已有一次交换在进行中。"""


class NotOpenForWriteError(ChatCoreError):
    """试图写入一条不处于流式状态的消息，属于程序缺陷。"""


class ConfigError(ChatCoreError):
    """方言或预设名称无法识别。"""
