"""统一的对话数据模型。

本模块定义了引擎、Provider 适配层与调用方共享的标准数据结构：

- Turn: 一条对话消息（system/user/assistant）。
- ProviderConfig: 引擎生命周期内不可变的后端配置。
- PreparedRequest: Adapter 根据 Transcript 构造出的 HTTP 请求。
- Exchange: 单次 send 调用期间的临时状态。
- ChatEvent / SendResult: 对外通知与返回值。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Literal, Optional

from chat_core.domain.exceptions import NotOpenForWriteError


# 消息角色是封闭集合，与各家 API 的 role 字段一一对应
Role = Literal["system", "user", "assistant"]
ROLES = ("system", "user", "assistant")

# 线协议方言：Ollama 风格的 JSON 行 / OpenAI 兼容的 SSE
Dialect = Literal["native-stream", "sse-compatible"]
DIALECTS = ("native-stream", "sse-compatible")


@dataclass
class Turn:
    """一条对话消息。

    - role: 消息角色。
    - content: 纯文本内容。
    - open: 仅占位的 assistant 消息在流式期间为 True，此时允许追加内容；
      其余消息一旦写入 Transcript 即不可变。
    """

    role: Role
    content: str
    open: bool = False

    def append(self, fragment: str) -> None:
        """向流式占位消息追加增量，内容只增不改。"""

        if not self.open or self.role != "assistant":
            raise NotOpenForWriteError(
                code="NOT_OPEN_FOR_WRITE",
                message=f"{self.role} turn is not open for streaming",
            )
        self.content += fragment

    def close(self) -> None:
        self.open = False

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ProviderConfig:
    """某个后端的完整配置，构造后不可修改。"""

    base_url: str
    model: str
    dialect: Dialect
    api_key: Optional[str] = None
    system_prompt: Optional[str] = None


@dataclass
class PreparedRequest:
    """Adapter 输出的请求三元组，交给 Transport 发出。"""

    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]


class ExchangeState(str, Enum):
    """单次交换的状态机：Idle → Sending → Streaming → {Completed, Failed}。"""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def busy(self) -> bool:
        return self in (ExchangeState.SENDING, ExchangeState.STREAMING)


@dataclass
class Exchange:
    """一次 send 调用的临时状态，只归创建它的那次调用所有。"""

    id: str
    placeholder: Turn
    fragment_count: int = 0
    error: Optional[Exception] = None
    completed: bool = False
    aborted: bool = False
    cancel_requested: bool = False

    @property
    def has_content(self) -> bool:
        return bool(self.placeholder.content)


@dataclass
class ChatEvent:
    """引擎发出的通知事件。

    kind:
        - "fragment": 收到一段增量文本。
        - "state": 状态机发生迁移。
        - "error": 本次交换报告了错误。
    """

    kind: Literal["fragment", "state", "error"]
    exchange_id: Optional[str]
    state: ExchangeState
    fragment: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class SendResult:
    """send 成功时的返回值。"""

    content: str
    fragment_count: int
    elapsed_seconds: float
    state: ExchangeState = ExchangeState.COMPLETED
