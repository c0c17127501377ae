"""对话记录（Transcript）。

按顺序保存 system/user/assistant 消息，是“说过什么”的唯一来源。
除以下两种情况外只允许追加：
- 流式期间末尾 assistant 占位消息的内容增长；
- 流式失败且占位消息为空时移除它。
"""

from typing import List, Optional, Tuple

from chat_core.domain.exceptions import NotOpenForWriteError
from chat_core.domain.models import ROLES, Turn


class Transcript:
    def __init__(self, system_prompt: Optional[str] = None):
        self._turns: List[Turn] = []
        self.reset(system_prompt)

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, turn: Turn) -> Turn:
        if turn.role not in ROLES:
            raise ValueError(f"Unknown role: {turn.role!r}")
        self._turns.append(turn)
        return turn

    def open_placeholder(self) -> Turn:
        """追加一条空的 assistant 占位消息，供流式写入。"""

        return self.append(Turn(role="assistant", content="", open=True))

    def last_mutable(self) -> Turn:
        """返回末尾仍处于流式状态的 assistant 消息。"""

        if self._turns:
            last = self._turns[-1]
            if last.role == "assistant" and last.open:
                return last
        raise NotOpenForWriteError(
            code="NOT_OPEN_FOR_WRITE",
            message="trailing turn is not an open assistant turn",
        )

    def is_last(self, turn: Turn) -> bool:
        return bool(self._turns) and self._turns[-1] is turn

    def remove_last(self) -> Turn:
        return self._turns.pop()

    def reset(self, system_prompt: Optional[str] = None) -> None:
        self._turns = []
        if system_prompt:
            self._turns.append(Turn(role="system", content=system_prompt))

    def snapshot(self) -> Tuple[Turn, ...]:
        """返回只读视图：每条消息的副本，调用方修改不会影响内部状态。"""

        return tuple(Turn(role=t.role, content=t.content, open=t.open) for t in self._turns)

    def to_messages(self) -> List[dict]:
        """转为请求体中的 messages 列表。

        流式中的占位消息不会发给后端，请求始终基于追加占位之前的记录。
        """

        return [t.to_payload() for t in self._turns if not t.open]
