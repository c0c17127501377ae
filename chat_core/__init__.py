"""Chat Core 顶层包。

该包提供面向流式 LLM 对话接口的统一客户端抽象，
包括对话记录、方言适配、响应流解码、对话引擎与便捷服务函数。
"""

from chat_core.domain.models import ChatEvent, ExchangeState, ProviderConfig, SendResult, Turn
from chat_core.engine import ChatEngine

__all__ = ["ChatEngine", "ChatEvent", "ExchangeState", "ProviderConfig", "SendResult", "Turn"]
