"""对话引擎。"""

from chat_core.engine.chat_engine import ChatEngine

__all__ = ["ChatEngine"]
