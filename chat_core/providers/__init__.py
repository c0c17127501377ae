"""Provider 适配层。

该包下的模块负责：
- 定义适配器抽象接口 (base)。
- 维护后端预设 (registry)。
- 提供两种方言的具体实现 (native_stream、sse_compatible)。
"""

from typing import Dict, Type

from chat_core.domain.exceptions import ConfigError
from chat_core.domain.models import ProviderConfig
from chat_core.providers.base import ProviderAdapter
from chat_core.providers.native_stream import NativeStreamAdapter
from chat_core.providers.sse_compatible import SseCompatibleAdapter


ADAPTERS: Dict[str, Type[ProviderAdapter]] = {
    NativeStreamAdapter.dialect: NativeStreamAdapter,
    SseCompatibleAdapter.dialect: SseCompatibleAdapter,
}


def create_adapter(config: ProviderConfig) -> ProviderAdapter:
    """根据 config.dialect 创建对应的适配器实例。"""

    adapter_cls = ADAPTERS.get(config.dialect)
    if adapter_cls is None:
        raise ConfigError(code="UNKNOWN_DIALECT", message=f"Unknown dialect: {config.dialect!r}")
    return adapter_cls(config)


__all__ = [
    "ADAPTERS",
    "NativeStreamAdapter",
    "ProviderAdapter",
    "SseCompatibleAdapter",
    "create_adapter",
]
