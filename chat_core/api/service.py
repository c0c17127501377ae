"""对外便捷服务模块。

把预设、配置文件与调用方参数合并成 ProviderConfig，
并提供简化的函数接口供上层应用调用。
"""

import asyncio
from typing import Any, Callable, Optional

from chat_core.config.settings import settings
from chat_core.domain.exceptions import ConfigError
from chat_core.domain.models import DIALECTS, ProviderConfig
from chat_core.engine import ChatEngine
from chat_core.infrastructure.logging.logger import logger
from chat_core.providers.registry import get_provider_preset


def build_provider_config(provider: Optional[str] = None, **overrides: Any) -> ProviderConfig:
    """合并预设、settings 与显式参数，优先级依次升高。

    Args:
        provider: 预设名称（可选，默认取 settings.chat_provider）
        overrides: base_url / model / api_key / dialect / system_prompt 中的任意项

    settings 中的 chat_* 覆盖项只作用于 settings.chat_provider 指定的预设。
    """
    preset = get_provider_preset(provider or settings.chat_provider)
    use_settings = preset.name == settings.chat_provider.lower()

    def pick(key: str, default: Any) -> Any:
        value = overrides.get(key)
        if value is None and use_settings:
            value = getattr(settings, f"chat_{key}", None)
        return default if value is None else value

    dialect = pick("dialect", preset.dialect)
    if dialect not in DIALECTS:
        raise ConfigError(code="UNKNOWN_DIALECT", message=f"Unknown dialect: {dialect!r}")
    config = ProviderConfig(
        base_url=pick("base_url", preset.base_url),
        model=pick("model", preset.model),
        dialect=dialect,
        api_key=pick("api_key", None),
        system_prompt=pick("system_prompt", None),
    )
    if preset.requires_api_key and not config.api_key:
        logger.warning(f"No API key configured for provider {preset.name!r}")
    return config


def create_engine(provider: Optional[str] = None, **overrides: Any) -> ChatEngine:
    """按预设创建 ChatEngine，HTTP 超时取自 settings.http_timeout。"""

    config = build_provider_config(provider, **overrides)
    return ChatEngine(config, timeout=settings.http_timeout)


def chat_once(
    text: str,
    provider: Optional[str] = None,
    on_fragment: Optional[Callable[[str], Any]] = None,
    **overrides: Any,
) -> str:
    """同步执行一次完整对话并返回回复文本。

    Raises:
        各种 domain.exceptions 中定义的异常
    """

    async def _run() -> str:
        async with create_engine(provider, **overrides) as engine:
            result = await engine.send(text, on_fragment=on_fragment)
            return result.content

    try:
        return asyncio.run(_run())
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {"provider": provider, "error": str(e)}})
        raise
