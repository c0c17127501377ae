"""Provider 预设配置。

把“预设名”与“方言 + 默认地址 + 默认模型”集中在一处：

- 预设名（name）：调用方使用的名称，例如 "ollama"。
- dialect：该后端使用的线协议。

调用方只关心预设名，具体地址和模型由这里集中配置，便于后续切换。"""

from dataclasses import dataclass
from typing import Mapping

from chat_core.domain.exceptions import ConfigError
from chat_core.domain.models import Dialect


@dataclass(frozen=True)
class ProviderPreset:
    """某个后端的默认配置。"""

    name: str
    dialect: Dialect
    base_url: str
    model: str
    requires_api_key: bool


# 本地 Ollama
OLLAMA_PRESET = ProviderPreset(
    name="ollama",
    dialect="native-stream",
    base_url="http://localhost:11434",
    model="deepseek-r1:7b",
    requires_api_key=False,
)

# DeepSeek（OpenAI 兼容）
DEEPSEEK_PRESET = ProviderPreset(
    name="deepseek",
    dialect="sse-compatible",
    base_url="https://api.deepseek.com",
    model="deepseek-chat",
    requires_api_key=True,
)

OPENAI_PRESET = ProviderPreset(
    name="openai",
    dialect="sse-compatible",
    base_url="https://api.openai.com/v1",
    model="gpt-4o-mini",
    requires_api_key=True,
)


PROVIDER_PRESETS: Mapping[str, ProviderPreset] = {
    "ollama": OLLAMA_PRESET,
    "deepseek": DEEPSEEK_PRESET,
    "openai": OPENAI_PRESET,
}


def get_provider_preset(name: str) -> ProviderPreset:
    """根据名称获取 ProviderPreset，名称不区分大小写。"""

    key = name.lower()
    for k, preset in PROVIDER_PRESETS.items():
        if k.lower() == key:
            return preset
    raise ConfigError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {name!r}")
