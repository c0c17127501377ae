"""sse-compatible 方言（OpenAI / DeepSeek 的 chat/completions）。

接口风格与 OpenAI 一致：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 响应：SSE，只有以 "data: " 开头的行有意义；"data: [DONE]" 表示流结束。
"""

from typing import Dict, Optional

from chat_core.providers.base import ProviderAdapter, non_empty_text

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"


class SseCompatibleAdapter(ProviderAdapter):
    dialect = "sse-compatible"
    endpoint = "/chat/completions"

    def build_headers(self) -> Dict[str, str]:
        headers = super().build_headers()
        # 未配置密钥时原样透传空凭据，是否拒绝由后端决定
        headers["Authorization"] = f"Bearer {self._config.api_key or ''}"
        return headers

    def extract_fragment(self, raw_line: str) -> Optional[str]:
        if not raw_line.startswith(DATA_PREFIX):
            return None
        data_str = raw_line[len(DATA_PREFIX):].strip()
        if not data_str or data_str == DONE_MARKER:
            return None
        data = self._parse_or_skip(data_str)
        if data is None:
            return None
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return None
        return non_empty_text(delta.get("content"))
