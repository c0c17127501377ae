"""native-stream 方言（Ollama /api/chat）。

- URL: {base_url}/api/chat
- 响应：每行一个 JSON 对象，增量文本位于 message.content。
"""

from typing import Optional

from chat_core.providers.base import ProviderAdapter, non_empty_text


class NativeStreamAdapter(ProviderAdapter):
    dialect = "native-stream"
    endpoint = "/api/chat"

    def extract_fragment(self, raw_line: str) -> Optional[str]:
        line = raw_line.strip()
        if not line:
            return None
        data = self._parse_or_skip(line)
        if data is None:
            return None
        message = data.get("message")
        if not isinstance(message, dict):
            return None
        return non_empty_text(message.get("content"))
