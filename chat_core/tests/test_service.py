import json

import pytest
from pydantic import ValidationError

from chat_core.api import service
from chat_core.config.settings import Settings
from chat_core.domain.exceptions import ConfigError
from chat_core.engine import ChatEngine
from chat_core.providers import NativeStreamAdapter, SseCompatibleAdapter


class DummySettings:
    chat_provider = "ollama"
    chat_dialect = None
    chat_base_url = None
    chat_model = None
    chat_api_key = None
    chat_system_prompt = None
    http_timeout = 5.0


def test_build_provider_config_from_preset(monkeypatch):
    monkeypatch.setattr("chat_core.api.service.settings", DummySettings())
    cfg = service.build_provider_config()
    assert cfg.dialect == "native-stream"
    assert cfg.base_url == "http://localhost:11434"
    assert cfg.model == "deepseek-r1:7b"
    assert cfg.api_key is None

    ds = service.build_provider_config("deepseek", api_key="sk-1234567890")
    assert ds.dialect == "sse-compatible"
    assert ds.model == "deepseek-chat"
    assert ds.api_key == "sk-1234567890"


def test_settings_overrides_apply_to_selected_preset_only(monkeypatch):
    class Configured(DummySettings):
        chat_provider = "openai"
        chat_base_url = "https://proxy.local/v1"
        chat_api_key = "sk-configured-key"
        chat_system_prompt = "你是一个有用的AI助手。"

    monkeypatch.setattr("chat_core.api.service.settings", Configured())
    cfg = service.build_provider_config()
    assert cfg.base_url == "https://proxy.local/v1"
    assert cfg.api_key == "sk-configured-key"
    assert cfg.system_prompt == "你是一个有用的AI助手。"

    other = service.build_provider_config("ollama")
    assert other.base_url == "http://localhost:11434"
    assert other.api_key is None

    explicit = service.build_provider_config(model="gpt-4o")
    assert explicit.model == "gpt-4o"


def test_build_provider_config_rejects_unknown(monkeypatch):
    monkeypatch.setattr("chat_core.api.service.settings", DummySettings())
    with pytest.raises(ConfigError):
        service.build_provider_config("nope")
    with pytest.raises(ConfigError):
        service.build_provider_config(dialect="websocket")


def test_create_engine_selects_adapter(monkeypatch):
    monkeypatch.setattr("chat_core.api.service.settings", DummySettings())
    engine = service.create_engine(system_prompt="sys")
    assert isinstance(engine, ChatEngine)
    assert isinstance(engine._adapter, NativeStreamAdapter)
    assert [(t.role, t.content) for t in engine.transcript] == [("system", "sys")]
    assert isinstance(service.create_engine("openai")._adapter, SseCompatibleAdapter)


def test_chat_once_runs_single_exchange(monkeypatch):
    class Resp:
        status_code = 200
        reason_phrase = "OK"
        ok = True

        def __init__(self):
            self.body = self._iter()

        async def _iter(self):
            yield (json.dumps({"message": {"content": "你好"}}) + "\n").encode("utf-8")

        async def aclose(self):
            pass

    class Transport:
        closed = False

        async def post(self, url, headers, json_body):
            return Resp()

        async def aclose(self):
            Transport.closed = True

    monkeypatch.setattr("chat_core.api.service.settings", DummySettings())
    monkeypatch.setattr("chat_core.engine.chat_engine.HttpxTransport", lambda timeout=None: Transport())
    fragments = []
    reply = service.chat_once("hi", on_fragment=fragments.append)
    assert reply == "你好"
    assert fragments == ["你好"]
    assert Transport.closed


def test_settings_sources(monkeypatch, tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("chat_provider: deepseek\nchat_model: from-yaml\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_CORE_CONFIG_FILE", str(config_file))
    monkeypatch.delenv("CHAT_MODEL", raising=False)
    monkeypatch.delenv("CHAT_PROVIDER", raising=False)
    s = Settings(_env_file=None)
    assert s.chat_provider == "deepseek"
    assert s.chat_model == "from-yaml"

    monkeypatch.setenv("CHAT_MODEL", "from-env")
    assert Settings(_env_file=None).chat_model == "from-env"


def test_settings_rejects_short_api_key():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, chat_api_key="short")
