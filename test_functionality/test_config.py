"""Settings from the environment and factory wiring."""

import asyncio

import pytest

from factory import ServiceFactory
from infrastructure.config import Settings
from infrastructure.llm.gateway import ModelGateway


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("GENAPI_API_KEY", "key-123")
    monkeypatch.setenv("LLM_PLAN_MAX_TOKENS", "6000")
    monkeypatch.setenv("LLM_REGENERATION_TEMPERATURE", "0.8")
    monkeypatch.setenv("CONTEXT_WINDOW_PLAN", "10")
    monkeypatch.setenv("DAILY_REQUEST_LIMIT", "0")
    monkeypatch.setenv("ASSISTANT_NAME", "Нутри")
    monkeypatch.delenv("DB_PATH", raising=False)

    settings = Settings.from_env(project_root=tmp_path)

    assert settings.genapi_api_key == "key-123"
    assert settings.llm_plan_max_tokens == 6000
    assert settings.llm_regeneration_temperature == 0.8
    assert settings.context_windows.plan == 10
    assert settings.context_windows.text == 25
    assert settings.daily_request_limit == 0
    assert settings.assistant_name == "Нутри"
    assert settings.db_path == str(tmp_path / "nutrition.db")


def test_gateway_config_joins_url():
    settings = Settings(
        project_root=".", genapi_base_url="https://api.example.test/v1/", genapi_endpoint="/chat",
    )
    config = settings.gateway_config()
    assert config.url == "https://api.example.test/v1/chat"
    assert config.timeout == 180.0


def test_factory_requires_initialize(tmp_path):
    factory = ServiceFactory(Settings(project_root=tmp_path, db_path=str(tmp_path / "f.db")))
    with pytest.raises(RuntimeError):
        factory.create_assistant_service()

    asyncio.run(factory.initialize())
    assert factory.create_assistant_service() is not None
    assert isinstance(factory.create_gateway(), ModelGateway)
