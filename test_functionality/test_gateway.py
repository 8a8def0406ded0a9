"""Model gateway: request shape, response layouts, error taxonomy."""

import asyncio

import pytest
import requests
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from domain.exceptions import (
    EmptyResponseError,
    EndpointNotFoundError,
    MalformedRequestError,
    ModelGatewayError,
    RateLimitedError,
    UnauthorizedError,
    UnconfiguredError,
    UpstreamErrorMessage,
    UpstreamUnavailableError,
)
from infrastructure.llm.gateway import GatewayConfig, ModelGateway, is_error_message, to_wire
from infrastructure.llm.response_shapes import extract_content

CONFIG = GatewayConfig(
    api_key="secret",
    base_url="https://api.example.test/api/v1/",
    endpoint="/networks/deepseek-chat",
    model="deepseek-chat",
    temperature=0.5,
    max_tokens=4096,
    timeout=30,
)

MESSAGES = [SystemMessage(content="sys"), HumanMessage(content="hi"), AIMessage(content="hello")]


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text or str(body)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


@pytest.fixture
def gateway():
    return ModelGateway(CONFIG)


def _fetch(gateway, **kwargs):
    return asyncio.run(gateway.fetch(MESSAGES, **kwargs))


def test_request_shape(gateway, monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append((url, json, headers, timeout))
        return FakeResponse(body={"choices": [{"message": {"content": "ok"}}]})

    monkeypatch.setattr(requests, "post", fake_post)
    assert _fetch(gateway, temperature=0.9, max_tokens=8192) == "ok"

    url, body, headers, timeout = calls[0]
    assert url == "https://api.example.test/api/v1/networks/deepseek-chat"
    assert headers == {"Authorization": "Bearer secret"}
    assert timeout == 30
    assert body == {
        "model": "deepseek-chat",
        "messages": [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ],
        "temperature": 0.9,
        "max_tokens": 8192,
        "is_sync": True,
    }


def _respond_with(monkeypatch, response):
    def fake_post(url, json=None, headers=None, timeout=None):
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(requests, "post", fake_post)


def test_defaults_from_config(gateway, monkeypatch):
    seen = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        seen.update(json)
        return FakeResponse(body={"text": "ok"})

    monkeypatch.setattr(requests, "post", fake_post)
    _fetch(gateway)
    assert (seen["temperature"], seen["max_tokens"]) == (0.5, 4096)


@pytest.mark.parametrize("body, expected", [
    ({"response": ["строка"]}, "строка"),
    ({"response": [{"message": {"content": "gemini"}}]}, "gemini"),
    ({"choices": [{"message": {"content": "openai"}}]}, "openai"),
    ({"content": "плоский"}, "плоский"),
    ({"message": "сообщение"}, "сообщение"),
    ({"message": {"content": "вложенное"}}, "вложенное"),
    ({"text": "текст"}, "текст"),
])
def test_response_shapes(gateway, monkeypatch, body, expected):
    _respond_with(monkeypatch, FakeResponse(body=body))
    assert _fetch(gateway) == expected


def test_shape_precedence():
    body = {"choices": [{"message": {"content": "choices"}}], "content": "flat"}
    assert extract_content(body) == ("choices", "choices")
    assert extract_content(["not", "an", "object"]) == (None, "")


def test_empty_nested_message_falls_back_to_item_content():
    body = {"choices": [{"message": {"content": ""}, "content": "запасной"}]}
    assert extract_content(body) == ("choices", "запасной")
    body = {"response": [{"message": {"role": "assistant"}, "content": "из элемента"}]}
    assert extract_content(body) == ("response_messages", "из элемента")


@pytest.mark.parametrize("status, error", [
    (401, UnauthorizedError),
    (404, EndpointNotFoundError),
    (422, MalformedRequestError),
    (429, RateLimitedError),
    (500, UpstreamUnavailableError),
    (503, UpstreamUnavailableError),
    (400, ModelGatewayError),
])
def test_status_codes(gateway, monkeypatch, status, error):
    _respond_with(monkeypatch, FakeResponse(status_code=status, body={}, text="boom"))
    with pytest.raises(error):
        _fetch(gateway)


def test_missing_key_fails_before_any_request(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(requests, "post", fail)
    gateway = ModelGateway(GatewayConfig(api_key="", base_url="x", endpoint="y", model="m"))
    with pytest.raises(UnconfiguredError) as info:
        _fetch(gateway)
    assert info.value.status_code == 500


def test_timeout_and_connection_errors(gateway, monkeypatch):
    _respond_with(monkeypatch, requests.exceptions.Timeout("slow"))
    with pytest.raises(UpstreamUnavailableError):
        _fetch(gateway)

    _respond_with(monkeypatch, requests.exceptions.ConnectionError("down"))
    with pytest.raises(UpstreamUnavailableError):
        _fetch(gateway)


def test_async_status_is_unavailable(gateway, monkeypatch):
    _respond_with(monkeypatch, FakeResponse(body={"status": "processing", "request_id": 7}))
    with pytest.raises(UpstreamUnavailableError):
        _fetch(gateway)


@pytest.mark.parametrize("body", [
    {"response": ["   "]},
    {"content": "[]"},
    {"unknown": "layout"},
])
def test_empty_content(gateway, monkeypatch, body):
    _respond_with(monkeypatch, FakeResponse(body=body))
    with pytest.raises(EmptyResponseError):
        _fetch(gateway)


def test_non_json_body(gateway, monkeypatch):
    _respond_with(monkeypatch, FakeResponse(body=ValueError("not json"), text="<html>"))
    with pytest.raises(EmptyResponseError):
        _fetch(gateway)


def test_short_error_text_is_an_upstream_error(gateway, monkeypatch):
    _respond_with(monkeypatch, FakeResponse(body={"content": "Произошла ошибка, попробуйте позже"}))
    with pytest.raises(UpstreamErrorMessage):
        _fetch(gateway)


def test_long_answer_mentioning_error_is_content(gateway, monkeypatch):
    answer = "Частая ошибка при похудении - пропуск завтрака. " * 6
    _respond_with(monkeypatch, FakeResponse(body={"content": answer}))
    assert _fetch(gateway) == answer


def test_helpers():
    assert is_error_message("Service unavailable")
    assert not is_error_message("Овсянка с ягодами")
    assert to_wire([HumanMessage(content="x")]) == [{"role": "user", "content": "x"}]
