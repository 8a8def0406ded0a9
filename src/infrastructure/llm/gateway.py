"""
infrastructure.llm.gateway - HTTP client for the hosted chat model.

Implements ModelGatewayPort. Uses requests via run_in_executor for async
compat, one POST per call and no retries:

    POST {base_url}{endpoint}
    Authorization: Bearer <api_key>
    {"model", "messages": [{"role", "content"}], "temperature",
     "max_tokens", "is_sync": true}

Failures are mapped onto the ModelGatewayError family so the REST layer
can answer with a stable status code.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import requests
from langchain_core.messages import BaseMessage

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
from infrastructure.llm.response_shapes import extract_content

logger = logging.getLogger(__name__)

# Short replies containing one of these are upstream failures, not answers.
ERROR_VOCABULARY = ("произошла ошибка", "ошибка", "error", "failed", "недоступен", "unavailable")
ERROR_MESSAGE_MAX_CHARS = 200

ASYNC_STATUSES = ("processing", "pending")

_ROLES = {"system": "system", "human": "user", "ai": "assistant"}

_STATUS_ERRORS = {
    401: UnauthorizedError,
    404: EndpointNotFoundError,
    422: MalformedRequestError,
    429: RateLimitedError,
}


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str
    base_url: str
    endpoint: str
    model: str
    temperature: float = 0.5
    max_tokens: int = 4096
    timeout: float = 180.0

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.endpoint.lstrip("/")


def to_wire(messages: Sequence[BaseMessage]) -> list[dict[str, str]]:
    """LangChain messages as {role, content} pairs."""
    return [
        {"role": _ROLES.get(m.type, "user"), "content": str(m.content)}
        for m in messages
    ]


def is_error_message(content: str) -> bool:
    """A short reply that reads like a failure notice."""
    if len(content) >= ERROR_MESSAGE_MAX_CHARS:
        return False
    lowered = content.lower()
    return any(word in lowered for word in ERROR_VOCABULARY)


class ModelGateway:
    """Send prompts to the configured chat model and return its text."""

    def __init__(self, config: GatewayConfig):
        self._config = config

    async def fetch(
        self,
        messages: Sequence[BaseMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        if not self._config.api_key:
            raise UnconfiguredError()

        payload = {
            "model": self._config.model,
            "messages": to_wire(messages),
            "temperature": self._config.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self._config.max_tokens,
            "is_sync": True,
        }
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._call, payload)

    def _call(self, payload: dict) -> str:
        """Synchronous request and response handling (runs in thread pool)."""
        url = self._config.url
        logger.info(
            "Calling model %s at %s (%d messages, temperature=%s, max_tokens=%s)",
            payload["model"], url, len(payload["messages"]),
            payload["temperature"], payload["max_tokens"],
        )
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self._config.api_key}"},
                timeout=self._config.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise UpstreamUnavailableError(
                f"Model API timed out after {self._config.timeout:.0f}s"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise UpstreamUnavailableError(f"Model API unreachable at {url}") from e
        except requests.exceptions.RequestException as e:
            raise ModelGatewayError(f"Model API request failed: {e}") from e

        status = response.status_code
        if status in _STATUS_ERRORS:
            logger.error("Model API returned HTTP %d: %s", status, response.text[:200])
            raise _STATUS_ERRORS[status]()
        if status >= 500:
            logger.error("Model API returned HTTP %d: %s", status, response.text[:200])
            raise UpstreamUnavailableError()
        if not response.ok:
            raise ModelGatewayError(
                f"Model API returned HTTP {status}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise EmptyResponseError("Model API returned a non-JSON body") from e
        logger.debug("Model API response body: %s", body)

        if isinstance(body, dict) and body.get("status") in ASYNC_STATUSES:
            raise UpstreamUnavailableError(
                f"Model API answered with status {body['status']!r}; "
                f"request {body.get('request_id', 'unknown')} was queued instead of "
                "completed synchronously"
            )

        shape, content = extract_content(body)
        if shape is None:
            logger.error("Unrecognized model API response: %s", str(body)[:500])
        content = content or ""
        if not content.strip() or content.strip() == "[]":
            raise EmptyResponseError()

        if is_error_message(content):
            raise UpstreamErrorMessage(f"Model API returned an error: {content}")

        logger.info("Model reply received via %s (%d chars)", shape, len(content))
        return content
