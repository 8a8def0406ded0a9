"""
infrastructure.llm.response_shapes - Known layouts of the model API reply.

The upstream vendor answers in several formats depending on the network
behind the endpoint. Each layout is a named (matcher, extractor) pair;
the first matcher that accepts the body wins.

    response_strings  -> {"response": ["text", ...]}
    response_messages -> {"response": [{"message": {"content": "text"}}]}
    choices           -> {"choices": [{"message": {"content": "text"}}]}
    flat_content      -> {"content": "text"}
    flat_message      -> {"message": "text"} or {"message": {"content": "text"}}
    flat_text         -> {"text": "text"}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class ResponseShape:
    name: str
    matches: Callable[[Any], bool]
    extract: Callable[[Any], str]


def _first(items: Any) -> Any:
    return items[0] if isinstance(items, list) and items else None


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _message_content(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    message = item.get("message")
    content = _text(message.get("content")) if isinstance(message, dict) else ""
    return content or _text(item.get("content"))


RESPONSE_SHAPES: tuple[ResponseShape, ...] = (
    ResponseShape(
        "response_strings",
        lambda d: isinstance(_first(d.get("response")), str),
        lambda d: d["response"][0],
    ),
    ResponseShape(
        "response_messages",
        lambda d: isinstance(_first(d.get("response")), dict),
        lambda d: _message_content(d["response"][0]),
    ),
    ResponseShape(
        "choices",
        lambda d: isinstance(_first(d.get("choices")), dict),
        lambda d: _message_content(d["choices"][0]),
    ),
    ResponseShape(
        "flat_content",
        lambda d: bool(d.get("content")),
        lambda d: _text(d["content"]),
    ),
    ResponseShape(
        "flat_message",
        lambda d: bool(d.get("message")),
        lambda d: _text(d["message"]) or _message_content(d),
    ),
    ResponseShape(
        "flat_text",
        lambda d: bool(d.get("text")),
        lambda d: _text(d["text"]),
    ),
)


def extract_content(body: Any) -> tuple[Optional[str], str]:
    """Return (shape name, content) for the first matching layout.

    (None, "") when the body is not an object or no layout matches.
    """
    if not isinstance(body, dict):
        return None, ""
    for shape in RESPONSE_SHAPES:
        if shape.matches(body):
            return shape.name, shape.extract(body)
    return None, ""
