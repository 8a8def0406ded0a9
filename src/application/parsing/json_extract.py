"""
application.parsing.json_extract - Find JSON inside free-form model output.

Models wrap JSON in code fences, prepend prose, or append comments. These
helpers locate balanced ``[...]`` / ``{...}`` spans and return the first
one that passes a strict ``json.loads``.
"""

from __future__ import annotations

import html
import json
import re
from typing import Any, Callable, Iterator, Optional

_FENCE = re.compile(r"```(?:json|JSON)?")
_TAG = re.compile(r"<[^>]+>")

# Sentinel for "no JSON found"; None is a valid JSON value.
NO_JSON = object()


def strip_fences(text: str) -> str:
    return _FENCE.sub("", text or "").strip()


def strip_markup(text: str) -> str:
    """Drop HTML tags and code fences, unescape entities."""
    return html.unescape(_TAG.sub("", strip_fences(text))).strip()


def _span_end(text: str, start: int) -> Optional[int]:
    """Index one past the bracket closing the one at ``start``."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def iter_json_values(text: str) -> Iterator[Any]:
    """Yield every strictly parseable balanced span, by opening position.

    Spans nested inside an already yielded value are skipped.
    """
    body = strip_fences(text)
    pos = 0
    while pos < len(body):
        starts = [i for i in (body.find("[", pos), body.find("{", pos)) if i != -1]
        if not starts:
            return
        start = min(starts)
        end = _span_end(body, start)
        if end is None:
            pos = start + 1
            continue
        try:
            value = json.loads(body[start:end])
        except ValueError:
            pos = start + 1
            continue
        yield value
        pos = end


def extract_json(text: str, accept: Optional[Callable[[Any], bool]] = None) -> Any:
    """First JSON value in ``text`` satisfying ``accept``, or NO_JSON."""
    for value in iter_json_values(text):
        if accept is None or accept(value):
            return value
    return NO_JSON
