"""
application.context - Request-scoped context.

Every service call receives its context explicitly. Two concurrent
requests get two different RequestContext instances, so nothing in the
pipeline is shared between them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4


@dataclass
class RequestContext:
    """Per-request context passed through the pipeline.

    Attributes:
        user_id:     Authenticated user ID (provided by adapter).
        chat_id:     Conversation the request belongs to ("" for recipe requests).
        request_id:  Unique per request, for tracing/logging.
    """
    user_id: int
    chat_id: str = ""
    request_id: str = field(default_factory=lambda: uuid4().hex[:12])

    def __str__(self) -> str:
        return f"user={self.user_id} chat={self.chat_id or '-'} request={self.request_id}"
