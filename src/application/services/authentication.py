"""
application.services.authentication - Bearer token verification.

Tokens are issued by the account service and signed with a shared
secret. This side only decodes them and resolves the user id; issue_token
exists for the CLI and for tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt, JWTError

from domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class TokenVerifier:
    """Decode JWTs and extract the caller's user id."""

    def __init__(self, jwt_secret: str, jwt_algorithm: str = "HS256"):
        self._jwt_secret = jwt_secret
        self._jwt_algorithm = jwt_algorithm

    def verify_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT. Returns the payload dict."""
        try:
            payload = jwt.decode(
                token, self._jwt_secret, algorithms=[self._jwt_algorithm],
            )
        except JWTError as exc:
            raise AuthenticationError(f"Token verification failed: {exc}") from exc
        if payload.get("user_id") is None and payload.get("sub") is None:
            raise AuthenticationError("Invalid token payload.")
        return payload

    def user_id(self, token: str) -> int:
        payload = self.verify_token(token)
        raw = payload.get("user_id", payload.get("sub"))
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise AuthenticationError("Invalid token payload.") from exc

    def issue_token(self, user_id: int, expiry_hours: int = 24) -> str:
        expire = datetime.now(timezone.utc) + timedelta(hours=expiry_hours)
        payload = {"user_id": user_id, "exp": expire}
        logger.debug("Issuing token for user %s", user_id)
        return jwt.encode(payload, self._jwt_secret, algorithm=self._jwt_algorithm)
