"""
FastAPI dependencies shared by the routers.

- get_factory(): the ServiceFactory installed by the app lifespan.
- get_assistant(): a fresh AssistantService per request.
- get_current_user(): resolves the caller from the bearer JWT.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from application.services.assistant import AssistantService
from application.services.authentication import TokenVerifier
from domain.exceptions import AuthenticationError
from factory import ServiceFactory

# Installed by the app lifespan, cleared on shutdown
_factory: ServiceFactory | None = None


def set_factory(factory: Optional[ServiceFactory]) -> None:
    global _factory
    _factory = factory


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def get_assistant(factory: ServiceFactory = Depends(get_factory)) -> AssistantService:
    return factory.create_assistant_service()


def get_token_verifier(factory: ServiceFactory = Depends(get_factory)) -> TokenVerifier:
    return factory.create_token_verifier()


# --- Bearer auth ---

# auto_error is off so a missing header gets the same 401 as a bad token
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated caller."""
    user_id: int


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> CurrentUser:
    if credentials is None:
        raise _unauthorized("Not authenticated.")
    try:
        user_id = verifier.user_id(credentials.credentials)
    except AuthenticationError:
        raise _unauthorized("Invalid or expired token.")
    return CurrentUser(user_id=user_id)
