"""
FastAPI application - REST adapter for the nutrition chat backend.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from infrastructure.config import Settings
from domain.exceptions import DomainError, LimitExceededError
from factory import ServiceFactory
from adapters.rest.dependencies import set_factory
from adapters.rest.routers import chat, recipes

logger = logging.getLogger(__name__)

VERSION = "0.3.0"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map every DomainError onto its carried status code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    else:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    body = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, LimitExceededError):
        body["limit_type"] = exc.limit_type
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(factory: Optional[ServiceFactory] = None) -> FastAPI:
    """Build the application. A prepared factory skips loading settings from the env."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = factory
        if active is None:
            config = Settings.from_env(project_root=_src_dir.parent)
            active = ServiceFactory(config)
        await active.initialize()
        set_factory(active)
        yield
        set_factory(None)

    app = FastAPI(
        title="Nutrition Chat Backend",
        version=VERSION,
        description="Meal plans, recipes and nutrition answers from a hosted LLM.",
        lifespan=lifespan,
    )

    # CORS: permissive for development; tighten allowed_origins in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(DomainError, domain_error_handler)

    app.include_router(chat.router)
    app.include_router(recipes.router)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
