"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass built from the environment (``.env`` supported) or
constructed explicitly in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from application.prompt_assembler import ContextWindows
from infrastructure.llm.gateway import GatewayConfig


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    return int(value) if value else default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    return float(value) if value else default


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the nutrition chat backend.

    No module-level globals: construct via from_env() or pass explicitly
    in tests.
    """
    project_root: Path

    # ── Model gateway ───────────────────────────────────────────
    genapi_api_key: str = ""
    genapi_base_url: str = "https://api.gen-api.ru/api/v1"
    genapi_endpoint: str = "/networks/deepseek-chat"
    genapi_model: str = "deepseek-chat"
    llm_temperature: float = 0.5
    llm_max_tokens: int = 4096
    llm_plan_max_tokens: int = 8192
    llm_regeneration_temperature: float = 0.9
    llm_timeout_seconds: float = 180.0

    # Prompt context windows (messages replayed per intent)
    context_windows: ContextWindows = field(default_factory=ContextWindows)

    # Database
    db_path: str = "nutrition.db"

    # JWT (tokens are issued by the auth service, shared secret)
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Quota: 0 disables the daily limit
    daily_request_limit: int = 50

    # Presentation
    motivation_probability: float = 0.3
    assistant_name: str = "Frello"

    def gateway_config(self) -> GatewayConfig:
        """Immutable settings for the model gateway."""
        return GatewayConfig(
            api_key=self.genapi_api_key,
            base_url=self.genapi_base_url,
            endpoint=self.genapi_endpoint,
            model=self.genapi_model,
            temperature=self.llm_temperature,
            max_tokens=self.llm_max_tokens,
            timeout=self.llm_timeout_seconds,
        )

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from environment variables and an optional .env file."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent

        return cls(
            project_root=root,
            genapi_api_key=os.getenv("GENAPI_API_KEY", ""),
            genapi_base_url=os.getenv("GENAPI_BASE_URL", "https://api.gen-api.ru/api/v1"),
            genapi_endpoint=os.getenv("GENAPI_ENDPOINT", "/networks/deepseek-chat"),
            genapi_model=os.getenv("GENAPI_MODEL", "deepseek-chat"),
            llm_temperature=_float_env("LLM_TEMPERATURE", 0.5),
            llm_max_tokens=_int_env("LLM_MAX_TOKENS", 4096),
            llm_plan_max_tokens=_int_env("LLM_PLAN_MAX_TOKENS", 8192),
            llm_regeneration_temperature=_float_env("LLM_REGENERATION_TEMPERATURE", 0.9),
            llm_timeout_seconds=_float_env("LLM_TIMEOUT_SECONDS", 180.0),
            context_windows=ContextWindows(
                text=_int_env("CONTEXT_WINDOW_TEXT", 25),
                plan=_int_env("CONTEXT_WINDOW_PLAN", 15),
                regeneration=_int_env("CONTEXT_WINDOW_REGENERATION", 6),
            ),
            db_path=os.getenv("DB_PATH", str(root / "nutrition.db")),
            jwt_secret=os.getenv("JWT_SECRET", "change-me-in-production"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            daily_request_limit=_int_env("DAILY_REQUEST_LIMIT", 50),
            motivation_probability=_float_env("MOTIVATION_PROBABILITY", 0.3),
            assistant_name=os.getenv("ASSISTANT_NAME", "Frello"),
        )
