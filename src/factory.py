"""
factory - Composition root for the nutrition chat backend.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    service = factory.create_assistant_service()
    response = await service.generate_response(chat_id, user_id, content)
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from application.parsing.plan_parser import PlanParser
from application.parsing.realism import RealismCorrector
from application.parsing.recipe_parser import RecipeParser
from application.prompt_assembler import PromptAssembler
from application.services.assistant import AssistantService, GenerationOptions
from application.services.authentication import TokenVerifier
from application.services.motivation import MotivationPicker
from domain.ports import ModelGatewayPort
from infrastructure.config import Settings
from infrastructure.llm.gateway import ModelGateway
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.dish_repo import SQLiteDishRepository
from infrastructure.persistence.message_repo import SQLiteMessageRepository
from infrastructure.persistence.migrations import run_migrations
from infrastructure.persistence.plan_repo import SQLitePlanRepository
from infrastructure.persistence.profile_repo import SQLiteProfileRepository
from infrastructure.persistence.quota import DailyQuotaGuard

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root: wires all dependencies together.

    Call initialize() once at startup, then create services as needed.
    A gateway may be passed in to replace the HTTP client (tests, CLI dry runs).
    """

    def __init__(
        self,
        config: Settings,
        gateway: Optional[ModelGatewayPort] = None,
        rng: Optional[random.Random] = None,
    ):
        self._config = config
        self._connection = AsyncSQLiteConnection(config.db_path)
        self._gateway = gateway
        self._rng = rng
        self._initialized = False

    @property
    def config(self) -> Settings:
        return self._config

    async def initialize(self) -> None:
        """One-time startup: run migrations."""
        logger.info("Initializing ServiceFactory (db=%s)...", self._config.db_path)
        await run_migrations(self._connection)
        self._initialized = True
        logger.info("ServiceFactory ready")

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    def create_assistant_service(self) -> AssistantService:
        """Create an AssistantService with all dependencies wired."""
        self._ensure_initialized()
        messages = self.create_message_repository()
        return AssistantService(
            gateway=self.create_gateway(),
            profiles=self.create_profile_repository(),
            quota=DailyQuotaGuard(messages, self._config.daily_request_limit),
            conversations=messages,
            dishes=SQLiteDishRepository(self._connection),
            plans=SQLitePlanRepository(self._connection),
            assembler=self.create_prompt_assembler(),
            plan_parser=PlanParser(RealismCorrector()),
            recipe_parser=RecipeParser(),
            motivation=MotivationPicker(
                rng=self._rng, probability=self._config.motivation_probability,
            ),
            options=GenerationOptions(
                text_temperature=self._config.llm_temperature,
                plan_temperature=self._config.llm_temperature,
                plan_max_tokens=self._config.llm_plan_max_tokens,
                regeneration_temperature=self._config.llm_regeneration_temperature,
                recipe_temperature=self._config.llm_temperature,
            ),
        )

    def create_gateway(self) -> ModelGatewayPort:
        if self._gateway is None:
            self._gateway = ModelGateway(self._config.gateway_config())
        return self._gateway

    def create_prompt_assembler(self) -> PromptAssembler:
        return PromptAssembler(
            windows=self._config.context_windows,
            assistant_name=self._config.assistant_name,
        )

    def create_token_verifier(self) -> TokenVerifier:
        return TokenVerifier(self._config.jwt_secret, self._config.jwt_algorithm)

    def create_profile_repository(self) -> SQLiteProfileRepository:
        return SQLiteProfileRepository(self._connection)

    def create_message_repository(self) -> SQLiteMessageRepository:
        return SQLiteMessageRepository(self._connection)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )
