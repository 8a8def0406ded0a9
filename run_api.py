"""
Run the nutrition chat backend REST API.

Usage:
    python run_api.py

Environment variables (all optional, .env supported):
    GENAPI_API_KEY          Bearer key for the model API (required for chat)
    GENAPI_BASE_URL         Model API base URL
    GENAPI_ENDPOINT         Model-specific path appended to the base URL
    GENAPI_MODEL            Model name sent in the request body
    LLM_TEMPERATURE         Sampling temperature (default: 0.5)
    LLM_MAX_TOKENS          Token limit for text and recipe replies (default: 4096)
    LLM_PLAN_MAX_TOKENS     Token limit for meal plans (default: 8192)
    LLM_TIMEOUT_SECONDS     Model call timeout (default: 180)
    CONTEXT_WINDOW_TEXT     History messages replayed for text answers (default: 25)
    CONTEXT_WINDOW_PLAN     History messages replayed for plans (default: 15)
    CONTEXT_WINDOW_REGENERATION  History messages replayed on regenerate (default: 6)
    DB_PATH                 SQLite database file path (default: nutrition.db)
    JWT_SECRET              Secret shared with the auth service
    DAILY_REQUEST_LIMIT     Messages per user per day, 0 disables (default: 50)
    MOTIVATION_PROBABILITY  Chance of a motivation line under a plan (default: 0.3)
    ASSISTANT_NAME          Persona name used in prompts (default: Frello)
    LOG_LEVEL               Logging level (default: INFO)
"""

import logging
import os
import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "adapters.rest.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
