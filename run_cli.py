"""
Run the nutrition chat backend CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    classify        Show the request type a message would get
    target          Daily calorie target for a settings JSON file
    parse-plan      Parse a saved model reply as a meal plan
    parse-recipe    Parse a saved model reply as a recipe
    import-profile  Store a settings JSON file for a user
    ask             Send one chat message through the full pipeline

Examples:
    python run_cli.py classify "рецепт сырников"
    python run_cli.py parse-plan reply.txt --meals 4 --target 2000
    python run_cli.py ask 1 "составь меню на 3 дня"

Environment variables: see run_api.py. LOG_LEVEL defaults to WARNING here.
"""

import logging
import os
import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING"),
        format="%(levelname)s %(name)s: %(message)s",
    )
    app()
