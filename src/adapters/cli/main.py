"""
adapters.cli.main - CLI adapter for the nutrition chat backend.

Mirrors src/adapters/rest/ for terminal use. Offline commands run the
pipeline stages on their own (no database, no model call); ``ask`` goes
through the same ServiceFactory and AssistantService as the REST API.

Commands
--------
  classify        Show the request type a message would get
  target          Daily calorie target for a settings JSON file
  parse-plan      Parse a saved model reply as a meal plan
  parse-recipe    Parse a saved model reply as a recipe
  import-profile  Store a settings JSON file for a user
  ask             Send one chat message through the full pipeline

Usage
-----
  python run_cli.py classify "составь план питания на неделю"
  python run_cli.py target settings.json
  python run_cli.py parse-plan reply.txt --meals 4 --target 2000
  python run_cli.py import-profile 1 settings.json
  python run_cli.py ask 1 "что съесть на ужин?"
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from application.calories import body_mass_index, calculate_target, underweight_warning
from application.intent import classify as classify_message
from application.intent import requested_days
from application.parsing.plan_parser import PlanParser
from application.parsing.realism import RealismCorrector
from application.parsing.recipe_parser import RecipeParser
from domain.exceptions import DomainError
from domain.models import PlanDay, UserProfile
from factory import ServiceFactory
from infrastructure.config import Settings

__version__ = "0.3.0"

console = Console()
app = typer.Typer(
    help="Nutrition chat backend CLI",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[bold red]Cannot read {path}:[/bold red] {e}")
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        console.print(f"[bold red]{path} must contain a JSON object.[/bold red]")
        raise typer.Exit(code=1)
    return data


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[bold red]Cannot read {path}:[/bold red] {e}")
        raise typer.Exit(code=1)


async def _make_factory() -> ServiceFactory:
    factory = ServiceFactory(Settings.from_env())
    await factory.initialize()
    return factory


def _plan_table(days: list[PlanDay]) -> Table:
    t = Table(box=box.SIMPLE, padding=(0, 1))
    t.add_column("Day", justify="right")
    t.add_column("Slot")
    t.add_column("Dish")
    t.add_column("kcal", justify="right")
    t.add_column("g", justify="right")
    for i, day in enumerate(days, start=1):
        for meal in day.meals:
            t.add_row(str(i), meal.type, meal.recipe_name, str(meal.calories), str(meal.portion_size))
    return t


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"nutrition-chat v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: offline pipeline stages
# ---------------------------------------------------------------------------

@app.command()
def classify(
    message: str = typer.Argument(..., help="User message to classify."),
    regeneration: bool = typer.Option(False, "--regeneration", help="Treat as a regenerate request."),
) -> None:
    """Show the request type and requested day count of a message."""
    intent = classify_message(message, is_regeneration=regeneration)
    days = requested_days(message)
    console.print(f"[bold]{intent.value}[/bold]" + (f"  (days: {days})" if days else ""))


@app.command()
def target(
    settings_file: Path = typer.Argument(..., help="User settings JSON file."),
) -> None:
    """Compute the daily calorie target for a settings file."""
    profile = UserProfile.from_settings(_read_json(settings_file))

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="bold")
    t.add_column("Value")
    bmi = body_mass_index(profile)
    t.add_row("BMI", f"{bmi:.1f}" if bmi else "[dim]—[/dim]")
    value = calculate_target(profile)
    t.add_row("Target", f"{value} kcal" if value else "[dim]not enough data[/dim]")
    console.print(Panel(t, title="Calorie target", border_style="blue"))

    warning = underweight_warning(profile)
    if warning:
        console.print(Panel(warning, border_style="red"))


@app.command("parse-plan")
def parse_plan(
    reply_file: Path = typer.Argument(..., help="Raw model reply."),
    meals: int = typer.Option(3, "--meals", "-m", min=1, help="Meals per day."),
    calorie_target: Optional[int] = typer.Option(None, "--target", "-t", help="Daily calorie target."),
    days: Optional[int] = typer.Option(None, "--days", "-d", min=1, help="Requested day count."),
) -> None:
    """Parse a saved model reply as a meal plan."""
    parsed = PlanParser(RealismCorrector()).parse(
        _read_text(reply_file), meals, calorie_target=calorie_target, requested_days=days,
    )
    console.print(f"[dim]strategy: {parsed.strategy}[/dim]")
    if parsed.days:
        console.print(_plan_table(parsed.days))
    console.print(Panel(parsed.text, title="Rendered", border_style="green"))


@app.command("parse-recipe")
def parse_recipe(
    reply_file: Path = typer.Argument(..., help="Raw model reply."),
) -> None:
    """Parse a saved model reply as a recipe."""
    parsed = RecipeParser().parse(_read_text(reply_file))
    console.print(f"[dim]strategy: {parsed.strategy}[/dim]")
    console.print(Panel(parsed.text, title="Recipe", border_style="green"))


# ---------------------------------------------------------------------------
# Commands: database and model (full pipeline)
# ---------------------------------------------------------------------------

@app.command("import-profile")
def import_profile(
    user_id: int = typer.Argument(..., help="User id."),
    settings_file: Path = typer.Argument(..., help="User settings JSON file."),
) -> None:
    """Store a user's settings so chat requests can use them."""
    data = _read_json(settings_file)

    async def _run() -> None:
        factory = await _make_factory()
        await factory.create_profile_repository().save_settings(user_id, data)
        console.print(f"[green]Settings stored for user {user_id}.[/green]")

    asyncio.run(_run())


@app.command()
def ask(
    user_id: int = typer.Argument(..., help="User id."),
    message: str = typer.Argument(..., help="Your message."),
    chat_id: str = typer.Option("cli", "--chat", "-c", help="Chat id."),
) -> None:
    """Send one message through the full pipeline and print the reply."""

    async def _run() -> None:
        factory = await _make_factory()
        service = factory.create_assistant_service()
        try:
            with console.status("[bold cyan]Thinking…", spinner="dots"):
                response = await service.generate_response(chat_id, user_id, message)
        except DomainError as e:
            console.print(f"[bold red]{type(e).__name__} ({e.status_code}):[/bold red] {e.message}")
            raise typer.Exit(code=1)

        reply = response.assistant_message
        console.print(Panel(
            reply.content,
            title=f"{response.type.value} · message {reply.id}",
            border_style="green",
        ))

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Nutrition chat backend CLI"""


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
