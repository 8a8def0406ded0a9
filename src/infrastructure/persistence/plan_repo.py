"""
infrastructure.persistence.plan_repo - SQLite meal-plan repository.

Implements PlanStore. Each plan day becomes one ``meal_plans`` row dated
consecutively: a single day starts today, a multi-day plan starts on the
Monday of the current week. Saving a plan hides the user's earlier plans
for the same dates, and the first new row id is linked back to the
message the plan came from.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from domain.entities import MealPlan
from domain.models import PlanDay, PlanMeal
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


def plan_start(day_count: int, today: date) -> date:
    """First calendar date of a plan with *day_count* days."""
    if day_count > 1:
        return today - timedelta(days=today.weekday())
    return today


def stored_meal_type(meal_type: str) -> str:
    """snack1, snack2 ... are all stored as plain snack."""
    return "snack" if meal_type.startswith("snack") else meal_type


class SQLitePlanRepository:
    """Async SQLite implementation of PlanStore."""

    def __init__(
        self,
        connection: AsyncSQLiteConnection,
        clock: Callable[[], date] = date.today,
    ):
        self._conn = connection
        self._clock = clock

    async def create_plan(
        self, days: list[PlanDay], user_id: int, message_id: Optional[int],
    ) -> Optional[int]:
        if not days:
            return None

        start = plan_start(len(days), self._clock())
        dates = [(start + timedelta(days=i)).isoformat() for i in range(len(days))]
        now = datetime.now().isoformat()
        first_id: Optional[int] = None

        async with self._conn.acquire() as conn:
            placeholders = ", ".join("?" for _ in dates)
            await conn.execute(
                f"""UPDATE meal_plans SET visible = 0
                    WHERE user_id = ? AND visible = 1 AND date IN ({placeholders})""",
                (user_id, *dates),
            )
            for day, day_date in zip(days, dates):
                cursor = await conn.execute(
                    """INSERT INTO meal_plans (user_id, date, visible, message_id, created_at)
                       VALUES (?, ?, 1, ?, ?)""",
                    (user_id, day_date, message_id, now),
                )
                plan_id = cursor.lastrowid
                if first_id is None:
                    first_id = plan_id
                await conn.executemany(
                    """INSERT INTO meal_plan_items
                       (plan_id, position, meal_type, dish_id, recipe_name,
                        calories, portion_size)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    [
                        (plan_id, position, stored_meal_type(meal.type), meal.dish_id,
                         meal.recipe_name, meal.calories, meal.portion_size)
                        for position, meal in enumerate(day.meals)
                    ],
                )
            if message_id is not None:
                await conn.execute(
                    "UPDATE messages SET plan_id = ? WHERE id = ?",
                    (first_id, message_id),
                )

        logger.info(
            "Stored %d-day plan for user %s starting %s (first id=%s)",
            len(days), user_id, dates[0], first_id,
        )
        return first_id

    async def get_visible(self, user_id: int) -> list[MealPlan]:
        async with self._conn.acquire() as conn:
            plans = await conn.execute_fetchall(
                """SELECT * FROM meal_plans
                   WHERE user_id = ? AND visible = 1 ORDER BY date ASC, id ASC""",
                (user_id,),
            )
            result = []
            for row in plans:
                items = await conn.execute_fetchall(
                    "SELECT * FROM meal_plan_items WHERE plan_id = ? ORDER BY position ASC",
                    (row["id"],),
                )
                result.append(MealPlan(
                    id=row["id"],
                    user_id=row["user_id"],
                    date=row["date"],
                    visible=bool(row["visible"]),
                    created_at=row["created_at"] or "",
                    meals=[
                        PlanMeal(
                            type=item["meal_type"],
                            recipe_name=item["recipe_name"] or "",
                            calories=item["calories"] or 0,
                            portion_size=item["portion_size"] or 0,
                            dish_id=item["dish_id"],
                        )
                        for item in items
                    ],
                ))
            return result
