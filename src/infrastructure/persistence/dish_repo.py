"""
infrastructure.persistence.dish_repo - SQLite dish repository.

Implements DishStore. A dish is unique on (name, user_id): saving the same
name again refreshes its nutrition data instead of creating a duplicate.
Once favorited, a dish stays favorited.
"""

from __future__ import annotations

import logging
from datetime import datetime

from domain.entities import Dish
from domain.models import PlanMeal
from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteDishRepository:
    """Async SQLite implementation of DishStore."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def upsert(self, meal: PlanMeal, user_id: int, favorite: bool = False) -> Dish:
        name = meal.recipe_name.strip()
        now = datetime.now().isoformat()
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO dishes
                   (user_id, name, ingredients, instruction, proteins, fats, carbs,
                    calories, portion_size, cooking_time, is_favorite,
                    created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT (name, user_id) DO UPDATE SET
                       ingredients = COALESCE(NULLIF(excluded.ingredients, ''), ingredients),
                       instruction = COALESCE(NULLIF(excluded.instruction, ''), instruction),
                       proteins = excluded.proteins,
                       fats = excluded.fats,
                       carbs = excluded.carbs,
                       calories = excluded.calories,
                       portion_size = excluded.portion_size,
                       cooking_time = COALESCE(NULLIF(excluded.cooking_time, 0), cooking_time),
                       is_favorite = MAX(is_favorite, excluded.is_favorite),
                       updated_at = excluded.updated_at""",
                (user_id, name, meal.ingredients, meal.instruction,
                 meal.proteins, meal.fats, meal.carbs, meal.calories,
                 meal.portion_size, meal.cooking_time, int(favorite), now, now),
            )
            rows = await conn.execute_fetchall(
                "SELECT * FROM dishes WHERE name = ? AND user_id = ?",
                (name, user_id),
            )
        dish = self._row_to_entity(rows[0])
        logger.debug("Dish %r upserted as id=%s for user %s", name, dish.id, user_id)
        return dish

    async def get_favorites(self, user_id: int) -> list[Dish]:
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT * FROM dishes WHERE user_id = ? AND is_favorite = 1 ORDER BY updated_at DESC",
                (user_id,),
            )
            return [self._row_to_entity(r) for r in rows]

    @staticmethod
    def _row_to_entity(row) -> Dish:
        return Dish(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            ingredients=row["ingredients"] or "",
            instruction=row["instruction"] or "",
            proteins=row["proteins"] or 0.0,
            fats=row["fats"] or 0.0,
            carbs=row["carbs"] or 0.0,
            calories=row["calories"] or 0,
            portion_size=row["portion_size"] or 0,
            cooking_time=row["cooking_time"] or 0,
            is_favorite=bool(row["is_favorite"]),
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )
