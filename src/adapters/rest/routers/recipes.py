"""Protected recipe generation endpoint."""

from fastapi import APIRouter, Depends

from adapters.rest.dependencies import CurrentUser, get_assistant, get_current_user
from adapters.rest.schemas import DishOut, RecipeBody
from application.services.assistant import AssistantService

router = APIRouter(prefix="/ai", tags=["recipes"])


@router.post("/recipes", response_model=DishOut)
async def create_recipe(
    body: RecipeBody,
    user: CurrentUser = Depends(get_current_user),
    service: AssistantService = Depends(get_assistant),
):
    dish = await service.create_recipe(user.user_id, body.recipe_name, body.calories)
    return DishOut.from_entity(dish)
