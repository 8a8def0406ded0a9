"""Protected AI chat endpoints: answer, regenerate, favorite."""

from fastapi import APIRouter, Depends

from adapters.rest.dependencies import CurrentUser, get_assistant, get_current_user
from adapters.rest.schemas import ChatBody, ChatResponseOut, FavoriteOut
from application.services.assistant import AssistantService

router = APIRouter(prefix="/ai/chat", tags=["chat"])


@router.post("/{chat_id}", response_model=ChatResponseOut)
async def send_message(
    chat_id: str,
    body: ChatBody,
    user: CurrentUser = Depends(get_current_user),
    service: AssistantService = Depends(get_assistant),
):
    response = await service.generate_response(chat_id, user.user_id, body.content)
    return ChatResponseOut.from_dto(response)


@router.post("/{chat_id}/regenerate", response_model=ChatResponseOut)
async def regenerate(
    chat_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: AssistantService = Depends(get_assistant),
):
    response = await service.regenerate(chat_id, user.user_id)
    return ChatResponseOut.from_dto(response)


@router.post("/{chat_id}/messages/{message_id}/favorite", response_model=FavoriteOut)
async def favorite(
    chat_id: str,
    message_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: AssistantService = Depends(get_assistant),
):
    result = await service.favorite(chat_id, user.user_id, message_id)
    return FavoriteOut(dish_id=result.dish_id, plan_id=result.plan_id)
