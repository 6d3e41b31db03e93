from typing import Any, List
from fastapi import APIRouter, Depends, status

from studygroup.api import deps
from studygroup.schemas.message import AssistantRequest, ChatMessage, MessageCreate, ReactionToggleRequest
from studygroup.services.assistant_service import ChatAssistant
from studygroup.services.message_log import MessageLogService

router = APIRouter()


@router.get("/{group_id}/messages", response_model=List[ChatMessage])
async def read_messages(
    group_id: str,
    message_log: MessageLogService = Depends(deps.get_message_log),
) -> Any:
    return await message_log.list_messages(group_id)


@router.post("/{group_id}/messages", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def append_message(
    group_id: str,
    candidate: MessageCreate,
    message_log: MessageLogService = Depends(deps.get_message_log),
) -> Any:
    """
    Idempotent by message id: resubmitting returns the stored copy.
    """
    return await message_log.append_message(group_id, candidate)


@router.post("/{group_id}/messages/{message_id}/reactions", response_model=ChatMessage)
async def toggle_reaction(
    group_id: str,
    message_id: str,
    body: ReactionToggleRequest,
    message_log: MessageLogService = Depends(deps.get_message_log),
    current_username: str = Depends(deps.get_current_username),
) -> Any:
    return await message_log.toggle_reaction(group_id, message_id, body.emoji, current_username)


@router.post("/{group_id}/assistant", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def ask_assistant(
    group_id: str,
    body: AssistantRequest,
    assistant: ChatAssistant = Depends(deps.get_assistant),
) -> Any:
    """
    Generate and store an assistant reply. Repeating a `requestId` never
    produces a second reply.
    """
    return await assistant.reply(group_id, body.prompt, body.request_id)
