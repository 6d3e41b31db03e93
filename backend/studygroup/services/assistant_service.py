"""
In-chat assistant.

The reply is generated out-of-band by the AI collaborator and then stored
through the normal idempotent append, under an id derived from the
client's request token. Duplicate invocations of the same request are
coalesced: while one is in flight the others await it, and once it has
landed a retry just returns the stored reply without another AI call.
"""

import asyncio
import uuid
from typing import Awaitable, Callable, Dict, Hashable, Optional

import structlog

from studygroup.core.config import settings
from studygroup.core.exceptions import NotFoundError, ValidationError
from studygroup.core.time_utils import format_chat_time
from studygroup.schemas.message import ASSISTANT_SENDER, ChatMessage, MessageCreate
from studygroup.services.ai_service import GeminiService
from studygroup.services.message_log import MessageLogService
from studygroup.storage.base import StudyStore

logger = structlog.get_logger()


class SingleFlight:
    """
    Coalesce concurrent calls that share a key into one execution.
    """

    def __init__(self):
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._inflight

    async def do(self, key: Hashable, fn: Callable[[], Awaitable]):
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            logger.info("singleflight_coalesced", key=str(key))
        # shield: one waiter going away must not cancel the shared call
        return await asyncio.shield(task)


def strip_trigger(text: str, trigger: Optional[str] = None) -> Optional[str]:
    """
    Return the prompt if `text` starts with the assistant trigger
    (case-insensitive), else None.
    """
    trigger = (trigger or settings.ASSISTANT_TRIGGER).lower()
    stripped = (text or "").strip()
    if not stripped.lower().startswith(trigger):
        return None
    return stripped[len(trigger):].strip()


def assistant_message_id(request_id: str) -> str:
    return f"msg-ai-{request_id}"


class ChatAssistant:

    def __init__(self, store: StudyStore, flights: SingleFlight):
        self.store = store
        self.flights = flights
        self.message_log = MessageLogService(store)

    async def reply(self, group_id: str, prompt: str, request_id: Optional[str] = None) -> ChatMessage:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Ask the assistant a question after the trigger.")
        if await self.store.get_group(group_id) is None:
            raise NotFoundError("Group not found.")

        request_id = request_id or uuid.uuid4().hex
        return await self.flights.do(
            (group_id, request_id),
            lambda: self._generate_and_store(group_id, prompt, request_id),
        )

    async def _generate_and_store(self, group_id: str, prompt: str, request_id: str) -> ChatMessage:
        message_id = assistant_message_id(request_id)
        existing = await self.store.get_message(group_id, message_id)
        if existing is not None:
            logger.info("assistant_reply_reused", group_id=group_id, message_id=message_id)
            return existing

        history = await self.store.list_messages(group_id)
        logger.info("assistant_reply_requested", group_id=group_id, request_id=request_id, history=len(history))
        text = await GeminiService.generate_chat_reply(history, prompt)

        return await self.message_log.append_message(
            group_id,
            MessageCreate(
                id=message_id,
                sender=ASSISTANT_SENDER,
                text=text,
                timestamp=format_chat_time(),
            ),
        )
