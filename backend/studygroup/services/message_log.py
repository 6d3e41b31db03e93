"""
Message Log - the authoritative, append-mostly chat log of a group.

Append is idempotent by message id: a client that resubmits a message
(optimistic send retried, duplicate request) gets the stored copy back and
the log does not grow. Replies are checked at append time: a parent must
already be in the same group's log.
"""

from typing import List

import structlog

from studygroup.core.exceptions import NotFoundError, ValidationError
from studygroup.core.time_utils import format_chat_time
from studygroup.schemas.message import ChatMessage, MessageCreate, SYSTEM_SENDER
from studygroup.services.reaction_ledger import normalize_reactions
from studygroup.storage.base import StudyStore

logger = structlog.get_logger()

MAX_MESSAGE_ID_LENGTH = 128


class MessageLogService:

    def __init__(self, store: StudyStore):
        self.store = store

    async def list_messages(self, group_id: str) -> List[ChatMessage]:
        return await self.store.list_messages(group_id)

    @staticmethod
    def validate_candidate(candidate: MessageCreate) -> ChatMessage:
        """
        Turn a client submission into a storable message or raise ValidationError.
        Nothing is touched before this passes.
        """
        message_id = (candidate.id or "").strip()
        sender = (candidate.sender or "").strip()
        text = candidate.text or ""

        if not message_id or not sender or not text.strip():
            raise ValidationError("Invalid message format.")
        if len(message_id) > MAX_MESSAGE_ID_LENGTH:
            raise ValidationError("Message id is too long.")
        if sender == SYSTEM_SENDER:
            raise ValidationError("System notices cannot be posted to a group.")

        return ChatMessage(
            id=message_id,
            sender=sender,
            text=text,
            timestamp=candidate.timestamp or format_chat_time(),
            parent_id=candidate.parent_id or None,
            reactions=normalize_reactions(candidate.reactions or {}),
        )

    @classmethod
    def validate_snapshot(cls, messages: List[ChatMessage]) -> List[ChatMessage]:
        """
        Check a whole replacement log against the append rules: every entry
        must pass validate_candidate, ids are unique, and a parent must appear
        earlier in the same snapshot.
        """
        validated = []
        seen = set()
        for message in messages:
            candidate = cls.validate_candidate(MessageCreate(**message.model_dump()))
            if candidate.id in seen:
                raise ValidationError(f"Duplicate message id '{candidate.id}' in the message log.")
            if candidate.parent_id is not None and candidate.parent_id not in seen:
                raise ValidationError(f"Reply target of '{candidate.id}' is not an earlier message in the log.")
            seen.add(candidate.id)
            validated.append(candidate)
        return validated

    async def append_message(self, group_id: str, candidate: MessageCreate) -> ChatMessage:
        message = self.validate_candidate(candidate)

        group = await self.store.get_group(group_id)
        if group is None:
            raise NotFoundError("Group not found.")

        existing = await self.store.get_message(group_id, message.id)
        if existing is not None:
            logger.info("message_duplicate_ignored", group_id=group_id, message_id=message.id)
            return existing

        if message.parent_id is not None:
            await self._check_parent(group_id, message)

        stored, created = await self.store.insert_message_if_absent(group_id, message)
        if created:
            logger.info("message_appended", group_id=group_id, message_id=stored.id, sender=stored.sender)
        else:
            logger.info("message_duplicate_ignored", group_id=group_id, message_id=stored.id)
        return stored

    async def _check_parent(self, group_id: str, message: ChatMessage) -> None:
        if message.parent_id == message.id:
            raise ValidationError("A message cannot reply to itself.")
        parent = await self.store.get_message(group_id, message.parent_id)
        if parent is None:
            raise ValidationError("Reply target is not a message in this group.")

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str, username: str) -> ChatMessage:
        emoji = (emoji or "").strip()
        if not emoji:
            raise ValidationError("Reaction emoji is required.")
        if not username:
            raise ValidationError("Reactor is required.")

        message = await self.store.toggle_reaction(group_id, message_id, emoji, username)
        logger.info(
            "reaction_toggled",
            group_id=group_id,
            message_id=message_id,
            emoji=emoji,
            username=username,
            active=username in message.reactions.get(emoji, []),
        )
        return message
