"""
Optimistic chat session for one group.

Messages are rendered as soon as they are composed and reconciled with the
server afterwards: confirmed on success, taken back out on failure. The
rendered log is what a UI would draw; `errors` collects the inline notices
a UI would show.
"""

import uuid
from enum import Enum
from typing import Dict, List, Optional, Set

import structlog

from studygroup.client.api import StudyGroupAPI
from studygroup.core.exceptions import StudyGroupError
from studygroup.core.time_utils import format_chat_time
from studygroup.schemas.group import Group, GroupUpdate
from studygroup.schemas.message import ChatMessage, SYSTEM_SENDER
from studygroup.services.assistant_service import strip_trigger
from studygroup.services.reaction_ledger import toggle_reaction

logger = structlog.get_logger()

SEND_FAILED = "Failed to send message. Please try again."
ASSISTANT_FAILED = "The AI assistant failed to send a message."
LOAD_FAILED = "Failed to load chat history."


class MessageState(str, Enum):
    COMPOSED = "composed"
    DISPLAYED = "displayed"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


def welcome_notice(group: Group) -> ChatMessage:
    return ChatMessage(
        id=f"system-welcome-{group.id}",
        sender=SYSTEM_SENDER,
        text=(
            f"Welcome to {group.group_name}! Say hello, or type '@ai' followed by "
            "a question to get help from the AI assistant."
        ),
        timestamp=format_chat_time(),
    )


class ChatSession:

    def __init__(self, api: StudyGroupAPI, group: Group, username: str):
        self.api = api
        self.group = group
        self.username = username
        self.messages: List[ChatMessage] = []
        self.states: Dict[str, MessageState] = {}
        self.errors: List[str] = []
        self.pending_assistant: Set[str] = set()

    @property
    def assistant_typing(self) -> bool:
        return bool(self.pending_assistant)

    def _pending_local(self) -> List[ChatMessage]:
        return [
            m for m in self.messages
            if self.states.get(m.id) in (MessageState.COMPOSED, MessageState.DISPLAYED)
        ]

    def _render_log(self, log: List[ChatMessage]) -> None:
        pending = [m for m in self._pending_local() if m.id not in {s.id for s in log}]
        for message in log:
            self.states[message.id] = MessageState.CONFIRMED
        if not log and not pending:
            self.messages = [welcome_notice(self.group)]
        else:
            self.messages = list(log) + pending

    async def load(self) -> List[ChatMessage]:
        try:
            log = await self.api.list_messages(self.group.id)
        except StudyGroupError as e:
            logger.warning("chat_load_failed", group_id=self.group.id, error=e.message)
            self.errors.append(LOAD_FAILED)
            raise
        self._render_log(log)
        return self.messages

    async def refresh(self) -> List[ChatMessage]:
        """
        Poll the authoritative log. Messages still waiting on the server stay
        at the tail in their local order.
        """
        return await self.load()

    async def send(self, text: str, reply_to: Optional[str] = None) -> Optional[ChatMessage]:
        """
        Render immediately, then submit. Returns the confirmed message, or
        None when the text was blank or the submit failed.
        An assistant trigger is only acted on once the server has confirmed
        the message, so a rolled-back question never gets a reply.
        """
        text = (text or "").strip()
        if not text:
            return None

        message = ChatMessage(
            id=f"msg-{uuid.uuid4()}",
            sender=self.username,
            text=text,
            timestamp=format_chat_time(),
            parent_id=reply_to,
        )
        self.states[message.id] = MessageState.COMPOSED
        self.messages.append(message)
        self.states[message.id] = MessageState.DISPLAYED

        try:
            stored = await self.api.append_message(self.group.id, message)
        except StudyGroupError as e:
            logger.warning("chat_send_failed", group_id=self.group.id, message_id=message.id, error=e.message)
            self.messages = [m for m in self.messages if m.id != message.id]
            self.states[message.id] = MessageState.ROLLED_BACK
            self.errors.append(SEND_FAILED)
            return None

        self._replace(stored)
        self.states[stored.id] = MessageState.CONFIRMED

        prompt = strip_trigger(text)
        if prompt:
            await self.ask_assistant(prompt)
        return stored

    async def ask_assistant(self, prompt: str) -> Optional[ChatMessage]:
        request_id = uuid.uuid4().hex
        self.pending_assistant.add(request_id)
        try:
            reply = await self.api.ask_assistant(self.group.id, prompt, request_id)
        except StudyGroupError as e:
            logger.warning("chat_assistant_failed", group_id=self.group.id, error=e.message)
            self.errors.append(ASSISTANT_FAILED)
            return None
        finally:
            self.pending_assistant.discard(request_id)

        if not self._replace(reply):
            self.messages.append(reply)
        self.states[reply.id] = MessageState.CONFIRMED
        return reply

    async def toggle_reaction(self, message_id: str, emoji: str) -> ChatMessage:
        local = self._find(message_id)
        if local is not None:
            self._replace(local.model_copy(update={"reactions": toggle_reaction(local.reactions, emoji, self.username)}))

        try:
            updated = await self.api.toggle_reaction(self.group.id, message_id, emoji)
        except StudyGroupError as e:
            logger.warning("chat_reaction_failed", group_id=self.group.id, message_id=message_id, error=e.message)
            if local is not None:
                self._replace(local)
            self.errors.append(e.message)
            raise

        self._replace(updated)
        return updated

    async def rename(self, new_name: str) -> Group:
        """Admin-only on the server; sends the current version so a stale rename fails."""
        new_name = (new_name or "").strip()
        if not new_name or new_name == self.group.group_name:
            return self.group
        snapshot = GroupUpdate(
            group_name=new_name,
            admin=self.group.admin,
            members=self.group.members,
            focus_courses=self.group.focus_courses,
            suggested_times=self.group.suggested_times,
            reason=self.group.reason,
            version=self.group.version,
        )
        try:
            self.group = await self.api.update_group(self.group.id, snapshot)
        except StudyGroupError as e:
            self.errors.append(e.message)
            raise
        return self.group

    def _find(self, message_id: str) -> Optional[ChatMessage]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def _replace(self, message: ChatMessage) -> bool:
        for i, current in enumerate(self.messages):
            if current.id == message.id:
                self.messages[i] = message
                return True
        return False
