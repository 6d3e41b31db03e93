"""
In-process store. Everything lives in dictionaries and is gone on restart.
Used for local demos and for tests.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from studygroup.core.exceptions import ConflictError, NotFoundError
from studygroup.schemas.group import Group
from studygroup.schemas.message import ChatMessage
from studygroup.schemas.student import AccountRecord, StudentProfile
from studygroup.services.reaction_ledger import toggle_reaction
from studygroup.storage.base import StudyStore


class InMemoryStore(StudyStore):
    name = "memory"

    def __init__(self):
        self._lock = asyncio.Lock()
        self._accounts: Dict[str, AccountRecord] = {}
        self._students: Dict[str, StudentProfile] = {}  # keyed by username
        self._groups: Dict[str, Group] = {}
        self._logs: Dict[str, List[ChatMessage]] = {}

    async def is_empty(self) -> bool:
        return not self._accounts and not self._groups

    # --- Accounts & profiles ---

    async def get_account(self, username: str) -> Optional[AccountRecord]:
        account = self._accounts.get(username)
        return account.model_copy() if account else None

    async def create_account(self, account: AccountRecord, profile: StudentProfile) -> None:
        async with self._lock:
            if account.username in self._accounts:
                raise ConflictError("Username already exists.")
            self._accounts[account.username] = account.model_copy()
            self._students[profile.username] = profile.model_copy(deep=True)

    async def get_student(self, username: str) -> Optional[StudentProfile]:
        profile = self._students.get(username)
        return profile.model_copy(deep=True) if profile else None

    async def list_students(self) -> List[StudentProfile]:
        return [p.model_copy(deep=True) for p in self._students.values()]

    async def save_student(self, profile: StudentProfile) -> StudentProfile:
        async with self._lock:
            if profile.username not in self._students:
                raise NotFoundError("Student profile not found.")
            self._students[profile.username] = profile.model_copy(deep=True)
            return profile.model_copy(deep=True)

    # --- Groups ---

    async def list_groups(self) -> List[Group]:
        return [g.model_copy(deep=True) for g in self._groups.values()]

    async def get_group(self, group_id: str) -> Optional[Group]:
        group = self._groups.get(group_id)
        return group.model_copy(deep=True) if group else None

    async def insert_group(self, group: Group) -> Group:
        async with self._lock:
            if group.id in self._groups:
                raise ConflictError("Group already exists.")
            self._groups[group.id] = group.model_copy(deep=True)
            self._logs[group.id] = []
            return group.model_copy(deep=True)

    async def replace_group(self, group: Group, expected_version: Optional[int] = None) -> Group:
        async with self._lock:
            current = self._groups.get(group.id)
            if current is None:
                raise NotFoundError("Group not found.")
            if expected_version is not None and current.version != expected_version:
                raise ConflictError("Group was modified by someone else. Reload and try again.")
            stored = group.model_copy(deep=True, update={"version": current.version + 1})
            self._groups[group.id] = stored
            return stored.model_copy(deep=True)

    async def delete_group(self, group_id: str) -> bool:
        async with self._lock:
            existed = self._groups.pop(group_id, None) is not None
            self._logs.pop(group_id, None)
            return existed

    # --- Message log ---

    async def list_messages(self, group_id: str) -> List[ChatMessage]:
        if group_id not in self._groups:
            raise NotFoundError("Group not found.")
        return [m.model_copy(deep=True) for m in self._logs.get(group_id, [])]

    async def get_message(self, group_id: str, message_id: str) -> Optional[ChatMessage]:
        for message in self._logs.get(group_id, []):
            if message.id == message_id:
                return message.model_copy(deep=True)
        return None

    async def insert_message_if_absent(self, group_id: str, message: ChatMessage) -> Tuple[ChatMessage, bool]:
        async with self._lock:
            if group_id not in self._groups:
                raise NotFoundError("Group not found.")
            log = self._logs.setdefault(group_id, [])
            for existing in log:
                if existing.id == message.id:
                    return existing.model_copy(deep=True), False
            log.append(message.model_copy(deep=True))
            return message.model_copy(deep=True), True

    async def replace_messages(self, group_id: str, messages: List[ChatMessage]) -> None:
        async with self._lock:
            if group_id not in self._groups:
                raise NotFoundError("Group not found.")
            self._logs[group_id] = [m.model_copy(deep=True) for m in messages]

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str, username: str) -> ChatMessage:
        async with self._lock:
            if group_id not in self._groups:
                raise NotFoundError("Group not found.")
            log = self._logs.get(group_id, [])
            for index, message in enumerate(log):
                if message.id == message_id:
                    updated = message.model_copy(
                        deep=True,
                        update={"reactions": toggle_reaction(message.reactions, emoji, username)},
                    )
                    log[index] = updated
                    return updated.model_copy(deep=True)
            raise NotFoundError("Message not found.")
