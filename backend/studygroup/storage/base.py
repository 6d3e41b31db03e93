"""
Storage interface.

The services in `studygroup.services` only talk to a StudyStore, so the same
group/message logic runs against the in-memory map (single process, nothing
persisted) or the SQLAlchemy document store. The implementation is picked
once at startup from settings.STORAGE_BACKEND.

Every mutating method is atomic on its own: callers never need to wrap
several calls in a transaction.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from studygroup.schemas.group import Group
from studygroup.schemas.message import ChatMessage
from studygroup.schemas.student import AccountRecord, StudentProfile


class StudyStore(ABC):
    name: str = "abstract"

    async def init(self) -> None:
        """Create tables / structures. Safe to call more than once."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def is_empty(self) -> bool: ...

    # --- Accounts & profiles ---

    @abstractmethod
    async def get_account(self, username: str) -> Optional[AccountRecord]: ...

    @abstractmethod
    async def create_account(self, account: AccountRecord, profile: StudentProfile) -> None:
        """Store credential and profile together. ConflictError if the username is taken."""

    @abstractmethod
    async def get_student(self, username: str) -> Optional[StudentProfile]: ...

    @abstractmethod
    async def list_students(self) -> List[StudentProfile]: ...

    @abstractmethod
    async def save_student(self, profile: StudentProfile) -> StudentProfile: ...

    # --- Groups ---

    @abstractmethod
    async def list_groups(self) -> List[Group]: ...

    @abstractmethod
    async def get_group(self, group_id: str) -> Optional[Group]: ...

    @abstractmethod
    async def insert_group(self, group: Group) -> Group: ...

    @abstractmethod
    async def replace_group(self, group: Group, expected_version: Optional[int] = None) -> Group:
        """
        Whole-document replace. Bumps `version`.
        NotFoundError if the group is gone, ConflictError if `expected_version`
        is given and no longer matches.
        """

    @abstractmethod
    async def delete_group(self, group_id: str) -> bool:
        """Delete the group and its whole message log. False if it did not exist."""

    # --- Message log ---

    @abstractmethod
    async def list_messages(self, group_id: str) -> List[ChatMessage]:
        """Messages in arrival order."""

    @abstractmethod
    async def get_message(self, group_id: str, message_id: str) -> Optional[ChatMessage]: ...

    @abstractmethod
    async def insert_message_if_absent(self, group_id: str, message: ChatMessage) -> Tuple[ChatMessage, bool]:
        """
        Append unless a message with the same id exists.
        Returns (stored message, created). NotFoundError if the group is gone.
        """

    @abstractmethod
    async def replace_messages(self, group_id: str, messages: List[ChatMessage]) -> None: ...

    @abstractmethod
    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str, username: str) -> ChatMessage:
        """Apply a ledger toggle to one message atomically. NotFoundError if absent."""
