"""
SQLAlchemy document store.

Groups are one row each; messages are one row each keyed by
(group_id, message_id). Reaction toggles and group replaces are
compare-and-swap UPDATEs on a `version` column, so two participants
reacting at the same time never overwrite each other.
"""

import asyncio
from contextlib import asynccontextmanager, nullcontext
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from studygroup.core.exceptions import ConflictError, NotFoundError, TransportError
from studygroup.db.base import Base
from studygroup.db.session import create_engine_for, create_session_factory, is_sqlite
from studygroup.models.group import GroupMessage, StudyGroup
from studygroup.models.student import Student, UserAccount
from studygroup.schemas.group import Group
from studygroup.schemas.message import ChatMessage
from studygroup.schemas.student import AccountRecord, StudentProfile
from studygroup.services.reaction_ledger import toggle_reaction
from studygroup.storage.base import StudyStore

logger = structlog.get_logger()

messages_table = GroupMessage.__table__
groups_table = StudyGroup.__table__


def _to_student(row: Student) -> StudentProfile:
    return StudentProfile(
        id=row.id,
        username=row.username,
        name=row.name,
        courses=list(row.courses or []),
        cgpa=row.cgpa or "",
        availability=list(row.availability or []),
    )


def _to_group(row: StudyGroup) -> Group:
    return Group(
        id=row.id,
        group_name=row.group_name,
        admin=row.admin,
        members=list(row.members or []),
        focus_courses=list(row.focus_courses or []),
        suggested_times=list(row.suggested_times or []),
        reason=row.reason or "",
        version=row.version,
    )


def _to_message(row: GroupMessage) -> ChatMessage:
    return ChatMessage(
        id=row.message_id,
        sender=row.sender,
        text=row.text,
        timestamp=row.timestamp or "",
        parent_id=row.parent_id,
        reactions={k: list(v) for k, v in (row.reactions or {}).items()},
    )


def _message_row(group_id: str, message: ChatMessage) -> GroupMessage:
    return GroupMessage(
        group_id=group_id,
        message_id=message.id,
        sender=message.sender,
        text=message.text,
        timestamp=message.timestamp,
        parent_id=message.parent_id,
        reactions=message.reactions,
        version=1,
    )


class DatabaseStore(StudyStore):
    name = "database"

    # Compare-and-swap attempts before a reaction toggle gives up
    MAX_CAS_ATTEMPTS = 5

    def __init__(self, db_url: str):
        self.db_url = db_url
        self.engine = create_engine_for(db_url)
        self.session_factory = create_session_factory(self.engine)
        # SQLite has one writer and aiosqlite sessions can share a connection,
        # so sessions run one at a time there
        self._lock = asyncio.Lock() if is_sqlite(db_url) else None

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_store_ready", url=self.engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _session(self):
        async with self._lock or nullcontext(), self.session_factory() as session:
            try:
                yield session
            except IntegrityError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("store_failure", error=str(e))
                raise TransportError("The data store is unavailable. Please try again.") from e

    async def is_empty(self) -> bool:
        async with self._session() as session:
            accounts = await session.scalar(select(func.count()).select_from(UserAccount))
            groups = await session.scalar(select(func.count()).select_from(StudyGroup))
            return not accounts and not groups

    # --- Accounts & profiles ---

    async def get_account(self, username: str) -> Optional[AccountRecord]:
        async with self._session() as session:
            row = await session.scalar(select(UserAccount).where(UserAccount.username == username))
            if row is None:
                return None
            return AccountRecord(username=row.username, password_hash=row.password_hash, student_id=row.student_id)

    async def create_account(self, account: AccountRecord, profile: StudentProfile) -> None:
        try:
            async with self._session() as session:
                existing = await session.scalar(select(UserAccount.id).where(UserAccount.username == account.username))
                if existing:
                    raise ConflictError("Username already exists.")
                session.add(Student(
                    id=profile.id,
                    username=profile.username,
                    name=profile.name,
                    courses=profile.courses,
                    cgpa=profile.cgpa,
                    availability=profile.availability,
                ))
                await session.flush()
                session.add(UserAccount(
                    username=account.username,
                    password_hash=account.password_hash,
                    student_id=account.student_id,
                ))
                await session.commit()
        except IntegrityError:
            raise ConflictError("Username already exists.")

    async def get_student(self, username: str) -> Optional[StudentProfile]:
        async with self._session() as session:
            row = await session.scalar(select(Student).where(Student.username == username))
            return _to_student(row) if row else None

    async def list_students(self) -> List[StudentProfile]:
        async with self._session() as session:
            rows = (await session.scalars(select(Student).order_by(Student.created_at))).all()
            return [_to_student(r) for r in rows]

    async def save_student(self, profile: StudentProfile) -> StudentProfile:
        async with self._session() as session:
            row = await session.scalar(select(Student).where(Student.username == profile.username))
            if row is None:
                raise NotFoundError("Student profile not found.")
            row.name = profile.name
            row.courses = list(profile.courses)
            row.cgpa = profile.cgpa
            row.availability = list(profile.availability)
            await session.commit()
            return _to_student(row)

    # --- Groups ---

    async def list_groups(self) -> List[Group]:
        async with self._session() as session:
            rows = (await session.scalars(select(StudyGroup).order_by(StudyGroup.created_at))).all()
            return [_to_group(r) for r in rows]

    async def get_group(self, group_id: str) -> Optional[Group]:
        async with self._session() as session:
            row = await session.get(StudyGroup, group_id)
            return _to_group(row) if row else None

    async def insert_group(self, group: Group) -> Group:
        try:
            async with self._session() as session:
                row = StudyGroup(
                    id=group.id,
                    group_name=group.group_name,
                    admin=group.admin,
                    members=list(group.members),
                    focus_courses=list(group.focus_courses),
                    suggested_times=list(group.suggested_times),
                    reason=group.reason,
                    version=group.version,
                )
                session.add(row)
                await session.commit()
                return _to_group(row)
        except IntegrityError:
            raise ConflictError("Group already exists.")

    async def replace_group(self, group: Group, expected_version: Optional[int] = None) -> Group:
        async with self._session() as session:
            stmt = update(groups_table).where(groups_table.c.id == group.id)
            if expected_version is not None:
                stmt = stmt.where(groups_table.c.version == expected_version)
            stmt = stmt.values(
                group_name=group.group_name,
                admin=group.admin,
                members=list(group.members),
                focus_courses=list(group.focus_courses),
                suggested_times=list(group.suggested_times),
                reason=group.reason,
                version=groups_table.c.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            result = await session.execute(stmt)
            if result.rowcount != 1:
                exists = await session.scalar(select(StudyGroup.id).where(StudyGroup.id == group.id))
                await session.rollback()
                if not exists:
                    raise NotFoundError("Group not found.")
                raise ConflictError("Group was modified by someone else. Reload and try again.")
            await session.commit()
            row = await session.get(StudyGroup, group.id, populate_existing=True)
            return _to_group(row)

    async def delete_group(self, group_id: str) -> bool:
        async with self._session() as session:
            await session.execute(delete(messages_table).where(messages_table.c.group_id == group_id))
            result = await session.execute(delete(groups_table).where(groups_table.c.id == group_id))
            await session.commit()
            return result.rowcount > 0

    # --- Message log ---

    async def _require_group(self, session: AsyncSession, group_id: str) -> None:
        exists = await session.scalar(select(StudyGroup.id).where(StudyGroup.id == group_id))
        if not exists:
            raise NotFoundError("Group not found.")

    async def _find_message(self, session: AsyncSession, group_id: str, message_id: str) -> Optional[GroupMessage]:
        return await session.scalar(
            select(GroupMessage).where(
                GroupMessage.group_id == group_id,
                GroupMessage.message_id == message_id,
            )
        )

    async def list_messages(self, group_id: str) -> List[ChatMessage]:
        async with self._session() as session:
            await self._require_group(session, group_id)
            rows = (await session.scalars(
                select(GroupMessage).where(GroupMessage.group_id == group_id).order_by(GroupMessage.seq)
            )).all()
            return [_to_message(r) for r in rows]

    async def get_message(self, group_id: str, message_id: str) -> Optional[ChatMessage]:
        async with self._session() as session:
            row = await self._find_message(session, group_id, message_id)
            return _to_message(row) if row else None

    async def insert_message_if_absent(self, group_id: str, message: ChatMessage) -> Tuple[ChatMessage, bool]:
        try:
            async with self._session() as session:
                await self._require_group(session, group_id)
                existing = await self._find_message(session, group_id, message.id)
                if existing is not None:
                    return _to_message(existing), False
                row = _message_row(group_id, message)
                session.add(row)
                await session.commit()
                return _to_message(row), True
        except IntegrityError:
            # Lost the race against an identical submission; the winner's copy is authoritative
            async with self._session() as session:
                existing = await self._find_message(session, group_id, message.id)
                if existing is None:
                    raise
                return _to_message(existing), False

    async def replace_messages(self, group_id: str, messages: List[ChatMessage]) -> None:
        async with self._session() as session:
            await self._require_group(session, group_id)
            await session.execute(delete(messages_table).where(messages_table.c.group_id == group_id))
            for message in messages:
                session.add(_message_row(group_id, message))
            await session.commit()

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str, username: str) -> ChatMessage:
        for attempt in range(self.MAX_CAS_ATTEMPTS):
            async with self._session() as session:
                row = await self._find_message(session, group_id, message_id)
                if row is None:
                    await self._require_group(session, group_id)
                    raise NotFoundError("Message not found.")

                reactions = toggle_reaction(row.reactions or {}, emoji, username)
                result = await session.execute(
                    update(messages_table)
                    .where(messages_table.c.seq == row.seq, messages_table.c.version == row.version)
                    .values(reactions=reactions, version=row.version + 1)
                )
                if result.rowcount == 1:
                    await session.commit()
                    message = _to_message(row)
                    message.reactions = reactions
                    return message
                await session.rollback()

            logger.info("reaction_toggle_retry", group_id=group_id, message_id=message_id, attempt=attempt + 1)

        raise ConflictError("Too many concurrent reactions on this message. Please try again.")
