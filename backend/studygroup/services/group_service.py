"""
Group Lifecycle Manager.

create -> join/leave/update ... -> delete (explicitly by the admin, or
implicitly when the last member leaves). Deleting a group discards its
message log with it.
"""

import uuid
from typing import List, Optional

import structlog

from studygroup.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from studygroup.schemas.group import Group, GroupCreate, GroupUpdate
from studygroup.services.message_log import MessageLogService
from studygroup.storage.base import StudyStore

logger = structlog.get_logger()


def _dedupe(usernames: List[str]) -> List[str]:
    return list(dict.fromkeys(u.strip() for u in usernames if u and u.strip()))


class GroupService:

    def __init__(self, store: StudyStore):
        self.store = store

    async def list_groups(self) -> List[Group]:
        return await self.store.list_groups()

    async def get_group(self, group_id: str) -> Group:
        group = await self.store.get_group(group_id)
        if group is None:
            raise NotFoundError("Group not found.")
        return group

    async def create_group(self, data: GroupCreate) -> Group:
        name = (data.group_name or "").strip()
        admin = (data.admin or "").strip()
        members = _dedupe(data.members or [])
        if not name or not admin or not members:
            raise ValidationError("Missing required group data.")
        if admin not in members:
            members.insert(0, admin)

        group = Group(
            id=str(uuid.uuid4()),
            group_name=name,
            admin=admin,
            members=members,
            focus_courses=data.focus_courses,
            suggested_times=data.suggested_times,
            reason=data.reason,
            version=1,
        )
        stored = await self.store.insert_group(group)
        logger.info("group_created", group_id=stored.id, group_name=stored.group_name, admin=admin)
        return stored

    async def join_group(self, group_id: str, username: str) -> Group:
        group = await self.get_group(group_id)
        if username in group.members:
            return group

        group.members.append(username)
        updated = await self.store.replace_group(group, expected_version=group.version)
        logger.info("group_joined", group_id=group_id, username=username)
        return updated

    async def update_group(self, group_id: str, snapshot: GroupUpdate, caller: str) -> Group:
        """
        Whole-document replace. The id in the path always wins.
        Renaming and handing over the admin role are admin-only.
        A `messages` snapshot is checked in full before anything is written.
        """
        current = await self.get_group(group_id)

        name = snapshot.group_name.strip()
        members = _dedupe(snapshot.members)
        if not name or not snapshot.admin or not members:
            raise ValidationError("Missing required group data.")
        if snapshot.admin not in members:
            raise ValidationError("The admin must be a member of the group.")

        is_admin = caller == current.admin
        if name != current.group_name and not is_admin:
            raise AuthorizationError("Only the group admin can rename the group.")
        if snapshot.admin != current.admin and not is_admin:
            raise AuthorizationError("Only the group admin can hand over the admin role.")

        messages = None
        if snapshot.messages is not None:
            messages = MessageLogService.validate_snapshot(snapshot.messages)

        replacement = Group(
            id=group_id,
            group_name=name,
            admin=snapshot.admin,
            members=members,
            focus_courses=snapshot.focus_courses,
            suggested_times=snapshot.suggested_times,
            reason=snapshot.reason,
            version=current.version,
        )
        expected = snapshot.version if snapshot.version is not None else current.version
        updated = await self.store.replace_group(replacement, expected_version=expected)

        if messages is not None:
            await self.store.replace_messages(group_id, messages)
            logger.info("group_log_replaced", group_id=group_id, count=len(messages))

        logger.info("group_updated", group_id=group_id, group_name=updated.group_name, version=updated.version)
        return updated

    async def leave_group(self, group_id: str, username: str) -> Optional[Group]:
        """
        Remove `username`. Returns the updated group, or None when the
        last member left and the group was deleted.
        """
        group = await self.get_group(group_id)
        if username not in group.members:
            raise ValidationError("You are not a member of this group.")

        remaining = [m for m in group.members if m != username]
        if not remaining:
            await self.store.delete_group(group_id)
            logger.info("group_deleted_last_member_left", group_id=group_id, username=username)
            return None

        group.members = remaining
        if group.admin == username:
            # Earliest-joined remaining member takes over; members are kept in join order
            group.admin = remaining[0]
            logger.info("group_admin_transferred", group_id=group_id, old_admin=username, new_admin=group.admin)

        updated = await self.store.replace_group(group, expected_version=group.version)
        logger.info("group_left", group_id=group_id, username=username)
        return updated

    async def delete_group(self, group_id: str, caller: str) -> None:
        group = await self.get_group(group_id)
        if caller != group.admin:
            raise AuthorizationError("Only the group admin can delete the group.")
        await self.store.delete_group(group_id)
        logger.info("group_deleted", group_id=group_id, admin=caller)
