import asyncio
import os
import tempfile
import unittest

from studygroup.core.exceptions import ConflictError, NotFoundError, ValidationError
from studygroup.db.init_db import seed_demo_data
from studygroup.schemas.group import GroupCreate, GroupUpdate
from studygroup.schemas.message import ChatMessage, MessageCreate
from studygroup.schemas.student import Credentials
from studygroup.services.account_service import AccountService
from studygroup.services.group_service import GroupService
from studygroup.services.message_log import MessageLogService
from studygroup.storage.database import DatabaseStore


class TestDatabaseStore(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = DatabaseStore("sqlite+aiosqlite:///:memory:")
        await self.store.init()
        self.groups = GroupService(self.store)
        self.log = MessageLogService(self.store)
        self.group = await self.groups.create_group(
            GroupCreate(group_name="Study X", admin="zoe", members=["zoe", "bob"])
        )

    async def asyncTearDown(self):
        await self.store.close()

    async def test_accounts_round_trip(self):
        accounts = AccountService(self.store)
        await accounts.register(Credentials(username="zoe", password="pw1"))
        profile = await accounts.login(Credentials(username="zoe", password="pw1"))
        self.assertEqual(profile.name, "zoe")

        with self.assertRaises(ConflictError):
            await accounts.register(Credentials(username="zoe", password="pw1"))

    async def test_append_deduplicates_by_id(self):
        first = await self.log.append_message(self.group.id, MessageCreate(id="m1", sender="zoe", text="hi"))
        again = await self.log.append_message(self.group.id, MessageCreate(id="m1", sender="zoe", text="hi again"))

        self.assertEqual(again, first)
        self.assertEqual([m.id for m in await self.log.list_messages(self.group.id)], ["m1"])

    async def test_insert_if_absent_reports_creation(self):
        message = ChatMessage(id="m1", sender="zoe", text="hi", timestamp="10:30 AM")
        _, created = await self.store.insert_message_if_absent(self.group.id, message)
        stored, created_again = await self.store.insert_message_if_absent(self.group.id, message)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(stored.timestamp, "10:30 AM")

    async def test_same_message_id_in_different_groups(self):
        other = await self.groups.create_group(GroupCreate(group_name="Other", admin="bob", members=["bob"]))
        await self.log.append_message(self.group.id, MessageCreate(id="m1", sender="zoe", text="hi"))
        await self.log.append_message(other.id, MessageCreate(id="m1", sender="bob", text="hello"))

        self.assertEqual((await self.log.list_messages(other.id))[0].text, "hello")

    async def test_dangling_parent_is_rejected(self):
        with self.assertRaises(ValidationError):
            await self.log.append_message(
                self.group.id, MessageCreate(id="m2", sender="zoe", text="hi", parent_id="ghost")
            )

    async def test_reaction_toggle_persists_per_message(self):
        await self.log.append_message(self.group.id, MessageCreate(id="m1", sender="zoe", text="hi"))
        await self.log.append_message(self.group.id, MessageCreate(id="m2", sender="bob", text="yo"))

        await self.log.toggle_reaction(self.group.id, "m1", "👍", "bob")
        await self.log.toggle_reaction(self.group.id, "m1", "👍", "zoe")
        await self.log.toggle_reaction(self.group.id, "m2", "😂", "zoe")
        off = await self.log.toggle_reaction(self.group.id, "m1", "👍", "bob")

        self.assertEqual(off.reactions, {"👍": ["zoe"]})
        messages = {m.id: m for m in await self.log.list_messages(self.group.id)}
        self.assertEqual(messages["m1"].reactions, {"👍": ["zoe"]})
        self.assertEqual(messages["m2"].reactions, {"😂": ["zoe"]})

    async def test_reaction_on_unknown_message_or_group(self):
        with self.assertRaises(NotFoundError):
            await self.log.toggle_reaction(self.group.id, "ghost", "👍", "bob")
        with self.assertRaises(NotFoundError):
            await self.log.toggle_reaction("no-group", "m1", "👍", "bob")

    async def test_stale_group_replace_conflicts(self):
        snapshot = GroupUpdate(**self.group.model_dump())
        updated = await self.groups.update_group(self.group.id, snapshot, caller="zoe")
        self.assertEqual(updated.version, 2)

        with self.assertRaises(ConflictError):
            await self.groups.update_group(self.group.id, snapshot, caller="zoe")

    async def test_replace_missing_group(self):
        missing = self.group.model_copy(update={"id": "ghost"})
        with self.assertRaises(NotFoundError):
            await self.store.replace_group(missing, expected_version=1)

    async def test_leave_and_admin_transfer(self):
        updated = await self.groups.leave_group(self.group.id, "zoe")
        self.assertEqual(updated.admin, "bob")
        self.assertEqual(updated.members, ["bob"])

    async def test_delete_group_removes_log(self):
        await self.log.append_message(self.group.id, MessageCreate(id="m1", sender="zoe", text="hi"))
        await self.groups.delete_group(self.group.id, "zoe")

        self.assertIsNone(await self.store.get_group(self.group.id))
        self.assertIsNone(await self.store.get_message(self.group.id, "m1"))
        with self.assertRaises(NotFoundError):
            await self.store.list_messages(self.group.id)

    async def test_seed_only_into_empty_store(self):
        self.assertFalse(await seed_demo_data(self.store))

        fresh = DatabaseStore("sqlite+aiosqlite:///:memory:")
        await fresh.init()
        try:
            self.assertTrue(await seed_demo_data(fresh))
            self.assertEqual(len(await fresh.list_students()), 4)
            self.assertEqual(len(await fresh.list_groups()), 2)
        finally:
            await fresh.close()


    async def test_bad_snapshot_log_leaves_group_untouched(self):
        snapshot = GroupUpdate(
            **self.group.model_dump(exclude={"group_name"}),
            group_name="Renamed",
            messages=[ChatMessage(id="m1", sender="zoe", text="a"), ChatMessage(id="m1", sender="zoe", text="b")],
        )
        with self.assertRaises(ValidationError):
            await self.groups.update_group(self.group.id, snapshot, caller="zoe")

        group = await self.store.get_group(self.group.id)
        self.assertEqual(group.group_name, "Study X")
        self.assertEqual(group.version, 1)


class TestDatabaseStoreConcurrency(unittest.IsolatedAsyncioTestCase):
    """File-backed SQLite, the default deployment."""

    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        path = os.path.join(self.tmpdir.name, "studygroup.db")
        self.store = DatabaseStore(f"sqlite+aiosqlite:///{path}")
        await self.store.init()
        self.log = MessageLogService(self.store)
        self.group = await GroupService(self.store).create_group(
            GroupCreate(group_name="Study X", admin="zoe", members=["zoe"])
        )
        for i in range(10):
            await self.log.append_message(self.group.id, MessageCreate(id=f"m{i}", sender="zoe", text=str(i)))

    async def asyncTearDown(self):
        await self.store.close()
        self.tmpdir.cleanup()

    async def test_reactors_on_different_messages_all_land(self):
        await asyncio.gather(*[
            self.log.toggle_reaction(self.group.id, f"m{i}", "❤️", f"u{i}") for i in range(10)
        ])

        messages = {m.id: m for m in await self.log.list_messages(self.group.id)}
        for i in range(10):
            self.assertEqual(messages[f"m{i}"].reactions, {"❤️": [f"u{i}"]})

    async def test_reactors_on_the_same_message_all_land(self):
        await asyncio.gather(*[
            self.log.toggle_reaction(self.group.id, "m0", "👍", f"u{i}") for i in range(10)
        ])

        stored = await self.store.get_message(self.group.id, "m0")
        self.assertCountEqual(stored.reactions["👍"], [f"u{i}" for i in range(10)])

    async def test_concurrent_duplicate_appends_store_one_row(self):
        candidate = MessageCreate(id="dup", sender="zoe", text="hi")
        results = await asyncio.gather(*[self.log.append_message(self.group.id, candidate) for _ in range(5)])

        messages = await self.log.list_messages(self.group.id)
        self.assertEqual([m.id for m in messages].count("dup"), 1)
        self.assertTrue(all(r == results[0] for r in results))


if __name__ == "__main__":
    unittest.main()
