import unittest

from studygroup.core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from studygroup.db.init_db import seed_demo_data
from studygroup.schemas.student import Credentials, StudentUpdate
from studygroup.services.account_service import AccountService
from studygroup.storage.memory import InMemoryStore


class TestAccounts(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = InMemoryStore()
        self.accounts = AccountService(self.store)

    async def test_register_then_login(self):
        await self.accounts.register(Credentials(username="zoe", password="pw1"))
        profile = await self.accounts.login(Credentials(username="zoe", password="pw1"))

        self.assertEqual(profile.username, "zoe")
        self.assertEqual(profile.name, "zoe")
        self.assertEqual(profile.courses, [])
        self.assertEqual(profile.availability, [])

        with self.assertRaises(AuthenticationError):
            await self.accounts.login(Credentials(username="zoe", password="wrong"))

    async def test_password_is_not_stored_in_plain_text(self):
        await self.accounts.register(Credentials(username="zoe", password="pw1"))
        account = await self.store.get_account("zoe")
        self.assertNotEqual(account.password_hash, "pw1")

    async def test_register_requires_both_fields(self):
        with self.assertRaises(ValidationError):
            await self.accounts.register(Credentials(username="zoe"))
        with self.assertRaises(ValidationError):
            await self.accounts.register(Credentials(password="pw1"))

    async def test_duplicate_username(self):
        await self.accounts.register(Credentials(username="zoe", password="pw1"))
        with self.assertRaises(ConflictError):
            await self.accounts.register(Credentials(username="zoe", password="pw2"))

    async def test_unknown_user_cannot_login(self):
        with self.assertRaises(AuthenticationError):
            await self.accounts.login(Credentials(username="nobody", password="pw"))

    async def test_update_profile_merges_fields(self):
        registered = await self.accounts.register(Credentials(username="zoe", password="pw1"))
        updated = await self.accounts.update_profile(
            "zoe", StudentUpdate(name="Zoe Park", courses=["Algorithms"], cgpa="3.7")
        )
        self.assertEqual(updated.id, registered.id)
        self.assertEqual(updated.username, "zoe")
        self.assertEqual(updated.name, "Zoe Park")
        self.assertEqual(updated.courses, ["Algorithms"])
        self.assertEqual(updated.availability, [])

    async def test_update_unknown_profile(self):
        with self.assertRaises(NotFoundError):
            await self.accounts.update_profile("ghost", StudentUpdate(name="Ghost"))

    async def test_seeded_demo_users_can_login(self):
        self.assertTrue(await seed_demo_data(self.store))
        self.assertFalse(await seed_demo_data(self.store))

        alice = await self.accounts.login(Credentials(username="alice", password="password123"))
        self.assertEqual(alice.name, "Alice Johnson")
        self.assertEqual(len(await self.accounts.list_students()), 4)

        groups = {g.group_name: g for g in await self.store.list_groups()}
        avengers = groups["Algo Avengers"]
        self.assertEqual(avengers.members, ["alice", "charlie"])
        self.assertEqual([m.id for m in await self.store.list_messages(avengers.id)], ["m1", "m2"])
        self.assertEqual(groups["Data Dominators"].members, ["bob"])


if __name__ == "__main__":
    unittest.main()
