import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from studygroup.core.exceptions import NotFoundError, UpstreamError, ValidationError
from studygroup.schemas.group import GroupCreate
from studygroup.schemas.message import MessageCreate
from studygroup.services.ai_service import CHAT_FALLBACK_REPLY
from studygroup.services.assistant_service import ChatAssistant, SingleFlight, strip_trigger
from studygroup.services.group_service import GroupService
from studygroup.services.message_log import MessageLogService
from studygroup.storage.memory import InMemoryStore


class TestTrigger(unittest.TestCase):

    def test_strip_trigger(self):
        self.assertEqual(strip_trigger("@ai what is a heap?"), "what is a heap?")
        self.assertEqual(strip_trigger("  @AI   explain  "), "explain")
        self.assertEqual(strip_trigger("@ai"), "")
        self.assertIsNone(strip_trigger("hello @ai"))


class TestSingleFlight(unittest.IsolatedAsyncioTestCase):

    async def test_concurrent_calls_share_one_execution(self):
        flights = SingleFlight()
        calls = 0
        release = asyncio.Event()

        async def work():
            nonlocal calls
            calls += 1
            await release.wait()
            return "done"

        waiters = [asyncio.ensure_future(flights.do("k", work)) for _ in range(3)]
        await asyncio.sleep(0)
        self.assertIn("k", flights)
        release.set()

        self.assertEqual(await asyncio.gather(*waiters), ["done", "done", "done"])
        self.assertEqual(calls, 1)
        self.assertNotIn("k", flights)


class TestChatAssistant(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = InMemoryStore()
        self.assistant = ChatAssistant(self.store, SingleFlight())
        self.group = await GroupService(self.store).create_group(
            GroupCreate(group_name="Algo Avengers", admin="alice", members=["alice"])
        )
        await MessageLogService(self.store).append_message(
            self.group.id, MessageCreate(id="m1", sender="alice", text="@ai what is a heap?")
        )

    @patch("studygroup.services.ai_service.GeminiService.generate_chat_reply", new_callable=AsyncMock)
    async def test_reply_is_stored_in_the_log(self, mock_reply):
        mock_reply.return_value = "A heap is a tree."

        reply = await self.assistant.reply(self.group.id, "what is a heap?", "req1")

        self.assertEqual(reply.id, "msg-ai-req1")
        self.assertEqual(reply.sender, "AI")
        messages = await self.store.list_messages(self.group.id)
        self.assertEqual([m.id for m in messages], ["m1", "msg-ai-req1"])
        history = mock_reply.call_args.args[0]
        self.assertEqual([m.id for m in history], ["m1"])

    @patch("studygroup.services.ai_service.GeminiService.generate_chat_reply", new_callable=AsyncMock)
    async def test_concurrent_duplicates_call_the_ai_once(self, mock_reply):
        release = asyncio.Event()

        async def slow_reply(history, prompt):
            await release.wait()
            return "A heap is a tree."

        mock_reply.side_effect = slow_reply
        pending = [
            asyncio.ensure_future(self.assistant.reply(self.group.id, "what is a heap?", "req1"))
            for _ in range(3)
        ]
        await asyncio.sleep(0)
        release.set()
        replies = await asyncio.gather(*pending)

        self.assertEqual(mock_reply.await_count, 1)
        self.assertTrue(all(r.id == "msg-ai-req1" for r in replies))
        self.assertEqual(len(await self.store.list_messages(self.group.id)), 2)

    @patch("studygroup.services.ai_service.GeminiService.generate_chat_reply", new_callable=AsyncMock)
    async def test_retry_after_completion_reuses_stored_reply(self, mock_reply):
        mock_reply.return_value = "A heap is a tree."
        first = await self.assistant.reply(self.group.id, "what is a heap?", "req1")
        mock_reply.return_value = "Something else entirely."
        again = await self.assistant.reply(self.group.id, "what is a heap?", "req1")

        self.assertEqual(again, first)
        self.assertEqual(mock_reply.await_count, 1)

    @patch("studygroup.services.ai_service.GeminiService.generate_chat_reply", new_callable=AsyncMock)
    async def test_distinct_requests_are_independent(self, mock_reply):
        mock_reply.return_value = "Answer."
        await self.assistant.reply(self.group.id, "q1", "req1")
        await self.assistant.reply(self.group.id, "q2", "req2")
        self.assertEqual(mock_reply.await_count, 2)

    @patch("studygroup.services.ai_service.GeminiService._call_gemini", new_callable=AsyncMock)
    async def test_ai_failure_stores_the_apology(self, mock_call):
        mock_call.side_effect = UpstreamError("boom")

        reply = await self.assistant.reply(self.group.id, "what is a heap?", "req1")
        self.assertEqual(reply.text, CHAT_FALLBACK_REPLY)

    async def test_empty_prompt_and_unknown_group(self):
        with self.assertRaises(ValidationError):
            await self.assistant.reply(self.group.id, "   ", "req1")
        with self.assertRaises(NotFoundError):
            await self.assistant.reply("ghost", "hello", "req1")


if __name__ == "__main__":
    unittest.main()
