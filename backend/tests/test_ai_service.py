import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from studygroup.core.config import settings
from studygroup.core.exceptions import UpstreamError
from studygroup.schemas.ai import SuggestionPayload
from studygroup.schemas.message import ChatMessage
from studygroup.services.ai_service import CHAT_FALLBACK_REPLY, GeminiService


def fake_model(text=None, error=None):
    model = MagicMock()
    if error is not None:
        model.generate_content_async = AsyncMock(side_effect=error)
    else:
        model.generate_content_async = AsyncMock(return_value=SimpleNamespace(text=text))
    return model


class TestGeminiService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.history = [
            ChatMessage(id="s1", sender="System", text="Welcome to Study X!"),
            ChatMessage(id="m1", sender="alice", text="Anyone understand heaps?"),
            ChatMessage(id="m2", sender="charlie", text="A bit."),
        ]

    def test_history_excludes_system_notices(self):
        formatted = GeminiService.format_chat_history(self.history)
        self.assertEqual(formatted, "alice: Anyone understand heaps?\ncharlie: A bit.")

    @patch("studygroup.services.ai_service.GeminiService._call_gemini", new_callable=AsyncMock)
    async def test_chat_reply_passes_prompt_and_history(self, mock_call):
        mock_call.return_value = "A heap is a tree-shaped priority queue."

        reply = await GeminiService.generate_chat_reply(self.history, "explain heaps")

        self.assertEqual(reply, "A heap is a tree-shaped priority queue.")
        prompt = mock_call.call_args.args[0]
        self.assertIn('User\'s message: "explain heaps"', prompt)
        self.assertIn("alice: Anyone understand heaps?", prompt)
        self.assertNotIn("Welcome to Study X", prompt)

    @patch("studygroup.services.ai_service.GeminiService._call_gemini", new_callable=AsyncMock)
    async def test_chat_reply_falls_back_on_failure(self, mock_call):
        mock_call.side_effect = UpstreamError("The AI service took too long to respond.")
        reply = await GeminiService.generate_chat_reply(self.history, "explain heaps")
        self.assertEqual(reply, CHAT_FALLBACK_REPLY)

    async def test_malformed_json_is_an_upstream_error(self):
        with patch.object(GeminiService, "_model", return_value=fake_model(text="here you go: {not json")):
            with self.assertRaises(UpstreamError):
                await GeminiService._call_gemini("prompt", "system", SuggestionPayload)

    async def test_json_mode_returns_validated_model(self):
        raw = (
            '{"matchedStudents": [{"name": "Bob", "username": "bob", "reasoning": "Shared DS."}],'
            ' "matchedGroups": [],'
            ' "onlineResources": {"summary": "Start here.", "resources": []}}'
        )
        with patch.object(GeminiService, "_model", return_value=fake_model(text=raw)):
            payload = await GeminiService._call_gemini("prompt", "system", SuggestionPayload)
        self.assertEqual(payload.matched_students[0].username, "bob")

    async def test_empty_response_is_an_upstream_error(self):
        with patch.object(GeminiService, "_model", return_value=fake_model(text="  ")):
            with self.assertRaises(UpstreamError):
                await GeminiService._call_gemini("prompt", "system")

    async def test_timeout_is_an_upstream_error(self):
        with patch.object(GeminiService, "_model", return_value=fake_model(error=asyncio.TimeoutError())):
            with self.assertRaises(UpstreamError):
                await GeminiService._call_gemini("prompt", "system")

    async def test_sdk_failure_is_an_upstream_error(self):
        with patch.object(GeminiService, "_model", return_value=fake_model(error=RuntimeError("quota exceeded"))):
            with self.assertRaises(UpstreamError) as ctx:
                await GeminiService._call_gemini("prompt", "system")
        self.assertIn("quota exceeded", ctx.exception.message)

    async def test_missing_api_key(self):
        with patch.object(settings, "GEMINI_API_KEY", ""):
            with self.assertRaises(UpstreamError):
                await GeminiService._call_gemini("prompt", "system")


if __name__ == "__main__":
    unittest.main()
