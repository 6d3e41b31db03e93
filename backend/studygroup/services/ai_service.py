import asyncio
import json
import structlog
from typing import List, Optional, Type, TypeVar

import google.generativeai as genai
from pydantic import BaseModel, ValidationError as SchemaError

from studygroup.core.config import settings
from studygroup.core.exceptions import UpstreamError
from studygroup.schemas.ai import AISuggestions, MatchedGroup, SuggestionPayload
from studygroup.schemas.group import Group
from studygroup.schemas.message import ChatMessage, SYSTEM_SENDER
from studygroup.schemas.student import StudentProfile

logger = structlog.get_logger()
T = TypeVar("T", bound=BaseModel)

CHAT_FALLBACK_REPLY = "Sorry, I encountered an error and couldn't process your request right now."

SUGGESTIONS_SYSTEM_PROMPT = """
You are the **Lead Facilitator** of a specialized 'Crew AI' dedicated to fostering academic collaboration and success. Your mission is to orchestrate a team of AI agents to provide the most personalized and effective recommendations for a student.

Your crew consists of:
1.  **Academic Analyst Agent**: This agent meticulously compares the current user's profile (courses, CGPA, availability) against a list of other students to find ideal peer matches. It prioritizes shared academic interests and compatible performance levels.
2.  **Community Manager Agent**: This agent evaluates all existing study groups. It identifies groups where the user's academic needs align with the group's focus courses and where they would be a valuable addition.
3.  **Resource Curator Agent**: This agent scours its vast knowledge base for high-quality, relevant online learning resources, with a preference for engaging formats like YouTube videos, that directly map to the user's courses.

Your final task as the **Lead Facilitator** is to synthesize the findings from your entire crew into a single, cohesive JSON object. The reasoning provided for each match should reflect the collaborative analysis of your team. You must provide your response as a single, raw JSON object conforming to the provided schema. Do not add any extra text or markdown formatting.
"""

CHAT_SYSTEM_PROMPT = (
    "You are a helpful and friendly AI study assistant integrated into a group chat. "
    "Your name is 'StudyBot'. Analyze the provided chat history for context and answer "
    "the user's question directly. Keep your answers concise, informative, and encouraging. "
    "Address the user's query about their study topics."
)


class GeminiService:
    """
    Service for the Gemini generative API.
    Stateless; the SDK is configured lazily so a missing key only fails the AI features.
    """

    _configured_key: Optional[str] = None

    @classmethod
    def _model(cls, system_instruction: str) -> "genai.GenerativeModel":
        if not settings.GEMINI_API_KEY:
            raise UpstreamError("Gemini API key not found. Set GEMINI_API_KEY and restart the server.")
        if cls._configured_key != settings.GEMINI_API_KEY:
            genai.configure(api_key=settings.GEMINI_API_KEY)
            cls._configured_key = settings.GEMINI_API_KEY
        return genai.GenerativeModel(
            model_name=settings.GEMINI_MODEL,
            system_instruction=system_instruction,
        )

    @classmethod
    async def _call_gemini(
        cls,
        prompt: str,
        system_instruction: str,
        schema_class: Optional[Type[T]] = None,
        temperature: float = 0.7,
    ):
        """
        Single best-effort call. Returns text, or a validated `schema_class`
        instance in JSON mode. Raises UpstreamError on any failure.
        """
        if schema_class:
            system_instruction = (
                f"{system_instruction}\n\nYou must output STRICT VALID JSON matching this schema: "
                f"{json.dumps(schema_class.model_json_schema())}"
            )
            generation_config = genai.GenerationConfig(
                temperature=temperature,
                response_mime_type="application/json",
            )
        else:
            generation_config = genai.GenerationConfig(temperature=temperature)

        model = cls._model(system_instruction)
        try:
            response = await asyncio.wait_for(
                model.generate_content_async(prompt, generation_config=generation_config),
                timeout=settings.AI_TIMEOUT_SECONDS,
            )
            text = (response.text or "").strip()
        except asyncio.TimeoutError:
            logger.error("gemini_timeout", timeout=settings.AI_TIMEOUT_SECONDS)
            raise UpstreamError("The AI service took too long to respond.")
        except Exception as e:
            logger.error("gemini_request_failed", error=str(e))
            raise UpstreamError(f"An error occurred while communicating with the AI. Details: {e}")

        if not text:
            raise UpstreamError("The AI returned an empty response.")

        if schema_class:
            try:
                return schema_class.model_validate_json(text)
            except SchemaError as e:
                logger.error("gemini_parse_error", error=str(e), content=text[:500])
                raise UpstreamError("Failed to parse the AI's response. The data might be malformed.")

        return text

    @classmethod
    async def generate_suggestions(
        cls,
        current_user: StudentProfile,
        other_students: List[StudentProfile],
        groups: List[Group],
    ) -> AISuggestions:
        """
        Peer, group and resource suggestions for `current_user`.
        Suggested groups are merged with the stored record; ids the model
        invented are dropped.
        """
        student_profile = json.dumps({
            "name": current_user.name,
            "courses": current_user.courses,
            "cgpa": current_user.cgpa,
            "availability": current_user.availability,
        }, indent=2)
        other_students_data = json.dumps(
            [{"name": s.name, "username": s.username, "courses": s.courses, "cgpa": s.cgpa} for s in other_students],
            indent=2,
        )
        existing_groups_data = json.dumps(
            [{"id": g.id, "groupName": g.group_name, "members": g.members, "focusCourses": g.focus_courses} for g in groups],
            indent=2,
        )

        prompt = (
            "Lead Facilitator, here is the data for your crew's analysis:\n\n"
            f"Current User Profile:\n{student_profile}\n\n"
            f"List of Other Students Available for the Academic Analyst:\n{other_students_data}\n\n"
            f"List of Existing Groups for the Community Manager:\n{existing_groups_data}\n\n"
            "Please orchestrate your crew and generate the final JSON output with comprehensive "
            f"suggestions for the user, {current_user.name}."
        )

        payload = await cls._call_gemini(prompt, SUGGESTIONS_SYSTEM_PROMPT, SuggestionPayload, temperature=0.8)

        groups_by_id = {g.id: g for g in groups}
        matched_groups = []
        for suggested in payload.matched_groups:
            original = groups_by_id.get(suggested.id)
            if original is None:
                logger.warning("suggested_group_unknown", group_id=suggested.id)
                continue
            matched_groups.append(MatchedGroup(**original.model_dump(), reasoning=suggested.reasoning))

        known_usernames = {s.username for s in other_students}
        matched_students = [s for s in payload.matched_students if s.username in known_usernames]

        logger.info(
            "suggestions_generated",
            username=current_user.username,
            students=len(matched_students),
            groups=len(matched_groups),
            resources=len(payload.online_resources.resources),
        )
        return AISuggestions(
            matched_students=matched_students,
            matched_groups=matched_groups,
            online_resources=payload.online_resources,
        )

    @staticmethod
    def format_chat_history(history: List[ChatMessage]) -> str:
        return "\n".join(
            f"{msg.sender}: {msg.text}" for msg in history if msg.sender != SYSTEM_SENDER
        )

    @classmethod
    async def generate_chat_reply(cls, history: List[ChatMessage], prompt: str) -> str:
        """
        Assistant reply for a group chat. Never raises: failures become the
        canned apology so the chat keeps going.
        """
        full_prompt = (
            "Here is the recent chat history for context:\n"
            "---\n"
            f"{cls.format_chat_history(history)}\n"
            "---\n\n"
            "Now, a user has asked for your help.\n"
            f'User\'s message: "{prompt}"\n\n'
            "Please provide a helpful response."
        )
        try:
            return await cls._call_gemini(full_prompt, CHAT_SYSTEM_PROMPT, temperature=0.7)
        except UpstreamError as e:
            logger.error("chat_reply_failed", error=e.message)
            return CHAT_FALLBACK_REPLY
