"""
Async HTTP client for the study group API.

Error responses are mapped back onto the server's exception classes, and
network failures surface as TransportError, so callers handle one
hierarchy whether they talk to the services in-process or over HTTP.
"""

from typing import Any, List, Optional

import httpx
import structlog

from studygroup.core.exceptions import ERRORS_BY_STATUS, StudyGroupError, TransportError, ValidationError
from studygroup.schemas.ai import AISuggestions
from studygroup.schemas.group import Group, GroupCreate, GroupUpdate
from studygroup.schemas.message import ChatMessage
from studygroup.schemas.student import LoginResponse, RegisterResponse, StudentProfile, StudentUpdate

logger = structlog.get_logger()

DEFAULT_BASE_URL = "http://127.0.0.1:8000/api"


class StudyGroupAPI:

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def __aenter__(self) -> "StudyGroupAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            resp = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error("api_request_failed", method=method, path=path, error=str(e))
            raise TransportError(f"Could not reach the server: {e}") from e

        if resp.status_code >= 400:
            raise self._error_for(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    @staticmethod
    def _error_for(resp: httpx.Response) -> StudyGroupError:
        try:
            detail = resp.json().get("detail") or resp.text
        except ValueError:
            detail = resp.text or f"HTTP error! status: {resp.status_code}"
        if resp.status_code == 422:
            return ValidationError(str(detail))
        error_class = ERRORS_BY_STATUS.get(resp.status_code, StudyGroupError)
        return error_class(str(detail))

    # --- Accounts ---

    async def register(self, username: str, password: str) -> RegisterResponse:
        data = await self._request("POST", "/register", {"username": username, "password": password})
        return RegisterResponse.model_validate(data)

    async def login(self, username: str, password: str) -> LoginResponse:
        """Log in and keep the bearer token for later calls."""
        data = await self._request("POST", "/login", {"username": username, "password": password})
        profile = LoginResponse.model_validate(data)
        self.token = profile.access_token
        return profile

    async def list_students(self) -> List[StudentProfile]:
        data = await self._request("GET", "/students")
        return [StudentProfile.model_validate(s) for s in data]

    async def update_profile(self, username: str, fields: StudentUpdate) -> StudentProfile:
        data = await self._request("PUT", f"/students/{username}", fields.model_dump(by_alias=True, exclude_none=True))
        return StudentProfile.model_validate(data)

    # --- Groups ---

    async def list_groups(self) -> List[Group]:
        data = await self._request("GET", "/groups")
        return [Group.model_validate(g) for g in data]

    async def get_group(self, group_id: str) -> Group:
        return Group.model_validate(await self._request("GET", f"/groups/{group_id}"))

    async def create_group(self, data: GroupCreate) -> Group:
        return Group.model_validate(await self._request("POST", "/groups", data.model_dump(by_alias=True)))

    async def update_group(self, group_id: str, snapshot: GroupUpdate) -> Group:
        body = snapshot.model_dump(by_alias=True, exclude_none=True)
        return Group.model_validate(await self._request("PUT", f"/groups/{group_id}", body))

    async def delete_group(self, group_id: str) -> None:
        await self._request("DELETE", f"/groups/{group_id}")

    async def join_group(self, group_id: str) -> Group:
        return Group.model_validate(await self._request("POST", f"/groups/{group_id}/join"))

    async def leave_group(self, group_id: str) -> Optional[Group]:
        """Returns None when the group was deleted because we were the last member."""
        data = await self._request("POST", f"/groups/{group_id}/leave")
        return Group.model_validate(data) if data else None

    # --- Chat ---

    async def list_messages(self, group_id: str) -> List[ChatMessage]:
        data = await self._request("GET", f"/groups/{group_id}/messages")
        return [ChatMessage.model_validate(m) for m in data]

    async def append_message(self, group_id: str, message: ChatMessage) -> ChatMessage:
        body = message.model_dump(by_alias=True, exclude_none=True)
        return ChatMessage.model_validate(await self._request("POST", f"/groups/{group_id}/messages", body))

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str) -> ChatMessage:
        data = await self._request("POST", f"/groups/{group_id}/messages/{message_id}/reactions", {"emoji": emoji})
        return ChatMessage.model_validate(data)

    async def ask_assistant(self, group_id: str, prompt: str, request_id: str) -> ChatMessage:
        data = await self._request(
            "POST",
            f"/groups/{group_id}/assistant",
            {"prompt": prompt, "requestId": request_id},
        )
        return ChatMessage.model_validate(data)

    # --- AI ---

    async def get_suggestions(self) -> AISuggestions:
        return AISuggestions.model_validate(await self._request("POST", "/suggestions"))
