from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from studygroup.core import security
from studygroup.core.config import settings
from studygroup.services.account_service import AccountService
from studygroup.services.assistant_service import ChatAssistant, SingleFlight
from studygroup.services.group_service import GroupService
from studygroup.services.message_log import MessageLogService
from studygroup.storage.base import StudyStore

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/login"
)


def get_store(request: Request) -> StudyStore:
    # set up by the lifespan handler in main.py
    return request.app.state.store


def get_flights(request: Request) -> SingleFlight:
    return request.app.state.flights


async def get_current_username(token: str = Depends(reusable_oauth2)) -> str:
    """
    Username carried in the bearer token. Raises AuthenticationError (401)
    on a bad or expired token.
    """
    return security.decode_access_token(token)


def get_account_service(store: StudyStore = Depends(get_store)) -> AccountService:
    return AccountService(store)


def get_group_service(store: StudyStore = Depends(get_store)) -> GroupService:
    return GroupService(store)


def get_message_log(store: StudyStore = Depends(get_store)) -> MessageLogService:
    return MessageLogService(store)


def get_assistant(
    store: StudyStore = Depends(get_store),
    flights: SingleFlight = Depends(get_flights),
) -> ChatAssistant:
    return ChatAssistant(store, flights)
