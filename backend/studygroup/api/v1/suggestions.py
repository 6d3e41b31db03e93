from typing import Any
from fastapi import APIRouter, Depends

from studygroup.api import deps
from studygroup.schemas.ai import AISuggestions
from studygroup.services.account_service import AccountService
from studygroup.services.ai_service import GeminiService
from studygroup.services.group_service import GroupService

router = APIRouter()


@router.post("", response_model=AISuggestions)
async def get_suggestions(
    accounts: AccountService = Depends(deps.get_account_service),
    groups: GroupService = Depends(deps.get_group_service),
    current_username: str = Depends(deps.get_current_username),
) -> Any:
    """
    Study partners, groups and resources for the logged-in student.
    """
    current_user = await accounts.get_profile(current_username)
    others = [s for s in await accounts.list_students() if s.username != current_username]
    return await GeminiService.generate_suggestions(current_user, others, await groups.list_groups())
