from typing import Any, List
from fastapi import APIRouter, Depends

from studygroup.api import deps
from studygroup.core.exceptions import AuthorizationError
from studygroup.schemas.student import StudentProfile, StudentUpdate
from studygroup.services.account_service import AccountService

router = APIRouter()


@router.get("", response_model=List[StudentProfile])
async def read_students(
    accounts: AccountService = Depends(deps.get_account_service),
) -> Any:
    return await accounts.list_students()


@router.put("/{username}", response_model=StudentProfile)
async def update_student(
    username: str,
    fields: StudentUpdate,
    accounts: AccountService = Depends(deps.get_account_service),
    current_username: str = Depends(deps.get_current_username),
) -> Any:
    """
    Merge profile fields. A student can only edit their own profile.
    """
    if username != current_username:
        raise AuthorizationError("You can only update your own profile.")
    return await accounts.update_profile(username, fields)
