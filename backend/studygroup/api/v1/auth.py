from typing import Any
from fastapi import APIRouter, Depends, status

from studygroup.api import deps
from studygroup.core import security
from studygroup.schemas.student import Credentials, LoginResponse, RegisterResponse
from studygroup.services.account_service import AccountService

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    credentials: Credentials,
    accounts: AccountService = Depends(deps.get_account_service),
) -> Any:
    """
    Create an account and an empty student profile (display name = username).
    """
    profile = await accounts.register(credentials)
    return RegisterResponse(message="User registered successfully", user_id=profile.id)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: Credentials,
    accounts: AccountService = Depends(deps.get_account_service),
) -> Any:
    """
    Check the password and return the profile together with a bearer token.
    """
    profile = await accounts.login(credentials)
    access_token = security.create_access_token(profile.username)
    return LoginResponse(**profile.model_dump(), access_token=access_token)
