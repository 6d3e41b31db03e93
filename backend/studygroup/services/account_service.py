import uuid
from typing import List

import structlog

from studygroup.core import security
from studygroup.core.exceptions import AuthenticationError, NotFoundError, ValidationError
from studygroup.schemas.student import AccountRecord, Credentials, StudentProfile, StudentUpdate
from studygroup.storage.base import StudyStore

logger = structlog.get_logger()


class AccountService:
    """
    Registration, login and profile maintenance.
    """

    def __init__(self, store: StudyStore):
        self.store = store

    @staticmethod
    def _require_credentials(credentials: Credentials):
        username = (credentials.username or "").strip()
        password = credentials.password or ""
        if not username or not password:
            raise ValidationError("Username and password are required.")
        return username, password

    async def register(self, credentials: Credentials) -> StudentProfile:
        username, password = self._require_credentials(credentials)

        profile = StudentProfile(
            id=str(uuid.uuid4()),
            username=username,
            name=username,  # default display name
            courses=[],
            cgpa="",
            availability=[],
        )
        account = AccountRecord(
            username=username,
            password_hash=security.get_password_hash(password),
            student_id=profile.id,
        )
        await self.store.create_account(account, profile)
        logger.info("user_registered", username=username)
        return profile

    async def login(self, credentials: Credentials) -> StudentProfile:
        username, password = self._require_credentials(credentials)

        account = await self.store.get_account(username)
        if account is None or not security.verify_password(password, account.password_hash):
            logger.info("login_failed", username=username)
            raise AuthenticationError("Invalid username or password.")

        profile = await self.store.get_student(username)
        if profile is None:
            raise NotFoundError("Student profile not found.")

        logger.info("user_logged_in", username=username)
        return profile

    async def get_profile(self, username: str) -> StudentProfile:
        profile = await self.store.get_student(username)
        if profile is None:
            raise NotFoundError("Student profile not found.")
        return profile

    async def list_students(self) -> List[StudentProfile]:
        return await self.store.list_students()

    async def update_profile(self, username: str, fields: StudentUpdate) -> StudentProfile:
        """
        Merge the supplied fields into the profile. id and username never change.
        """
        profile = await self.get_profile(username)
        changes = fields.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes and not changes["name"].strip():
            raise ValidationError("Name cannot be empty.")

        updated = profile.model_copy(update=changes)
        saved = await self.store.save_student(updated)
        logger.info("profile_updated", username=username, fields=sorted(changes))
        return saved
