from typing import List, Optional
from pydantic import BaseModel, Field

from studygroup.schemas.base import CamelModel


class StudentProfile(CamelModel):
    id: str
    username: str
    name: str
    courses: List[str] = Field(default_factory=list)
    cgpa: str = ""
    availability: List[str] = Field(default_factory=list)


class StudentUpdate(CamelModel):
    name: Optional[str] = None
    courses: Optional[List[str]] = None
    cgpa: Optional[str] = None
    availability: Optional[List[str]] = None


class Credentials(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterResponse(CamelModel):
    message: str
    user_id: str


class LoginResponse(StudentProfile):
    access_token: str
    token_type: str = "bearer"


class AccountRecord(BaseModel):
    """Stored credential; never leaves the server."""
    username: str
    password_hash: str
    student_id: str
