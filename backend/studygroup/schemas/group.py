from typing import List, Optional
from pydantic import Field

from studygroup.schemas.base import CamelModel
from studygroup.schemas.message import ChatMessage


class Group(CamelModel):
    id: str
    group_name: str
    admin: str
    members: List[str]  # usernames, in join order
    focus_courses: List[str] = Field(default_factory=list)
    suggested_times: List[str] = Field(default_factory=list)
    reason: str = ""
    version: int = 1


class GroupCreate(CamelModel):
    group_name: Optional[str] = None
    admin: Optional[str] = None
    members: Optional[List[str]] = None
    focus_courses: List[str] = Field(default_factory=list)
    suggested_times: List[str] = Field(default_factory=list)
    reason: str = ""


class GroupUpdate(CamelModel):
    """
    Complete group snapshot for whole-document replace.
    `id` is accepted but ignored; `version` enables the stale-write check;
    `messages`, when present, replaces the whole log.
    """
    id: Optional[str] = None
    group_name: str
    admin: str
    members: List[str]
    focus_courses: List[str] = Field(default_factory=list)
    suggested_times: List[str] = Field(default_factory=list)
    reason: str = ""
    version: Optional[int] = None
    messages: Optional[List[ChatMessage]] = None
