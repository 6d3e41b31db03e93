from typing import List, Optional
from pydantic import Field

from studygroup.schemas.base import CamelModel
from studygroup.schemas.group import Group


class MatchedStudent(CamelModel):
    name: str = Field(..., description="The name of the matched student.")
    username: str = Field(..., description="The unique username of the matched student.")
    reasoning: str = Field(..., description="Why this student is a good match: shared courses, similar CGPA, compatible availability.")
    courses: List[str] = Field(default_factory=list)
    cgpa: str = Field("", description="The student's academic CGPA.")


class SuggestedGroup(CamelModel):
    id: str = Field(..., description="The unique ID of the existing group.")
    group_name: str = ""
    members: List[str] = Field(default_factory=list)
    focus_courses: List[str] = Field(default_factory=list)
    reasoning: str = Field(..., description="Why this group is a good fit for the current user.")


class MatchedGroup(Group):
    reasoning: Optional[str] = None


class OnlineResourceItem(CamelModel):
    title: str
    description: str = Field(..., description="A brief one-sentence description.")
    url: str
    category: str = Field(..., description="A category like 'YouTube Video', 'Interactive Platform', 'Documentation'.")
    youtube_video_id: str = Field("", description="The 11-character YouTube video ID, or an empty string if not applicable.")


class OnlineResource(CamelModel):
    summary: str = Field(..., description="A brief, encouraging summary (2-3 sentences) to introduce these resources.")
    resources: List[OnlineResourceItem] = Field(default_factory=list)


class SuggestionPayload(CamelModel):
    """Raw structured output expected from the model."""
    matched_students: List[MatchedStudent]
    matched_groups: List[SuggestedGroup]
    online_resources: OnlineResource


class AISuggestions(CamelModel):
    matched_students: List[MatchedStudent]
    matched_groups: List[MatchedGroup]
    online_resources: OnlineResource
