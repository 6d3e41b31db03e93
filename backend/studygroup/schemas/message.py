from typing import Dict, List, Optional
from pydantic import Field

from studygroup.schemas.base import CamelModel

# Reserved synthetic senders
SYSTEM_SENDER = "System"
ASSISTANT_SENDER = "AI"

REACTION_EMOJIS = ["👍", "❤️", "😂", "😮"]


class ChatMessage(CamelModel):
    id: str
    sender: str
    text: str
    timestamp: str = ""
    parent_id: Optional[str] = None
    # emoji -> usernames, in the order they reacted
    reactions: Dict[str, List[str]] = Field(default_factory=dict)


class MessageCreate(CamelModel):
    """Candidate message as submitted by a client. Checked by MessageLogService."""
    id: Optional[str] = None
    sender: Optional[str] = None
    text: Optional[str] = None
    timestamp: Optional[str] = None
    parent_id: Optional[str] = None
    reactions: Optional[Dict[str, List[str]]] = None


class ReactionToggleRequest(CamelModel):
    emoji: str = Field(..., min_length=1, max_length=16)


class AssistantRequest(CamelModel):
    prompt: str = Field(..., description="Question for the assistant, without the trigger prefix")
    request_id: Optional[str] = Field(None, description="Client token used to coalesce duplicate invocations")
