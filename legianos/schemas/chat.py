from datetime import datetime
from typing import List, Optional

from pydantic import Field

from legianos.models import CamelModel, GoalProfile


class Attachment(CamelModel):
    """Image sent alongside a chat message. Only name and MIME type are used."""
    data: Optional[str] = None  # base64 payload, never decoded
    mime_type: Optional[str] = None
    name: Optional[str] = None


class ChatRequest(CamelModel):
    message: str = ""
    thread_id: str = "legianos-thread"
    user_id: str = "legianos-user"
    attachments: List[Attachment] = Field(default_factory=list)


class ChatResponse(CamelModel):
    reply: str
    goal_profile: Optional[GoalProfile] = None
    export_content: Optional[str] = None
    next_steps: List[str] = Field(default_factory=list)
    confidence: Optional[float] = None
    needs_more_info: bool = False
    suggested_questions: List[str] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)


class HistoryMessage(CamelModel):
    role: str
    content: str
    created_at: Optional[datetime] = None


class HistoryResponse(CamelModel):
    thread_id: str
    messages: List[HistoryMessage]


class ThreadSummary(CamelModel):
    thread_id: str
    last_message_at: Optional[datetime] = None


class ThreadsResponse(CamelModel):
    user_id: str
    threads: List[ThreadSummary]
