from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MeetingStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


TERMINAL_STATUSES = (MeetingStatus.PROCESSED, MeetingStatus.FAILED)


class ActionItem(BaseModel):
    """A follow-up task attached to exactly one meeting."""

    id: str
    description: str = ""
    assignedTo: Optional[str] = None
    dueDate: Optional[str] = None
    status: str = "pending"  # 'pending' | 'in-progress' | 'completed'
    createdAt: str
    updatedAt: str


class MeetingInsights(BaseModel):
    """Structured insights returned by the language model (JSON keys kept as-is)."""

    summary: str = ""
    topicsDiscussed: List[str] = []
    workDone: List[str] = []
    actionItems: List[ActionItem] = []
    decisionsMade: List[str] = []
    followUpQuestions: List[str] = []
    otherObservations: Optional[str] = None


class StorageObjectEvent(BaseModel):
    """Object-finalize notification delivered by the storage bucket."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    bucket: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="contentType")
    size: Optional[int] = None


class ReprocessMeetingRequest(BaseModel):
    meetingId: Optional[str] = None


class ReprocessMeetingResponse(BaseModel):
    success: bool
    message: str
    meetingId: str
    filePath: str


class MeetingStatusResponse(BaseModel):
    meetingId: str
    status: MeetingStatus
    error: Optional[str] = None
