import logging
from typing import Optional

from fastapi import Depends

from ..db import DatabaseManager
from ..services.meeting_pipeline import MeetingPipeline, get_meeting_pipeline

logger = logging.getLogger(__name__)

_db: Optional[DatabaseManager] = None


def get_db() -> DatabaseManager:
    """Shared database manager, created on first use."""
    global _db
    if _db is None:
        _db = DatabaseManager()
    return _db


def get_pipeline(db: DatabaseManager = Depends(get_db)) -> MeetingPipeline:
    return get_meeting_pipeline(db)
