import logging

from fastapi import APIRouter, Depends, HTTPException

from ...core.errors import (
    InvalidRecordingReferenceError,
    MeetingConflictError,
    MeetingNotFoundError,
    MissingMeetingIdError,
    MissingRecordingError,
    RecordingNotFoundError,
)
from ...db import DatabaseManager
from ...schemas.meeting import (
    MeetingStatusResponse,
    ReprocessMeetingRequest,
    ReprocessMeetingResponse,
)
from ...services.meeting_pipeline import MeetingPipeline
from ..deps import get_db, get_pipeline

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/reprocess-meeting", response_model=ReprocessMeetingResponse)
async def reprocess_meeting(
    data: ReprocessMeetingRequest,
    pipeline: MeetingPipeline = Depends(get_pipeline),
):
    """Re-run the full pipeline for a failed or stalled meeting and wait for it."""
    try:
        return await pipeline.reprocess_meeting(data.meetingId)
    except (MissingMeetingIdError, MissingRecordingError, InvalidRecordingReferenceError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (MeetingNotFoundError, RecordingNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MeetingConflictError as e:
        logger.warning(f"Reprocess rejected for {data.meetingId}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Reprocessing error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500, detail=f"Failed to reprocess meeting: {str(e)}"
        )


@router.get("/meetings/{meeting_id}/status", response_model=MeetingStatusResponse)
async def get_meeting_status(meeting_id: str, db: DatabaseManager = Depends(get_db)):
    """Current pipeline status, polled by the dashboard until processed/failed."""
    try:
        record = await db.get_meeting_status(meeting_id)
    except Exception as e:
        logger.error(f"Error getting meeting status: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    if not record:
        raise HTTPException(status_code=404, detail="Meeting not found")

    return {"meetingId": meeting_id, "status": record["status"], "error": record.get("error")}
