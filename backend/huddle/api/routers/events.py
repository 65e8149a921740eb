import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from ...schemas.meeting import StorageObjectEvent
from ...services.meeting_pipeline import MeetingPipeline
from ..deps import get_pipeline

router = APIRouter()
logger = logging.getLogger(__name__)


async def run_upload_pipeline(pipeline: MeetingPipeline, event: StorageObjectEvent):
    """Background task body. Errors end here and are logged for operators."""
    try:
        outcome = await pipeline.handle_object_finalized(event)
        if outcome:
            logger.info(
                f"✅ Upload pipeline finished for {outcome.meeting_id} ({outcome.strategy.value})"
            )
    except Exception as e:
        logger.error(f"Error processing meeting upload {event.name}: {e}", exc_info=True)


@router.post("/events/object-finalized")
async def object_finalized(
    event: StorageObjectEvent,
    background_tasks: BackgroundTasks,
    pipeline: MeetingPipeline = Depends(get_pipeline),
):
    """Storage trigger: a new object finished uploading to the bucket."""
    if not pipeline.is_meeting_upload(event):
        logger.info(f"Skipping non-meeting video file: {event.name} ({event.content_type})")
        return {"status": "skipped", "name": event.name}

    background_tasks.add_task(run_upload_pipeline, pipeline, event)
    return {"status": "accepted", "name": event.name}
