"""
Meeting Processing Pipeline

Runs one recorded meeting from uploaded video to stored results:
1. Claim the meeting (atomic uploaded|failed -> processing)
2. Extract 16 kHz mono audio from the video
3. Choose sync/async recognition and build a speaker-attributed transcript
4. Derive fallback summary and keyword action items locally
5. Ask the language model for structured insights (best-effort)
6. Record the media duration (best-effort)
7. Store the transcript artifact and all fields, mark the meeting processed
8. Remove the temporary audio whatever happened in 4-7

Any failure other than step 5 marks the meeting failed with the error message
and is re-raised to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple
from urllib.parse import unquote, urlparse

from ..core import config
from ..core.errors import (
    InvalidRecordingReferenceError,
    MeetingConflictError,
    MeetingNotFoundError,
    MissingMeetingIdError,
    MissingRecordingError,
    PersistenceError,
    PipelineError,
    PipelineTimeoutError,
    RecordingNotFoundError,
    TranscodingError,
)
from ..schemas.meeting import MeetingInsights, MeetingStatus, StorageObjectEvent
from .audio import AudioExtractor, probe_duration
from .fallback_notes import extract_keyword_action_items, generate_fallback_summary
from .insights import InsightGenerator, get_insight_generator
from .storage import StorageService, get_storage_service
from .transcription import RecognitionStrategy, build_recognizers, format_transcript, select_strategy

logger = logging.getLogger(__name__)

# Statuses a new run may start from
CLAIMABLE_STATUSES = (MeetingStatus.UPLOADED.value, MeetingStatus.FAILED.value)

_GCS_PUBLIC_HOSTS = ("storage.googleapis.com", "storage.cloud.google.com")


@dataclass
class ProcessingOutcome:
    meeting_id: str
    file_path: str
    strategy: RecognitionStrategy
    transcript_chars: int
    duration: int
    insights_generated: bool


def parse_meeting_path(
    file_path: str, meetings_prefix: Optional[str] = None
) -> Optional[Tuple[str, str]]:
    """Split 'meetings/{teamId}/{meetingId}.{ext}' into (team_id, meeting_id)."""
    prefix = meetings_prefix or config.MEETINGS_PREFIX
    if not file_path or not file_path.startswith(prefix):
        return None

    parts = file_path[len(prefix):].split("/")
    if len(parts) != 2:
        return None

    team_id, file_name = parts
    meeting_id = file_name.split(".")[0]
    if not team_id or not meeting_id:
        return None
    return team_id, meeting_id


def resolve_recording_path(recording_url: str, meetings_prefix: Optional[str] = None) -> str:
    """
    Turn a stored recording reference into an object path in the bucket.

    Accepts gs:// URIs, Firebase download URLs (.../o/<encoded path>?...),
    public storage.googleapis.com URLs and bare storage paths.
    """
    prefix = meetings_prefix or config.MEETINGS_PREFIX

    if recording_url.startswith("gs://"):
        _, _, object_path = recording_url[len("gs://"):].partition("/")
        if object_path:
            return object_path
    elif recording_url.startswith(("http://", "https://")):
        parsed = urlparse(recording_url)
        if "/o/" in parsed.path:
            return unquote(parsed.path.split("/o/", 1)[1])
        if parsed.netloc in _GCS_PUBLIC_HOSTS:
            _, _, object_path = parsed.path.lstrip("/").partition("/")
            if object_path:
                return unquote(object_path)
    elif recording_url.startswith(prefix):
        return recording_url

    raise InvalidRecordingReferenceError("Invalid recording URL format")


class MeetingPipeline:
    """Sequences the processing stages for one meeting and owns its status."""

    def __init__(
        self,
        db,
        storage: Optional[StorageService] = None,
        extractor: Optional[AudioExtractor] = None,
        recognizers=None,
        insight_generator: Optional[InsightGenerator] = None,
        duration_probe=probe_duration,
        timeout_seconds: Optional[float] = None,
        meetings_prefix: Optional[str] = None,
        transcripts_prefix: Optional[str] = None,
    ):
        self.db = db
        self.storage = storage or get_storage_service()
        self.extractor = extractor or AudioExtractor(storage=self.storage)
        self.recognizers = recognizers or build_recognizers(storage=self.storage)
        self.insight_generator = insight_generator or get_insight_generator()
        self.duration_probe = duration_probe
        self.timeout_seconds = timeout_seconds or config.PIPELINE_TIMEOUT_SECONDS
        self.meetings_prefix = meetings_prefix or config.MEETINGS_PREFIX
        self.transcripts_prefix = transcripts_prefix or config.TRANSCRIPTS_PREFIX

    # --- Entry points ---

    def is_meeting_upload(self, event: StorageObjectEvent) -> bool:
        """True for video objects stored under meetings/{teamId}/{meetingId}.{ext}."""
        content_type = event.content_type or ""
        return content_type.startswith("video/") and (
            parse_meeting_path(event.name, self.meetings_prefix) is not None
        )

    async def handle_object_finalized(
        self, event: StorageObjectEvent
    ) -> Optional[ProcessingOutcome]:
        """
        Storage trigger. Only video objects under the meetings prefix are
        processed; anything else is skipped without touching any meeting.
        """
        if not self.is_meeting_upload(event):
            logger.info(
                f"Skipping non-meeting video file: {event.name} ({event.content_type or 'no content type'})"
            )
            return None

        team_id, meeting_id = parse_meeting_path(event.name, self.meetings_prefix)
        logger.info(f"Processing meeting upload: {event.name}")

        meeting = await self.db.get_meeting(meeting_id)
        if not meeting:
            raise MeetingNotFoundError(f"Meeting not found: {meeting_id}")

        await self._start_processing(meeting_id, event.name)
        return await self.process_meeting_file(event.name, meeting_id, team_id)

    async def reprocess_meeting(self, meeting_id: Optional[str]) -> Dict:
        """
        Manual retry for a failed (or stalled) meeting.

        Validation errors are raised before any state changes.
        """
        if not meeting_id:
            raise MissingMeetingIdError("Meeting ID is required")

        meeting = await self.db.get_meeting(meeting_id)
        if not meeting:
            raise MeetingNotFoundError("Meeting not found")

        if meeting.get("status") == MeetingStatus.PROCESSING.value:
            raise MeetingConflictError("Meeting is already being processed")
        if meeting.get("status") not in CLAIMABLE_STATUSES:
            raise MeetingConflictError(
                f"Meeting cannot be reprocessed from status '{meeting.get('status')}'"
            )

        recording_url = meeting.get("recording_url")
        if not recording_url:
            raise MissingRecordingError("No recording URL found for this meeting")

        file_path = resolve_recording_path(recording_url, self.meetings_prefix)
        parsed = parse_meeting_path(file_path, self.meetings_prefix)
        team_id = parsed[0] if parsed else meeting.get("team_id")

        logger.info(f"Manually reprocessing meeting {meeting_id}: {file_path}")
        await self._start_processing(meeting_id, file_path)
        await self.process_meeting_file(file_path, meeting_id, team_id)

        return {
            "success": True,
            "message": "Meeting reprocessed successfully",
            "meetingId": meeting_id,
            "filePath": file_path,
        }

    async def _start_processing(self, meeting_id: str, file_path: str):
        if not await self.storage.check_file_exists(file_path):
            raise RecordingNotFoundError("Recording file not found in storage")

        if not await self.db.claim_meeting_for_processing(meeting_id, CLAIMABLE_STATUSES):
            raise MeetingConflictError("Meeting is already being processed")

    # --- Pipeline run ---

    async def process_meeting_file(
        self, file_path: str, meeting_id: str, team_id: Optional[str]
    ) -> ProcessingOutcome:
        """Run every stage under the wall-clock budget; failures mark the meeting failed."""
        try:
            return await asyncio.wait_for(
                self._run_stages(file_path, meeting_id, team_id),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            error = PipelineTimeoutError(
                f"Processing timed out after {self.timeout_seconds:g} seconds"
            )
            logger.error(f"❌ Meeting {meeting_id}: {error}")
            await self._mark_failed(meeting_id, error)
            raise error from e
        except Exception as e:
            logger.error(f"❌ Error processing meeting file {file_path}: {e}", exc_info=True)
            await self._mark_failed(meeting_id, e)
            raise

    async def _run_stages(
        self, file_path: str, meeting_id: str, team_id: Optional[str]
    ) -> ProcessingOutcome:
        # Only the wait_for deadline above may surface as a pipeline timeout
        try:
            return await self._run(file_path, meeting_id, team_id)
        except (TimeoutError, asyncio.TimeoutError) as e:
            raise PipelineError(f"Stage timed out: {str(e) or e.__class__.__name__}") from e

    async def _run(
        self, file_path: str, meeting_id: str, team_id: Optional[str]
    ) -> ProcessingOutcome:
        source_size = await self.storage.get_file_size(file_path)
        logger.info(
            f"🚀 Processing video file {file_path} for meeting {meeting_id} "
            f"(team {team_id}, {round((source_size or 0) / (1024 * 1024), 2)} MB)"
        )

        audio_path = await self.extractor.extract(file_path)
        try:
            transcript, strategy, audio_duration = await self._transcribe(audio_path)

            summary = generate_fallback_summary(transcript)
            action_items = extract_keyword_action_items(transcript)

            insights = await self._generate_insights(transcript)

            duration = int(audio_duration + 0.5) if audio_duration is not None else 0

            transcript_url = await self._store_transcript(meeting_id, transcript)

            results = {
                "transcript": transcript,
                "transcript_url": transcript_url,
                "summary": summary,
                "action_items": action_items,
                "duration": duration,
            }
            if insights:
                results.update(
                    {
                        "ai_summary": insights.summary,
                        "topics_discussed": insights.topicsDiscussed,
                        "work_done": insights.workDone,
                        "ai_action_items": [
                            item.model_dump() for item in insights.actionItems
                        ],
                        "decisions_made": insights.decisionsMade,
                        "follow_up_questions": insights.followUpQuestions,
                        "other_observations": insights.otherObservations,
                    }
                )

            await self.db.save_processing_results(meeting_id, results)
        finally:
            self.extractor.cleanup(audio_path)

        logger.info(
            f"🎉 Meeting processing completed: {meeting_id} (duration {duration}s, {strategy.value} recognition)"
        )
        return ProcessingOutcome(
            meeting_id=meeting_id,
            file_path=file_path,
            strategy=strategy,
            transcript_chars=len(transcript),
            duration=duration,
            insights_generated=insights is not None,
        )

    async def _transcribe(
        self, audio_path: Path
    ) -> Tuple[str, RecognitionStrategy, Optional[float]]:
        size_bytes = audio_path.stat().st_size

        try:
            duration = await self.duration_probe(audio_path)
            logger.info(f"Audio duration detected: {duration}s")
        except TranscodingError as e:
            logger.warning(f"Failed to get audio duration, defaulting to async recognition: {e}")
            duration = None

        strategy = select_strategy(duration, size_bytes)
        results = await self.recognizers[strategy].recognize(audio_path)

        transcript = format_transcript(results)
        logger.info(f"📝 Transcript ready: {len(transcript)} chars")
        return transcript, strategy, duration

    async def _generate_insights(self, transcript: str) -> Optional[MeetingInsights]:
        try:
            insights = await self.insight_generator.generate(transcript)
            logger.info("Generated AI insights successfully")
            return insights
        except Exception as e:
            logger.error(f"Failed to generate AI insights: {e}", exc_info=True)
            return None

    async def _store_transcript(self, meeting_id: str, transcript: str) -> str:
        transcript_path = (
            f"{self.transcripts_prefix}{meeting_id}/{meeting_id}_transcript.txt"
        )
        stored = await self.storage.upload_text(
            transcript_path,
            transcript,
            content_type="text/plain",
            metadata={
                "meetingId": meeting_id,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            },
        )
        if not stored:
            raise PersistenceError(f"Failed to store transcript at {transcript_path}")
        return transcript_path

    async def _mark_failed(self, meeting_id: str, error: BaseException):
        message = str(error) or error.__class__.__name__
        try:
            await self.db.mark_meeting_failed(meeting_id, message)
        except Exception as e:
            logger.error(f"Could not record failure for meeting {meeting_id}: {e}")


# Singleton instance
_meeting_pipeline: Optional[MeetingPipeline] = None


def get_meeting_pipeline(db) -> MeetingPipeline:
    """Shared pipeline for `db`; a different database manager gets a fresh one."""
    global _meeting_pipeline
    if _meeting_pipeline is None or _meeting_pipeline.db is not db:
        _meeting_pipeline = MeetingPipeline(db)
    return _meeting_pipeline
