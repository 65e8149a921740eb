from __future__ import annotations

import copy
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from google.cloud import speech

from huddle.core.errors import PersistenceError, RecognitionError, TranscodingError
from huddle.schemas.meeting import MeetingInsights
from huddle.services.audio import AudioExtractor
from huddle.services.storage import StorageService
from huddle.services.transcription import RecognitionStrategy


def make_result(words: List[str], tags: Optional[List[int]] = None, transcript: str = ""):
    """Build a real Speech-to-Text result with word-level speaker tags."""
    tags = tags if tags is not None else [0] * len(words)
    return speech.SpeechRecognitionResult(
        alternatives=[
            speech.SpeechRecognitionAlternative(
                transcript=transcript or " ".join(words),
                words=[speech.WordInfo(word=w, speaker_tag=t) for w, t in zip(words, tags)],
            )
        ]
    )


class FakeMeetingStore:
    """In-memory stand-in for DatabaseManager."""

    def __init__(self, meetings: Optional[Dict[str, Dict]] = None, fail_on_save: bool = False):
        self.meetings = meetings or {}
        self.fail_on_save = fail_on_save
        self.claims: List[str] = []

    async def ping(self) -> bool:
        return True

    async def get_meeting(self, meeting_id):
        meeting = self.meetings.get(meeting_id)
        return copy.deepcopy(meeting) if meeting else None

    async def get_meeting_status(self, meeting_id):
        meeting = self.meetings.get(meeting_id)
        if not meeting:
            return None
        return {"status": meeting["status"], "error": meeting.get("error")}

    async def claim_meeting_for_processing(self, meeting_id, allowed_statuses):
        meeting = self.meetings.get(meeting_id)
        if not meeting or meeting["status"] not in allowed_statuses:
            return False
        meeting["status"] = "processing"
        meeting["error"] = None
        self.claims.append(meeting_id)
        return True

    async def mark_meeting_failed(self, meeting_id, error):
        meeting = self.meetings[meeting_id]
        meeting["status"] = "failed"
        meeting["error"] = error

    async def save_processing_results(self, meeting_id, results):
        if self.fail_on_save:
            raise PersistenceError("Failed to save meeting results: connection reset")
        meeting = self.meetings[meeting_id]
        meeting.update(copy.deepcopy(results))
        meeting["status"] = "processed"


class FakeExtractor(AudioExtractor):
    """Real download/cleanup logic; the ffmpeg step writes a fixed payload instead."""

    def __init__(self, storage, temp_dir, audio_bytes: bytes = b"RIFF" + b"\x00" * 1024):
        super().__init__(storage=storage, temp_dir=str(temp_dir))
        self.audio_bytes = audio_bytes
        self.extracted: List[Path] = []
        self.cleaned: List[Path] = []

    async def _transcode(self, video_path, audio_path):
        audio_path.write_bytes(self.audio_bytes)

    async def extract(self, video_object_path):
        path = await super().extract(video_object_path)
        self.extracted.append(path)
        return path

    def cleanup(self, audio_path):
        self.cleaned.append(audio_path)
        super().cleanup(audio_path)


class FakeRecognizer:
    def __init__(self, strategy, results=None, error: Optional[Exception] = None):
        self.strategy = strategy
        self.results = results or []
        self.error = error
        self.calls: List[Path] = []

    async def recognize(self, audio_path):
        self.calls.append(audio_path)
        if self.error:
            raise self.error
        return self.results


class FakeInsightGenerator:
    def __init__(self, insights: Optional[MeetingInsights] = None, error: Optional[Exception] = None):
        self.insights = insights
        self.error = error
        self.transcripts: List[str] = []

    async def generate(self, transcript):
        self.transcripts.append(transcript)
        if self.error:
            raise self.error
        return self.insights


def fixed_probe(seconds):
    async def probe(path):
        return seconds

    return probe


async def failing_probe(path):
    raise TranscodingError("ffprobe failed: invalid data")


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(storage_type="local", local_base_path=str(tmp_path / "bucket"))


@pytest.fixture
def upload_video(storage):
    def _upload(object_path: str, content: bytes = b"\x00\x00\x00\x18ftypmp42") -> str:
        target = storage.local_base_path / object_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return object_path

    return _upload


@pytest.fixture
def recognizers():
    return {
        RecognitionStrategy.SYNC: FakeRecognizer(
            RecognitionStrategy.SYNC,
            results=[make_result(["Hello", "team.", "We", "need", "to", "ship", "Friday."])],
        ),
        RecognitionStrategy.ASYNC: FakeRecognizer(
            RecognitionStrategy.ASYNC,
            results=[make_result(["Long", "meeting."], tags=[1, 2])],
        ),
    }


@pytest.fixture
def failing_recognizers():
    error = RecognitionError("No speech recognition results")
    return {
        RecognitionStrategy.SYNC: FakeRecognizer(RecognitionStrategy.SYNC, error=error),
        RecognitionStrategy.ASYNC: FakeRecognizer(RecognitionStrategy.ASYNC, error=error),
    }
