"""
Speech recognition against Google Cloud Speech-to-Text.

Both variants share one recognition config (16 kHz LINEAR16, punctuation,
word offsets, diarization, long-form model) and differ only in how audio is
delivered and how completion is awaited.
"""

import asyncio
import concurrent.futures
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from google.cloud import speech

from ...core import config
from ...core.errors import RecognitionError, TransferError
from ..storage import StorageService, get_storage_service
from .strategy import RecognitionStrategy

logger = logging.getLogger(__name__)

_speech_client = None


def get_speech_client():
    """Lazily create the shared Speech-to-Text client."""
    global _speech_client
    if _speech_client is None:
        _speech_client = speech.SpeechClient()
        logger.info("✅ Speech-to-Text client initialized")
    return _speech_client


class SpeechRecognizer(ABC):
    """Common recognition settings. Subclasses implement `recognize`."""

    strategy: RecognitionStrategy

    def __init__(
        self,
        client=None,
        language_code: Optional[str] = None,
        model: Optional[str] = None,
        sample_rate: Optional[int] = None,
        min_speakers: Optional[int] = None,
        max_speakers: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._client = client
        self.timeout_seconds = timeout_seconds or config.SYNC_RECOGNITION_TIMEOUT_SECONDS
        self.language_code = language_code or config.SPEECH_LANGUAGE_CODE
        self.model = model or config.SPEECH_MODEL
        self.sample_rate = sample_rate or config.AUDIO_SAMPLE_RATE
        self.min_speakers = min_speakers or config.SPEECH_MIN_SPEAKERS
        self.max_speakers = max_speakers or config.SPEECH_MAX_SPEAKERS

    @property
    def client(self):
        if self._client is None:
            self._client = get_speech_client()
        return self._client

    def build_config(self) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
            language_code=self.language_code,
            enable_automatic_punctuation=True,
            enable_word_time_offsets=True,
            diarization_config=speech.SpeakerDiarizationConfig(
                enable_speaker_diarization=True,
                min_speaker_count=self.min_speakers,
                max_speaker_count=self.max_speakers,
            ),
            model=self.model,
        )

    @abstractmethod
    async def recognize(self, audio_path: Path) -> List[speech.SpeechRecognitionResult]:
        ...


class SyncSpeechRecognizer(SpeechRecognizer):
    """Inline recognition for short audio."""

    strategy = RecognitionStrategy.SYNC

    async def recognize(self, audio_path: Path) -> List[speech.SpeechRecognitionResult]:
        async with aiofiles.open(audio_path, "rb") as f:
            content = await f.read()

        request_config = self.build_config()
        audio = speech.RecognitionAudio(content=content)

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.client.recognize(
                config=request_config, audio=audio, timeout=self.timeout_seconds
            ),
        )

        results = list(response.results)
        if not results:
            raise RecognitionError("No speech recognition results")

        logger.info(f"Sync speech recognition completed: {len(results)} results")
        return results


class AsyncSpeechRecognizer(SpeechRecognizer):
    """Long-running recognition: stage audio in storage, submit a job, wait."""

    strategy = RecognitionStrategy.ASYNC

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        timeout_seconds: Optional[float] = None,
        staging_prefix: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            timeout_seconds=timeout_seconds or config.ASYNC_RECOGNITION_TIMEOUT_SECONDS,
            **kwargs,
        )
        self.storage = storage or get_storage_service()
        self.staging_prefix = staging_prefix or config.STAGING_PREFIX

    async def recognize(self, audio_path: Path) -> List[speech.SpeechRecognitionResult]:
        staged_path = f"{self.staging_prefix}temp-audio-{int(time.time() * 1000)}.wav"

        if not await self.storage.upload_file(str(audio_path), staged_path):
            raise TransferError(f"Failed to stage audio for recognition: {staged_path}")

        uri = self.storage.get_uri(staged_path)
        logger.info(f"Starting async speech recognition: {uri}")

        try:
            request_config = self.build_config()
            audio = speech.RecognitionAudio(uri=uri)

            loop = asyncio.get_running_loop()
            operation = await loop.run_in_executor(
                None,
                lambda: self.client.long_running_recognize(
                    config=request_config, audio=audio
                ),
            )

            logger.info("Waiting for async speech recognition to complete...")
            try:
                response = await loop.run_in_executor(
                    None, lambda: operation.result(timeout=self.timeout_seconds)
                )
            except concurrent.futures.TimeoutError as e:
                raise RecognitionError(
                    f"Async speech recognition did not finish within {self.timeout_seconds:g} seconds"
                ) from e
        finally:
            if not await self.storage.delete_file(staged_path):
                logger.warning(f"Failed to cleanup staged audio file {staged_path}")

        results = list(response.results)
        if not results:
            raise RecognitionError("No speech recognition results from async operation")

        logger.info(f"Async speech recognition completed: {len(results)} results")
        return results


def build_recognizers(
    storage: Optional[StorageService] = None, client=None
) -> Dict[RecognitionStrategy, SpeechRecognizer]:
    """One recognizer per strategy, sharing the storage backend and client."""
    return {
        RecognitionStrategy.SYNC: SyncSpeechRecognizer(client=client),
        RecognitionStrategy.ASYNC: AsyncSpeechRecognizer(storage=storage, client=client),
    }
