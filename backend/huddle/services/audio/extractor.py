"""
Audio extraction for uploaded meeting recordings.

Downloads the source video from storage into a scoped temp directory, isolates
the audio track as 16 kHz mono 16-bit PCM WAV with a fixed gain boost, and
verifies the result before handing it back to the caller.
"""

import asyncio
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import List, Optional

from ...core import config
from ...core.errors import TranscodingError, TransferError
from ..storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)


def _size_mb(size_bytes: int) -> float:
    return round(size_bytes / (1024 * 1024), 2)


def _remove_quietly(path: Path) -> None:
    try:
        if path.exists():
            os.unlink(path)
    except OSError as e:
        logger.warning(f"Failed to cleanup temp file {path}: {e}")


async def probe_duration(media_path: Path, ffprobe_path: Optional[str] = None) -> float:
    """Return the media duration in seconds using ffprobe."""
    cmd = [
        ffprobe_path or config.FFPROBE_PATH,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(media_path),
    ]

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise TranscodingError(f"ffprobe could not be started: {e}") from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise TranscodingError(f"ffprobe failed: {stderr.decode(errors='replace')}")

    try:
        return float(stdout.decode().strip())
    except ValueError as e:
        raise TranscodingError(
            f"ffprobe returned no duration for {media_path}"
        ) from e


class AudioExtractor:
    """Turns a stored video object into a recognition-ready WAV file."""

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        temp_dir: Optional[str] = None,
        ffmpeg_path: Optional[str] = None,
        sample_rate: Optional[int] = None,
        channels: Optional[int] = None,
        gain: Optional[float] = None,
    ):
        self.storage = storage or get_storage_service()
        self.temp_dir = temp_dir or config.TEMP_DIR
        self.ffmpeg_path = ffmpeg_path or config.FFMPEG_PATH
        self.sample_rate = sample_rate or config.AUDIO_SAMPLE_RATE
        self.channels = channels or config.AUDIO_CHANNELS
        self.gain = gain or config.AUDIO_GAIN

    def build_command(self, video_path: Path, audio_path: Path) -> List[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-i",
            str(video_path),
            "-vn",
            "-acodec",
            "pcm_s16le",
            "-ac",
            str(self.channels),
            "-ar",
            str(self.sample_rate),
            "-af",
            f"volume={self.gain}",
            "-f",
            "wav",
            str(audio_path),
        ]

    async def extract(self, video_object_path: str) -> Path:
        """
        Download `video_object_path` and extract its audio.

        Returns the location of a non-empty WAV file. The caller owns it and
        must delete it (see `cleanup`). On failure every partial artifact is
        removed before the error propagates.
        """
        work_dir = Path(tempfile.mkdtemp(prefix="meeting_", dir=self.temp_dir))
        stamp = int(time.time() * 1000)
        suffix = Path(video_object_path).suffix or ".mp4"
        video_path = work_dir / f"video_{stamp}{suffix}"
        audio_path = work_dir / f"audio_{stamp}.wav"

        try:
            logger.info(
                f"Downloading video file for audio extraction: {video_object_path} -> {video_path}"
            )
            if not await self.storage.download_file(video_object_path, str(video_path)):
                raise TransferError(f"Video download failed: {video_object_path}")

            await self._transcode(video_path, audio_path)
            _remove_quietly(video_path)

            size = audio_path.stat().st_size if audio_path.exists() else 0
            if size == 0:
                raise TranscodingError("Audio extraction failed: generated audio file is empty")

            logger.info(f"Audio file verified: {audio_path} ({_size_mb(size)} MB)")
            return audio_path
        except BaseException:
            # Also runs on cancellation when the orchestrator times out
            _remove_quietly(video_path)
            _remove_quietly(audio_path)
            shutil.rmtree(work_dir, ignore_errors=True)
            raise

    async def _transcode(self, video_path: Path, audio_path: Path) -> None:
        cmd = self.build_command(video_path, audio_path)
        logger.info(f"FFmpeg started: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise TranscodingError(f"Audio extraction failed: {e}") from e

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            raise

        if process.returncode != 0:
            logger.error(f"FFmpeg conversion failed: {stderr.decode(errors='replace')}")
            raise TranscodingError(
                f"Audio extraction failed: ffmpeg exited with code {process.returncode}"
            )

        logger.info(f"Audio extraction completed: {audio_path}")

    @staticmethod
    def cleanup(audio_path: Optional[Path]) -> None:
        """Best-effort removal of an extracted audio file and its temp directory."""
        if not audio_path:
            return
        _remove_quietly(audio_path)
        try:
            parent = audio_path.parent
            if parent.exists() and not any(parent.iterdir()):
                parent.rmdir()
        except OSError as e:
            logger.warning(f"Failed to remove temp directory {audio_path.parent}: {e}")
