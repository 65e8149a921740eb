import enum
import logging
from typing import Optional

from ...core import config

logger = logging.getLogger(__name__)


class RecognitionStrategy(str, enum.Enum):
    SYNC = "sync"
    ASYNC = "async"


def select_strategy(
    duration_seconds: Optional[float],
    size_bytes: int,
    max_sync_duration: Optional[float] = None,
    max_sync_size: Optional[int] = None,
) -> RecognitionStrategy:
    """
    Pick synchronous or long-running recognition for an audio file.

    Unknown duration (probe failure) always goes asynchronous.
    """
    max_duration = (
        config.SYNC_MAX_DURATION_SECONDS if max_sync_duration is None else max_sync_duration
    )
    max_size = config.SYNC_MAX_SIZE_BYTES if max_sync_size is None else max_sync_size

    if duration_seconds is None:
        logger.warning("Audio duration unknown, defaulting to async recognition")
        return RecognitionStrategy.ASYNC

    if duration_seconds > max_duration or size_bytes > max_size:
        reason = f"duration > {max_duration:g}s" if duration_seconds > max_duration else "file size > limit"
        logger.info(
            f"Using asynchronous speech recognition ({reason}, duration={duration_seconds}s, size={size_bytes} bytes)"
        )
        return RecognitionStrategy.ASYNC

    logger.info(
        f"Using synchronous speech recognition (duration={duration_seconds}s, size={size_bytes} bytes)"
    )
    return RecognitionStrategy.SYNC
