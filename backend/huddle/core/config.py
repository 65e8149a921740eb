"""
Runtime configuration for the meeting processing pipeline.

Values come from the environment (optionally a .env file). Services read these
as defaults and accept explicit overrides in their constructors.
"""

import os
import tempfile

from dotenv import load_dotenv

load_dotenv()

# Storage
STORAGE_TYPE = os.getenv("STORAGE_TYPE", "local").lower()  # 'local' or 'gcp'
GCP_BUCKET_NAME = os.getenv("GCP_BUCKET_NAME")
GOOGLE_CREDENTIALS_PATH = os.getenv(
    "GOOGLE_APPLICATION_CREDENTIALS", "backend/gcp-service-account.json"
)
LOCAL_STORAGE_PATH = os.getenv("LOCAL_STORAGE_PATH", "./data/storage")

# Path conventions inside the bucket
MEETINGS_PREFIX = os.getenv("MEETINGS_PREFIX", "meetings/")
TRANSCRIPTS_PREFIX = os.getenv("TRANSCRIPTS_PREFIX", "transcripts/")
STAGING_PREFIX = os.getenv("STAGING_PREFIX", "temp/")

# Database
DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("NEON_DATABASE_URL")

# Language model
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
INSIGHTS_TEMPERATURE = float(os.getenv("INSIGHTS_TEMPERATURE", "0.3"))
INSIGHTS_MAX_OUTPUT_TOKENS = int(os.getenv("INSIGHTS_MAX_OUTPUT_TOKENS", "4000"))

# Speech recognition
SPEECH_LANGUAGE_CODE = os.getenv("SPEECH_LANGUAGE_CODE", "en-US")
SPEECH_MODEL = os.getenv("SPEECH_MODEL", "latest_long")
SPEECH_MIN_SPEAKERS = int(os.getenv("SPEECH_MIN_SPEAKERS", "1"))
SPEECH_MAX_SPEAKERS = int(os.getenv("SPEECH_MAX_SPEAKERS", "10"))
SYNC_RECOGNITION_TIMEOUT_SECONDS = int(os.getenv("SYNC_RECOGNITION_TIMEOUT_SECONDS", "300"))
ASYNC_RECOGNITION_TIMEOUT_SECONDS = int(
    os.getenv("ASYNC_RECOGNITION_TIMEOUT_SECONDS", "1800")
)

# The synchronous API caps out around 60s of audio; stay under it.
SYNC_MAX_DURATION_SECONDS = float(os.getenv("SYNC_MAX_DURATION_SECONDS", "50"))
SYNC_MAX_SIZE_BYTES = int(os.getenv("SYNC_MAX_SIZE_BYTES", str(10 * 1024 * 1024)))

# Audio extraction
AUDIO_SAMPLE_RATE = int(os.getenv("AUDIO_SAMPLE_RATE", "16000"))
AUDIO_CHANNELS = int(os.getenv("AUDIO_CHANNELS", "1"))
AUDIO_GAIN = float(os.getenv("AUDIO_GAIN", "2.0"))
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
FFPROBE_PATH = os.getenv("FFPROBE_PATH", "ffprobe")
TEMP_DIR = os.getenv("TEMP_DIR", tempfile.gettempdir())

# Whole-run ceiling, enforced by the orchestrator
PIPELINE_TIMEOUT_SECONDS = float(os.getenv("PIPELINE_TIMEOUT_SECONDS", "1800"))

# Status polling (client side)
STATUS_POLL_INTERVAL_SECONDS = float(os.getenv("STATUS_POLL_INTERVAL_SECONDS", "5"))
STATUS_POLL_MAX_ATTEMPTS = int(os.getenv("STATUS_POLL_MAX_ATTEMPTS", "360"))

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
