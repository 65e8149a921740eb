import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.deps import get_db
from .api.routers import events, meetings
from .core import config
from .db import DatabaseManager
from .services.storage import get_storage_service

# Configure the package logger with line numbers and function names
logger = logging.getLogger("huddle")
logger.setLevel(logging.INFO)

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)

formatter = logging.Formatter(
    "%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d - %(funcName)s()] - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
console_handler.setFormatter(formatter)

if not logger.handlers:
    logger.addHandler(console_handler)

app = FastAPI(
    title="Meeting Processing API",
    description="Turns recorded meetings into transcripts and structured insights",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

app.include_router(events.router, tags=["events"])
app.include_router(meetings.router, tags=["meetings"])


@app.get("/health")
async def health_check(db: DatabaseManager = Depends(get_db)):
    database_ok = await db.ping()
    storage = get_storage_service()
    return {
        "status": "healthy" if database_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "database": "connected" if database_ok else "unavailable",
            "storage": storage.storage_type,
            "speech": config.SPEECH_MODEL,
        },
    }


if __name__ == "__main__":
    uvicorn.run("huddle.main:app", host="0.0.0.0", port=8000)
