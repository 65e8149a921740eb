import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import asyncpg

from ..core import config
from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)

JSON_COLUMNS = (
    "action_items",
    "topics_discussed",
    "work_done",
    "ai_action_items",
    "decisions_made",
    "follow_up_questions",
)

# Columns save_processing_results is allowed to write
RESULT_COLUMNS = (
    "transcript",
    "transcript_url",
    "summary",
    "duration",
    "ai_summary",
    "other_observations",
) + JSON_COLUMNS


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DatabaseManager:
    def __init__(self, db_url: str = None):
        self.db_url = db_url or config.DATABASE_URL
        if not self.db_url:
            raise ValueError(
                "DATABASE_URL or NEON_DATABASE_URL environment variable is not set"
            )

    @asynccontextmanager
    async def _get_connection(self):
        """Open a connection, retrying with exponential backoff."""
        conn = None
        max_retries = 3
        retry_delay = 1
        last_error = None

        for attempt in range(max_retries):
            try:
                conn = await asyncpg.connect(self.db_url)
                break
            except (OSError, asyncpg.PostgresError) as e:
                last_error = e
                logger.warning(
                    f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}"
                )
                if attempt < max_retries - 1:
                    await asyncio.sleep(retry_delay * (2**attempt))

        if conn is None:
            logger.error(f"Failed to connect to database after {max_retries} attempts")
            raise PersistenceError(f"Could not connect to database: {last_error}")

        try:
            yield conn
        finally:
            await conn.close()

    async def ping(self) -> bool:
        try:
            async with self._get_connection() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def get_meeting(self, meeting_id: str) -> Optional[Dict]:
        """Get a meeting record by ID, JSON columns decoded."""
        try:
            async with self._get_connection() as conn:
                row = await conn.fetchrow("SELECT * FROM meetings WHERE id = $1", meeting_id)
        except Exception as e:
            logger.error(f"Error getting meeting: {str(e)}")
            raise

        if not row:
            return None

        meeting = dict(row)
        for column in JSON_COLUMNS:
            if isinstance(meeting.get(column), str):
                meeting[column] = json.loads(meeting[column])
        for column in ("created_at", "updated_at", "processed_at"):
            meeting[column] = _iso(meeting.get(column))
        return meeting

    async def get_meeting_status(self, meeting_id: str) -> Optional[Dict]:
        """Return {'status', 'error'} for a meeting, or None if it does not exist."""
        async with self._get_connection() as conn:
            row = await conn.fetchrow(
                "SELECT status, error FROM meetings WHERE id = $1", meeting_id
            )
        return dict(row) if row else None

    async def claim_meeting_for_processing(
        self, meeting_id: str, allowed_statuses: Iterable[str]
    ) -> bool:
        """
        Atomically move a meeting to 'processing' if its status is one of
        `allowed_statuses`, clearing any previous error. Returns False when the
        meeting is missing or in another state.
        """
        now = datetime.utcnow()
        try:
            async with self._get_connection() as conn:
                async with conn.transaction():
                    claimed = await conn.fetchval(
                        """
                        UPDATE meetings
                        SET status = 'processing', error = NULL, updated_at = $2
                        WHERE id = $1 AND status = ANY($3::text[])
                        RETURNING id
                        """,
                        meeting_id,
                        now,
                        list(allowed_statuses),
                    )
        except Exception as e:
            logger.error(f"Error claiming meeting {meeting_id}: {str(e)}", exc_info=True)
            raise PersistenceError(f"Failed to update meeting status: {e}") from e

        return claimed is not None

    async def mark_meeting_failed(self, meeting_id: str, error: str):
        sanitized_error = str(error).replace("\n", " ").replace("\r", "")[:1000]
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    UPDATE meetings
                    SET status = 'failed', error = $2, updated_at = $3
                    WHERE id = $1
                    """,
                    meeting_id,
                    sanitized_error,
                    datetime.utcnow(),
                )
        except Exception as e:
            logger.error(f"Error marking meeting failed: {str(e)}", exc_info=True)
            raise PersistenceError(f"Failed to record meeting failure: {e}") from e

    async def save_processing_results(self, meeting_id: str, results: Dict):
        """Write pipeline outputs and mark the meeting processed."""
        now = datetime.utcnow()
        update_fields = ["status = $1", "updated_at = $2", "processed_at = $3"]
        params: List = ["processed", now, now]
        param_idx = 4

        for column in RESULT_COLUMNS:
            if column not in results:
                continue
            value = results[column]
            if column in JSON_COLUMNS and value is not None:
                value = json.dumps(value)
            update_fields.append(f"{column} = ${param_idx}")
            params.append(value)
            param_idx += 1

        params.append(meeting_id)
        query = f"UPDATE meetings SET {', '.join(update_fields)} WHERE id = ${param_idx}"

        try:
            async with self._get_connection() as conn:
                async with conn.transaction():
                    res = await conn.execute(query, *params)
        except Exception as e:
            logger.error(
                f"Error saving processing results: {str(e)}", exc_info=True
            )
            raise PersistenceError(f"Failed to save meeting results: {e}") from e

        if res == "UPDATE 0":
            raise PersistenceError(f"Meeting {meeting_id} disappeared before results were saved")

        logger.info(f"Saved processing results for meeting {meeting_id}")
