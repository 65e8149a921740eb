"""
Database Migration: Meetings table for the processing pipeline

Creates the `meetings` table holding the recording reference, pipeline
status, transcript and insight fields.

Run this script to apply the migration:
    python -m huddle.migrations.create_meetings_table

Or import and call apply_migration() directly.
"""

import asyncio
import logging

import asyncpg

from ..core import config

logger = logging.getLogger(__name__)

MIGRATION_SQL = """
CREATE TABLE IF NOT EXISTS meetings (
    id TEXT PRIMARY KEY,
    team_id TEXT NOT NULL,
    uploaded_by TEXT,
    title TEXT,
    status TEXT NOT NULL DEFAULT 'uploaded'
        CHECK (status IN ('uploaded', 'processing', 'processed', 'failed')),
    recording_url TEXT,
    duration INTEGER DEFAULT 0,
    transcript TEXT,
    transcript_url TEXT,
    summary TEXT,
    action_items JSONB,
    ai_summary TEXT,
    topics_discussed JSONB,
    work_done JSONB,
    ai_action_items JSONB,
    decisions_made JSONB,
    follow_up_questions JSONB,
    other_observations TEXT,
    error TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    processed_at TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_meetings_team_id ON meetings(team_id);

CREATE INDEX IF NOT EXISTS idx_meetings_status ON meetings(status)
"""


async def apply_migration(db_url: str = None) -> bool:
    """Apply the migration."""
    db_url = db_url or config.DATABASE_URL

    if not db_url:
        logger.error("No database connection string found in environment")
        return False

    try:
        logger.info("Connecting to database...")
        conn = await asyncpg.connect(db_url)

        logger.info("Applying meetings table migration...")
        for raw in MIGRATION_SQL.split(";"):
            statement = raw.strip()
            if not statement:
                continue

            try:
                await conn.execute(statement)
                logger.info(f"Executed: {statement[:50]}...")
            except asyncpg.PostgresError as e:
                if "already exists" in str(e):
                    logger.info(f"Skipping existing object: {e}")
                else:
                    logger.warning(f"Migration warning: {e}")

        await conn.close()
        logger.info("✅ Meetings table migration completed successfully")
        return True

    except Exception as e:
        logger.error(f"Migration failed: {e}")
        return False


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(apply_migration())
