import logging
import os
import aiosqlite

from practice_bot.config import settings

logger = logging.getLogger(__name__)

_db: aiosqlite.Connection | None = None


async def get_db() -> aiosqlite.Connection:
    """Get or create the database connection."""
    global _db
    if _db is None:
        db_dir = os.path.dirname(settings.DATABASE_PATH)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        _db = await aiosqlite.connect(settings.DATABASE_PATH)
        _db.row_factory = aiosqlite.Row
        await _create_tables(_db)
    return _db


async def close_db():
    """Close the database connection."""
    global _db
    if _db:
        await _db.close()
        _db = None


async def _create_tables(db: aiosqlite.Connection):
    await db.executescript("""
        CREATE TABLE IF NOT EXISTS users (
            user_id       INTEGER PRIMARY KEY,
            username      TEXT,
            first_name    TEXT,
            created_at    TEXT DEFAULT (datetime('now')),
            last_active   TEXT DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS practice_sessions (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id           INTEGER NOT NULL,
            session_id        TEXT NOT NULL,
            mode              TEXT,
            time_limit        INTEGER,
            total_questions   INTEGER NOT NULL,
            correct_answers   INTEGER NOT NULL,
            incorrect_answers INTEGER NOT NULL,
            unanswered        INTEGER NOT NULL,
            accuracy          REAL NOT NULL,
            total_score       INTEGER DEFAULT 0,
            finished_at       TEXT DEFAULT (datetime('now')),
            FOREIGN KEY (user_id) REFERENCES users(user_id)
        );

        CREATE UNIQUE INDEX IF NOT EXISTS idx_practice_sessions_session
            ON practice_sessions(user_id, session_id);
    """)
    await db.commit()
