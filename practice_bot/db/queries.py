from typing import Optional

from practice_bot.db.database import get_db
from practice_bot.quiz_api.models import CompletionSummary


async def ensure_user(user_id: int, username: str | None = None, first_name: str | None = None):
    """Create or update a user record."""
    db = await get_db()
    await db.execute(
        """INSERT INTO users (user_id, username, first_name)
           VALUES (?, ?, ?)
           ON CONFLICT(user_id) DO UPDATE SET
               username = excluded.username,
               first_name = excluded.first_name,
               last_active = datetime('now')""",
        (user_id, username, first_name),
    )
    await db.commit()


async def save_practice_result(
    user_id: int,
    session_id: str,
    summary: CompletionSummary,
    mode: Optional[str] = None,
    time_limit: Optional[int] = None,
) -> None:
    """Save the summary of a finished practice session (once per session)."""
    db = await get_db()
    await db.execute(
        """INSERT OR IGNORE INTO users (user_id) VALUES (?)""",
        (user_id,),
    )
    await db.execute(
        """INSERT OR REPLACE INTO practice_sessions
           (user_id, session_id, mode, time_limit, total_questions, correct_answers,
            incorrect_answers, unanswered, accuracy, total_score)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            user_id,
            session_id,
            mode,
            time_limit,
            summary.total_questions,
            summary.correct_answers,
            summary.incorrect_answers,
            summary.unanswered,
            summary.accuracy,
            summary.total_score,
        ),
    )
    await db.commit()


async def get_user_history(user_id: int, limit: int = 10) -> list[dict]:
    """Get recent practice sessions for a user."""
    db = await get_db()
    cursor = await db.execute(
        """SELECT session_id, mode, time_limit, total_questions, correct_answers,
                  incorrect_answers, unanswered, accuracy, total_score, finished_at
           FROM practice_sessions
           WHERE user_id = ?
           ORDER BY finished_at DESC, id DESC
           LIMIT ?""",
        (user_id, limit),
    )
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]
