"""What happens after an answer, depending on session mode."""
from enum import Enum

from practice_bot.quiz_api.models import SessionMode


class Effect(str, Enum):
    AUTO_ADVANCE = "auto-advance"
    SHOW_EXPLANATION = "show-explanation"
    ADVANCE = "advance"
    COMPLETE = "complete"


def _is_last(position: int, total: int) -> bool:
    return position + 1 >= total


def after_submission(mode: SessionMode, position: int, total: int) -> Effect:
    """Effect of a fresh submission at ``position``."""
    if mode == SessionMode.PACED:
        return Effect.SHOW_EXPLANATION
    if _is_last(position, total):
        return Effect.COMPLETE
    return Effect.AUTO_ADVANCE


def after_continue(mode: SessionMode, position: int, total: int) -> Effect:
    """Effect of Continue/Next on an answered position."""
    if _is_last(position, total):
        return Effect.COMPLETE
    return Effect.ADVANCE


def explanation_on_revisit(mode: SessionMode) -> bool:
    """Whether a stored outcome is shown with its explanation."""
    return mode == SessionMode.PACED
