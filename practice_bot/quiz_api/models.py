"""Data models for quiz practice API responses."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import InvalidResponseError


class SessionMode(str, Enum):
    """How feedback is given after each answer."""
    CONTINUOUS = "continuous"
    PACED = "paced"


# Допустимые значения, как на сервере при создании сессии
VALID_TIME_LIMITS = (30, 45, 60, 75, 90)
DEFAULT_TIME_LIMIT = 60
DEFAULT_MODE = SessionMode.PACED
OPTION_KEYS = ("A", "B", "C", "D", "E")


@dataclass(frozen=True)
class Question:
    """Single practice question."""
    question_id: str
    question_text: str
    options: Dict[str, str] = field(default_factory=dict)
    scenario_text: Optional[str] = None
    difficulty: Optional[str] = None
    # Opaque to the engine, resolved by the scoring service
    correct_answer: Optional[str] = None

    def option_text(self, key: str) -> str:
        """Text of the option with the given letter, or empty string."""
        if not key:
            return ""
        return self.options.get(key.upper(), "")


@dataclass(frozen=True)
class PracticeSessionData:
    """Ordered questions plus the per-session configuration."""
    session_id: str
    questions: List[Question]
    time_limit_seconds: int = DEFAULT_TIME_LIMIT
    mode: SessionMode = DEFAULT_MODE


@dataclass(frozen=True)
class Explanation:
    """Explanatory content returned with an answer."""
    text: str = ""
    image_url: Optional[str] = None
    table_data: Optional[Any] = None


@dataclass(frozen=True)
class AnswerResult:
    """Scoring service verdict for one submitted answer."""
    is_correct: bool
    correct_answer: str
    explanation: Explanation
    points: int = 0


@dataclass
class CompletionSummary:
    """Final breakdown of a finished practice session."""
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    unanswered: int
    accuracy: float
    total_score: int = 0


# ============================================================================
# CONVERTERS: raw JSON payloads → dataclasses
# ============================================================================

def normalize_time_limit(value: Any) -> int:
    """Snap a requested time limit to one of the supported values."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_TIME_LIMIT
    return limit if limit in VALID_TIME_LIMITS else DEFAULT_TIME_LIMIT


def normalize_mode(value: Any) -> SessionMode:
    """Parse a session mode, falling back to paced."""
    try:
        return SessionMode(value)
    except ValueError:
        return DEFAULT_MODE
def question_from_payload(payload: Dict[str, Any]) -> Question:
    """Build a Question from an API row; options with no text are dropped."""
    if not isinstance(payload, dict) or not payload.get("id"):
        raise InvalidResponseError(f"Question without id: {payload!r}")

    try:
        options = {}
        for key in OPTION_KEYS:
            text = payload.get(f"option_{key.lower()}") or ""
            if text.strip():
                options[key] = text

        return Question(
            question_id=str(payload["id"]),
            question_text=payload.get("question_text") or "",
            options=options,
            scenario_text=payload.get("scenario_text"),
            difficulty=payload.get("difficulty"),
            correct_answer=payload.get("correct_answer"),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidResponseError(f"Malformed question {payload.get('id')!r}: {e}") from e


def session_from_payload(session_id: str, payload: Dict[str, Any]) -> PracticeSessionData:
    """Build session data from the GET /practice/{id} response."""
    if not isinstance(payload, dict):
        raise InvalidResponseError("Session payload is not an object")

    try:
        session = payload.get("session") or {}
        questions = [question_from_payload(q) for q in payload.get("questions") or []]

        return PracticeSessionData(
            session_id=str(session.get("id") or session_id),
            questions=questions,
            time_limit_seconds=normalize_time_limit(session.get("time_limit")),
            mode=normalize_mode(session.get("mode")),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidResponseError(f"Malformed session payload: {e}") from e


def answer_result_from_payload(payload: Dict[str, Any]) -> AnswerResult:
    """Build an AnswerResult from the POST /answer response."""
    if not isinstance(payload, dict) or "isCorrect" not in payload:
        raise InvalidResponseError("Answer response has no verdict")

    try:
        raw_explanation = payload.get("explanation") or {}
        if isinstance(raw_explanation, str):
            explanation = Explanation(text=raw_explanation)
        else:
            explanation = Explanation(
                text=raw_explanation.get("text") or "",
                image_url=raw_explanation.get("image_url"),
                table_data=raw_explanation.get("table_data"),
            )

        scoring = payload.get("scoring") or {}
        return AnswerResult(
            is_correct=bool(payload["isCorrect"]),
            correct_answer=payload.get("correctAnswer") or "",
            explanation=explanation,
            points=int(scoring.get("totalPoints") or 0),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidResponseError(f"Malformed answer response: {e}") from e


def summary_from_payload(payload: Dict[str, Any]) -> CompletionSummary:
    """Build a CompletionSummary from the POST /complete response."""
    summary = payload.get("summary") if isinstance(payload, dict) else None
    if not isinstance(summary, dict):
        raise InvalidResponseError("Completion response has no summary")

    try:
        return CompletionSummary(
            total_questions=int(summary.get("totalQuestions") or 0),
            correct_answers=int(summary.get("correctAnswers") or 0),
            incorrect_answers=int(summary.get("incorrectAnswers") or 0),
            unanswered=int(summary.get("unansweredCount") or 0),
            accuracy=float(summary.get("accuracy") or 0.0),
            total_score=int(summary.get("totalScore") or 0),
        )
    except (TypeError, ValueError) as e:
        raise InvalidResponseError(f"Malformed completion summary: {e}") from e
