"""State records of a practice session."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from practice_bot.quiz_api.models import Explanation


class EngineState(str, Enum):
    LOADING = "loading"
    ACTIVE = "active"
    COMPLETED = "completed"


class SessionPhase(str, Enum):
    AWAITING_ANSWER = "awaiting-answer"
    SUBMITTING = "submitting"
    SHOWING_EXPLANATION = "showing-explanation"


@dataclass(frozen=True)
class AnswerOutcome:
    """How one position was resolved. Written once, never changed."""
    position: int
    question_id: str
    selected_answer: str
    is_correct: bool
    correct_answer: str
    explanation: Explanation
    time_taken_seconds: int
    time_remaining_seconds: int
    is_timeout: bool = False

    @property
    def is_skipped(self) -> bool:
        """No answer was chosen (explicit skip or timeout)."""
        return self.selected_answer == ""


@dataclass
class SessionCursor:
    """Current position and display state.

    Listeners registered with ``subscribe`` are called with the new
    position every time it changes.
    """
    position: int = 0
    timer_seconds_remaining: int = 0
    is_explanation_visible: bool = False
    _listeners: List[Callable[[int], None]] = field(default_factory=list, repr=False)

    def subscribe(self, listener: Callable[[int], None]) -> None:
        self._listeners.append(listener)

    def move_to(self, position: int) -> None:
        if position == self.position:
            return
        self.position = position
        for listener in list(self._listeners):
            listener(position)


@dataclass(frozen=True)
class FailedAttempt:
    """Arguments of the last submission that could not be recorded."""
    position: int
    selected_answer: str
    time_taken: int
    is_timeout: bool
    reason: Optional[str] = None
