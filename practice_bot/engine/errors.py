"""Errors raised by the practice session engine."""
from typing import Optional


class EngineError(Exception):
    """Base exception for practice session engine errors."""
    pass


class SessionUnavailable(EngineError):
    """Session could not be loaded or has no questions; redirect to setup."""
    pass


class SubmissionFailed(EngineError):
    """Answer could not be recorded; the question can be retried."""

    def __init__(
        self,
        position: int,
        selected_answer: str,
        time_taken: int,
        is_timeout: bool,
        reason: Optional[str] = None,
    ):
        super().__init__(reason or f"Submission for position {position} failed")
        self.position = position
        self.selected_answer = selected_answer
        self.time_taken = time_taken
        self.is_timeout = is_timeout


class AlreadyCompleted(EngineError):
    """The service reports the session finished; go straight to results."""
    pass
