"""Custom exceptions for quiz practice API errors."""


class QuizAPIError(Exception):
    """Base exception for quiz practice API errors."""
    pass


class NetworkError(QuizAPIError):
    """Network connectivity issues or server-side failure."""
    pass


class SessionNotFoundError(QuizAPIError):
    """Practice session does not exist or belongs to another user."""
    pass


class NoQuestionsError(QuizAPIError):
    """Practice session exists but has no questions."""
    pass


class SessionCompletedError(QuizAPIError):
    """Practice session was already completed."""
    pass


class InvalidResponseError(QuizAPIError):
    """API returned unexpected response format."""
    pass
