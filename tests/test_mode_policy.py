"""Тесты политики режимов."""
from practice_bot.engine import mode_policy
from practice_bot.engine.mode_policy import Effect
from practice_bot.quiz_api.models import SessionMode


class TestAfterSubmission:
    """Что происходит сразу после ответа."""

    def test_paced_shows_explanation(self):
        assert mode_policy.after_submission(SessionMode.PACED, 0, 3) == Effect.SHOW_EXPLANATION

    def test_paced_last_still_shows_explanation(self):
        """На последнем вопросе в режиме с разбором сначала показываем разбор."""
        assert mode_policy.after_submission(SessionMode.PACED, 2, 3) == Effect.SHOW_EXPLANATION

    def test_continuous_advances(self):
        assert mode_policy.after_submission(SessionMode.CONTINUOUS, 0, 3) == Effect.AUTO_ADVANCE

    def test_continuous_last_completes(self):
        assert mode_policy.after_submission(SessionMode.CONTINUOUS, 2, 3) == Effect.COMPLETE


class TestAfterContinue:
    """Кнопка «Дальше»."""

    def test_middle_advances(self):
        assert mode_policy.after_continue(SessionMode.PACED, 0, 3) == Effect.ADVANCE

    def test_last_completes(self):
        assert mode_policy.after_continue(SessionMode.PACED, 2, 3) == Effect.COMPLETE

    def test_explanation_on_revisit(self):
        """Разбор при возврате виден только в режиме с разбором."""
        assert mode_policy.explanation_on_revisit(SessionMode.PACED) is True
        assert mode_policy.explanation_on_revisit(SessionMode.CONTINUOUS) is False
