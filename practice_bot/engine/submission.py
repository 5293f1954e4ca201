"""Exactly-once answer submission."""
import logging
from typing import List, Optional

from practice_bot.quiz_api.client import QuizClient
from practice_bot.quiz_api.exceptions import QuizAPIError, SessionCompletedError
from practice_bot.quiz_api.models import Question
from .answer_store import AnswerStore
from .errors import AlreadyCompleted, SubmissionFailed
from .models import AnswerOutcome
from .timer import CountdownTimer

logger = logging.getLogger(__name__)


class SubmissionGate:
    """
    Serializes submissions so each position gets at most one outcome.

    The in-flight flag is set before the first await. Any submit that
    arrives while it is set, or for a position that already has an
    outcome, returns None without contacting the service.
    """

    def __init__(
        self,
        client: QuizClient,
        store: AnswerStore,
        timer: CountdownTimer,
        session_id: str,
        questions: List[Question],
        time_limit: int,
    ):
        self._client = client
        self._store = store
        self._timer = timer
        self._session_id = session_id
        self._questions = questions
        self._time_limit = time_limit
        self._in_flight: Optional[int] = None
        self._closed = False

    @property
    def in_flight(self) -> Optional[int]:
        """Position currently being submitted, if any."""
        return self._in_flight

    def close(self) -> None:
        self._closed = True

    async def submit(
        self,
        position: int,
        selected_answer: str,
        time_taken: int,
        is_timeout: bool = False,
    ) -> Optional[AnswerOutcome]:
        """
        Record the answer for ``position``.

        Returns:
            The new outcome, or None when the call was a duplicate

        Raises:
            AlreadyCompleted: the service says the session is finished
            SubmissionFailed: the service could not record the answer
        """
        if self._closed:
            logger.debug("Gate closed, dropping submission for position %d", position)
            return None
        if self._store.has(position):
            logger.debug("Position %d already answered, dropping submission", position)
            return None
        if self._in_flight is not None:
            logger.debug("Submission for position %d in flight, dropping duplicate", self._in_flight)
            return None

        self._in_flight = position
        self._timer.stop()

        time_taken = max(0, min(int(time_taken), self._time_limit))
        question = self._questions[position]

        try:
            result = await self._client.submit_answer(
                self._session_id,
                question.question_id,
                selected_answer,
                time_taken,
            )
            outcome = AnswerOutcome(
                position=position,
                question_id=question.question_id,
                selected_answer=selected_answer,
                is_correct=result.is_correct,
                correct_answer=result.correct_answer,
                explanation=result.explanation,
                time_taken_seconds=time_taken,
                time_remaining_seconds=self._time_limit - time_taken,
                is_timeout=is_timeout,
            )
            self._store.record(outcome)
        except SessionCompletedError as e:
            logger.info("Session %s already completed on the server", self._session_id)
            raise AlreadyCompleted(str(e)) from e
        except QuizAPIError as e:
            logger.warning("Answer for position %d not recorded: %s", position, e)
            raise SubmissionFailed(position, selected_answer, time_taken, is_timeout, str(e)) from e
        finally:
            self._in_flight = None

        logger.info(
            "Position %d answered %r (correct=%s, %ds taken%s)",
            position, selected_answer, outcome.is_correct, time_taken,
            ", timeout" if is_timeout else "",
        )
        return outcome
