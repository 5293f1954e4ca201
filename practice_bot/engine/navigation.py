"""Moving between questions and restoring answered ones."""
import logging

from practice_bot.quiz_api.models import SessionMode
from . import mode_policy
from .answer_store import AnswerStore
from .models import AnswerOutcome, SessionCursor
from .timer import CountdownTimer

logger = logging.getLogger(__name__)


class NavigationController:
    """
    Owns the cursor.

    Entering a position with an outcome shows the stored timer value and
    never starts a countdown; entering an unanswered one starts a fresh
    countdown at the full limit. Any other change of the cursor position
    is answered by a restore from the store, unless an explicit move is
    in progress.
    """

    def __init__(
        self,
        cursor: SessionCursor,
        store: AnswerStore,
        timer: CountdownTimer,
        total: int,
        time_limit: int,
        mode: SessionMode,
    ):
        self.cursor = cursor
        self.store = store
        self.timer = timer
        self.total = total
        self.time_limit = time_limit
        self.mode = mode
        self._navigating = False
        cursor.subscribe(self._on_position_changed)

    @property
    def is_last(self) -> bool:
        return self.cursor.position + 1 >= self.total

    def enter_current(self) -> None:
        """Set up timer and display for the current position."""
        self._enter(self.cursor.position)

    def advance(self) -> bool:
        """
        Move to the next question.

        Returns:
            True if the current question was the last one (terminal)
        """
        if self.is_last:
            return True
        self._move(self.cursor.position + 1)
        return False

    def jump_to_next(self) -> bool:
        """Continue/Next after an explanation. Same result as advance()."""
        return self.advance()

    def rewind(self) -> bool:
        """Move to the previous question. Returns False at the first one."""
        if self.cursor.position <= 0:
            return False
        self._move(self.cursor.position - 1)
        return True

    def _move(self, position: int) -> None:
        self._navigating = True
        try:
            self.cursor.move_to(position)
            self._enter(position)
        finally:
            self._navigating = False
        logger.debug("Cursor moved to position %d", position)

    def _enter(self, position: int) -> None:
        outcome = self.store.get(position)
        if outcome is not None:
            self._restore(outcome)
            return

        self.cursor.is_explanation_visible = False
        self.cursor.timer_seconds_remaining = self.time_limit
        self.timer.start(self.time_limit, position)

    def _restore(self, outcome: AnswerOutcome) -> None:
        self.timer.show(outcome.time_remaining_seconds)
        self.cursor.timer_seconds_remaining = outcome.time_remaining_seconds
        self.cursor.is_explanation_visible = mode_policy.explanation_on_revisit(self.mode)

    def _on_position_changed(self, position: int) -> None:
        if self._navigating:
            return
        logger.debug("Position changed externally to %d, restoring", position)
        self._enter(position)
