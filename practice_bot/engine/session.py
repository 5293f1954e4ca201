"""Practice session engine: load → question loop → completion."""
import asyncio
import logging
from typing import Callable, List, Optional, Set

from practice_bot.config import settings
from practice_bot.quiz_api.client import QuizClient
from practice_bot.quiz_api.exceptions import QuizAPIError
from practice_bot.quiz_api.models import PracticeSessionData, Question, SessionMode
from . import mode_policy
from .answer_store import AnswerStore
from .errors import AlreadyCompleted, SessionUnavailable, SubmissionFailed
from .interrupt_guard import InterruptGuard
from .mode_policy import Effect
from .models import AnswerOutcome, EngineState, FailedAttempt, SessionCursor, SessionPhase
from .navigation import NavigationController
from .submission import SubmissionGate
from .timer import CountdownTimer

logger = logging.getLogger(__name__)


class PracticeSession:
    """
    Drives one user through a timed practice session.

    All callbacks are plain functions called on the event loop:
    ``on_change(session)`` after every visible change, ``on_tick(session)``
    after each countdown tick, ``on_complete(session_id)`` exactly once
    when the session ends and results should be shown, and
    ``on_warning(text)`` whenever the guard blocks a back attempt.
    """

    def __init__(
        self,
        session_id: str,
        client: QuizClient,
        *,
        tick_interval: Optional[float] = None,
        auto_advance_delay: Optional[float] = None,
        guard: Optional[InterruptGuard] = None,
        on_change: Optional[Callable[["PracticeSession"], None]] = None,
        on_tick: Optional[Callable[["PracticeSession"], None]] = None,
        on_complete: Optional[Callable[[str], None]] = None,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.session_id = session_id
        self.client = client
        self.auto_advance_delay = (
            settings.AUTO_ADVANCE_DELAY if auto_advance_delay is None else auto_advance_delay
        )
        self.state = EngineState.LOADING
        self.phase = SessionPhase.AWAITING_ANSWER
        self.data: Optional[PracticeSessionData] = None
        self.store = AnswerStore()
        self.cursor = SessionCursor()
        self.timer = CountdownTimer(
            on_expire=self._on_timer_expired,
            interval=settings.TICK_INTERVAL if tick_interval is None else tick_interval,
            on_tick=self._on_timer_tick,
            should_run=self._needs_countdown,
        )
        self.guard = guard or InterruptGuard()
        if on_warning is not None:
            self.guard.set_warning_handler(on_warning)
        self.gate: Optional[SubmissionGate] = None
        self.navigation: Optional[NavigationController] = None
        self.last_failure: Optional[FailedAttempt] = None

        self._on_change = on_change
        self._on_tick = on_tick
        self._on_complete = on_complete
        self._closed = False
        self._results_routed = False
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def questions(self) -> List[Question]:
        return self.data.questions if self.data else []

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def time_limit(self) -> int:
        return self.data.time_limit_seconds if self.data else 0

    @property
    def mode(self) -> Optional[SessionMode]:
        return self.data.mode if self.data else None

    @property
    def position(self) -> int:
        return self.cursor.position

    @property
    def current_question(self) -> Optional[Question]:
        if not self.is_active:
            return None
        return self.questions[self.cursor.position]

    @property
    def current_outcome(self) -> Optional[AnswerOutcome]:
        return self.store.get(self.cursor.position)

    @property
    def is_active(self) -> bool:
        return self.state == EngineState.ACTIVE and not self._closed

    @property
    def is_completed(self) -> bool:
        return self.state == EngineState.COMPLETED

    @property
    def is_last(self) -> bool:
        return self.cursor.position + 1 >= self.total

    def outcome(self, position: int) -> Optional[AnswerOutcome]:
        return self.store.get(position)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> PracticeSessionData:
        """
        Fetch questions and configuration, then start the first question.

        Raises:
            SessionUnavailable: load failed or the session has no questions
        """
        if self.state != EngineState.LOADING or self._closed:
            raise SessionUnavailable("Session already loaded or closed")

        try:
            data = await self.client.get_session(self.session_id)
        except QuizAPIError as e:
            logger.warning("Practice session %s unavailable: %s", self.session_id, e)
            raise SessionUnavailable(str(e)) from e

        if not data.questions:
            raise SessionUnavailable("No questions found for this session")
        if self._closed:
            raise SessionUnavailable("Session closed while loading")

        self.data = data
        self.gate = SubmissionGate(
            self.client, self.store, self.timer,
            self.session_id, data.questions, data.time_limit_seconds,
        )
        self.navigation = NavigationController(
            self.cursor, self.store, self.timer,
            len(data.questions), data.time_limit_seconds, data.mode,
        )
        self.state = EngineState.ACTIVE
        self.guard.arm()
        self.navigation.enter_current()
        self._sync_phase()

        logger.info(
            "Practice session %s loaded: %d questions, %ds, %s mode",
            self.session_id, len(data.questions), data.time_limit_seconds, data.mode.value,
        )
        self._changed()
        return data

    def exit(self) -> None:
        """Finish now at the current progress and route to results."""
        if not self.is_active:
            return
        logger.info("Practice session %s exited at position %d", self.session_id, self.position)
        self._complete()

    def close(self) -> None:
        """Tear down without routing anywhere. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.timer.close()
        if self.gate is not None:
            self.gate.close()
        self.guard.disarm()
        self._cancel_tasks()
        logger.debug("Practice session %s closed", self.session_id)

    async def join(self) -> None:
        """Wait for background work (expiry submissions, auto-advance)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def answer(self, selected_answer: str, time_taken: Optional[int] = None) -> Optional[AnswerOutcome]:
        """
        Submit an answer for the current question.

        ``time_taken`` defaults to the seconds elapsed on the countdown.
        Returns None if the submission was suppressed.
        """
        if not self._accepts_answer():
            logger.debug("Answer for position %d ignored", self.position)
            return None
        if time_taken is None:
            time_taken = self.time_limit - self.timer.remaining
        return await self._submit(self.position, selected_answer, time_taken, False)

    async def skip(self) -> Optional[AnswerOutcome]:
        """Resolve the current question without an answer."""
        if not self._accepts_answer():
            return None
        return await self._submit(self.position, "", 0, False)

    async def retry(self) -> Optional[AnswerOutcome]:
        """Re-send the last failed submission exactly as it was attempted."""
        failure = self.last_failure
        if failure is None or not self._accepts_answer() or failure.position != self.position:
            return None
        logger.info("Retrying submission for position %d", failure.position)
        return await self._submit(
            failure.position, failure.selected_answer, failure.time_taken, failure.is_timeout
        )

    def next_question(self) -> bool:
        """Continue/Next from an answered question. Returns True if it moved."""
        if not self.is_active or self.phase == SessionPhase.SUBMITTING:
            return False
        if not self.store.has(self.position):
            return False

        effect = mode_policy.after_continue(self.mode, self.position, self.total)
        if effect == Effect.COMPLETE:
            self._complete()
            return True

        self.navigation.jump_to_next()
        self._sync_phase()
        self._changed()
        return True

    def rewind(self) -> bool:
        """Go back one question. Returns True if the cursor moved."""
        if not self.is_active or self.phase == SessionPhase.SUBMITTING:
            return False
        if not self.navigation.rewind():
            return False
        self.last_failure = None
        self._sync_phase()
        self._changed()
        return True

    def intercept_back(self) -> bool:
        """A back/forward navigation attempt; True if it was blocked."""
        return self.guard.intercept_back()

    def confirm_leave(self) -> bool:
        """Whether leaving now needs the user's confirmation."""
        return self.guard.confirm_leave()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accepts_answer(self) -> bool:
        return (
            self.is_active
            and self.phase == SessionPhase.AWAITING_ANSWER
            and not self.store.has(self.position)
        )

    async def _submit(
        self, position: int, selected_answer: str, time_taken: int, is_timeout: bool
    ) -> Optional[AnswerOutcome]:
        self.phase = SessionPhase.SUBMITTING
        self.last_failure = None

        try:
            outcome = await self.gate.submit(position, selected_answer, time_taken, is_timeout)
        except AlreadyCompleted:
            self._complete()
            return None
        except SubmissionFailed as e:
            self.last_failure = FailedAttempt(
                position=e.position,
                selected_answer=e.selected_answer,
                time_taken=e.time_taken,
                is_timeout=e.is_timeout,
                reason=str(e),
            )
            if self.is_active:
                self.phase = SessionPhase.AWAITING_ANSWER
                self._changed()
            raise
        except Exception:
            if self.is_active:
                self.phase = SessionPhase.AWAITING_ANSWER
                self._changed()
            raise

        if outcome is None:
            if self.is_active and self.gate.in_flight is None and not self.store.has(position):
                self.phase = SessionPhase.AWAITING_ANSWER
            return None
        if not self.is_active or self.position != position:
            return outcome

        self._apply_policy(outcome)
        return outcome

    def _apply_policy(self, outcome: AnswerOutcome) -> None:
        effect = mode_policy.after_submission(self.mode, outcome.position, self.total)
        self.cursor.timer_seconds_remaining = outcome.time_remaining_seconds

        if effect == Effect.COMPLETE:
            self._complete()
        elif effect == Effect.SHOW_EXPLANATION:
            self.cursor.is_explanation_visible = True
            self.phase = SessionPhase.SHOWING_EXPLANATION
            self._changed()
        elif effect == Effect.AUTO_ADVANCE:
            self._changed()
            self._spawn(self._auto_advance(outcome.position))

    async def _auto_advance(self, position: int) -> None:
        await asyncio.sleep(self.auto_advance_delay)
        if not self.is_active or self.position != position:
            return
        if self.navigation.advance():
            self._complete()
            return
        self._sync_phase()
        self._changed()

    async def _submit_timeout(self, position: int, limit: int) -> None:
        try:
            await self._submit(position, "", limit, True)
        except SubmissionFailed:
            # Ошибка уже в last_failure, пользователь увидит кнопку повтора
            logger.warning("Timeout submission for position %d failed, awaiting retry", position)
        except Exception:
            logger.exception("Timeout submission for position %d crashed", position)

    def _on_timer_expired(self, position: int, limit: int) -> None:
        if not self._accepts_answer() or position != self.position:
            logger.debug("Expiry for position %d ignored", position)
            return
        # Фаза ставится синхронно, до того как задача начнёт выполняться
        self.phase = SessionPhase.SUBMITTING
        self._spawn(self._submit_timeout(position, limit))

    def _on_timer_tick(self, remaining: int) -> None:
        self.cursor.timer_seconds_remaining = remaining
        if self._on_tick is not None:
            self._on_tick(self)

    def _needs_countdown(self, position: Optional[int]) -> bool:
        return (
            self.is_active
            and position == self.cursor.position
            and not self.store.has(position)
            and not self.cursor.is_explanation_visible
        )

    def _sync_phase(self) -> None:
        if self.cursor.is_explanation_visible:
            self.phase = SessionPhase.SHOWING_EXPLANATION
        else:
            self.phase = SessionPhase.AWAITING_ANSWER

    def _complete(self) -> None:
        if self.state == EngineState.COMPLETED:
            return
        self.state = EngineState.COMPLETED
        self.timer.close()
        if self.gate is not None:
            self.gate.close()
        self.guard.disarm()
        self._cancel_tasks()
        logger.info(
            "Practice session %s completed (%d of %d answered)",
            self.session_id, len(self.store), self.total,
        )
        self._changed()
        if not self._results_routed:
            self._results_routed = True
            if self._on_complete is not None:
                self._on_complete(self.session_id)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_tasks(self) -> None:
        current = asyncio.current_task() if self._has_running_loop() else None
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()

    @staticmethod
    def _has_running_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True
