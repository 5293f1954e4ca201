"""Blocks leaving a running session without confirmation."""
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

BACK_BLOCKED_WARNING = "⏳ Идёт тренировка. Чтобы выйти, нажми «Завершить»."


class InterruptGuard:
    """
    Interception of back-navigation and leave attempts for one session.

    Armed once when the questions have loaded and disarmed once when the
    session ends; after that it cannot be armed again. ``on_arm`` and
    ``on_disarm`` register and unregister the guard with the platform;
    ``on_warning`` receives the text of every blocked attempt.
    """

    def __init__(
        self,
        on_arm: Optional[Callable[["InterruptGuard"], None]] = None,
        on_disarm: Optional[Callable[["InterruptGuard"], None]] = None,
        on_warning: Optional[Callable[[str], None]] = None,
        warning: str = BACK_BLOCKED_WARNING,
    ):
        self._on_arm = on_arm
        self._on_disarm = on_disarm
        self._on_warning = on_warning
        self.warning = warning
        # Текст последнего предупреждения, его показывает платформа
        self.last_warning: Optional[str] = None
        self._armed = False
        self._released = False

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def released(self) -> bool:
        return self._released

    def set_warning_handler(self, on_warning: Optional[Callable[[str], None]]) -> None:
        self._on_warning = on_warning

    def arm(self) -> bool:
        if self._armed or self._released:
            return False
        self._armed = True
        if self._on_arm is not None:
            self._on_arm(self)
        logger.debug("Interrupt guard armed")
        return True

    def disarm(self) -> bool:
        if not self._armed:
            self._released = True
            return False
        self._armed = False
        self._released = True
        if self._on_disarm is not None:
            self._on_disarm(self)
        logger.debug("Interrupt guard released")
        return True

    def intercept_back(self) -> bool:
        """
        Handle a back/forward navigation attempt.

        Returns:
            True if the attempt was blocked (a warning is emitted and kept
            in ``last_warning``), False if navigation may proceed
        """
        if not self._armed:
            return False
        self.last_warning = self.warning
        if self._on_warning is not None:
            self._on_warning(self.warning)
        return True

    def confirm_leave(self) -> bool:
        """Whether leaving now needs an explicit confirmation."""
        return self._armed
