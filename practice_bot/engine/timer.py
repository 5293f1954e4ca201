"""Per-question countdown."""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CountdownTimer:
    """
    One countdown for the active question.

    Starting the timer always stops the previous countdown, so a single
    instance never has two loops ticking. Every tick reads the timer's own
    fields and asks ``should_run`` about the position it was started for,
    so a loop that outlived its question does nothing.
    """

    def __init__(
        self,
        on_expire: Callable[[int, int], None],
        interval: float = 1.0,
        on_tick: Optional[Callable[[int], None]] = None,
        should_run: Optional[Callable[[int], bool]] = None,
    ):
        """
        Args:
            on_expire: Called with (position, limit) after the timer stopped at zero
            interval: Seconds between ticks
            on_tick: Called with the remaining seconds after every tick
            should_run: Asked at tick time whether the position still needs a countdown
        """
        self.interval = interval
        self.limit = 0
        self.remaining = 0
        self.position: Optional[int] = None
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._should_run = should_run
        self._running = False
        self._closed = False
        # Каждый start/stop увеличивает поколение, старые циклы завершаются сами
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start(self, limit: int, position: int) -> bool:
        """Reset to ``limit`` seconds and begin ticking for ``position``."""
        if self._closed:
            logger.debug("Timer closed, not starting for position %d", position)
            return False

        self.stop()
        self.limit = limit
        self.remaining = limit
        self.position = position
        self._running = True
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(self._run(self._generation))
        logger.debug("Timer started for position %d (%ds)", position, limit)
        return True

    def stop(self) -> None:
        """Stop ticking. Safe to call when nothing is running."""
        self._generation += 1
        self._running = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def show(self, seconds: int) -> None:
        """Display a remaining value without counting down."""
        self.stop()
        self.remaining = seconds

    def close(self) -> None:
        """Stop for good; later starts and ticks are ignored."""
        self.stop()
        self._closed = True

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self.interval)
            if generation != self._generation:
                break
            self.tick()

    def tick(self) -> None:
        """Count one second down; expire at zero."""
        if not self._running or self._closed:
            logger.debug("Late tick ignored")
            return

        position = self.position
        if self._should_run is not None and not self._should_run(position):
            logger.debug("Position %s no longer needs a countdown, stopping", position)
            self.stop()
            return

        self.remaining = max(0, self.remaining - 1)
        if self._on_tick is not None:
            self._on_tick(self.remaining)

        if self.remaining == 0:
            # Сначала останавливаемся, чтобы второй тик не успел сработать во время отправки
            self.stop()
            logger.info("Time is up for position %s", position)
            self._on_expire(position, self.limit)
