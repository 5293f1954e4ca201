"""Write-once map from question position to its outcome."""
import logging
from typing import Dict, Optional

from .models import AnswerOutcome

logger = logging.getLogger(__name__)


class AnswerStore:
    """Answered positions of one session.

    Presence of a key is what "answered" means: a skipped or timed-out
    question is stored with an empty answer and is still answered.
    """

    def __init__(self):
        self._outcomes: Dict[int, AnswerOutcome] = {}

    def record(self, outcome: AnswerOutcome) -> bool:
        """Store an outcome. Returns False if the position already has one."""
        if outcome.position in self._outcomes:
            logger.debug("Outcome for position %d already recorded, ignoring", outcome.position)
            return False
        self._outcomes[outcome.position] = outcome
        return True

    def get(self, position: int) -> Optional[AnswerOutcome]:
        return self._outcomes.get(position)

    def has(self, position: int) -> bool:
        return position in self._outcomes

    def __contains__(self, position: int) -> bool:
        return self.has(position)

    def __len__(self) -> int:
        return len(self._outcomes)
