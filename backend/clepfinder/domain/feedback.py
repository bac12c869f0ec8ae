"""
Feedback Ledger for CLEP Finder

Per-session up/down votes on (institution, exam) pairs.
Voting the same direction twice clears the vote; voting the other
direction replaces it. Votes live only as long as the process.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from clepfinder.domain.models import VoteDirection


VoteKey = Tuple[int, str]


@dataclass(frozen=True)
class VoteCounts:
    up: int = 0
    down: int = 0

    def to_dict(self) -> dict:
        return {"up": self.up, "down": self.down}


class FeedbackLedger:
    """Votes for a single session actor."""

    def __init__(self):
        self._votes: Dict[VoteKey, VoteDirection] = {}

    def vote(
        self,
        institution_id: int,
        exam_name: str,
        direction: Union[VoteDirection, str],
    ) -> Optional[VoteDirection]:
        """
        Record a vote with toggle semantics.

        Returns:
            The new vote state, or None if the vote was cleared
        """
        direction = VoteDirection(direction)
        key = (institution_id, exam_name)

        if self._votes.get(key) == direction:
            del self._votes[key]
            return None

        self._votes[key] = direction
        return direction

    def vote_for(self, institution_id: int, exam_name: str) -> Optional[VoteDirection]:
        return self._votes.get((institution_id, exam_name))

    def counts_for(self, exam_name: str) -> VoteCounts:
        """Up/down totals for an exam across all institutions."""
        up = down = 0
        for (_, voted_exam), direction in self._votes.items():
            if voted_exam != exam_name:
                continue
            if direction == VoteDirection.UP:
                up += 1
            else:
                down += 1
        return VoteCounts(up=up, down=down)

    def __len__(self) -> int:
        return len(self._votes)


class FeedbackLedgerRegistry:
    """One ledger per session actor, created on first use."""

    def __init__(self):
        self._ledgers: Dict[str, FeedbackLedger] = {}

    def ledger_for(self, actor: str) -> FeedbackLedger:
        ledger = self._ledgers.get(actor)
        if ledger is None:
            ledger = FeedbackLedger()
            self._ledgers[actor] = ledger
        return ledger
