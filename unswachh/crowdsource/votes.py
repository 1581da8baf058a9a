"""
Community voting on approved reports

Each voter holds one choice per report. Voter identity is a device-local
id without authentication; clearing the vote book lets a voter vote
again, which is an accepted limitation.
"""

import asyncio
import json
import logging
import os
import tempfile
import weakref
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple

from unswachh.core.exceptions import (
    PersistenceFailed,
    ReportNotFound,
    ReportNotVotable,
    UnswachhError,
)
from unswachh.crowdsource.report_store import ReportStatus, ReportStore

logger = logging.getLogger(__name__)


class VoteChoice(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class VoteEffect:
    """Outcome of one vote cast."""
    delta: int
    new_choice: VoteChoice
    no_op: bool = False
    vote_count: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "delta": self.delta,
            "choice": self.new_choice.value,
            "no_op": self.no_op,
            "vote_count": self.vote_count,
        }


def vote_delta(previous: Optional[VoteChoice], choice: VoteChoice) -> int:
    """
    Counter adjustment for moving from previous to choice.

    None -> up/down gives +1/-1, a flip gives +2/-2 (cancels the old unit
    and adds the new one), repeating the same choice gives 0.
    """
    if previous == choice:
        return 0
    step = 1 if choice == VoteChoice.UP else -1
    return step if previous is None else 2 * step


class VoteBook:
    """Device-local record of each voter's last choice per report."""

    def get(self, voter_id: str, report_id: str) -> Optional[VoteChoice]:
        raise NotImplementedError

    def set(self, voter_id: str, report_id: str, choice: VoteChoice) -> None:
        raise NotImplementedError

    def choices_for(self, voter_id: str) -> Dict[str, VoteChoice]:
        raise NotImplementedError


class InMemoryVoteBook(VoteBook):

    def __init__(self):
        self._votes: Dict[str, Dict[str, VoteChoice]] = {}

    def get(self, voter_id: str, report_id: str) -> Optional[VoteChoice]:
        return self._votes.get(voter_id, {}).get(report_id)

    def set(self, voter_id: str, report_id: str, choice: VoteChoice) -> None:
        self._votes.setdefault(voter_id, {})[report_id] = choice

    def choices_for(self, voter_id: str) -> Dict[str, VoteChoice]:
        return dict(self._votes.get(voter_id, {}))


class JsonVoteBook(VoteBook):
    """
    Vote book persisted as one JSON document.

    Layout: {"<voter>": {"<report id>": "up" | "down"}}. A corrupt file
    is treated as empty, the same way a browser discards unparsable
    local storage.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._votes = self._load()

    def _load(self) -> Dict[str, Dict[str, VoteChoice]]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return {
                voter: {report_id: VoteChoice(choice) for report_id, choice in votes.items()}
                for voter, votes in raw.items()
            }
        except (ValueError, AttributeError) as e:
            logger.error(f"Failed to parse votes in {self.path}: {e}")
            return {}

    def _save(self) -> None:
        data = {
            voter: {report_id: choice.value for report_id, choice in votes.items()}
            for voter, votes in self._votes.items()
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".votes-")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)

    def get(self, voter_id: str, report_id: str) -> Optional[VoteChoice]:
        return self._votes.get(voter_id, {}).get(report_id)

    def set(self, voter_id: str, report_id: str, choice: VoteChoice) -> None:
        self._votes.setdefault(voter_id, {})[report_id] = choice
        self._save()

    def choices_for(self, voter_id: str) -> Dict[str, VoteChoice]:
        return dict(self._votes.get(voter_id, {}))


class VoteLedger:
    """
    Mediates every change to a report's vote counter.

    The counter is updated first through the store's atomic increment;
    the voter's recorded choice changes only after that succeeds. Votes
    by one voter on one report are serialized, so a double click counts
    once.
    """

    def __init__(self, store: ReportStore, book: VoteBook):
        self.store = store
        self.book = book
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, voter_id: str, report_id: str) -> asyncio.Lock:
        key = (voter_id, report_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def current_choice(self, voter_id: str, report_id: str) -> Optional[VoteChoice]:
        return self.book.get(voter_id, report_id)

    def choices_for(self, voter_id: str) -> Dict[str, VoteChoice]:
        return self.book.choices_for(voter_id)

    async def cast_vote(
        self,
        voter_id: str,
        report_id: str,
        choice: VoteChoice
    ) -> VoteEffect:
        """
        Cast or change a vote.

        Args:
            voter_id: Device-local voter identity
            report_id: Approved report to vote on
            choice: up or down

        Returns:
            VoteEffect; no_op is True when the voter already holds this choice

        Raises:
            ReportNotFound: No such report
            ReportNotVotable: Report is still in review
            PersistenceFailed: Counter or vote record update failed; neither
                changes
        """
        choice = VoteChoice(choice)
        async with self._lock_for(voter_id, report_id):
            return await self._cast(voter_id, report_id, choice)

    async def _cast(self, voter_id: str, report_id: str, choice: VoteChoice) -> VoteEffect:
        report = await self.store.get(report_id)
        if report is None:
            raise ReportNotFound(report_id)
        if report.status != ReportStatus.APPROVED:
            raise ReportNotVotable()

        previous = self.book.get(voter_id, report_id)
        if previous == choice:
            logger.info(f"Voter already {choice.value}voted report {report_id}")
            return VoteEffect(delta=0, new_choice=choice, no_op=True, vote_count=report.vote_count)

        delta = vote_delta(previous, choice)
        try:
            vote_count = await self.store.increment_votes(report_id, delta)
        except UnswachhError:
            logger.error(f"Vote on report {report_id} not applied")
            raise
        except Exception as e:
            logger.error(f"Vote on report {report_id} not applied: {e}")
            raise PersistenceFailed("Failed to process vote.") from e

        try:
            self.book.set(voter_id, report_id, choice)
        except Exception as e:
            logger.error(f"Failed to record vote on report {report_id}, reverting counter: {e}")
            await self._revert(report_id, delta)
            raise PersistenceFailed("Failed to process vote.") from e

        logger.info(f"Report {report_id} {choice.value}voted (delta {delta:+d}, count {vote_count})")

        return VoteEffect(delta=delta, new_choice=choice, vote_count=vote_count)

    async def _revert(self, report_id: str, delta: int) -> None:
        try:
            await self.store.increment_votes(report_id, -delta)
        except Exception as e:
            logger.error(f"Counter of report {report_id} left off by {delta:+d}: {e}")
