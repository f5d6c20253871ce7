"""Majority voting over normalized sample answers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VotingResult:
    winning_answer: str | None
    vote_count: int
    total_samples: int
    distribution: dict[str, int] = field(default_factory=dict)

    @property
    def consensus_percentage(self) -> float:
        if self.total_samples <= 0:
            return 0.0
        return self.vote_count / self.total_samples * 100

    @property
    def answered_samples(self) -> int:
        return sum(self.distribution.values())

    def top_votes(self, n: int = 5) -> list[tuple[str, int]]:
        """Answers ranked by count; equal counts keep discovery order."""

        ranked = sorted(self.distribution.items(), key=lambda item: item[1], reverse=True)
        return ranked[:n]

    def as_dict(self) -> dict[str, Any]:
        return {
            "winning_answer": self.winning_answer,
            "vote_count": self.vote_count,
            "total_samples": self.total_samples,
            "consensus_percentage": self.consensus_percentage,
            "distribution": dict(self.distribution),
        }


def select_by_majority_vote(answers: Sequence[str | None]) -> VotingResult:
    """Pick the most frequent answer; ties go to the answer seen first.

    ``answers`` must be in generation-request order. ``None`` entries are
    counted in ``total_samples`` but never voted.
    """

    counts: dict[str, int] = {}
    leader: str | None = None
    leader_count = 0

    for answer in answers:
        if answer is None:
            continue
        counts[answer] = counts.get(answer, 0) + 1
        if counts[answer] > leader_count:
            leader = answer
            leader_count = counts[answer]

    result = VotingResult(
        winning_answer=leader,
        vote_count=leader_count,
        total_samples=len(answers),
        distribution=counts,
    )
    logger.debug(
        "vote winner=%s votes=%d/%d distribution=%s",
        result.winning_answer,
        result.vote_count,
        result.total_samples,
        counts,
    )
    return result
