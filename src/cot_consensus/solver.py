"""Self-consistency solver: sample, extract, normalize, vote."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .client import ChatClient
from .errors import AllSamplesFailed
from .parsing import parse_answer_from_text
from .sampling import SampleGenerator, SampleOutcome, validate_sample_count
from .voting import VotingResult, select_by_majority_vote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
    sample_count: int = 5
    temperature: float = 0.7
    max_tokens: int = 500

    # 0 means one worker per sample.
    parallel_workers: int = 0
    sample_retries: int = 0
    retry_backoff_sec: float = 0.5
    deadline_sec: float = 0


@dataclass(frozen=True)
class ReasoningSample:
    index: int
    raw_text: str
    extracted_answer: str | None
    raw_answer: str | None = None
    generation_error: str | None = None

    @property
    def failed(self) -> bool:
        return self.generation_error is not None


@dataclass
class SolveResult:
    problem_id: Any
    samples: list[ReasoningSample]
    result: VotingResult

    @property
    def winning_answer(self) -> str | None:
        return self.result.winning_answer

    @property
    def debug_summary(self) -> dict[str, Any]:
        return {
            "winning_answer": self.result.winning_answer,
            "vote_count": self.result.vote_count,
            "total_samples": self.result.total_samples,
            "consensus_percentage": self.result.consensus_percentage,
            "top_votes": self.result.top_votes(5),
            "failed_samples": sum(1 for s in self.samples if s.failed),
            "answerless_samples": sum(1 for s in self.samples if s.extracted_answer is None),
        }


def build_sample(outcome: SampleOutcome) -> ReasoningSample:
    if outcome.failed:
        return ReasoningSample(
            index=outcome.index,
            raw_text="",
            extracted_answer=None,
            generation_error=outcome.error,
        )

    parsed = parse_answer_from_text(outcome.text)
    return ReasoningSample(
        index=outcome.index,
        raw_text=outcome.text,
        extracted_answer=parsed.answer,
        raw_answer=parsed.raw,
    )


class ReasoningConsensusEngine:
    """Majority-vote orchestrator over independent reasoning samples."""

    def __init__(
        self,
        client: ChatClient,
        *,
        config: SolverConfig | None = None,
    ) -> None:
        self.client = client
        self.config = config or SolverConfig()
        self.generator = SampleGenerator(
            client,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            parallel_workers=self.config.parallel_workers,
            sample_retries=self.config.sample_retries,
            retry_backoff_sec=self.config.retry_backoff_sec,
        )

    def solve(
        self,
        problem_text: str,
        sample_count: int | None = None,
        *,
        problem_id: Any = None,
    ) -> SolveResult:
        count = validate_sample_count(self.config.sample_count if sample_count is None else sample_count)

        outcomes = self.generator.generate(
            problem_text,
            count,
            deadline_sec=self.config.deadline_sec,
        )

        if all(outcome.failed for outcome in outcomes):
            raise AllSamplesFailed([outcome.error or "unknown error" for outcome in outcomes])

        samples = [build_sample(outcome) for outcome in outcomes]
        result = select_by_majority_vote([sample.extracted_answer for sample in samples])

        logger.info(
            "problem=%s answer=%s votes=%d/%d (%.0f%%)",
            problem_id,
            result.winning_answer,
            result.vote_count,
            result.total_samples,
            result.consensus_percentage,
        )
        return SolveResult(problem_id=problem_id, samples=samples, result=result)
