"""Error types raised by the consensus engine."""

from __future__ import annotations


class ConsensusError(RuntimeError):
    """Base class for engine-level failures."""


class InvalidSampleCount(ConsensusError, ValueError):
    """Raised when a solve is requested with a non-positive sample count."""

    def __init__(self, sample_count: int) -> None:
        super().__init__(f"sample_count must be a positive integer, got {sample_count!r}")
        self.sample_count = sample_count


class AllSamplesFailed(ConsensusError):
    """Raised when every generation call of a solve failed."""

    def __init__(self, errors: list[str]) -> None:
        preview = "; ".join(errors[:3])
        super().__init__(f"All {len(errors)} generation calls failed: {preview}")
        self.errors = list(errors)


class InvalidConfiguration(ConsensusError, ValueError):
    """Raised for sampling settings that cannot produce a meaningful vote."""


class SampleGenerationFailure(ConsensusError):
    """One generation call failed; the slot it belongs to becomes answerless.

    ``transient`` marks failures worth another attempt within the slot's
    retry budget (timeouts, rate limits, 5xx, empty completions).
    """

    def __init__(self, message: str, *, transient: bool, status_code: int | None = None) -> None:
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code
