"""Self-consistency reasoning: sample many paths, keep the majority answer."""

from .client import OpenAICompatChatClient
from .errors import (
    AllSamplesFailed,
    ConsensusError,
    InvalidConfiguration,
    InvalidSampleCount,
    SampleGenerationFailure,
)
from .solver import ReasoningConsensusEngine, ReasoningSample, SolverConfig, SolveResult
from .voting import VotingResult, select_by_majority_vote

__all__ = [
    "OpenAICompatChatClient",
    "ReasoningConsensusEngine",
    "ReasoningSample",
    "SolverConfig",
    "SolveResult",
    "VotingResult",
    "select_by_majority_vote",
    "AllSamplesFailed",
    "ConsensusError",
    "InvalidConfiguration",
    "InvalidSampleCount",
    "SampleGenerationFailure",
]
