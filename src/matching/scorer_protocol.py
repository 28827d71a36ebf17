"""Scorer protocol for pluggable scoring engines.

Defines the interface that all scoring implementations must satisfy.
CompatibilityScorer is the deterministic implementation; the AI fallback
analyzer wraps it behind an async variant of the same call.
"""
from typing import Protocol, runtime_checkable

from src.matching.compatibility import MatchAnalysis
from src.matching.normalizer import CandidateFeatures, JobFeatures


@runtime_checkable
class Scorer(Protocol):
    """Synchronous scorer used by on-demand ranking."""

    def score(self, job: JobFeatures, candidate: CandidateFeatures) -> MatchAnalysis:
        """Score a single pair and return a MatchAnalysis."""
        ...


@runtime_checkable
class PairAnalyzer(Protocol):
    """Async analyzer used by the batch matching engine."""

    async def analyze(self, job: JobFeatures, candidate: CandidateFeatures) -> MatchAnalysis:
        """Analyze a single pair; must not raise for AI provider failures."""
        ...
