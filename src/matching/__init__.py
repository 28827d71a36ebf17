"""Job/candidate matching and scoring."""
from .compatibility import CompatibilityScorer, MatchAnalysis
from .engine import MatchingEngine, MatchingRunSummary
from .ranking import CandidateRankingService, JobRequirements, RankedCandidate
from .weights import BASIC, PREMIUM, WeightScheme, get_weight_scheme

__all__ = [
    "CompatibilityScorer",
    "MatchAnalysis",
    "MatchingEngine",
    "MatchingRunSummary",
    "CandidateRankingService",
    "JobRequirements",
    "RankedCandidate",
    "WeightScheme",
    "BASIC",
    "PREMIUM",
    "get_weight_scheme",
]
