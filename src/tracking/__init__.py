"""Match tracking services."""
from .match_service import MatchPage, MatchService, MatchView

__all__ = ["MatchService", "MatchView", "MatchPage"]
