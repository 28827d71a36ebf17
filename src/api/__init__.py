"""Framework-agnostic endpoint handlers."""
from .handlers import ApiResponse, MatchingApi

__all__ = ["ApiResponse", "MatchingApi"]
