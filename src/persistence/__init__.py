"""Database persistence layer."""
from .models import (
    CV,
    Base,
    Employer,
    JobPosting,
    Match,
    MatchStatusHistory,
    Payment,
    SAProfile,
    User,
)
from .repository import MatchRepository

__all__ = [
    "Base",
    "User",
    "SAProfile",
    "Employer",
    "JobPosting",
    "CV",
    "Match",
    "MatchStatusHistory",
    "Payment",
    "MatchRepository",
]
