"""Endpoint handlers, independent of any web framework.

Each handler takes the authenticated user (or None) and plain request data
and returns an ``ApiResponse``. Error bodies only ever carry the public
message of a ``MatchingError`` or a generic text; database and AI provider
error details stay in the logs.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from src.matching.engine import MatchingEngine
from src.matching.exceptions import (
    AuthenticationRequiredError,
    MatchingError,
    PermissionDeniedError,
    ValidationError,
)
from src.matching.ranking import CandidateRankingService, JobRequirements
from src.tracking.match_service import MatchService

logger = logging.getLogger(__name__)

GENERIC_ERROR = MatchingError.public_message


@dataclass
class ApiResponse:
    status: int
    body: dict = field(default_factory=dict)


def error_response(error: Exception) -> ApiResponse:
    """Map an exception to a response without leaking internal error text."""
    if isinstance(error, MatchingError):
        if error.http_status >= 500:
            logger.error("Request failed: %s", error, exc_info=error)
        return ApiResponse(error.http_status, {"success": False, "message": error.public_message})

    logger.error("Unhandled error: %s", error, exc_info=error)
    return ApiResponse(500, {"success": False, "message": GENERIC_ERROR})


def require_user(user, *roles: str):
    """Raise unless the user is authenticated and (when given) has one of the roles.

    Admins pass every role check.
    """
    if user is None or getattr(user, "id", None) is None:
        raise AuthenticationRequiredError()
    role = getattr(user, "role", None)
    if roles and role not in roles and role != "admin":
        raise PermissionDeniedError("You do not have access to this resource")
    return user


def _positive_int(value: Any, name: str, default: Optional[int] = None) -> int:
    if value is None and default is not None:
        return default
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


class MatchingApi:
    """Handlers for matching, candidate scoring and match listings."""

    def __init__(
        self,
        engine_factory: Callable[[], MatchingEngine],
        ranking_service: CandidateRankingService,
        match_service: MatchService,
        default_limit: int = 20,
    ):
        """
        Initialize handlers.

        Args:
            engine_factory: Builds a MatchingEngine for one run
            ranking_service: Candidate ranking
            match_service: Match listings
            default_limit: Top-candidates limit when the body omits one
        """
        self.engine_factory = engine_factory
        self.ranking_service = ranking_service
        self.match_service = match_service
        self.default_limit = default_limit

    async def run_matching(self, user) -> ApiResponse:
        """POST /api/premium/run-matching (admin only)."""
        try:
            user = require_user(user)
            if getattr(user, "role", None) != "admin":
                raise PermissionDeniedError("Admin access required")
            summary = await self.engine_factory().run()
        except Exception as e:
            return error_response(e)

        logger.info("Matching run triggered by user %s", user.id)
        return ApiResponse(200, {"success": True, "summary": summary.to_dict()})

    def score_candidate(self, user, body: Any) -> ApiResponse:
        """POST /api/candidate-scoring/score with {candidateId, jobRequirements}."""
        try:
            require_user(user)
            if not isinstance(body, dict):
                raise ValidationError("Request body must be an object")
            if body.get("candidateId") is None or body.get("jobRequirements") is None:
                raise ValidationError("candidateId and jobRequirements are required")
            candidate_id = _positive_int(body["candidateId"], "candidateId")
            requirements = JobRequirements.from_dict(body["jobRequirements"])
            ranked = self.ranking_service.score_candidate(candidate_id, requirements)
        except Exception as e:
            return error_response(e)

        return ApiResponse(200, {"success": True, "score": ranked.to_dict()})

    def top_candidates(self, user, body: Any) -> ApiResponse:
        """POST /api/candidate-scoring/top-candidates with {jobRequirements, limit}."""
        try:
            require_user(user)
            if not isinstance(body, dict):
                raise ValidationError("Request body must be an object")
            if body.get("jobRequirements") is None:
                raise ValidationError("jobRequirements is required")
            requirements = JobRequirements.from_dict(body["jobRequirements"])
            limit = _positive_int(body.get("limit"), "limit", default=self.default_limit)
            ranked = self.ranking_service.get_top_candidates(requirements, limit=limit)
        except Exception as e:
            return error_response(e)

        return ApiResponse(
            200,
            {"success": True, "candidates": [r.to_dict() for r in ranked], "count": len(ranked)},
        )

    def recruiter_matches(self, user, page: Any = 1, limit: Any = 20) -> ApiResponse:
        """GET /api/premium/recruiter/matches."""
        try:
            user = require_user(user, "recruiter")
            result = self.match_service.get_recruiter_matches(
                user.id,
                page=_positive_int(page, "page", default=1),
                limit=_positive_int(limit, "limit", default=20),
            )
        except Exception as e:
            return error_response(e)

        return ApiResponse(200, {"success": True, **result.to_dict()})

    def jobseeker_matches(self, user, page: Any = 1, limit: Any = 20) -> ApiResponse:
        """GET /api/premium/jobseeker/matches."""
        try:
            user = require_user(user, "job_seeker")
            result = self.match_service.get_job_seeker_matches(
                user.id,
                page=_positive_int(page, "page", default=1),
                limit=_positive_int(limit, "limit", default=20),
            )
        except Exception as e:
            return error_response(e)

        return ApiResponse(200, {"success": True, **result.to_dict()})
