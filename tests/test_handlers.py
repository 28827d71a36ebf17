"""Tests for the endpoint handlers."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.api.handlers import GENERIC_ERROR, MatchingApi, error_response
from src.matching.engine import MatchingRunSummary
from src.matching.exceptions import MatchingEngineError, ValidationError
from src.matching.ranking import CandidateRankingService
from src.persistence.repository import MatchRepository
from src.tracking.match_service import MatchService

REQUIREMENTS = {"position": "Software Developer", "requiredSkills": ["JavaScript", "SQL"]}


def _user(user_id=1, role="recruiter"):
    return SimpleNamespace(id=user_id, role=role)


@pytest.fixture
def api(test_db, basic_scorer, now):
    engine = MagicMock()
    engine.run = AsyncMock(return_value=MatchingRunSummary(jobs=2, matches_created=1))
    return MatchingApi(
        engine_factory=lambda: engine,
        ranking_service=CandidateRankingService(MatchRepository(test_db), basic_scorer, clock=lambda: now),
        match_service=MatchService(test_db),
    )


class TestErrorResponse:
    """Tests for mapping exceptions to responses."""

    def test_public_message(self):
        response = error_response(ValidationError("limit must be a positive integer"))
        assert response.status == 400
        assert response.body == {"success": False, "message": "limit must be a positive integer"}

    def test_internal_details_hidden(self, caplog):
        error = OperationalError("SELECT * FROM cvs", {}, Exception("password=hunter2"))

        response = error_response(error)

        assert response.status == 500
        assert response.body["message"] == GENERIC_ERROR
        assert "hunter2" not in str(response.body)
        assert "hunter2" in caplog.text

    def test_engine_error_is_generic(self):
        response = error_response(MatchingEngineError("OperationalError"))
        assert response.status == 500
        assert response.body["message"] == GENERIC_ERROR


class TestRunMatching:
    """Tests for the admin-only batch trigger."""

    @pytest.mark.asyncio
    async def test_requires_login(self, api):
        assert (await api.run_matching(None)).status == 401

    @pytest.mark.asyncio
    async def test_requires_admin(self, api):
        assert (await api.run_matching(_user(role="recruiter"))).status == 403

    @pytest.mark.asyncio
    async def test_admin_gets_summary(self, api):
        response = await api.run_matching(_user(role="admin"))

        assert response.status == 200
        assert response.body["success"] is True
        assert response.body["summary"]["matches_created"] == 1

    @pytest.mark.asyncio
    async def test_engine_failure(self, test_db, basic_scorer):
        engine = MagicMock()
        engine.run = AsyncMock(side_effect=MatchingEngineError("OperationalError"))
        api = MatchingApi(lambda: engine, CandidateRankingService(MatchRepository(test_db), basic_scorer), MatchService(test_db))

        response = await api.run_matching(_user(role="admin"))

        assert response.status == 500
        assert response.body == {"success": False, "message": GENERIC_ERROR}


class TestCandidateScoring:
    """Tests for the candidate scoring endpoints."""

    def test_score_candidate(self, api, factory):
        user, _ = factory.seeker()

        response = api.score_candidate(_user(), {"candidateId": user.id, "jobRequirements": REQUIREMENTS})

        assert response.status == 200
        assert response.body["success"] is True
        assert response.body["score"]["candidateId"] == user.id

    def test_candidate_id_as_string(self, api, factory):
        user, _ = factory.seeker()
        body = {"candidateId": str(user.id), "jobRequirements": REQUIREMENTS}
        assert api.score_candidate(_user(), body).status == 200

    @pytest.mark.parametrize(
        "body",
        [
            None,
            {"jobRequirements": REQUIREMENTS},
            {"candidateId": 1},
            {"candidateId": -1, "jobRequirements": REQUIREMENTS},
            {"candidateId": 1, "jobRequirements": {"industry": "Banking"}},
        ],
    )
    def test_bad_request(self, api, body):
        response = api.score_candidate(_user(), body)
        assert response.status == 400
        assert response.body["success"] is False

    def test_unknown_candidate(self, api):
        response = api.score_candidate(_user(), {"candidateId": 999, "jobRequirements": REQUIREMENTS})
        assert response.status == 404
        assert response.body["message"] == "Candidate not found"

    def test_requires_login(self, api):
        body = {"candidateId": 1, "jobRequirements": REQUIREMENTS}
        assert api.score_candidate(None, body).status == 401
        assert api.top_candidates(None, {"jobRequirements": REQUIREMENTS}).status == 401

    @pytest.mark.parametrize("role", ["job_seeker", "recruiter", "admin"])
    def test_any_signed_in_role_may_score(self, api, factory, role):
        seeker, _ = factory.seeker()

        scored = api.score_candidate(_user(role=role), {"candidateId": seeker.id, "jobRequirements": REQUIREMENTS})
        ranked = api.top_candidates(_user(role=role), {"jobRequirements": REQUIREMENTS})

        assert scored.status == 200
        assert ranked.status == 200
        assert ranked.body["count"] == 1

    def test_top_candidates_default_limit(self, api, factory):
        for _ in range(22):
            factory.seeker()

        response = api.top_candidates(_user(), {"jobRequirements": REQUIREMENTS})

        assert response.status == 200
        assert response.body["count"] == 20
        assert len(response.body["candidates"]) == 20

    def test_top_candidates_limit(self, api, factory):
        for _ in range(3):
            factory.seeker()

        response = api.top_candidates(_user(), {"jobRequirements": REQUIREMENTS, "limit": 2})

        assert response.body["count"] == 2

    @pytest.mark.parametrize("limit", [0, -5, "ten", True])
    def test_top_candidates_bad_limit(self, api, limit):
        response = api.top_candidates(_user(), {"jobRequirements": REQUIREMENTS, "limit": limit})
        assert response.status == 400

    def test_top_candidates_missing_requirements(self, api):
        assert api.top_candidates(_user(), {"limit": 5}).status == 400


class TestMatchListings:
    """Tests for the match listing endpoints."""

    def test_recruiter_matches(self, api, factory):
        match = factory.match()

        response = api.recruiter_matches(_user(match.recruiter_id, "recruiter"))

        assert response.status == 200
        assert response.body["total"] == 1
        assert response.body["matches"][0]["contact"] is None

    def test_jobseeker_matches(self, api, factory):
        match = factory.match(job_seeker_paid=True)

        response = api.jobseeker_matches(_user(match.job_seeker_id, "job_seeker"), page="1", limit="10")

        assert response.status == 200
        assert response.body["limit"] == 10
        assert response.body["matches"][0]["contact"]["email"] == match.recruiter.email

    def test_wrong_role(self, api):
        assert api.jobseeker_matches(_user(role="recruiter")).status == 403
        assert api.recruiter_matches(None).status == 401

    def test_bad_page(self, api):
        assert api.recruiter_matches(_user(), page=0).status == 400
        assert api.recruiter_matches(_user(), limit=500).status == 400
