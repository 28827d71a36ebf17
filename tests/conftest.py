"""Pytest fixtures for matching service tests."""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.matching.compatibility import CompatibilityScorer
from src.matching.vocabulary import default_vocabulary
from src.matching.weights import BASIC, PREMIUM
from src.persistence.database import enable_sqlite_savepoints
from src.persistence.models import CV, Base, Employer, JobPosting, Match, SAProfile, User

FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh in-memory database for each test."""
    engine = enable_sqlite_savepoints(create_engine("sqlite:///:memory:"))
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


class DataFactory:
    """Creates users, employers, jobs and CVs with sensible defaults."""

    def __init__(self, session):
        self.session = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(self, role="job_seeker", **kwargs) -> User:
        n = self._next()
        user = User(
            email=kwargs.pop("email", f"user{n}@example.co.za"),
            first_name=kwargs.pop("first_name", f"First{n}"),
            last_name=kwargs.pop("last_name", f"Last{n}"),
            phone=kwargs.pop("phone", f"+27 82 000 {n:04d}"),
            role=role,
            **kwargs,
        )
        self.session.add(user)
        self.session.flush()
        return user

    def recruiter(self, company_name="Acme Holdings", industry=None, **kwargs) -> Employer:
        user = self.user(role="recruiter", **kwargs)
        employer = Employer(user_id=user.id, company_name=company_name, industry=industry)
        self.session.add(employer)
        self.session.flush()
        return employer

    def job(self, employer: Employer, **kwargs) -> JobPosting:
        defaults = dict(
            title="Software Developer",
            description="Build web applications.",
            required_skills=["JavaScript", "SQL"],
            preferred_skills=[],
            location="Johannesburg",
            is_active=True,
            status="active",
        )
        defaults.update(kwargs)
        job = JobPosting(employer_id=employer.id, **defaults)
        self.session.add(job)
        self.session.flush()
        return job

    def cv(self, user: User, **kwargs) -> CV:
        defaults = dict(
            file_name="cv.pdf",
            content="Software developer with JavaScript and SQL.",
            ats_score=80,
            extracted_skills=["JavaScript", "SQL"],
            location="Johannesburg",
        )
        defaults.update(kwargs)
        cv = CV(user_id=user.id, **defaults)
        self.session.add(cv)
        self.session.flush()
        return cv

    def profile(self, user: User, **kwargs) -> SAProfile:
        profile = SAProfile(user_id=user.id, **kwargs)
        self.session.add(profile)
        self.session.flush()
        return profile

    def seeker(self, cv_kwargs=None, profile_kwargs=None, **user_kwargs):
        """A job seeker with one CV and, when profile_kwargs is given, an SA profile."""
        user = self.user(role="job_seeker", **user_kwargs)
        cv = self.cv(user, **(cv_kwargs or {}))
        if profile_kwargs is not None:
            self.profile(user, **profile_kwargs)
        return user, cv

    def match(self, job: JobPosting = None, cv: CV = None, score=80, **kwargs) -> Match:
        """A pending match; creates the job and seeker CV when not given."""
        if job is None:
            job = self.job(self.recruiter())
        if cv is None:
            _, cv = self.seeker()
        match = Match(
            job_posting_id=job.id,
            cv_id=cv.id,
            job_seeker_id=cv.user_id,
            recruiter_id=job.employer.user_id,
            match_score=score,
            skills_score=90.0,
            skills_matched=["JavaScript"],
            skills_gap=["SQL"],
            match_reasons=["Strong skills match (1 key skills aligned)"],
            analysis_source="deterministic",
            **kwargs,
        )
        self.session.add(match)
        self.session.commit()
        return match


@pytest.fixture
def factory(test_db):
    """Data factory bound to the test database."""
    return DataFactory(test_db)


# =============================================================================
# SCORING FIXTURES
# =============================================================================


@pytest.fixture
def now():
    """The instant the fixed test clock reports."""
    return FIXED_NOW


@pytest.fixture
def vocabulary():
    return default_vocabulary()


@pytest.fixture
def premium_scorer(vocabulary):
    return CompatibilityScorer(weights=PREMIUM, vocabulary=vocabulary, clock=fixed_clock)


@pytest.fixture
def basic_scorer(vocabulary):
    return CompatibilityScorer(weights=BASIC, vocabulary=vocabulary, clock=fixed_clock)


# =============================================================================
# HELPERS
# =============================================================================


class _async_context:
    """Helper to create an async context manager from a mock object."""

    def __init__(self, obj):
        self.obj = obj

    async def __aenter__(self):
        return self.obj

    async def __aexit__(self, *args):
        pass


@pytest.fixture
def async_context():
    return _async_context
