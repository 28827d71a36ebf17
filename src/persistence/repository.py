"""Query and insert helpers shared by the matching engine and candidate ranking."""
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from src.persistence.models import CV, JobPosting, Match, SAProfile, User

logger = logging.getLogger(__name__)

MATCH_UNIQUE_CONSTRAINT = "uq_match_job_cv"

# (CV, SAProfile or None, User)
CandidateRow = tuple[CV, Optional[SAProfile], User]


def is_duplicate_match_error(error: IntegrityError) -> bool:
    """True when the violation is the (job_posting_id, cv_id) uniqueness constraint."""
    message = str(error.orig).lower()
    if MATCH_UNIQUE_CONSTRAINT in message:
        return True
    # SQLite names the columns instead of the constraint
    return "unique" in message and "matches.job_posting_id" in message and "matches.cv_id" in message


class MatchRepository:
    """Persistence access for matching runs, backed by one SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    def list_active_jobs(self) -> list[JobPosting]:
        """Active job postings with their employer loaded."""
        stmt = (
            select(JobPosting)
            .options(joinedload(JobPosting.employer))
            .where(JobPosting.is_active.is_(True), JobPosting.status == "active")
            .order_by(JobPosting.id)
        )
        return list(self.session.scalars(stmt))

    def _latest_cv_ids(self):
        return select(func.max(CV.id)).group_by(CV.user_id)

    def list_qualified_candidates(self, min_ats_score: int) -> list[CandidateRow]:
        """Latest CV per active user, kept only when its ATS score clears the bar."""
        stmt = (
            select(CV, SAProfile, User)
            .join(User, User.id == CV.user_id)
            .outerjoin(SAProfile, SAProfile.user_id == CV.user_id)
            .where(
                CV.id.in_(self._latest_cv_ids()),
                CV.ats_score >= min_ats_score,
                User.is_active.is_(True),
            )
            .order_by(CV.id)
        )
        return [(cv, profile, user) for cv, profile, user in self.session.execute(stmt)]

    def get_candidate(self, user_id: int) -> Optional[CandidateRow]:
        """A user's latest CV with profile, or None when the user or CV is missing."""
        stmt = (
            select(CV, SAProfile, User)
            .join(User, User.id == CV.user_id)
            .outerjoin(SAProfile, SAProfile.user_id == CV.user_id)
            .where(CV.user_id == user_id)
            .order_by(CV.id.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        cv, profile, user = row
        return cv, profile, user

    def existing_pairs(self) -> set[tuple[int, int]]:
        """All (job_posting_id, cv_id) pairs that already have a Match."""
        stmt = select(Match.job_posting_id, Match.cv_id)
        return {(job_id, cv_id) for job_id, cv_id in self.session.execute(stmt)}

    def match_exists(self, job_id: int, cv_id: int) -> bool:
        stmt = select(Match.id).where(Match.job_posting_id == job_id, Match.cv_id == cv_id)
        return self.session.scalar(stmt) is not None

    def create_match(
        self,
        job_id: int,
        cv_id: int,
        job_seeker_id: int,
        recruiter_id: int,
        analysis,
    ) -> Optional[Match]:
        """Insert a pending Match and bump the job's match counter.

        Runs inside a SAVEPOINT. Returns None when another run already
        inserted the same pair; any other database error propagates.
        """
        match = Match(
            job_posting_id=job_id,
            cv_id=cv_id,
            job_seeker_id=job_seeker_id,
            recruiter_id=recruiter_id,
            match_score=analysis.overall_score,
            skills_score=analysis.skills_score,
            experience_score=analysis.experience_score,
            location_score=analysis.location_score,
            industry_score=analysis.industry_score,
            sa_context_score=analysis.sa_context_score,
            salary_score=analysis.salary_score,
            availability_score=analysis.availability_score,
            skills_matched=list(analysis.skills_matched),
            skills_gap=list(analysis.skills_gap),
            match_reasons=list(analysis.match_reasons),
            analysis_source=analysis.source,
            job_seeker_paid=False,
            recruiter_paid=False,
            contact_unlocked=False,
            status="pending",
            is_active=True,
        )

        try:
            with self.session.begin_nested():
                self.session.add(match)
                self.session.flush()
                job = self.session.get(JobPosting, job_id)
                if job is not None:
                    job.total_matches = (job.total_matches or 0) + 1
                    self.session.flush()
        except IntegrityError as e:
            if not is_duplicate_match_error(e):
                raise
            logger.info("Match for job %s / CV %s already exists, skipping", job_id, cv_id)
            return None

        return match
