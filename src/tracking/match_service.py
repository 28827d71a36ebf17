"""Match tracking: side-specific views, paid flags and status history."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from src.matching.exceptions import (
    ContactAlreadyUnlockedError,
    InvalidStatusTransitionError,
    MatchNotFoundError,
    ValidationError,
)
from src.persistence.models import JobPosting, Match, MatchStatusHistory

USER_TYPES = ("recruiter", "job_seeker")
MAX_PAGE_SIZE = 100


@dataclass
class MatchView:
    """A match as one side sees it.

    ``contact`` stays None until the viewing side has paid (or both have).
    """

    match_id: int
    job_id: int
    job_title: str
    company_name: Optional[str]
    match_score: int
    sub_scores: dict[str, Optional[float]]
    skills_matched: list[str]
    skills_gap: list[str]
    match_reasons: list[str]
    status: str
    viewer_paid: bool
    counterpart_paid: bool
    contact_unlocked: bool
    created_at: Optional[datetime]
    contact: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "matchId": self.match_id,
            "jobId": self.job_id,
            "jobTitle": self.job_title,
            "companyName": self.company_name,
            "matchScore": self.match_score,
            "subScores": dict(self.sub_scores),
            "skillsMatched": list(self.skills_matched),
            "skillsGap": list(self.skills_gap),
            "matchReasons": list(self.match_reasons),
            "status": self.status,
            "viewerPaid": self.viewer_paid,
            "counterpartPaid": self.counterpart_paid,
            "contactUnlocked": self.contact_unlocked,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "contact": dict(self.contact) if self.contact else None,
        }


@dataclass
class MatchPage:
    items: list[MatchView] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "matches": [item.to_dict() for item in self.items],
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
        }


def _validate_page(page: int, limit: int) -> None:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError("page must be a positive integer")
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


class MatchService:
    """Service for reading matches and moving them through their lifecycle."""

    # pending -> active (one side paid) -> mutual_interest (both paid)
    STATUS_ORDER = ["pending", "active", "mutual_interest"]
    TERMINAL_STATUSES = ["closed", "expired"]

    def __init__(self, session: Session):
        """
        Initialize match service.

        Args:
            session: Database session
        """
        self.session = session

    def get_match(self, match_id: int) -> Match:
        match = self.session.get(Match, match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    def get_recruiter_matches(self, recruiter_id: int, page: int = 1, limit: int = 20) -> MatchPage:
        """Active matches on the recruiter's jobs, best first."""
        return self._list_matches(Match.recruiter_id == recruiter_id, "recruiter", page, limit)

    def get_job_seeker_matches(self, job_seeker_id: int, page: int = 1, limit: int = 20) -> MatchPage:
        """Active matches for the job seeker's CVs, best first."""
        return self._list_matches(Match.job_seeker_id == job_seeker_id, "job_seeker", page, limit)

    def _list_matches(self, owner_clause, viewer_type: str, page: int, limit: int) -> MatchPage:
        _validate_page(page, limit)

        total = self.session.scalar(
            select(func.count(Match.id)).where(owner_clause, Match.is_active.is_(True))
        )
        stmt = (
            select(Match)
            .options(
                joinedload(Match.job_posting).joinedload(JobPosting.employer),
                joinedload(Match.job_seeker),
                joinedload(Match.recruiter),
            )
            .where(owner_clause, Match.is_active.is_(True))
            .order_by(Match.match_score.desc(), Match.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        matches = self.session.scalars(stmt).unique().all()
        return MatchPage(
            items=[self.to_view(m, viewer_type) for m in matches],
            page=page,
            limit=limit,
            total=total or 0,
        )

    @staticmethod
    def to_view(match: Match, viewer_type: str) -> MatchView:
        """Build the side-specific view, withholding contact details until paid."""
        if viewer_type not in USER_TYPES:
            raise ValidationError(f"user_type must be one of {USER_TYPES}")

        if viewer_type == "recruiter":
            viewer_paid, counterpart_paid = bool(match.recruiter_paid), bool(match.job_seeker_paid)
            counterpart = match.job_seeker
        else:
            viewer_paid, counterpart_paid = bool(match.job_seeker_paid), bool(match.recruiter_paid)
            counterpart = match.recruiter

        contact = None
        if (viewer_paid or match.contact_unlocked) and counterpart is not None:
            contact = {
                "name": counterpart.full_name,
                "email": counterpart.email,
                "phone": counterpart.phone,
            }

        job = match.job_posting
        employer = job.employer if job else None
        return MatchView(
            match_id=match.id,
            job_id=match.job_posting_id,
            job_title=job.title if job else "",
            company_name=employer.company_name if employer else None,
            match_score=match.match_score,
            sub_scores={
                "skills": match.skills_score,
                "experience": match.experience_score,
                "location": match.location_score,
                "industry": match.industry_score,
                "sa_context": match.sa_context_score,
                "salary": match.salary_score,
                "availability": match.availability_score,
            },
            skills_matched=list(match.skills_matched or []),
            skills_gap=list(match.skills_gap or []),
            match_reasons=list(match.match_reasons or []),
            status=match.status,
            viewer_paid=viewer_paid,
            counterpart_paid=counterpart_paid,
            contact_unlocked=bool(match.contact_unlocked),
            created_at=match.created_at,
            contact=contact,
        )

    def record_payment(self, match_id: int, user_type: str) -> Match:
        """
        Flip one side's paid flag after a completed payment.

        Args:
            match_id: Match ID
            user_type: "recruiter" or "job_seeker"

        Returns:
            Updated match
        """
        if user_type not in USER_TYPES:
            raise ValidationError(f"user_type must be one of {USER_TYPES}")

        match = self.get_match(match_id)
        if match.status in self.TERMINAL_STATUSES:
            raise InvalidStatusTransitionError(match.status, "active")

        if user_type == "recruiter":
            if match.recruiter_paid:
                raise ContactAlreadyUnlockedError(match_id, user_type)
            match.recruiter_paid = True
        else:
            if match.job_seeker_paid:
                raise ContactAlreadyUnlockedError(match_id, user_type)
            match.job_seeker_paid = True

        if match.recruiter_paid and match.job_seeker_paid:
            match.contact_unlocked = True
            match.contact_unlocked_at = datetime.now(timezone.utc)
            self._set_status(match, "mutual_interest", "Both sides unlocked contact details")
        elif match.status == "pending":
            self._set_status(match, "active", f"Contact unlock paid by {user_type}")

        self.session.commit()
        return match

    def close_match(self, match_id: int, notes: Optional[str] = None) -> Match:
        return self._finish(match_id, "closed", notes)

    def expire_match(self, match_id: int, notes: Optional[str] = None) -> Match:
        return self._finish(match_id, "expired", notes)

    def _finish(self, match_id: int, new_status: str, notes: Optional[str]) -> Match:
        match = self.get_match(match_id)
        if match.status in self.TERMINAL_STATUSES:
            raise InvalidStatusTransitionError(match.status, new_status)

        self._set_status(match, new_status, notes)
        match.is_active = False
        self.session.commit()
        return match

    def _set_status(self, match: Match, new_status: str, notes: Optional[str] = None) -> None:
        """Change status and record history. Caller commits."""
        old_status = match.status
        if old_status == new_status:
            return

        allowed = new_status in self.TERMINAL_STATUSES or (
            old_status in self.STATUS_ORDER
            and self.STATUS_ORDER.index(new_status) > self.STATUS_ORDER.index(old_status)
        )
        if not allowed:
            raise InvalidStatusTransitionError(old_status, new_status)

        self.session.add(
            MatchStatusHistory(
                match_id=match.id,
                old_status=old_status,
                new_status=new_status,
                notes=notes,
            )
        )
        match.status = new_status

    def get_status_history(self, match_id: int) -> list[MatchStatusHistory]:
        self.get_match(match_id)
        stmt = (
            select(MatchStatusHistory)
            .where(MatchStatusHistory.match_id == match_id)
            .order_by(MatchStatusHistory.id)
        )
        return list(self.session.scalars(stmt))
