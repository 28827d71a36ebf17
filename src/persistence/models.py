"""SQLAlchemy models for the matching service."""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Platform account (job seeker, recruiter or admin)."""

    __tablename__ = "users"

    ROLES = ["job_seeker", "recruiter", "admin"]

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String)
    role = Column(String, nullable=False, default="job_seeker")

    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    sa_profile = relationship(
        "SAProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    cvs = relationship("CV", back_populates="user", cascade="all, delete-orphan")
    employers = relationship("Employer", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User {self.id} ({self.role})>"


class SAProfile(Base):
    """South African context for a user: province, B-BBEE and NQF level."""

    __tablename__ = "sa_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    province = Column(String)
    city = Column(String)
    bbbee_status = Column(String)  # e.g. "verified", "level 2"
    bbbee_level = Column(Integer)  # 1-8
    nqf_level = Column(Integer)  # 1-10
    industries = Column(JSON, default=list)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="sa_profile")

    def __repr__(self) -> str:
        return f"<SAProfile user_id={self.user_id} {self.province}>"


class Employer(Base):
    """Recruiting organisation owned by a recruiter user."""

    __tablename__ = "employers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    company_name = Column(String, nullable=False)
    industry = Column(String)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="employers")
    job_postings = relationship("JobPosting", back_populates="employer")

    def __repr__(self) -> str:
        return f"<Employer {self.company_name}>"


class JobPosting(Base):
    """An employer's open role."""

    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employer_id = Column(Integer, ForeignKey("employers.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    required_skills = Column(JSON, default=list)
    preferred_skills = Column(JSON, default=list)
    experience_level = Column(String)  # entry, mid, senior, executive
    location = Column(String)
    province = Column(String)
    is_remote = Column(Boolean, default=False)
    salary_min = Column(Numeric(12, 2))
    salary_max = Column(Numeric(12, 2))
    currency = Column(String, default="ZAR")
    industry = Column(String)
    bbbee_preference = Column(String)  # required, preferred
    nqf_requirement = Column(Integer)

    # Soft retirement only; matches keep referencing retired postings
    is_active = Column(Boolean, default=True)
    status = Column(String, default="active")  # active, paused, filled
    total_matches = Column(Integer, default=0)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    employer = relationship("Employer", back_populates="job_postings")
    matches = relationship("Match", back_populates="job_posting")

    def __repr__(self) -> str:
        return f"<JobPosting {self.id} {self.title}>"


class CV(Base):
    """Uploaded CV snapshot; the candidate profile used for matching.

    Re-uploading creates a new row, so a CV row is never mutated by matching.
    """

    __tablename__ = "cvs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    file_name = Column(String)
    content = Column(Text)
    ats_score = Column(Integer)  # 0-100

    extracted_skills = Column(JSON, default=list)
    experience_level = Column(String)
    location = Column(String)
    desired_salary_min = Column(Numeric(12, 2))
    desired_salary_max = Column(Numeric(12, 2))
    availability_date = Column(DateTime)
    open_to_remote = Column(Boolean, default=False)
    open_to_relocation = Column(Boolean, default=False)
    preferred_industries = Column(JSON, default=list)

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="cvs")
    matches = relationship("Match", back_populates="cv")

    def __repr__(self) -> str:
        return f"<CV {self.id} user={self.user_id} ats={self.ats_score}>"


class Match(Base):
    """Scored pairing of one job posting and one CV."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("job_posting_id", "cv_id", name="uq_match_job_cv"),
    )

    STATUSES = ["pending", "active", "mutual_interest", "closed", "expired"]
    TERMINAL_STATUSES = ["closed", "expired"]

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_posting_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False)
    cv_id = Column(Integer, ForeignKey("cvs.id"), nullable=False)
    job_seeker_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    recruiter_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Scoring
    match_score = Column(Integer, nullable=False)
    skills_score = Column(Float)
    experience_score = Column(Float)
    location_score = Column(Float)
    industry_score = Column(Float)
    sa_context_score = Column(Float)
    salary_score = Column(Float)
    availability_score = Column(Float)
    skills_matched = Column(JSON, default=list)
    skills_gap = Column(JSON, default=list)
    match_reasons = Column(JSON, default=list)
    analysis_source = Column(String)  # ai, fallback, deterministic

    # Payment-gated contact reveal
    job_seeker_paid = Column(Boolean, default=False)
    recruiter_paid = Column(Boolean, default=False)
    contact_unlocked = Column(Boolean, default=False)
    contact_unlocked_at = Column(DateTime)

    status = Column(String, nullable=False, default="pending")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    job_posting = relationship("JobPosting", back_populates="matches")
    cv = relationship("CV", back_populates="matches")
    job_seeker = relationship("User", foreign_keys=[job_seeker_id])
    recruiter = relationship("User", foreign_keys=[recruiter_id])
    status_history = relationship(
        "MatchStatusHistory",
        back_populates="match",
        order_by="MatchStatusHistory.id",
    )

    def __repr__(self) -> str:
        return f"<Match job={self.job_posting_id} cv={self.cv_id} {self.match_score}% ({self.status})>"


class MatchStatusHistory(Base):
    """Track status changes for matches."""

    __tablename__ = "match_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False)
    old_status = Column(String)
    new_status = Column(String, nullable=False)
    changed_at = Column(DateTime, default=utcnow)
    notes = Column(Text)

    match = relationship("Match", back_populates="status_history")


class Payment(Base):
    """Contact unlock payment for one side of a match."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_type = Column(String, nullable=False)  # recruiter, job_seeker
    payment_type = Column(String, nullable=False, default="contact_unlock")
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String, nullable=False, default="ZAR")
    status = Column(String, nullable=False, default="pending")  # pending, completed, failed
    provider = Column(String, nullable=False, default="payfast")
    provider_reference = Column(String)
    match_id = Column(Integer, ForeignKey("matches.id"))
    description = Column(String)
    failure_reason = Column(Text)
    paid_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Payment {self.id} {self.user_type} match={self.match_id} ({self.status})>"
