"""Profile normalizer: canonical features from CV text and structured records.

Every function here is pure and total. Missing or unrecognised input degrades
to a documented default instead of raising, because the scorer built on top
of these features is the last-resort fallback for AI analysis.
"""
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from src.matching.vocabulary import Vocabulary, default_vocabulary, keyword_pattern

DEFAULT_INDUSTRY = "General"

_BBBEE_PATTERN = re.compile(r"b-?bbee\s+level\s+(\d+)", re.IGNORECASE)
_YEARS_PATTERNS = [
    re.compile(r"(\d+)\s*\+?\s*years?\s*(?:of\s*)?experience", re.IGNORECASE),
    re.compile(r"(\d+)\s*\+?\s*years?\s*in\b", re.IGNORECASE),
    re.compile(r"(\d+)\s*\+?\s*years?\s*working", re.IGNORECASE),
]


class ExperienceLevel(str, Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    EXECUTIVE = "executive"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {
    ExperienceLevel.ENTRY: 1,
    ExperienceLevel.MID: 2,
    ExperienceLevel.SENIOR: 3,
    ExperienceLevel.EXECUTIVE: 4,
}


class EducationLevel(str, Enum):
    PHD = "PhD"
    MASTERS = "Masters"
    BACHELORS = "Bachelors"
    DIPLOMA = "Diploma"
    CERTIFICATE = "Certificate"
    HIGH_SCHOOL = "High School"


# Ordered ladder: first hit wins
_EDUCATION_LADDER = [
    (EducationLevel.PHD, ("phd", "doctorate")),
    (EducationLevel.MASTERS, ("master", "masters", "mba")),
    (EducationLevel.BACHELORS, ("bachelor", "bachelors", "degree")),
    (EducationLevel.DIPLOMA, ("diploma",)),
    (EducationLevel.CERTIFICATE, ("certificate",)),
]

# Job titles that contain a degree word
_NOT_EDUCATION = re.compile(r"scrum\s+masters?", re.IGNORECASE)


def extract_skills(text: Optional[str], vocabulary: Optional[Vocabulary] = None) -> set[str]:
    """Return vocabulary skills mentioned in the text (case-insensitive)."""
    if not text:
        return set()
    vocab = vocabulary or default_vocabulary()
    return {skill for skill, pattern in vocab.skill_patterns if pattern.search(text)}


def extract_experience_level(
    text: Optional[str],
    vocabulary: Optional[Vocabulary] = None,
) -> ExperienceLevel:
    """Keyword heuristic; ``mid`` when nothing decisive is found."""
    if not text:
        return ExperienceLevel.MID
    vocab = vocabulary or default_vocabulary()
    # Whole words only: "leadership" must not read as "lead"
    if any(keyword_pattern(term).search(text) for term in vocab.senior_terms):
        return ExperienceLevel.SENIOR
    if any(keyword_pattern(term).search(text) for term in vocab.entry_terms):
        return ExperienceLevel.ENTRY
    return ExperienceLevel.MID


def normalize_experience_tag(tag: Optional[str]) -> Optional[ExperienceLevel]:
    """Map an employer/seeker experience tag to a level.

    Accepts the tags used across the product ("Senior (5+ years)",
    "Mid-level", "junior", "Executive"). Returns None for empty input.
    """
    if not tag:
        return None
    lowered = tag.lower()
    if "exec" in lowered or "director" in lowered or "c-suite" in lowered:
        return ExperienceLevel.EXECUTIVE
    if "senior" in lowered or "lead" in lowered or "principal" in lowered:
        return ExperienceLevel.SENIOR
    if "junior" in lowered or "entry" in lowered or "graduate" in lowered or "intern" in lowered:
        return ExperienceLevel.ENTRY
    return ExperienceLevel.MID


def extract_industry(text: Optional[str], vocabulary: Optional[Vocabulary] = None) -> str:
    """First vocabulary industry mentioned in the text, else ``General``."""
    if not text:
        return DEFAULT_INDUSTRY
    vocab = vocabulary or default_vocabulary()
    for industry in vocab.industries:
        if keyword_pattern(industry).search(text):
            return industry
    return DEFAULT_INDUSTRY


def extract_education(text: Optional[str]) -> EducationLevel:
    if not text:
        return EducationLevel.HIGH_SCHOOL
    text = _NOT_EDUCATION.sub(" ", text)
    for level, terms in _EDUCATION_LADDER:
        if any(keyword_pattern(term).search(text) for term in terms):
            return level
    return EducationLevel.HIGH_SCHOOL


def extract_bbbee_level(text: Optional[str]) -> Optional[int]:
    """B-BBEE level 1-8 from text like "B-BBEE Level 2"; None when unknown."""
    if not text:
        return None
    match = _BBBEE_PATTERN.search(text)
    if not match:
        return None
    level = int(match.group(1))
    return level if 1 <= level <= 8 else None


def extract_years_of_experience(text: Optional[str]) -> int:
    """Largest "N years experience" figure in the text, 0 when absent."""
    if not text:
        return 0
    years = 0
    for pattern in _YEARS_PATTERNS:
        for found in pattern.findall(text):
            years = max(years, int(found))
    return years


def to_number(value: Any) -> Optional[float]:
    """Coerce Decimal/str/int salary values to float; None when not numeric."""
    if value is None or value == "":
        return None
    try:
        result = float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return None
    return result if math.isfinite(result) else None


@dataclass
class JobFeatures:
    """Canonical view of a job posting used by the scorer."""

    job_id: Optional[int] = None
    employer_id: Optional[int] = None
    recruiter_id: Optional[int] = None
    title: str = ""
    description: str = ""
    required_skills: list[str] = field(default_factory=list)
    preferred_skills: list[str] = field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    location: Optional[str] = None
    province: Optional[str] = None
    is_remote: bool = False
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    industry: Optional[str] = None
    bbbee_preference: Optional[str] = None
    nqf_requirement: Optional[int] = None

    @property
    def has_explicit_skills(self) -> bool:
        return bool(self.required_skills or self.preferred_skills)


@dataclass
class CandidateFeatures:
    """Canonical view of a candidate (one CV plus SA profile)."""

    candidate_id: Optional[int] = None  # CV id
    user_id: Optional[int] = None
    cv_text: str = ""
    skills: set[str] = field(default_factory=set)
    experience_level: ExperienceLevel = ExperienceLevel.MID
    years_of_experience: int = 0
    location: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    industry: str = DEFAULT_INDUSTRY
    preferred_industries: list[str] = field(default_factory=list)
    education: EducationLevel = EducationLevel.HIGH_SCHOOL
    bbbee_status: Optional[str] = None
    bbbee_level: Optional[int] = None
    nqf_level: Optional[int] = None
    desired_salary_min: Optional[float] = None
    desired_salary_max: Optional[float] = None
    availability_date: Optional[datetime] = None
    open_to_remote: bool = False
    open_to_relocation: bool = False
    ats_score: Optional[int] = None
    last_login: Optional[datetime] = None
    has_sa_profile: bool = False

    @property
    def places(self) -> list[str]:
        return [p for p in (self.location, self.city, self.province) if p]

    @property
    def has_bbbee_status(self) -> bool:
        return bool(self.bbbee_status) or self.bbbee_level is not None


def build_job_features(job, vocabulary: Optional[Vocabulary] = None) -> JobFeatures:
    """Build features from a JobPosting row (or any object with the same attributes)."""
    vocab = vocabulary or default_vocabulary()
    description = getattr(job, "description", None) or ""
    location = getattr(job, "location", None)
    employer = getattr(job, "employer", None)
    industry = getattr(job, "industry", None) or (employer.industry if employer else None)
    if not industry and description:
        industry = extract_industry(description, vocab)

    return JobFeatures(
        job_id=getattr(job, "id", None),
        employer_id=getattr(job, "employer_id", None),
        recruiter_id=employer.user_id if employer else None,
        title=getattr(job, "title", None) or "",
        description=description,
        required_skills=list(getattr(job, "required_skills", None) or []),
        preferred_skills=list(getattr(job, "preferred_skills", None) or []),
        experience_level=normalize_experience_tag(getattr(job, "experience_level", None)),
        location=location,
        province=getattr(job, "province", None),
        is_remote=bool(getattr(job, "is_remote", False)) or vocab.is_remote(location),
        salary_min=to_number(getattr(job, "salary_min", None)),
        salary_max=to_number(getattr(job, "salary_max", None)),
        industry=industry,
        bbbee_preference=(getattr(job, "bbbee_preference", None) or None),
        nqf_requirement=getattr(job, "nqf_requirement", None),
    )


def build_candidate_features(
    cv,
    sa_profile=None,
    user=None,
    vocabulary: Optional[Vocabulary] = None,
    extracted=None,
) -> CandidateFeatures:
    """Build features from a CV row plus optional SA profile and user rows.

    Structured fields win; text extraction fills whatever is missing.
    ``extracted`` is an optional AI-extracted profile: its skills are unioned
    in and its B-BBEE status and NQF level fill gaps in the SA profile.
    """
    vocab = vocabulary or default_vocabulary()
    text = getattr(cv, "content", None) or ""

    skills = set(getattr(cv, "extracted_skills", None) or [])
    skills |= extract_skills(text, vocab)
    if extracted is not None:
        skills |= set(extracted.skills)

    level = normalize_experience_tag(getattr(cv, "experience_level", None))
    if level is None:
        level = extract_experience_level(text, vocab)

    bbbee_level = getattr(sa_profile, "bbbee_level", None) if sa_profile else None
    if bbbee_level is None:
        bbbee_level = extract_bbbee_level(text)

    bbbee_status = getattr(sa_profile, "bbbee_status", None) if sa_profile else None
    nqf_level = getattr(sa_profile, "nqf_level", None) if sa_profile else None
    if extracted is not None:
        bbbee_status = bbbee_status or extracted.bbbee_status
        if nqf_level is None:
            nqf_level = extracted.nqf_level

    preferred_industries = list(getattr(cv, "preferred_industries", None) or [])
    if sa_profile and getattr(sa_profile, "industries", None):
        for industry in sa_profile.industries:
            if industry not in preferred_industries:
                preferred_industries.append(industry)

    return CandidateFeatures(
        candidate_id=getattr(cv, "id", None),
        user_id=getattr(cv, "user_id", None),
        cv_text=text,
        skills=skills,
        experience_level=level,
        years_of_experience=extract_years_of_experience(text),
        location=getattr(cv, "location", None),
        city=getattr(sa_profile, "city", None) if sa_profile else None,
        province=getattr(sa_profile, "province", None) if sa_profile else None,
        industry=extract_industry(text, vocab),
        preferred_industries=preferred_industries,
        education=extract_education(text),
        bbbee_status=bbbee_status,
        bbbee_level=bbbee_level,
        nqf_level=nqf_level,
        desired_salary_min=to_number(getattr(cv, "desired_salary_min", None)),
        desired_salary_max=to_number(getattr(cv, "desired_salary_max", None)),
        availability_date=getattr(cv, "availability_date", None),
        open_to_remote=bool(getattr(cv, "open_to_remote", False)),
        open_to_relocation=bool(getattr(cv, "open_to_relocation", False)),
        ats_score=getattr(cv, "ats_score", None),
        last_login=getattr(user, "last_login", None) if user else None,
        has_sa_profile=sa_profile is not None,
    )
