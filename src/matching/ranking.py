"""On-demand candidate ranking for recruiters.

Scores the qualified candidate pool against ad-hoc job requirements with the
deterministic scorer and returns the best N, plus recruiter-facing strengths,
red flags and recommendations for each candidate.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from src.matching.compatibility import CompatibilityScorer, MatchAnalysis
from src.matching.exceptions import CandidateNotFoundError, ValidationError
from src.matching.normalizer import (
    CandidateFeatures,
    EducationLevel,
    ExperienceLevel,
    JobFeatures,
    build_candidate_features,
    normalize_experience_tag,
    to_number,
)
from src.matching.vocabulary import keyword_pattern
from src.persistence.repository import CandidateRow, MatchRepository

logger = logging.getLogger(__name__)

# "Mar 2019" style dates; many of them suggest many short positions
_DATED_POSITION_PATTERN = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+\d{4}\b",
    re.IGNORECASE,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _string_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{name} must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def _optional_text(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip() or None


@dataclass
class JobRequirements:
    """Ad-hoc requirements a recruiter ranks candidates against."""

    position: str
    industry: Optional[str] = None
    location: Optional[str] = None
    experience_level: Optional[str] = None
    required_skills: list[str] = field(default_factory=list)
    preferred_skills: list[str] = field(default_factory=list)
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    bbbee_requirement: Optional[str] = None
    nqf_requirement: Optional[int] = None
    is_remote: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "JobRequirements":
        """Build from a request body (camelCase keys).

        Raises:
            ValidationError: when the body is not an object or a field has
                the wrong type
        """
        if not isinstance(data, dict):
            raise ValidationError("jobRequirements must be an object")

        position = data.get("position")
        if not isinstance(position, str) or not position.strip():
            raise ValidationError("jobRequirements.position is required")

        salary = data.get("salaryRange") or {}
        if not isinstance(salary, dict):
            raise ValidationError("jobRequirements.salaryRange must be an object")
        salary_min = to_number(salary.get("min"))
        salary_max = to_number(salary.get("max"))
        if salary.get("min") is not None and salary_min is None:
            raise ValidationError("jobRequirements.salaryRange.min must be a number")
        if salary.get("max") is not None and salary_max is None:
            raise ValidationError("jobRequirements.salaryRange.max must be a number")
        if salary_min is not None and salary_max is not None and salary_min > salary_max:
            raise ValidationError("jobRequirements.salaryRange.min exceeds max")

        nqf = data.get("nqfRequirement")
        if nqf is not None and (isinstance(nqf, bool) or not isinstance(nqf, int) or not 1 <= nqf <= 10):
            raise ValidationError("jobRequirements.nqfRequirement must be an integer from 1 to 10")

        return cls(
            position=position.strip(),
            industry=_optional_text(data.get("industry"), "jobRequirements.industry"),
            location=_optional_text(data.get("location"), "jobRequirements.location"),
            experience_level=_optional_text(data.get("experienceLevel"), "jobRequirements.experienceLevel"),
            required_skills=_string_list(data.get("requiredSkills"), "jobRequirements.requiredSkills"),
            preferred_skills=_string_list(data.get("preferredSkills"), "jobRequirements.preferredSkills"),
            salary_min=salary_min,
            salary_max=salary_max,
            bbbee_requirement=_optional_text(data.get("bbbeeRequirement"), "jobRequirements.bbbeeRequirement"),
            nqf_requirement=nqf,
            is_remote=bool(data.get("isRemote", False)),
        )

    def to_job_features(self, vocabulary) -> JobFeatures:
        return JobFeatures(
            title=self.position,
            required_skills=list(self.required_skills),
            preferred_skills=list(self.preferred_skills),
            experience_level=normalize_experience_tag(self.experience_level),
            location=self.location,
            province=vocabulary.province_for(self.location),
            is_remote=self.is_remote or vocabulary.is_remote(self.location),
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            industry=self.industry,
            bbbee_preference=self.bbbee_requirement,
            nqf_requirement=self.nqf_requirement,
        )


@dataclass
class RankedCandidate:
    """One scored candidate with recruiter-facing notes."""

    candidate_id: int  # user id
    cv_id: int
    overall_score: int
    success_probability: int
    analysis: MatchAnalysis
    strengths: list[str] = field(default_factory=list)
    red_flags: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        a = self.analysis
        return {
            "candidateId": self.candidate_id,
            "cvId": self.cv_id,
            "overallScore": self.overall_score,
            "successProbability": self.success_probability,
            "skillsScore": a.skills_score,
            "experienceScore": a.experience_score,
            "locationScore": a.location_score,
            "industryScore": a.industry_score,
            "saContextScore": a.sa_context_score,
            "salaryScore": a.salary_score,
            "availabilityScore": a.availability_score,
            "skillsMatched": list(a.skills_matched),
            "skillsGap": list(a.skills_gap),
            "matchReasons": list(a.match_reasons),
            "strengths": list(self.strengths),
            "redFlags": list(self.red_flags),
            "recommendations": list(self.recommendations),
        }


class CandidateRankingService:
    """Rank the candidate pool for a set of job requirements."""

    def __init__(
        self,
        repository: MatchRepository,
        scorer: CompatibilityScorer,
        min_ats_score: int = 60,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.scorer = scorer
        self.min_ats_score = min_ats_score
        self._clock = clock

    def score_candidate(self, candidate_id: int, requirements: JobRequirements) -> RankedCandidate:
        """Score one candidate (by user id) using their latest CV.

        Raises:
            CandidateNotFoundError: if the user does not exist or has no CV
        """
        row = self.repository.get_candidate(candidate_id)
        if row is None:
            raise CandidateNotFoundError(candidate_id)
        job = requirements.to_job_features(self.scorer.vocabulary)
        return self._rank(row, job)

    def get_top_candidates(self, requirements: JobRequirements, limit: int = 20) -> list[RankedCandidate]:
        """Best candidates first; equal scores ordered by candidate id.

        Candidates whose scoring fails are logged and left out.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError("limit must be a positive integer")

        job = requirements.to_job_features(self.scorer.vocabulary)
        ranked = []
        for row in self.repository.list_qualified_candidates(self.min_ats_score):
            cv, _profile, user = row
            try:
                ranked.append(self._rank(row, job))
            except Exception as e:
                logger.error("Error scoring candidate %s (CV %s): %s", user.id, cv.id, e, exc_info=True)

        ranked.sort(key=lambda r: (-r.overall_score, r.candidate_id))
        logger.info(
            "Ranked %d candidates for '%s', returning top %d",
            len(ranked),
            requirements.position,
            min(limit, len(ranked)),
        )
        return ranked[:limit]

    def _rank(self, row: CandidateRow, job: JobFeatures) -> RankedCandidate:
        cv, profile, user = row
        candidate = build_candidate_features(cv, profile, user, self.scorer.vocabulary)
        analysis = self.scorer.score(job, candidate)
        days_since_login = self._days_since(candidate.last_login)

        return RankedCandidate(
            candidate_id=user.id,
            cv_id=cv.id,
            overall_score=analysis.overall_score,
            success_probability=self._success_probability(candidate, days_since_login),
            analysis=analysis,
            strengths=self._strengths(candidate, analysis, days_since_login),
            red_flags=self._red_flags(job, candidate, analysis),
            recommendations=self._recommendations(job, candidate, analysis, days_since_login),
        )

    def _days_since(self, moment: Optional[datetime]) -> Optional[int]:
        if moment is None:
            return None
        now = self._clock()
        if moment.tzinfo is None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        return (now - moment).days

    @staticmethod
    def _success_probability(candidate: CandidateFeatures, days_since_login: Optional[int]) -> int:
        probability = 50.0
        if candidate.ats_score is not None:
            probability += (candidate.ats_score - 70) * 0.5
        if candidate.cv_text and candidate.has_sa_profile:
            probability += 15
        if days_since_login is not None:
            if days_since_login < 7:
                probability += 20
            elif days_since_login < 30:
                probability += 10
        return int(round(max(10.0, min(95.0, probability))))

    def _strengths(
        self,
        candidate: CandidateFeatures,
        analysis: MatchAnalysis,
        days_since_login: Optional[int],
    ) -> list[str]:
        strengths = []
        if candidate.ats_score is not None and candidate.ats_score >= 80:
            strengths.append("Excellent CV optimization")
        if analysis.skills_score >= self.scorer.excellent_threshold and analysis.skills_matched:
            strengths.append("Strong skills match")
        if analysis.industry_score >= 80:
            strengths.append("Relevant industry experience")
        soft_skills = [t for t in self.scorer.vocabulary.soft_skill_terms if keyword_pattern(t).search(candidate.cv_text)]
        if len(soft_skills) >= 2:
            strengths.append("Communication and teamwork highlighted")
        if days_since_login is not None and days_since_login < 7:
            strengths.append("Active job seeker")
        if candidate.has_bbbee_status:
            strengths.append("B-BBEE verified candidate")
        if candidate.cv_text and candidate.has_sa_profile:
            strengths.append("Complete professional profile")
        return strengths

    def _red_flags(
        self,
        job: JobFeatures,
        candidate: CandidateFeatures,
        analysis: MatchAnalysis,
    ) -> list[str]:
        vocab = self.scorer.vocabulary
        text = candidate.cv_text
        flags = []

        if len(_DATED_POSITION_PATTERN.findall(text)) > vocab.max_dated_positions:
            flags.append("Frequent job changes detected")

        if any(keyword_pattern(term).search(text) for term in vocab.gap_terms):
            flags.append("Employment gap detected")

        job_level = job.experience_level or ExperienceLevel.MID
        if (
            candidate.experience_level.rank - job_level.rank >= 2
            or (candidate.education == EducationLevel.PHD and job_level == ExperienceLevel.ENTRY)
        ):
            flags.append("Potentially overqualified")

        if not job.is_remote and job.location and candidate.places and analysis.location_score <= 50:
            flags.append("Location mismatch - may require relocation")

        return flags

    @staticmethod
    def _recommendations(
        job: JobFeatures,
        candidate: CandidateFeatures,
        analysis: MatchAnalysis,
        days_since_login: Optional[int],
    ) -> list[str]:
        recommendations = []
        if candidate.ats_score is not None and candidate.ats_score < 70:
            recommendations.append("Consider providing CV improvement feedback to increase match quality")
        if analysis.skills_gap:
            recommendations.append(
                "Probe missing skills in the interview: " + ", ".join(analysis.skills_gap[:5])
            )
        if not job.is_remote and job.location and candidate.places and analysis.location_score < 90:
            recommendations.append("Discuss relocation package or remote work options")
        if days_since_login is None or days_since_login > 30:
            recommendations.append("Candidate may need follow-up - hasn't been active recently")
        recommendations.append("Reach out promptly - high-quality candidates receive multiple offers")
        return recommendations
