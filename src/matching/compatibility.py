"""Deterministic job/candidate compatibility scoring.

Seven independent sub-scores (0-100 each) are combined with a named weight
scheme into an overall percentage. The scorer never raises on missing
optional data: every dimension has a neutral default, so it is safe to use
as the fallback for AI-assisted analysis even with an empty CV.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from src.matching.normalizer import CandidateFeatures, ExperienceLevel, JobFeatures
from src.matching.vocabulary import Vocabulary, default_vocabulary, keyword_pattern
from src.matching.weights import DIMENSIONS, PREMIUM, WeightScheme


# Neutral defaults when one side has no data for a dimension
NEUTRAL_SKILLS = 70.0
NEUTRAL_LOCATION = 60.0
NEUTRAL_INDUSTRY = 50.0
NEUTRAL_SALARY = 60.0
NEUTRAL_AVAILABILITY = 70.0
SA_CONTEXT_BASE = 60.0

# Share of the skills score carried by required skills when both lists exist
REQUIRED_SKILL_SHARE = 0.8

EXCELLENT_THRESHOLD = 80

# Experience curve: overqualified candidates lose less than underqualified ones
EXPERIENCE_EXACT = 95.0
EXPERIENCE_ADJACENT = 75.0
EXPERIENCE_OVERQUALIFIED = 50.0
EXPERIENCE_UNDERQUALIFIED = 25.0


@dataclass
class MatchAnalysis:
    """Result of comparing one job with one candidate."""

    overall_score: int  # 0-100
    skills_score: float
    experience_score: float
    location_score: float
    industry_score: float
    sa_context_score: float
    salary_score: float
    availability_score: float
    skills_matched: list[str] = field(default_factory=list)
    skills_gap: list[str] = field(default_factory=list)
    match_reasons: list[str] = field(default_factory=list)
    source: str = "deterministic"  # deterministic, ai, fallback
    recommendations: list[str] = field(default_factory=list)

    @property
    def sub_scores(self) -> dict[str, float]:
        return {dim: getattr(self, f"{dim}_score") for dim in DIMENSIONS}


def clamp(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompatibilityScorer:
    """Score a (job, candidate) pair with a fixed weight scheme."""

    def __init__(
        self,
        weights: WeightScheme = PREMIUM,
        vocabulary: Optional[Vocabulary] = None,
        excellent_threshold: int = EXCELLENT_THRESHOLD,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize scorer.

        Args:
            weights: Weight scheme used for the overall score
            vocabulary: Place/industry vocabulary (defaults to config/matching.yaml)
            excellent_threshold: Sub-score at which a match reason is emitted
            clock: Returns the current time; injectable for tests
        """
        self.weights = weights
        self.vocabulary = vocabulary or default_vocabulary()
        self.excellent_threshold = excellent_threshold
        self._clock = clock

    def score(self, job: JobFeatures, candidate: CandidateFeatures) -> MatchAnalysis:
        """Compute all sub-scores and the weighted overall score."""
        skills, matched, gap = self.skills_score(job, candidate)
        sub_scores = {
            "skills": skills,
            "experience": self.experience_score(job.experience_level, candidate.experience_level),
            "location": self.location_score(job, candidate),
            "industry": self.industry_score(job, candidate),
            "sa_context": self.sa_context_score(job, candidate),
            "salary": self.salary_score(job, candidate),
            "availability": self.availability_score(candidate),
        }
        return self.build_analysis(sub_scores, matched, gap, source="deterministic")

    def build_analysis(
        self,
        sub_scores: dict[str, float],
        skills_matched: list[str],
        skills_gap: list[str],
        source: str,
        recommendations: Optional[list[str]] = None,
        extra_reasons: Optional[list[str]] = None,
    ) -> MatchAnalysis:
        """Clamp sub-scores, combine them and attach match reasons."""
        clamped = {dim: clamp(sub_scores.get(dim, 0.0)) for dim in DIMENSIONS}
        reasons = self.match_reasons(clamped, skills_matched)
        for reason in extra_reasons or []:
            if reason not in reasons:
                reasons.append(reason)

        return MatchAnalysis(
            overall_score=self.weights.combine(clamped),
            skills_score=clamped["skills"],
            experience_score=clamped["experience"],
            location_score=clamped["location"],
            industry_score=clamped["industry"],
            sa_context_score=clamped["sa_context"],
            salary_score=clamped["salary"],
            availability_score=clamped["availability"],
            skills_matched=list(skills_matched),
            skills_gap=list(skills_gap),
            match_reasons=reasons,
            source=source,
            recommendations=list(recommendations or []),
        )

    # ------------------------------------------------------------------
    # Sub-scores
    # ------------------------------------------------------------------

    def skills_score(
        self,
        job: JobFeatures,
        candidate: CandidateFeatures,
    ) -> tuple[float, list[str], list[str]]:
        """Required/preferred skill coverage.

        Returns (score, matched skills in job order, missing required skills).
        """
        required = job.required_skills
        preferred = job.preferred_skills
        if not required and not preferred:
            return NEUTRAL_SKILLS, [], []

        matched: list[str] = []
        gap: list[str] = []
        for skill in required:
            if self._has_skill(candidate, skill):
                matched.append(skill)
            else:
                gap.append(skill)

        preferred_hits = 0
        for skill in preferred:
            if self._has_skill(candidate, skill):
                preferred_hits += 1
                if skill not in matched:
                    matched.append(skill)

        required_ratio = (len(required) - len(gap)) / len(required) if required else 0.0
        preferred_ratio = preferred_hits / len(preferred) if preferred else 0.0

        if required and preferred:
            score = (
                required_ratio * REQUIRED_SKILL_SHARE
                + preferred_ratio * (1 - REQUIRED_SKILL_SHARE)
            ) * 100
        elif required:
            score = required_ratio * 100
        else:
            score = preferred_ratio * 100

        return clamp(score), matched, gap

    def _has_skill(self, candidate: CandidateFeatures, skill: str) -> bool:
        wanted = skill.strip().lower()
        if not wanted:
            return False
        if any(s.lower() == wanted for s in candidate.skills):
            return True
        return bool(candidate.cv_text) and bool(keyword_pattern(skill.strip()).search(candidate.cv_text))

    def experience_score(
        self,
        job_level: Optional[ExperienceLevel],
        candidate_level: Optional[ExperienceLevel],
    ) -> float:
        """Tiered comparison; missing levels count as mid."""
        job_rank = (job_level or ExperienceLevel.MID).rank
        candidate_rank = (candidate_level or ExperienceLevel.MID).rank

        distance = candidate_rank - job_rank
        if distance == 0:
            return EXPERIENCE_EXACT
        if abs(distance) == 1:
            return EXPERIENCE_ADJACENT
        return EXPERIENCE_OVERQUALIFIED if distance > 0 else EXPERIENCE_UNDERQUALIFIED

    def location_score(self, job: JobFeatures, candidate: CandidateFeatures) -> float:
        if job.is_remote:
            return 100.0 if candidate.open_to_remote else 85.0

        job_places = [p.strip().lower() for p in (job.location, job.province) if p and p.strip()]
        candidate_places = [p.strip().lower() for p in candidate.places if p.strip()]
        if not job_places or not candidate_places:
            return NEUTRAL_LOCATION

        if set(job_places) & set(candidate_places):
            return 100.0

        for jp in job_places:
            for cp in candidate_places:
                if keyword_pattern(cp).search(jp) or keyword_pattern(jp).search(cp):
                    return 95.0

        job_province = self._first_province(job_places)
        candidate_province = self._first_province(candidate_places)
        if job_province and job_province == candidate_province:
            return 90.0

        return 50.0 if candidate.open_to_relocation else 40.0

    def _first_province(self, places: list[str]) -> Optional[str]:
        for place in places:
            province = self.vocabulary.province_for(place)
            if province:
                return province
        return None

    def industry_score(self, job: JobFeatures, candidate: CandidateFeatures) -> float:
        industries = list(candidate.preferred_industries)
        if candidate.industry and candidate.industry != "General":
            industries.append(candidate.industry)
        if not job.industry or not industries:
            return NEUTRAL_INDUSTRY

        job_industry = job.industry.strip().lower()
        best = 30.0
        for industry in industries:
            name = industry.strip().lower()
            if not name:
                continue
            if name == job_industry:
                return 100.0
            if name in job_industry or job_industry in name:
                best = 80.0
        return best

    def sa_context_score(self, job: JobFeatures, candidate: CandidateFeatures) -> float:
        """B-BBEE and NQF fit on top of a neutral base."""
        score = SA_CONTEXT_BASE
        preference = (job.bbbee_preference or "").strip().lower()
        if candidate.has_bbbee_status:
            if preference == "required":
                score += 30
            elif preference == "preferred":
                score += 15

        if job.nqf_requirement and candidate.nqf_level:
            if candidate.nqf_level >= job.nqf_requirement:
                score += 20
            elif candidate.nqf_level >= job.nqf_requirement - 1:
                score += 10

        return min(100.0, score)

    def salary_score(self, job: JobFeatures, candidate: CandidateFeatures) -> float:
        job_mid = _midpoint(job.salary_min, job.salary_max)
        seeker_mid = _midpoint(candidate.desired_salary_min, candidate.desired_salary_max)
        if job_mid is None or seeker_mid is None or job_mid <= 0:
            return NEUTRAL_SALARY

        difference = abs(job_mid - seeker_mid) / job_mid
        if difference <= 0.1:
            return 100.0
        if difference <= 0.2:
            return 80.0
        if difference <= 0.3:
            return 60.0
        return 30.0

    def availability_score(self, candidate: CandidateFeatures) -> float:
        available = candidate.availability_date
        if available is None:
            return NEUTRAL_AVAILABILITY

        now = self._clock()
        if available.tzinfo is None:
            # Naive timestamps are stored as UTC
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        days = math.ceil((available - now).total_seconds() / 86400)

        if days <= 0:
            return 100.0
        if days <= 30:
            return 90.0
        if days <= 60:
            return 70.0
        return 40.0

    # ------------------------------------------------------------------
    # Explanations
    # ------------------------------------------------------------------

    def match_reasons(self, sub_scores: dict[str, float], skills_matched: list[str]) -> list[str]:
        """Human-readable reasons for every dimension at or above the threshold."""
        threshold = self.excellent_threshold
        reasons = []
        if sub_scores.get("skills", 0) >= threshold:
            reasons.append(f"Strong skills match ({len(skills_matched)} key skills aligned)")
        if sub_scores.get("experience", 0) >= threshold:
            reasons.append("Experience level matches requirements")
        if sub_scores.get("salary", 0) >= threshold:
            reasons.append("Salary expectations align well")
        if sub_scores.get("location", 0) >= threshold:
            reasons.append("Location preferences match")
        if sub_scores.get("industry", 0) >= threshold:
            reasons.append("Relevant industry background")
        if sub_scores.get("sa_context", 0) >= threshold:
            reasons.append("Meets B-BBEE and NQF expectations")
        if sub_scores.get("availability", 0) >= threshold:
            reasons.append("Available to start soon")
        return reasons


def _midpoint(low: Optional[float], high: Optional[float]) -> Optional[float]:
    if low is None and high is None:
        return None
    if low is None:
        return high
    if high is None:
        return low
    return (low + high) / 2
