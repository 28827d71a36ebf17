"""AI-assisted match analysis with deterministic fallback.

``AIMatchAnalyzer`` turns a provider's JSON reply into a ``MatchAnalysis``.
``FallbackAnalyzer`` is what the batch engine talks to: it tries the AI path
when one is configured and otherwise (or on any AI error) returns the
deterministic scorer's result. Both paths yield the same fields.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from src.ai.client import AIError, AIResult, ChatCompletionClient
from src.ai.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    MATCH_SYSTEM_PROMPT,
    build_extraction_prompt,
    build_match_prompt,
)
from src.matching.compatibility import CompatibilityScorer, MatchAnalysis, clamp
from src.matching.normalizer import CandidateFeatures, JobFeatures

logger = logging.getLogger(__name__)

# Reply field -> scorer dimension. Dimensions the AI does not rate
# (industry, availability) come from the deterministic scorer.
AI_SCORE_FIELDS = {
    "skillsScore": "skills",
    "experienceScore": "experience",
    "locationScore": "location",
    "salaryCompatibility": "salary",
    "culturalFitScore": "sa_context",
}


def _score_value(payload: dict, key: str) -> float:
    value = payload.get(key)
    # bool is an int subclass; "true" is not a score
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{key} is missing or not a number")
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"{key} is not a number") from None
    if number != number:  # NaN
        raise ValueError(f"{key} is not a number")
    return clamp(number)


def _string_list(payload: dict, key: str) -> list[str]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{key} is not a list")
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


@dataclass
class ParsedMatchReply:
    """Validated content of an AI match reply."""

    sub_scores: dict[str, float]
    skills_matched: list[str] = field(default_factory=list)
    skills_gap: list[str] = field(default_factory=list)
    match_reasons: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def parse_match_reply(payload: dict[str, Any]) -> ParsedMatchReply:
    """Validate the JSON object returned for a match prompt.

    Raises:
        ValueError: when a score is missing or non-numeric, or a list field
            has the wrong type
    """
    sub_scores = {dim: _score_value(payload, key) for key, dim in AI_SCORE_FIELDS.items()}
    return ParsedMatchReply(
        sub_scores=sub_scores,
        skills_matched=_string_list(payload, "skillsMatched"),
        skills_gap=_string_list(payload, "skillsGap"),
        match_reasons=_string_list(payload, "matchReasons"),
        recommendations=_string_list(payload, "recommendations"),
    )


@dataclass
class ExtractedProfile:
    """Structured CV fields extracted by the AI provider."""

    skills: list[str] = field(default_factory=list)
    experience: Optional[str] = None
    education: Optional[str] = None
    bbbee_status: Optional[str] = None
    nqf_level: Optional[int] = None
    languages: list[str] = field(default_factory=list)


def parse_extraction_reply(payload: dict[str, Any]) -> ExtractedProfile:
    nqf = payload.get("nqfLevel")
    if isinstance(nqf, bool):
        nqf = None
    try:
        nqf = int(nqf) if nqf not in (None, "") else None
    except (TypeError, ValueError):
        nqf = None
    if nqf is not None and not 1 <= nqf <= 10:
        nqf = None

    def _text(key: str) -> Optional[str]:
        value = payload.get(key)
        if value is None or isinstance(value, (list, dict)):
            return None
        return str(value).strip() or None

    return ExtractedProfile(
        skills=_string_list(payload, "extractedSkills"),
        experience=_text("experience"),
        education=_text("education"),
        bbbee_status=_text("bbbeeStatus"),
        nqf_level=nqf,
        languages=_string_list(payload, "languages"),
    )


class AIMatchAnalyzer:
    """Score pairs and extract CV fields through the chat-completion client."""

    def __init__(self, client: ChatCompletionClient, scorer: CompatibilityScorer):
        self.client = client
        self.scorer = scorer

    @property
    def configured(self) -> bool:
        return self.client.configured

    async def analyze(self, job: JobFeatures, candidate: CandidateFeatures) -> AIResult[MatchAnalysis]:
        """AI analysis of one pair; errors come back in the result."""
        reply = await self.client.complete_json(MATCH_SYSTEM_PROMPT, build_match_prompt(job, candidate))
        if not reply.ok:
            return AIResult.failure(reply.error)

        try:
            parsed = parse_match_reply(reply.value)
        except ValueError as e:
            return AIResult.failure(AIError("parse", str(e), reply.provider))

        # Fill the dimensions the AI does not rate and recompute the overall
        # score with our weights so both paths are comparable
        deterministic = self.scorer.score(job, candidate)
        sub_scores = deterministic.sub_scores
        sub_scores.update(parsed.sub_scores)

        analysis = self.scorer.build_analysis(
            sub_scores,
            skills_matched=parsed.skills_matched or deterministic.skills_matched,
            skills_gap=parsed.skills_gap or deterministic.skills_gap,
            source="ai",
            recommendations=parsed.recommendations,
            extra_reasons=parsed.match_reasons,
        )
        return AIResult.success(analysis, reply.provider)

    async def extract_profile(self, cv_text: str) -> AIResult[ExtractedProfile]:
        if not cv_text or not cv_text.strip():
            return AIResult.failure(AIError("parse", "CV text is empty"))

        reply = await self.client.complete_json(EXTRACTION_SYSTEM_PROMPT, build_extraction_prompt(cv_text))
        if not reply.ok:
            return AIResult.failure(reply.error)

        try:
            profile = parse_extraction_reply(reply.value)
        except ValueError as e:
            return AIResult.failure(AIError("parse", str(e), reply.provider))
        return AIResult.success(profile, reply.provider)


class FallbackAnalyzer:
    """Try AI analysis, fall back to the deterministic scorer on any AI error."""

    def __init__(self, scorer: CompatibilityScorer, ai_analyzer: Optional[AIMatchAnalyzer] = None):
        self.scorer = scorer
        self.ai_analyzer = ai_analyzer
        self.fallback_count = 0

    @property
    def ai_enabled(self) -> bool:
        return self.ai_analyzer is not None and self.ai_analyzer.configured

    async def analyze(self, job: JobFeatures, candidate: CandidateFeatures) -> MatchAnalysis:
        if not self.ai_enabled:
            return self.scorer.score(job, candidate)

        result = await self.ai_analyzer.analyze(job, candidate)
        if result.ok:
            return result.value

        self.fallback_count += 1
        logger.warning(
            "AI analysis failed for job %s / candidate %s (%s), using deterministic score",
            job.job_id,
            candidate.candidate_id,
            result.error.kind,
        )
        analysis = self.scorer.score(job, candidate)
        analysis.source = "fallback"
        return analysis

    async def extract_profile(self, cv_text: str) -> Optional[ExtractedProfile]:
        """AI-extracted CV fields, or None when AI is off or the call fails."""
        if not self.ai_enabled or not cv_text or not cv_text.strip():
            return None

        result = await self.ai_analyzer.extract_profile(cv_text)
        if result.ok:
            return result.value

        logger.warning("AI profile extraction failed (%s), using CV text only", result.error.kind)
        return None
