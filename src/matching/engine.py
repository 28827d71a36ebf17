"""Batch matching engine: score every active job against every qualified CV.

A pair becomes a Match if and only if its overall score reaches the
threshold. Existing pairs are skipped, so repeated runs on unchanged data
create nothing new; the (job_posting_id, cv_id) unique constraint covers
concurrent runs.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from src.matching.exceptions import MatchingEngineError
from src.matching.normalizer import build_candidate_features, build_job_features
from src.matching.scorer_protocol import PairAnalyzer
from src.matching.vocabulary import Vocabulary, default_vocabulary
from src.notifications.slack_notifier import MatchNotifier, MatchSummary
from src.persistence.repository import MatchRepository

logger = logging.getLogger(__name__)


@dataclass
class MatchingRunSummary:
    """Counters for one batch run."""

    jobs: int = 0
    candidates: int = 0
    pairs_evaluated: int = 0
    matches_created: int = 0
    skipped_existing: int = 0
    below_threshold: int = 0
    errors: int = 0
    ai_fallbacks: int = 0
    notifications_sent: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class MatchingEngine:
    """Create Match records for sufficiently compatible (job, CV) pairs."""

    def __init__(
        self,
        repository: MatchRepository,
        analyzer: PairAnalyzer,
        notifier: Optional[MatchNotifier] = None,
        min_match_score: int = 70,
        min_ats_score: int = 75,
        vocabulary: Optional[Vocabulary] = None,
        extract_profiles: bool = False,
    ):
        """
        Initialize engine.

        Args:
            repository: Persistence access for jobs, CVs and matches
            analyzer: Scores one pair (FallbackAnalyzer in production)
            notifier: Optional notifier told about new matches
            min_match_score: Overall score a pair needs to become a Match
            min_ats_score: ATS score a CV needs to enter the pool
            vocabulary: Vocabulary for feature extraction
            extract_profiles: Ask the analyzer for AI-extracted CV fields
                before building candidate features
        """
        self.repository = repository
        self.analyzer = analyzer
        self.notifier = notifier
        self.min_match_score = min_match_score
        self.min_ats_score = min_ats_score
        self.vocabulary = vocabulary or default_vocabulary()
        self.extract_profiles = extract_profiles

    async def run(self) -> MatchingRunSummary:
        """Run one batch.

        Raises:
            MatchingEngineError: on a database failure other than a
                duplicate-pair insert
        """
        summary = MatchingRunSummary()
        fallbacks_before = getattr(self.analyzer, "fallback_count", 0)

        try:
            jobs = self.repository.list_active_jobs()
            candidate_rows = self.repository.list_qualified_candidates(self.min_ats_score)
            existing = self.repository.existing_pairs()
        except SQLAlchemyError as e:
            logger.error("Could not load matching inputs: %s", e, exc_info=True)
            raise MatchingEngineError(type(e).__name__) from e

        summary.jobs = len(jobs)
        logger.info(
            "Matching %d active jobs against %d CVs with ATS >= %d",
            len(jobs),
            len(candidate_rows),
            self.min_ats_score,
        )

        candidates = []
        for cv, profile, user in candidate_rows:
            try:
                extracted = await self._extract_profile(cv)
                candidates.append(build_candidate_features(cv, profile, user, self.vocabulary, extracted))
            except Exception as e:
                summary.errors += 1
                logger.error("Could not build features for CV %s: %s", cv.id, e, exc_info=True)
        summary.candidates = len(candidates)

        new_matches: list[MatchSummary] = []
        for job in jobs:
            try:
                job_features = build_job_features(job, self.vocabulary)
            except Exception as e:
                summary.errors += 1
                logger.error("Could not build features for job %s: %s", job.id, e, exc_info=True)
                continue

            if job_features.recruiter_id is None:
                summary.errors += 1
                logger.warning("Job %s has no recruiter user, skipping", job.id)
                continue

            for candidate in candidates:
                pair = (job.id, candidate.candidate_id)
                if pair in existing:
                    summary.skipped_existing += 1
                    continue

                summary.pairs_evaluated += 1
                try:
                    analysis = await self.analyzer.analyze(job_features, candidate)
                except Exception as e:
                    summary.errors += 1
                    logger.error(
                        "Scoring failed for job %s / CV %s: %s",
                        job.id,
                        candidate.candidate_id,
                        e,
                        exc_info=True,
                    )
                    continue

                if analysis.overall_score < self.min_match_score:
                    summary.below_threshold += 1
                    continue

                try:
                    if self.repository.match_exists(*pair):
                        match = None
                    else:
                        match = self.repository.create_match(
                            job_id=job.id,
                            cv_id=candidate.candidate_id,
                            job_seeker_id=candidate.user_id,
                            recruiter_id=job_features.recruiter_id,
                            analysis=analysis,
                        )
                except SQLAlchemyError as e:
                    logger.error(
                        "Could not save match for job %s / CV %s: %s",
                        job.id,
                        candidate.candidate_id,
                        e,
                        exc_info=True,
                    )
                    raise MatchingEngineError(type(e).__name__) from e

                existing.add(pair)
                if match is None:
                    summary.skipped_existing += 1
                    continue

                summary.matches_created += 1
                logger.debug(
                    "Match %s: job %s / CV %s scored %d%% (%s)",
                    match.id,
                    job.id,
                    candidate.candidate_id,
                    analysis.overall_score,
                    analysis.source,
                )
                new_matches.append(
                    MatchSummary(
                        match_id=match.id,
                        job_id=job.id,
                        job_title=job_features.title,
                        match_score=analysis.overall_score,
                        company_name=job.employer.company_name if job.employer else None,
                        location="Remote" if job_features.is_remote else job_features.location,
                        skills_matched=list(analysis.skills_matched),
                        analysis_source=analysis.source,
                    )
                )

        summary.ai_fallbacks = getattr(self.analyzer, "fallback_count", 0) - fallbacks_before

        if new_matches and self.notifier is not None:
            try:
                summary.notifications_sent = await self.notifier.notify_batch(new_matches)
            except Exception as e:
                logger.error("Match notifications failed: %s", e, exc_info=True)

        logger.info(
            "Matching run complete: %d created, %d below threshold, %d already matched, "
            "%d errors, %d AI fallbacks",
            summary.matches_created,
            summary.below_threshold,
            summary.skipped_existing,
            summary.errors,
            summary.ai_fallbacks,
        )
        return summary

    async def _extract_profile(self, cv):
        """AI-extracted fields for one CV when enabled and the analyzer supports it."""
        extract = getattr(self.analyzer, "extract_profile", None)
        if not self.extract_profiles or extract is None:
            return None
        return await extract(cv.content or "")
