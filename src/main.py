"""Main entry point for the Hire Mzansi matching scheduler."""
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from config.settings import settings
from src.ai.client import ChatCompletionClient
from src.api.handlers import MatchingApi
from src.logging_config import setup_logging
from src.matching.ai_analyzer import AIMatchAnalyzer, FallbackAnalyzer
from src.matching.compatibility import CompatibilityScorer
from src.matching.engine import MatchingEngine, MatchingRunSummary
from src.matching.ranking import CandidateRankingService
from src.matching.vocabulary import Vocabulary, default_vocabulary, load_vocabulary
from src.matching.weights import get_weight_scheme
from src.notifications.slack_notifier import MatchNotifier
from src.persistence.database import get_session, init_db
from src.persistence.repository import MatchRepository
from src.tracking.match_service import MatchService

logger = logging.getLogger(__name__)


def load_configured_vocabulary() -> Vocabulary:
    if settings.vocabulary_file:
        return load_vocabulary(settings.vocabulary_file)
    return default_vocabulary()


def build_matching_engine(session: Session, vocabulary: Optional[Vocabulary] = None) -> MatchingEngine:
    """Wire the batch engine from settings for one session."""
    vocabulary = vocabulary or load_configured_vocabulary()
    scorer = CompatibilityScorer(
        weights=get_weight_scheme(settings.batch_weight_scheme),
        vocabulary=vocabulary,
    )

    ai_analyzer = None
    if settings.ai_configured:
        ai_analyzer = AIMatchAnalyzer(ChatCompletionClient.from_settings(settings), scorer)

    notifier = None
    if settings.slack_webhook_url:
        notifier = MatchNotifier(
            webhook_url=settings.slack_webhook_url,
            min_score=settings.notification_min_score,
        )

    return MatchingEngine(
        repository=MatchRepository(session),
        analyzer=FallbackAnalyzer(scorer, ai_analyzer),
        notifier=notifier,
        min_match_score=settings.min_match_score,
        min_ats_score=settings.min_ats_score,
        vocabulary=vocabulary,
        extract_profiles=settings.ai_extract_profiles,
    )


def build_api(session: Session) -> MatchingApi:
    """Wire the endpoint handlers for one request session."""
    vocabulary = load_configured_vocabulary()
    ranking_scorer = CompatibilityScorer(
        weights=get_weight_scheme(settings.ranking_weight_scheme),
        vocabulary=vocabulary,
    )
    return MatchingApi(
        engine_factory=lambda: build_matching_engine(session, vocabulary),
        ranking_service=CandidateRankingService(
            MatchRepository(session),
            ranking_scorer,
            min_ats_score=settings.ranking_min_ats_score,
        ),
        match_service=MatchService(session),
        default_limit=settings.ranking_default_limit,
    )


async def run_matching_cycle() -> Optional[MatchingRunSummary]:
    """Run one batch matching cycle and commit its matches."""
    logger.info("=" * 60)
    logger.info("Starting matching run at %s", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    logger.info("AI analysis: %s", "enabled" if settings.ai_configured else "disabled (deterministic only)")

    try:
        with get_session() as session:
            engine = build_matching_engine(session)
            summary = await engine.run()
    except Exception as e:
        logger.error("Matching run failed: %s", e, exc_info=True)
        return None

    logger.info("Matching run summary: %s", summary.to_dict())
    logger.info("=" * 60)
    return summary


async def async_main():
    """Async main entry point."""
    setup_logging(level=settings.log_level, log_file=settings.log_file or None)
    logger.info("Hire Mzansi matching starting...")
    logger.info("Vocabulary: %s", settings.vocabulary_path)

    init_db()
    logger.info("Database initialized")

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_matching_cycle,
        IntervalTrigger(minutes=settings.matching_interval_minutes),
        id="matching_run",
        name="Matching Run",
        max_instances=1,
    )

    scheduler.start()
    logger.info("Scheduler started: matching every %d minutes", settings.matching_interval_minutes)
    logger.info("Running initial matching cycle...")

    try:
        await run_matching_cycle()

        logger.info("Matching scheduler running. Press Ctrl+C to stop.")

        # Keep running forever
        while True:
            await asyncio.sleep(60)

    except asyncio.CancelledError:
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()


def main():
    """Main entry point."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    main()
