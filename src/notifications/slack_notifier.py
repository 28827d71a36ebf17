"""Slack notifications for new matches."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)


@dataclass
class MatchSummary:
    """What a notification may say about a match. Never carries contact details."""

    match_id: int
    job_id: int
    job_title: str
    match_score: int
    company_name: Optional[str] = None
    location: Optional[str] = None
    skills_matched: list[str] = field(default_factory=list)
    analysis_source: str = "deterministic"


class MatchNotifier:
    """Send new-match alerts to Slack via webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        min_score: float = 70,
    ):
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Slack incoming webhook URL
            min_score: Minimum match score to send notification
        """
        self.webhook_url = webhook_url
        self.min_score = min_score

    async def notify(self, match: MatchSummary) -> bool:
        """
        Send a single match notification.

        Args:
            match: Summary of the new match

        Returns:
            True if notification sent successfully
        """
        if not self.webhook_url:
            logger.info("Slack webhook not configured")
            return False

        if match.match_score < self.min_score:
            return False

        return await self._post(self._build_payload(match))

    async def notify_batch(self, matches: list[MatchSummary]) -> int:
        """
        Send notifications for multiple matches.

        Args:
            matches: New match summaries

        Returns:
            Number of matches covered by successful notifications
        """
        if not self.webhook_url:
            return 0

        eligible = [m for m in matches if m.match_score >= self.min_score]
        if not eligible:
            return 0

        # Send summary if many matches
        if len(eligible) > 5:
            sent = await self._post(self._build_summary_payload(eligible))
            return len(eligible) if sent else 0

        success_count = 0
        for match in eligible:
            if await self.notify(match):
                success_count += 1
            # Rate limit
            await asyncio.sleep(0.5)

        return success_count

    async def _post(self, payload: dict) -> bool:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as response:
                    return response.status == 200
        except Exception as e:
            logger.error("Slack notification error: %s", e)
            return False

    def _build_summary_payload(self, matches: list[MatchSummary]) -> dict:
        """Build a single summary message for many matches."""
        ranked = sorted(matches, key=lambda m: m.match_score, reverse=True)
        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"🎯 {len(matches)} New Matches Created",
                    "emoji": True,
                },
            },
            {"type": "divider"},
        ]

        for match in ranked[:10]:
            score_emoji = "🔥" if match.match_score >= 85 else "✨"
            skills = ", ".join(match.skills_matched[:5]) or "n/a"
            company = f" at _{match.company_name}_" if match.company_name else ""
            blocks.append(
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": (
                            f"{score_emoji} *{match.job_title}*{company}\n"
                            f"Score: {match.match_score}% | {skills}"
                        ),
                    },
                }
            )

        if len(matches) > 10:
            blocks.append(
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f"_...and {len(matches) - 10} more matches_"}
                    ],
                }
            )

        return {"blocks": blocks}

    def _build_payload(self, match: MatchSummary) -> dict:
        """Build Slack message payload for a single match."""
        if match.match_score >= 85:
            score_emoji = "🔥"
            score_text = "Excellent Match"
        else:
            score_emoji = "✨"
            score_text = "Good Match"

        skills = ", ".join(match.skills_matched[:8]) or "n/a"

        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"{score_emoji} {score_text}: {match.match_score}/100",
                    "emoji": True,
                },
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*{match.job_title}*\n*{match.company_name or 'Unknown employer'}*",
                },
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Location:*\n{match.location or 'Not specified'}"},
                    {"type": "mrkdwn", "text": f"*Skills matched:*\n{skills}"},
                    {"type": "mrkdwn", "text": f"*Match ID:*\n{match.match_id}"},
                    {"type": "mrkdwn", "text": f"*Scored by:*\n{match.analysis_source}"},
                ],
            },
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f"Matched at {datetime.now().strftime('%Y-%m-%d %H:%M')}",
                    }
                ],
            },
        ]

        return {"blocks": blocks}
