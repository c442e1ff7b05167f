from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.db.models import Channel
from deadnetguard_api.domain.channel_ledger import set_banned
from deadnetguard_api.settings import Settings
from deadnetguard_api.time import UtcNow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BanThresholds:
    report_count: int = 5
    score: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> BanThresholds:
        return cls(report_count=settings.report_ban_threshold, score=settings.score_ban_threshold)


def should_auto_ban(report_count: int, score: int, thresholds: BanThresholds) -> bool:
    return report_count >= thresholds.report_count and score >= thresholds.score


async def apply_auto_ban(
    db: AsyncSession,
    channel: Channel,
    thresholds: BanThresholds,
    now: UtcNow,
) -> bool:
    """Latch the channel into the banned state when it meets the thresholds.

    A banned channel is left alone even if its score has since dropped; only an
    admin clears the flag. Returns True when this call banned the channel.
    """
    if channel.is_banned:
        return False
    if not should_auto_ban(channel.report_count, channel.score, thresholds):
        return False

    await set_banned(db, channel, True, now=now, source="auto")
    logger.info(
        "channel_auto_banned",
        extra={
            "channel_id": str(channel.id),
            "external_id": channel.external_id,
            "report_count": channel.report_count,
            "score": channel.score,
        },
    )
    return True
