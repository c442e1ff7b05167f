from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.db.models import Channel, ChannelReport
from deadnetguard_api.domain.auto_ban import BanThresholds, apply_auto_ban
from deadnetguard_api.domain.channel_ledger import upsert_on_report
from deadnetguard_api.observability.ops import observe_operation
from deadnetguard_api.time import UtcNow


@dataclass(frozen=True)
class ReportOutcome:
    channel: Channel

    @property
    def message(self) -> str:
        if self.channel.is_banned:
            return "Channel has been banned"
        return (
            f"Channel reported ({self.channel.report_count} reports, "
            f"score: {self.channel.score})"
        )


async def submit_report(
    *,
    db: AsyncSession,
    external_id: str,
    display_name: str,
    reason: str | None,
    evidence_url: str | None,
    reporter_token: str | None,
    thresholds: BanThresholds,
    now: UtcNow,
) -> ReportOutcome:
    async with observe_operation("submit_report", attributes={"channel.external_id": external_id}):
        channel = await upsert_on_report(
            db, external_id=external_id, display_name=display_name, now=now
        )
        db.add(
            ChannelReport(
                channel_id=channel.id,
                reporter_token=reporter_token,
                reason=reason,
                evidence_url=evidence_url,
                created_at=now(),
            )
        )
        await db.flush()
        await apply_auto_ban(db, channel, thresholds, now)

        await db.commit()
        await db.refresh(channel)
        return ReportOutcome(channel=channel)
