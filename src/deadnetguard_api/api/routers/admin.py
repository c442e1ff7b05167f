from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.api.schemas import (
    AdminBanResponse,
    AdminReport,
    AdminReportsResponse,
    ChannelsResponse,
    ChannelSummary,
    SuccessResponse,
)
from deadnetguard_api.auth.deps import require_admin
from deadnetguard_api.db.models import ChannelReport
from deadnetguard_api.db.session import DbSessionDep
from deadnetguard_api.domain import banlist
from deadnetguard_api.domain.channel_ledger import delete_channel, lock_channel, set_banned
from deadnetguard_api.observability.ops import observe_operation
from deadnetguard_api.time import UtcNow, get_utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def summaries_to_response(summaries: list[banlist.ChannelSummary]) -> ChannelsResponse:
    return ChannelsResponse(
        count=len(summaries),
        channels=[
            ChannelSummary(
                id=summary.channel.id,
                external_id=summary.channel.external_id,
                display_name=summary.channel.display_name,
                report_count=summary.channel.report_count,
                score=summary.channel.score,
                is_banned=summary.channel.is_banned,
                reports=summary.reports,
                votes=summary.votes,
                created_at=summary.channel.created_at,
                updated_at=summary.channel.updated_at,
            )
            for summary in summaries
        ],
    )


def report_to_admin(report: ChannelReport) -> AdminReport:
    return AdminReport(
        id=report.id,
        channel_id=report.channel_id,
        reporter_token=report.reporter_token,
        reason=report.reason,
        evidence_url=report.evidence_url,
        created_at=report.created_at,
    )


async def _set_ban_state(
    db: AsyncSession, channel_id: uuid.UUID, is_banned: bool, now: UtcNow
) -> AdminBanResponse:
    operation = "admin_ban" if is_banned else "admin_unban"
    async with observe_operation(operation, attributes={"channel.id": str(channel_id)}):
        channel = await lock_channel(db, channel_id)
        changed = await set_banned(db, channel, is_banned, now=now, source="admin")
        await db.commit()
        if changed:
            logger.info(
                "admin_channel_ban_changed",
                extra={"channel_id": str(channel.id), "is_banned": channel.is_banned},
            )
        return AdminBanResponse(channel_id=channel.id, is_banned=channel.is_banned)


@router.get("/channels", response_model=ChannelsResponse)
async def list_channels(
    db: DbSessionDep,
    channel_filter: banlist.ChannelFilter = Query(default=banlist.ChannelFilter.all, alias="filter"),
) -> ChannelsResponse:
    return summaries_to_response(await banlist.list_channels(db, channel_filter))


@router.get("/channels/{channel_id}/reports", response_model=AdminReportsResponse)
async def list_channel_reports(channel_id: uuid.UUID, db: DbSessionDep) -> AdminReportsResponse:
    reports = await banlist.list_channel_reports(db, channel_id)
    return AdminReportsResponse(reports=[report_to_admin(report) for report in reports])


@router.post("/channels/{channel_id}/ban", response_model=AdminBanResponse)
async def ban_channel(
    channel_id: uuid.UUID, db: DbSessionDep, now: UtcNow = Depends(get_utcnow)
) -> AdminBanResponse:
    return await _set_ban_state(db, channel_id, True, now)


@router.post("/channels/{channel_id}/unban", response_model=AdminBanResponse)
async def unban_channel(
    channel_id: uuid.UUID, db: DbSessionDep, now: UtcNow = Depends(get_utcnow)
) -> AdminBanResponse:
    return await _set_ban_state(db, channel_id, False, now)


@router.delete("/channels/{channel_id}", response_model=SuccessResponse)
async def remove_channel(channel_id: uuid.UUID, db: DbSessionDep) -> SuccessResponse:
    async with observe_operation("admin_delete_channel", attributes={"channel.id": str(channel_id)}):
        await delete_channel(db, channel_id)
        await db.commit()
    logger.info("admin_channel_deleted", extra={"channel_id": str(channel_id)})
    return SuccessResponse()
