from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.db.models import Channel, ChannelReport, ChannelVote
from deadnetguard_api.domain.channel_ledger import get_channel
from deadnetguard_api.time import epoch_millis


class ChannelFilter(StrEnum):
    all = "all"
    banned = "banned"
    pending = "pending"


@dataclass(frozen=True)
class ChannelSummary:
    channel: Channel
    reports: int
    votes: int


@dataclass(frozen=True)
class BannedList:
    version: int
    channels: list[Channel]


@dataclass(frozen=True)
class RecentBan:
    display_name: str
    banned_at: dt.datetime


@dataclass(frozen=True)
class Stats:
    total_channels: int
    banned_channels: int
    total_reports: int
    total_votes: int
    recent_bans: list[RecentBan]

    @property
    def pending_channels(self) -> int:
        return self.total_channels - self.banned_channels


def _with_row_counts() -> Select[tuple[Channel, int, int]]:
    reports = (
        select(func.count(ChannelReport.id))
        .where(ChannelReport.channel_id == Channel.id)
        .correlate(Channel)
        .scalar_subquery()
    )
    votes = (
        select(func.count(ChannelVote.id))
        .where(ChannelVote.channel_id == Channel.id)
        .correlate(Channel)
        .scalar_subquery()
    )
    return select(Channel, reports, votes)


async def banlist_version(db: AsyncSession) -> int:
    latest = await db.scalar(select(func.max(Channel.updated_at)).where(Channel.is_banned.is_(True)))
    return epoch_millis(latest)


async def list_banned(db: AsyncSession) -> BannedList:
    channels = (
        await db.scalars(
            select(Channel)
            .where(Channel.is_banned.is_(True))
            .order_by(Channel.updated_at.desc(), Channel.external_id)
        )
    ).all()
    latest = max((channel.updated_at for channel in channels), default=None)
    return BannedList(version=epoch_millis(latest), channels=list(channels))


async def list_channels(
    db: AsyncSession, channel_filter: ChannelFilter = ChannelFilter.all
) -> list[ChannelSummary]:
    query = _with_row_counts()
    if channel_filter == ChannelFilter.banned:
        query = query.where(Channel.is_banned.is_(True))
    elif channel_filter == ChannelFilter.pending:
        query = query.where(Channel.is_banned.is_(False), Channel.report_count >= 1)

    if channel_filter != ChannelFilter.pending:
        query = query.order_by(Channel.is_banned.desc())
    query = query.order_by(Channel.score.desc(), Channel.report_count.desc(), Channel.created_at)

    rows = (await db.execute(query)).all()
    return [ChannelSummary(channel=channel, reports=reports, votes=votes) for channel, reports, votes in rows]


async def list_pending(db: AsyncSession) -> list[ChannelSummary]:
    return await list_channels(db, ChannelFilter.pending)


async def list_channel_reports(db: AsyncSession, channel_id: uuid.UUID) -> list[ChannelReport]:
    await get_channel(db, channel_id)
    reports = await db.scalars(
        select(ChannelReport)
        .where(ChannelReport.channel_id == channel_id)
        .order_by(ChannelReport.created_at.desc())
    )
    return list(reports.all())


async def get_stats(db: AsyncSession, *, recent_limit: int = 5) -> Stats:
    total_channels = await db.scalar(select(func.count()).select_from(Channel))
    banned_channels = await db.scalar(
        select(func.count()).select_from(Channel).where(Channel.is_banned.is_(True))
    )
    total_reports = await db.scalar(select(func.count()).select_from(ChannelReport))
    total_votes = await db.scalar(select(func.count()).select_from(ChannelVote))
    recent = await db.scalars(
        select(Channel)
        .where(Channel.is_banned.is_(True))
        .order_by(Channel.updated_at.desc())
        .limit(recent_limit)
    )
    return Stats(
        total_channels=total_channels or 0,
        banned_channels=banned_channels or 0,
        total_reports=total_reports or 0,
        total_votes=total_votes or 0,
        recent_bans=[
            RecentBan(display_name=channel.display_name, banned_at=channel.updated_at)
            for channel in recent.all()
        ],
    )
