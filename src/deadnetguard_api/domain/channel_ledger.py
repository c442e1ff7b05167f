"""Channel counters and ban state.

Every mutator here runs inside the caller's transaction and never commits, so
the counter change lands together with the report or vote row that caused it.
Counters are bumped with single ``col = col + n`` statements; the row lock the
UPDATE takes is what serializes concurrent writers on one channel.
"""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.db.models import Channel, ChannelReport, ChannelVote
from deadnetguard_api.domain.errors import channel_not_found
from deadnetguard_api.observability import metrics
from deadnetguard_api.time import UtcNow


async def _bump_on_report(
    db: AsyncSession, external_id: str, display_name: str, now: UtcNow
) -> Channel | None:
    stmt = (
        update(Channel)
        .where(Channel.external_id == external_id)
        .values(
            report_count=Channel.report_count + 1,
            score=Channel.score + 1,
            display_name=display_name,
            updated_at=now(),
        )
        .returning(Channel)
    )
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one_or_none()


async def upsert_on_report(
    db: AsyncSession, *, external_id: str, display_name: str, now: UtcNow
) -> Channel:
    channel = await _bump_on_report(db, external_id, display_name, now)
    if channel is not None:
        return channel

    timestamp = now()
    try:
        async with db.begin_nested():
            channel = Channel(
                external_id=external_id,
                display_name=display_name,
                report_count=1,
                score=1,
                is_banned=False,
                created_at=timestamp,
                updated_at=timestamp,
            )
            db.add(channel)
            await db.flush()
        return channel
    except IntegrityError:
        # A concurrent first report created the row after our UPDATE missed it.
        channel = await _bump_on_report(db, external_id, display_name, now)
        if channel is None:
            raise
        return channel


async def lock_channel(db: AsyncSession, channel_id: uuid.UUID) -> Channel:
    channel = await db.scalar(
        select(Channel)
        .where(Channel.id == channel_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if channel is None:
        raise channel_not_found()
    return channel


async def get_channel(db: AsyncSession, channel_id: uuid.UUID) -> Channel:
    channel = await db.get(Channel, channel_id)
    if channel is None:
        raise channel_not_found()
    return channel


async def apply_vote_delta(
    db: AsyncSession, channel_id: uuid.UUID, delta: int, *, now: UtcNow
) -> Channel:
    stmt = (
        update(Channel)
        .where(Channel.id == channel_id)
        .values(score=Channel.score + delta, updated_at=now())
        .returning(Channel)
    )
    channel = (
        await db.scalars(stmt, execution_options={"populate_existing": True})
    ).one_or_none()
    if channel is None:
        raise channel_not_found()
    return channel


async def set_banned(
    db: AsyncSession,
    channel: Channel,
    is_banned: bool,
    *,
    now: UtcNow,
    source: str,
) -> bool:
    """Idempotent; returns False (and writes nothing) when the flag already matches."""
    if channel.is_banned == is_banned:
        return False
    channel.is_banned = is_banned
    channel.updated_at = now()
    await db.flush()
    metrics.channel_ban_total.labels(source=source, is_banned=str(is_banned).lower()).inc()
    return True


async def delete_channel(db: AsyncSession, channel_id: uuid.UUID) -> None:
    await lock_channel(db, channel_id)
    await db.execute(delete(ChannelVote).where(ChannelVote.channel_id == channel_id))
    await db.execute(delete(ChannelReport).where(ChannelReport.channel_id == channel_id))
    await db.execute(delete(Channel).where(Channel.id == channel_id))
