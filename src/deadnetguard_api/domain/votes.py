"""Per-visitor votes on reported channels.

A visitor holds at most one live vote per channel. Switching sides rewrites
that row and moves the score by two: one step to cancel the old vote and one
for the new. Repeating the current vote is rejected rather than ignored.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deadnetguard_api.db.models import Channel, ChannelVote
from deadnetguard_api.domain.auto_ban import BanThresholds, apply_auto_ban
from deadnetguard_api.domain.channel_ledger import apply_vote_delta, lock_channel
from deadnetguard_api.domain.errors import AppError, validation_error
from deadnetguard_api.observability import metrics
from deadnetguard_api.observability.ops import observe_operation
from deadnetguard_api.time import UtcNow

VOTE_VALUES = frozenset({-1, 1})


@dataclass(frozen=True)
class VoteState:
    voted: bool
    value: int


def vote_delta(previous: int | None, value: int) -> int:
    if previous is None:
        return value
    if previous == value:
        raise AppError(
            code="duplicate_vote",
            message="Already voted",
            status_code=409,
        )
    return value * 2


async def _find_vote(
    db: AsyncSession, channel_id: uuid.UUID, visitor_token: str, *, for_update: bool = False
) -> ChannelVote | None:
    query = select(ChannelVote).where(
        ChannelVote.channel_id == channel_id,
        ChannelVote.visitor_token == visitor_token,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    return await db.scalar(query)


async def _record_vote(
    db: AsyncSession, channel_id: uuid.UUID, visitor_token: str, value: int, now: UtcNow
) -> int:
    existing = await _find_vote(db, channel_id, visitor_token, for_update=True)
    if existing is None:
        timestamp = now()
        try:
            async with db.begin_nested():
                db.add(
                    ChannelVote(
                        channel_id=channel_id,
                        visitor_token=visitor_token,
                        value=value,
                        created_at=timestamp,
                        updated_at=timestamp,
                    )
                )
                await db.flush()
            return vote_delta(None, value)
        except IntegrityError:
            existing = await _find_vote(db, channel_id, visitor_token, for_update=True)
            if existing is None:
                raise

    delta = vote_delta(existing.value, value)
    existing.value = value
    existing.updated_at = now()
    await db.flush()
    return delta


async def cast_vote(
    *,
    db: AsyncSession,
    channel_id: uuid.UUID,
    visitor_token: str,
    value: int,
    thresholds: BanThresholds,
    now: UtcNow,
) -> Channel:
    if value not in VOTE_VALUES:
        raise validation_error("Vote must be 1 or -1")

    async with observe_operation("cast_vote", attributes={"channel.id": str(channel_id)}):
        await lock_channel(db, channel_id)
        delta = await _record_vote(db, channel_id, visitor_token, value, now)
        channel = await apply_vote_delta(db, channel_id, delta, now=now)
        await apply_auto_ban(db, channel, thresholds, now)

        await db.commit()
        await db.refresh(channel)
        metrics.vote_total.labels(outcome="new" if abs(delta) == 1 else "changed").inc()
        return channel


async def get_vote(*, db: AsyncSession, channel_id: uuid.UUID, visitor_token: str) -> VoteState:
    vote = await _find_vote(db, channel_id, visitor_token)
    if vote is None:
        return VoteState(voted=False, value=0)
    return VoteState(voted=True, value=vote.value)
