from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from deadnetguard_api.api.schemas import VoteRequest, VoteResponse, VoteStateResponse
from deadnetguard_api.db.session import DbSessionDep
from deadnetguard_api.domain.auto_ban import BanThresholds
from deadnetguard_api.domain.votes import cast_vote, get_vote
from deadnetguard_api.settings import Settings, get_settings
from deadnetguard_api.time import UtcNow, get_utcnow

router = APIRouter(prefix="/v1/votes", tags=["votes"])


@router.post("", response_model=VoteResponse)
async def vote_on_channel(
    body: VoteRequest,
    db: DbSessionDep,
    settings: Settings = Depends(get_settings),
    now: UtcNow = Depends(get_utcnow),
) -> VoteResponse:
    channel = await cast_vote(
        db=db,
        channel_id=body.channel_id,
        visitor_token=body.visitor_token,
        value=body.value,
        thresholds=BanThresholds.from_settings(settings),
        now=now,
    )
    return VoteResponse(channel_id=channel.id, score=channel.score, is_banned=channel.is_banned)


@router.get("/{channel_id}/{visitor_token}", response_model=VoteStateResponse)
async def read_vote(channel_id: uuid.UUID, visitor_token: str, db: DbSessionDep) -> VoteStateResponse:
    state = await get_vote(db=db, channel_id=channel_id, visitor_token=visitor_token)
    return VoteStateResponse(voted=state.voted, value=state.value)
