from __future__ import annotations

from fastapi import APIRouter

from deadnetguard_api.api.schemas import (
    BanlistResponse,
    BanlistVersionResponse,
    BannedChannel,
    ChannelsResponse,
    RecentBan,
    StatsResponse,
)
from deadnetguard_api.api.routers.admin import summaries_to_response
from deadnetguard_api.db.session import DbSessionDep
from deadnetguard_api.domain.banlist import banlist_version, get_stats, list_banned, list_pending

router = APIRouter(prefix="/v1", tags=["banlist"])


@router.get("/banlist", response_model=BanlistResponse)
async def read_banlist(db: DbSessionDep) -> BanlistResponse:
    banned = await list_banned(db)
    return BanlistResponse(
        version=banned.version,
        count=len(banned.channels),
        channels=[
            BannedChannel(external_id=channel.external_id, display_name=channel.display_name)
            for channel in banned.channels
        ],
    )


@router.get("/banlist/version", response_model=BanlistVersionResponse)
async def read_banlist_version(db: DbSessionDep) -> BanlistVersionResponse:
    return BanlistVersionResponse(version=await banlist_version(db))


@router.get("/banlist/pending", response_model=ChannelsResponse)
async def read_pending(db: DbSessionDep) -> ChannelsResponse:
    return summaries_to_response(await list_pending(db))


@router.get("/stats", response_model=StatsResponse)
async def read_stats(db: DbSessionDep) -> StatsResponse:
    stats = await get_stats(db)
    return StatsResponse(
        total_channels=stats.total_channels,
        banned_channels=stats.banned_channels,
        pending_channels=stats.pending_channels,
        total_reports=stats.total_reports,
        total_votes=stats.total_votes,
        recent_bans=[
            RecentBan(display_name=ban.display_name, banned_at=ban.banned_at)
            for ban in stats.recent_bans
        ],
    )
