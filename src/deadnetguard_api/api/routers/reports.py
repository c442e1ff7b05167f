from __future__ import annotations

from fastapi import APIRouter, Depends

from deadnetguard_api.api.schemas import ReportRequest, ReportResponse
from deadnetguard_api.db.session import DbSessionDep
from deadnetguard_api.domain.auto_ban import BanThresholds
from deadnetguard_api.domain.reports import submit_report
from deadnetguard_api.settings import Settings, get_settings
from deadnetguard_api.time import UtcNow, get_utcnow

router = APIRouter(prefix="/v1/reports", tags=["reports"])


@router.post("", response_model=ReportResponse)
async def report_channel(
    body: ReportRequest,
    db: DbSessionDep,
    settings: Settings = Depends(get_settings),
    now: UtcNow = Depends(get_utcnow),
) -> ReportResponse:
    outcome = await submit_report(
        db=db,
        external_id=body.external_id,
        display_name=body.display_name,
        reason=body.reason,
        evidence_url=str(body.evidence_url) if body.evidence_url is not None else None,
        reporter_token=body.reporter_token,
        thresholds=BanThresholds.from_settings(settings),
        now=now,
    )
    channel = outcome.channel
    return ReportResponse(
        channel_id=channel.id,
        external_id=channel.external_id,
        display_name=channel.display_name,
        report_count=channel.report_count,
        score=channel.score,
        is_banned=channel.is_banned,
        message=outcome.message,
    )
