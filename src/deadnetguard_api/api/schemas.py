from __future__ import annotations

import datetime as dt
import uuid
from typing import Annotated, Literal

from pydantic import AnyHttpUrl, BaseModel, Field, StringConstraints, UrlConstraints

ExternalId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
VisitorToken = Annotated[str, StringConstraints(min_length=1, max_length=100)]
EvidenceUrl = Annotated[AnyHttpUrl, UrlConstraints(max_length=2048)]


class HealthResponse(BaseModel):
    status: str = "ok"


class SuccessResponse(BaseModel):
    success: bool = True


class ReportRequest(BaseModel):
    external_id: ExternalId
    display_name: DisplayName
    reason: str | None = Field(default=None, max_length=500)
    evidence_url: EvidenceUrl | None = None
    reporter_token: VisitorToken | None = None


class ReportResponse(BaseModel):
    channel_id: uuid.UUID
    external_id: str
    display_name: str
    report_count: int
    score: int
    is_banned: bool
    message: str


class VoteRequest(BaseModel):
    channel_id: uuid.UUID
    visitor_token: VisitorToken
    value: Literal[-1, 1]


class VoteResponse(BaseModel):
    channel_id: uuid.UUID
    score: int
    is_banned: bool


class VoteStateResponse(BaseModel):
    voted: bool
    value: int


class BannedChannel(BaseModel):
    external_id: str
    display_name: str


class BanlistResponse(BaseModel):
    version: int
    count: int
    channels: list[BannedChannel]


class BanlistVersionResponse(BaseModel):
    version: int


class ChannelSummary(BaseModel):
    id: uuid.UUID
    external_id: str
    display_name: str
    report_count: int
    score: int
    is_banned: bool
    reports: int
    votes: int
    created_at: dt.datetime
    updated_at: dt.datetime


class ChannelsResponse(BaseModel):
    count: int
    channels: list[ChannelSummary]


class RecentBan(BaseModel):
    display_name: str
    banned_at: dt.datetime


class StatsResponse(BaseModel):
    total_channels: int
    banned_channels: int
    pending_channels: int
    total_reports: int
    total_votes: int
    recent_bans: list[RecentBan]


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=72)


class AdminLoginResponse(BaseModel):
    token: str
    expires_at: dt.datetime


class AdminVerifyResponse(BaseModel):
    valid: bool = True


class AdminSetupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=8, max_length=72)


class AdminPasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=72)
    new_password: str = Field(min_length=8, max_length=72)


class AdminBanResponse(BaseModel):
    channel_id: uuid.UUID
    is_banned: bool


class AdminReport(BaseModel):
    id: uuid.UUID
    channel_id: uuid.UUID
    reporter_token: str | None = None
    reason: str | None = None
    evidence_url: str | None = None
    created_at: dt.datetime


class AdminReportsResponse(BaseModel):
    reports: list[AdminReport]
