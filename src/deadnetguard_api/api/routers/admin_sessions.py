from __future__ import annotations

from fastapi import APIRouter, Depends

from deadnetguard_api.api.schemas import (
    AdminLoginRequest,
    AdminLoginResponse,
    AdminPasswordChangeRequest,
    AdminSetupRequest,
    AdminVerifyResponse,
    SuccessResponse,
)
from deadnetguard_api.auth.deps import BearerToken, CurrentAdmin
from deadnetguard_api.db.session import DbSessionDep
from deadnetguard_api.domain.admin_bootstrap import bootstrap_admin
from deadnetguard_api.domain.admin_sessions import change_password, login, logout
from deadnetguard_api.domain.errors import AppError
from deadnetguard_api.settings import Settings, get_settings
from deadnetguard_api.time import UtcNow, get_utcnow

router = APIRouter(prefix="/v1/admin", tags=["admin-auth"])


@router.post("/login", response_model=AdminLoginResponse)
async def admin_login(
    body: AdminLoginRequest,
    db: DbSessionDep,
    settings: Settings = Depends(get_settings),
    now: UtcNow = Depends(get_utcnow),
) -> AdminLoginResponse:
    issued = await login(
        db=db, username=body.username, password=body.password, settings=settings, now=now
    )
    return AdminLoginResponse(token=issued.token, expires_at=issued.expires_at)


@router.post("/logout", response_model=SuccessResponse)
async def admin_logout(
    db: DbSessionDep,
    token: BearerToken,
    settings: Settings = Depends(get_settings),
) -> SuccessResponse:
    await logout(db=db, token=token, settings=settings)
    return SuccessResponse()


@router.get("/verify", response_model=AdminVerifyResponse)
async def admin_verify(_admin: CurrentAdmin) -> AdminVerifyResponse:
    return AdminVerifyResponse()


@router.post("/password", response_model=SuccessResponse)
async def admin_change_password(
    body: AdminPasswordChangeRequest,
    db: DbSessionDep,
    admin: CurrentAdmin,
    settings: Settings = Depends(get_settings),
) -> SuccessResponse:
    await change_password(
        db=db,
        admin=admin,
        current_password=body.current_password,
        new_password=body.new_password,
        settings=settings,
    )
    return SuccessResponse()


@router.post("/setup", response_model=SuccessResponse)
async def admin_setup(
    body: AdminSetupRequest,
    db: DbSessionDep,
    settings: Settings = Depends(get_settings),
    now: UtcNow = Depends(get_utcnow),
) -> SuccessResponse:
    if not settings.setup_enabled:
        raise AppError(code="setup_disabled", message="Admin setup is disabled", status_code=404)
    await bootstrap_admin(
        db=db, username=body.username, password=body.password, settings=settings, now=now
    )
    return SuccessResponse()
