"""
Session endpoints.

Users sign in through the external identity provider, which issues the
session JWT. These endpoints read that session, switch its active
organization, link pending invitations after sign-in, and log out.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from bidroom.core import errors
from bidroom.core.auth import (
    AuthContext,
    create_jwt,
    generate_csrf_token,
    get_auth_context,
    revoke_jwt,
)
from bidroom.core.config import get_settings
from bidroom.core.database import get_session
from bidroom.models.user import User
from bidroom.services.memberships import link_pending_memberships
from bidroom.services.organizations import list_user_orgs, require_org_membership
from bidroom_shared.schemas.users import (
    LinkMembershipsResponse,
    SessionResponse,
    SetActiveOrgRequest,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=settings.session_cookie_name, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


@router.get("/session", response_model=SessionResponse)
async def get_current_session(
    ctx: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """The signed-in user, their active organization and every org they belong to."""
    user = await session.get(User, ctx.user_id)
    orgs = await list_user_orgs(ctx.user_id, session)
    return SessionResponse(
        user_id=ctx.user_id,
        email=ctx.email,
        name=user.name if user else None,
        active_org_id=ctx.active_org_id,
        orgs=orgs,
    )


@router.post("/active-org")
async def set_active_org(
    body: SetActiveOrgRequest,
    response: Response,
    ctx: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """Switch the session to another organization the user belongs to."""
    await require_org_membership(session, ctx.user_id, body.organization_id)

    orgs = await list_user_orgs(ctx.user_id, session)
    token, _jti = create_jwt(
        user_id=ctx.user_id,
        email=ctx.email,
        active_org=str(body.organization_id),
        org_ids=[str(o["id"]) for o in orgs],
    )
    if ctx.jti:
        await revoke_jwt(ctx.jti, ttl_seconds=settings.jwt_expire_minutes * 60)

    _set_session_cookies(response, token, generate_csrf_token())
    log.info(
        "auth.active_org_changed",
        user_id=str(ctx.user_id),
        org_id=str(body.organization_id),
    )
    return {"active_org_id": str(body.organization_id), "access_token": token}


@router.post("/link-memberships", response_model=LinkMembershipsResponse)
async def link_memberships(
    ctx: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """Turn invitations addressed to the user's email into active memberships."""
    user = await session.get(User, ctx.user_id)
    if not user:
        raise HTTPException(status_code=401, detail=errors.MUST_BE_LOGGED_IN)
    return await link_pending_memberships(session, user.id, user.email)


@router.post("/logout")
async def logout(response: Response, ctx: AuthContext = Depends(get_auth_context)):
    """Invalidate the current session."""
    if ctx.jti:
        await revoke_jwt(ctx.jti, ttl_seconds=settings.jwt_expire_minutes * 60)

    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    log.info("auth.logout", user_id=str(ctx.user_id))
    return {"message": "Logged out"}
