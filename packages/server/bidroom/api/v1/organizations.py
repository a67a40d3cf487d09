"""
Organization API endpoints.

GET    /api/v1/orgs                       List orgs for the signed-in user
POST   /api/v1/orgs                       Create a new org
GET    /api/v1/org                        Active org details
PATCH  /api/v1/org                        Update org profile (owner)
GET    /api/v1/org/role                   Caller's role in the active org
GET    /api/v1/org/members                Members of the active org
DELETE /api/v1/org/members/{user_id}      Remove a member (owner)
GET    /api/v1/org/invitations            Pending invitations
POST   /api/v1/org/invitations            Invite by email (owner)
DELETE /api/v1/org/invitations/{id}       Cancel an invitation (owner)
"""

from __future__ import annotations

import uuid
from typing import List

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bidroom.core.auth import (
    AuthContext,
    get_auth_context,
    get_org_role,
    require_org_context,
    require_org_owner,
)
from bidroom.core.database import get_session
from bidroom.services import organizations as org_service
from bidroom_shared.schemas.members import OrgInvitationRead, OrgInviteRequest, OrgMemberRead
from bidroom_shared.schemas.organizations import (
    OrgCreateRequest,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
)

log = structlog.get_logger()

# ---------------------------------------------------------------------------
# Non-org-scoped routes
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    ctx: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the signed-in user belongs to."""
    items = await org_service.list_user_orgs(ctx.user_id, session)
    return OrgListResponse(data=items)


@router_global.post("/orgs", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    ctx: AuthContext = Depends(get_auth_context),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    return await org_service.create_org(body, ctx.user_id, session)


# ---------------------------------------------------------------------------
# Active-org routes
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgResponse)
async def get_org(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await org_service.require_org_membership(session, ctx.user_id, ctx.active_org_id)
    return await org_service.get_org(ctx.active_org_id, session)


@router_scoped.patch("", response_model=OrgResponse)
async def update_org(
    body: OrgUpdateRequest,
    ctx: AuthContext = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    """Update the org name, logo or country. Owner only."""
    org = await org_service.get_org(ctx.active_org_id, session)
    return await org_service.update_org(org, body, session)


@router_scoped.get("/role")
async def get_my_role(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """The caller's role in the active org, or null when not a member."""
    role = await get_org_role(session, ctx.user_id, ctx.active_org_id)
    return {"org_id": str(ctx.active_org_id), "role": role.value if role else None}


@router_scoped.get("/members", response_model=List[OrgMemberRead])
async def list_members(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await org_service.require_org_membership(session, ctx.user_id, ctx.active_org_id)
    return await org_service.list_org_members(ctx.active_org_id, session)


@router_scoped.delete("/members/{user_id}")
async def remove_member(
    user_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    await org_service.remove_org_member(ctx.active_org_id, ctx.user_id, user_id, session)
    return {"success": True}


@router_scoped.get("/invitations", response_model=List[OrgInvitationRead])
async def list_invitations(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await org_service.require_org_membership(session, ctx.user_id, ctx.active_org_id)
    return await org_service.list_pending_invitations(ctx.active_org_id, session)


@router_scoped.post("/invitations", response_model=OrgInvitationRead, status_code=201)
async def invite_member(
    body: OrgInviteRequest,
    ctx: AuthContext = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    return await org_service.invite_member(ctx.active_org_id, ctx.user_id, body, session)


@router_scoped.delete("/invitations/{invitation_id}")
async def cancel_invitation(
    invitation_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_owner),
    session: AsyncSession = Depends(get_session),
):
    await org_service.cancel_invitation(ctx.active_org_id, invitation_id, session)
    return {"success": True}
