"""
Organization service: org creation, profile updates, members and invitations.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.core import errors
from bidroom.models.organization import Organization
from bidroom.models.org_member import OrgInvitation, OrgMember
from bidroom.models.user import User
from bidroom.services.memberships import normalize_email
from bidroom_shared.schemas.common import InvitationStatus, OrgRole
from bidroom_shared.schemas.members import OrgInviteRequest
from bidroom_shared.schemas.organizations import OrgCreateRequest, OrgUpdateRequest

log = structlog.get_logger()


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """List all orgs a user belongs to, with their role."""
    result = await session.execute(
        select(Organization, OrgMember.role)
        .join(OrgMember, OrgMember.org_id == Organization.id)
        .where(OrgMember.user_id == user_id)
        .order_by(Organization.name)
    )
    return [
        {"id": org.id, "name": org.name, "slug": org.slug, "role": role}
        for org, role in result.all()
    ]


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator its owner."""
    existing = await session.execute(
        select(Organization).where(Organization.slug == req.slug)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Org slug already taken")

    org = Organization(name=req.name, slug=req.slug)
    session.add(org)
    await session.flush()

    session.add(OrgMember(user_id=creator_id, org_id=org.id, role=OrgRole.OWNER.value))
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=req.slug, creator=str(creator_id))
    return org


async def get_org(org_id: uuid.UUID, session: AsyncSession) -> Organization:
    org = await session.get(Organization, org_id)
    if not org:
        raise HTTPException(status_code=404, detail=errors.not_found("Organization"))
    return org


async def update_org(
    org: Organization,
    req: OrgUpdateRequest,
    session: AsyncSession,
) -> Organization:
    """Update org profile fields; unset fields are left as they are."""
    for key, value in req.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(org, key, value)
    org.updated_at = datetime.now(timezone.utc)
    session.add(org)
    await session.flush()

    log.info("org.updated", org_id=str(org.id), slug=org.slug)
    return org


async def require_org_membership(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> OrgMember:
    result = await session.execute(
        select(OrgMember).where(OrgMember.user_id == user_id, OrgMember.org_id == org_id)
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise HTTPException(status_code=403, detail=errors.no_access("organization"))
    return membership


async def list_org_members(org_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    result = await session.execute(
        select(User, OrgMember.role)
        .join(OrgMember, OrgMember.user_id == User.id)
        .where(OrgMember.org_id == org_id)
        .order_by(User.email)
    )
    return [
        {"user_id": user.id, "email": user.email, "name": user.name, "role": role}
        for user, role in result.all()
    ]


async def list_pending_invitations(
    org_id: uuid.UUID, session: AsyncSession
) -> list[OrgInvitation]:
    result = await session.execute(
        select(OrgInvitation)
        .where(
            OrgInvitation.org_id == org_id,
            OrgInvitation.status == InvitationStatus.PENDING.value,
        )
        .order_by(OrgInvitation.created_at)
    )
    return list(result.scalars().all())


async def invite_member(
    org_id: uuid.UUID,
    inviter_id: uuid.UUID,
    req: OrgInviteRequest,
    session: AsyncSession,
) -> OrgInvitation:
    """Record a pending org invitation; it is accepted when the invitee signs in."""
    email = normalize_email(req.email)
    result = await session.execute(
        select(OrgInvitation).where(
            OrgInvitation.org_id == org_id,
            OrgInvitation.email == email,
            OrgInvitation.status == InvitationStatus.PENDING.value,
        )
    )
    invitation = result.scalar_one_or_none()
    if invitation:
        invitation.role = req.role.value
    else:
        invitation = OrgInvitation(
            org_id=org_id,
            email=email,
            role=req.role.value,
            inviter_id=inviter_id,
        )
    session.add(invitation)
    await session.flush()

    log.info("org.member_invited", org_id=str(org_id), email=email, role=req.role.value)
    return invitation


async def cancel_invitation(
    org_id: uuid.UUID, invitation_id: uuid.UUID, session: AsyncSession
) -> None:
    invitation = await session.get(OrgInvitation, invitation_id)
    if (
        not invitation
        or invitation.org_id != org_id
        or invitation.status != InvitationStatus.PENDING.value
    ):
        raise HTTPException(status_code=404, detail=errors.not_found("Invitation"))
    invitation.status = InvitationStatus.CANCELED.value
    session.add(invitation)
    await session.flush()
    log.info("org.invitation_canceled", org_id=str(org_id), invitation_id=str(invitation_id))


async def remove_org_member(
    org_id: uuid.UUID,
    acting_user_id: uuid.UUID,
    user_id: uuid.UUID,
    session: AsyncSession,
) -> None:
    """Remove a member; owners cannot remove themselves or the last owner."""
    if user_id == acting_user_id:
        raise HTTPException(
            status_code=409, detail="You cannot remove yourself from the organization."
        )

    result = await session.execute(
        select(OrgMember).where(OrgMember.org_id == org_id, OrgMember.user_id == user_id)
    )
    membership = result.scalar_one_or_none()
    if not membership:
        raise HTTPException(status_code=404, detail=errors.not_found("Member"))

    if membership.role == OrgRole.OWNER.value:
        owners = await session.execute(
            select(OrgMember.user_id).where(
                OrgMember.org_id == org_id, OrgMember.role == OrgRole.OWNER.value
            )
        )
        if len(owners.scalars().all()) == 1:
            raise HTTPException(
                status_code=409,
                detail="Cannot remove the last owner from the organization.",
            )

    await session.delete(membership)
    await session.flush()
    log.info("org.member_removed", org_id=str(org_id), user_id=str(user_id))
