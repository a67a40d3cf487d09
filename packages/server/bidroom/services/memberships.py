"""
Membership service: invite-by-email upserts and pending-invite linking.

Project and package invites are stored against an email before the invitee
has an account. Until ``link_pending_memberships`` runs for that user (on
sign-in), the rows carry no user id and grant nothing.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.models.membership import PackageMember, ProjectMember
from bidroom.models.org_member import OrgInvitation, OrgMember
from bidroom.models.package import Package
from bidroom.models.project import Project
from bidroom.models.user import User
from bidroom_shared.schemas.common import InvitationStatus, OrgRole, PackageRole, ProjectRole
from bidroom_shared.schemas.users import LinkMembershipsResponse

log = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _user_id_for_email(session: AsyncSession, email: str) -> Optional[uuid.UUID]:
    result = await session.execute(select(User.id).where(func.lower(User.email) == email))
    return result.scalar_one_or_none()


async def _ensure_org_member(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID, role: str
) -> bool:
    """Add an org membership unless one exists. Returns True when a row was added."""
    result = await session.execute(
        select(OrgMember).where(OrgMember.user_id == user_id, OrgMember.org_id == org_id)
    )
    if result.scalar_one_or_none():
        return False
    session.add(OrgMember(user_id=user_id, org_id=org_id, role=role))
    await session.flush()
    return True


async def upsert_project_member(
    session: AsyncSession, project_id: uuid.UUID, email: str, role: ProjectRole
) -> ProjectMember:
    """Insert or re-role the (project, email) row, linking the user if they exist."""
    email = normalize_email(email)
    user_id = await _user_id_for_email(session, email)

    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id, ProjectMember.email == email
        )
    )
    member = result.scalar_one_or_none()
    if member:
        member.role = role.value
        member.user_id = user_id
    else:
        member = ProjectMember(project_id=project_id, email=email, user_id=user_id, role=role.value)
    session.add(member)
    await session.flush()

    log.info(
        "project_member.upserted",
        project_id=str(project_id),
        email=email,
        role=role.value,
        status=member.status.value,
    )
    return member


async def upsert_package_member(
    session: AsyncSession, package_id: uuid.UUID, email: str, role: PackageRole
) -> PackageMember:
    """Insert or re-role the (package, email) row, linking the user if they exist."""
    email = normalize_email(email)
    user_id = await _user_id_for_email(session, email)

    result = await session.execute(
        select(PackageMember).where(
            PackageMember.package_id == package_id, PackageMember.email == email
        )
    )
    member = result.scalar_one_or_none()
    if member:
        member.role = role.value
        member.user_id = user_id
    else:
        member = PackageMember(package_id=package_id, email=email, user_id=user_id, role=role.value)
    session.add(member)
    await session.flush()

    log.info(
        "package_member.upserted",
        package_id=str(package_id),
        email=email,
        role=role.value,
        status=member.status.value,
    )
    return member


async def link_pending_memberships(
    session: AsyncSession, user_id: uuid.UUID, email: str
) -> LinkMembershipsResponse:
    """Promote every invite addressed to ``email`` to an active membership for ``user_id``.

    - pending org invitations become org memberships with the invited role
    - pending project/package rows get the user id
    - the user joins (as ``member``) every org reached through those rows

    Existing org memberships are left alone, so running this twice is a no-op.
    """
    email = normalize_email(email)
    counts = LinkMembershipsResponse()

    result = await session.execute(
        select(OrgInvitation).where(
            OrgInvitation.email == email,
            OrgInvitation.status == InvitationStatus.PENDING.value,
        )
    )
    for invitation in result.scalars().all():
        await _ensure_org_member(
            session, user_id, invitation.org_id, invitation.role or OrgRole.MEMBER.value
        )
        invitation.status = InvitationStatus.ACCEPTED.value
        session.add(invitation)
        counts.invitations_accepted += 1

    project_rows = await session.execute(
        update(ProjectMember)
        .where(ProjectMember.email == email, ProjectMember.user_id.is_(None))
        .values(user_id=user_id)
        .execution_options(synchronize_session=False)
    )
    counts.project_memberships_linked = project_rows.rowcount or 0

    package_rows = await session.execute(
        update(PackageMember)
        .where(PackageMember.email == email, PackageMember.user_id.is_(None))
        .values(user_id=user_id)
        .execution_options(synchronize_session=False)
    )
    counts.package_memberships_linked = package_rows.rowcount or 0

    project_orgs = await session.execute(
        select(Project.org_id)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .where(ProjectMember.user_id == user_id)
        .distinct()
    )
    package_orgs = await session.execute(
        select(Project.org_id)
        .join(Package, Package.project_id == Project.id)
        .join(PackageMember, PackageMember.package_id == Package.id)
        .where(PackageMember.user_id == user_id)
        .distinct()
    )
    org_ids = set(project_orgs.scalars().all()) | set(package_orgs.scalars().all())
    for org_id in org_ids:
        if await _ensure_org_member(session, user_id, org_id, OrgRole.MEMBER.value):
            counts.orgs_joined += 1

    await session.flush()
    log.info(
        "membership.linked",
        user_id=str(user_id),
        invitations=counts.invitations_accepted,
        projects=counts.project_memberships_linked,
        packages=counts.package_memberships_linked,
        orgs_joined=counts.orgs_joined,
    )
    return counts
