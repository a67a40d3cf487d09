"""
Project endpoints: CRUD, archive/restore, membership, package creation.

Visibility:
- org owners see every project in the active org
- everyone else sees projects they created, are a project member of, or
  hold a membership on any package within
- project detail lists all packages for project-level access, otherwise
  only the caller's own packages
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import and_, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.core import errors
from bidroom.core.auth import (
    AuthContext,
    get_org_role,
    require_can_create_project,
    require_org_context,
    require_project_access,
    require_project_full_access,
)
from bidroom.core.database import get_session
from bidroom.core.permissions import resolve_project_access
from bidroom.models.membership import PackageMember, ProjectMember
from bidroom.models.package import Asset, Package, PackageContractor
from bidroom.models.project import Project
from bidroom.models.user import User
from bidroom.services.memberships import normalize_email, upsert_project_member
from bidroom_shared.schemas.access import ProjectAccess, can_view_commercial
from bidroom_shared.schemas.common import OrgRole, PackageRole, ProjectRole
from bidroom_shared.schemas.members import MemberRead, ProjectMemberAdd
from bidroom_shared.schemas.packages import PackageCreate, PackageRead
from bidroom_shared.schemas.projects import (
    ArchivedProjectRead,
    PackageSummary,
    ProjectCreate,
    ProjectDetail,
    ProjectListItem,
    ProjectPackageRead,
    ProjectRead,
    ProjectUpdate,
)

log = structlog.get_logger()
router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _visible_projects_stmt(ctx: AuthContext, owner: bool):
    """Projects in the active org the caller may list."""
    stmt = select(Project).where(Project.org_id == ctx.active_org_id)
    if owner:
        return stmt
    return (
        stmt.outerjoin(
            ProjectMember,
            and_(ProjectMember.project_id == Project.id, ProjectMember.user_id == ctx.user_id),
        )
        .outerjoin(Package, Package.project_id == Project.id)
        .outerjoin(
            PackageMember,
            and_(PackageMember.package_id == Package.id, PackageMember.user_id == ctx.user_id),
        )
        .where(
            or_(
                Project.creator_id == ctx.user_id,
                ProjectMember.user_id == ctx.user_id,
                PackageMember.user_id == ctx.user_id,
            )
        )
        .distinct()
    )


async def _team_members(
    session: AsyncSession, project_ids: list[uuid.UUID]
) -> dict[uuid.UUID, list[MemberRead]]:
    result = await session.execute(
        select(ProjectMember, User.name)
        .outerjoin(User, ProjectMember.user_id == User.id)
        .where(ProjectMember.project_id.in_(project_ids))
        .order_by(ProjectMember.created_at)
    )
    members: dict[uuid.UUID, list[MemberRead]] = {}
    for pm, name in result.all():
        members.setdefault(pm.project_id, []).append(
            MemberRead(email=pm.email, role=pm.role, user_id=pm.user_id, name=name, status=pm.status)
        )
    return members


async def _enrich_projects(
    session: AsyncSession, projects: list[Project]
) -> list[ProjectListItem]:
    """Attach live packages, award counts and team members to each project."""
    if not projects:
        return []

    project_ids = [p.id for p in projects]
    pkg_result = await session.execute(
        select(Package)
        .where(Package.project_id.in_(project_ids), Package.archived_at.is_(None))
        .order_by(Package.created_at.desc())
    )
    packages: dict[uuid.UUID, list[Package]] = {}
    for pkg in pkg_result.scalars().all():
        packages.setdefault(pkg.project_id, []).append(pkg)

    team = await _team_members(session, project_ids)

    items = []
    for p in projects:
        project_packages = packages.get(p.id, [])
        items.append(
            ProjectListItem(
                **ProjectRead.model_validate(p).model_dump(),
                packages=[PackageSummary(id=pkg.id, name=pkg.name) for pkg in project_packages],
                package_count=len(project_packages),
                awarded_package_count=sum(
                    1 for pkg in project_packages if pkg.awarded_contractor_id is not None
                ),
                team_members=team.get(p.id, []),
            )
        )
    return items


async def _set_archived(
    session: AsyncSession, project_id: uuid.UUID, archived: bool
) -> None:
    project = await session.get(Project, project_id)
    project.archived_at = datetime.now(timezone.utc) if archived else None
    session.add(project)
    await session.flush()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=List[ProjectListItem])
async def list_projects(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """List non-archived projects visible to the caller, newest first."""
    owner = await get_org_role(session, ctx.user_id, ctx.active_org_id) == OrgRole.OWNER
    stmt = (
        _visible_projects_stmt(ctx, owner)
        .where(Project.archived_at.is_(None))
        .order_by(Project.created_at.desc())
    )
    result = await session.execute(stmt)
    return await _enrich_projects(session, list(result.scalars().all()))


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    ctx: AuthContext = Depends(require_can_create_project),
    session: AsyncSession = Depends(get_session),
):
    """Create a project (owner/admin). The creator becomes its project lead."""
    project = Project(
        name=body.name.strip(),
        country=body.country,
        creator_id=ctx.user_id,
        org_id=ctx.active_org_id,
    )
    session.add(project)
    await session.flush()

    session.add(
        ProjectMember(
            project_id=project.id,
            user_id=ctx.user_id,
            email=normalize_email(ctx.email),
            role=ProjectRole.PROJECT_LEAD.value,
        )
    )
    await session.flush()

    log.info("project.created", project_id=str(project.id), org_id=str(ctx.active_org_id))
    return project


@router.get("/archived", response_model=List[ArchivedProjectRead])
async def list_archived_projects(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    owner = await get_org_role(session, ctx.user_id, ctx.active_org_id) == OrgRole.OWNER
    stmt = (
        _visible_projects_stmt(ctx, owner)
        .where(Project.archived_at.is_not(None))
        .order_by(Project.archived_at.desc())
    )
    result = await session.execute(stmt)
    return [
        ArchivedProjectRead(
            id=p.id, name=p.name, creator_id=p.creator_id, org_id=p.org_id, archived_at=p.archived_at
        )
        for p in result.scalars().all()
    ]


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Project with its packages, asset counts and (commercial only) award info."""
    info = await require_project_access(session, ctx, project_id)
    project = await session.get(Project, project_id)

    stmt = select(Package).where(Package.project_id == project_id, Package.archived_at.is_(None))
    if not info.has_project_level_access:
        stmt = stmt.join(
            PackageMember,
            and_(PackageMember.package_id == Package.id, PackageMember.user_id == ctx.user_id),
        )
    result = await session.execute(stmt.order_by(Package.created_at.desc()))
    packages = list(result.scalars().all())

    asset_counts: dict[uuid.UUID, int] = {}
    if packages:
        counts = await session.execute(
            select(Asset.package_id, func.count().label("cnt"))
            .where(Asset.package_id.in_([p.id for p in packages]))
            .group_by(Asset.package_id)
        )
        asset_counts = {row.package_id: row.cnt for row in counts}

    show_award = can_view_commercial(info.access)
    contractor_names: dict[uuid.UUID, str] = {}
    awarded_ids = [p.awarded_contractor_id for p in packages if p.awarded_contractor_id]
    if show_award and awarded_ids:
        names = await session.execute(
            select(PackageContractor.id, PackageContractor.name).where(
                PackageContractor.id.in_(awarded_ids)
            )
        )
        contractor_names = {row.id: row.name for row in names}

    return ProjectDetail(
        project=ProjectRead.model_validate(project),
        packages=[
            ProjectPackageRead(
                id=p.id,
                name=p.name,
                currency=p.currency,
                project_id=p.project_id,
                asset_count=asset_counts.get(p.id, 0),
                awarded_contractor_id=p.awarded_contractor_id if show_award else None,
                awarded_contractor_name=(
                    contractor_names.get(p.awarded_contractor_id)
                    if show_award and p.awarded_contractor_id
                    else None
                ),
            )
            for p in packages
        ],
    )


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Rename a project or change its country (full access)."""
    await require_project_full_access(
        session, ctx, project_id, errors.no_permission_rename("project")
    )
    project = await session.get(Project, project_id)
    update_data = body.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] is not None:
        update_data["name"] = update_data["name"].strip()
    for key, value in update_data.items():
        setattr(project, key, value)
    session.add(project)
    await session.flush()

    log.info("project.updated", project_id=str(project_id), fields=sorted(update_data))
    return project


@router.post("/{project_id}/archive")
async def archive_project(
    project_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_project_full_access(
        session, ctx, project_id, errors.no_permission_archive("project")
    )
    await _set_archived(session, project_id, True)
    log.info("project.archived", project_id=str(project_id))
    return {"success": True}


@router.post("/{project_id}/restore")
async def restore_project(
    project_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_project_full_access(
        session, ctx, project_id, errors.no_permission_restore("project")
    )
    await _set_archived(session, project_id, False)
    log.info("project.restored", project_id=str(project_id))
    return {"success": True}


@router.get("/{project_id}/access", response_model=ProjectAccess)
async def get_project_access(
    project_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """The caller's resolved access; ``none`` for unknown or foreign projects."""
    return await resolve_project_access(session, ctx.user_id, project_id, ctx.active_org_id)


# ---------------------------------------------------------------------------
# Project Membership
# ---------------------------------------------------------------------------


@router.get("/{project_id}/members", response_model=List[MemberRead])
async def list_project_members(
    project_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_project_access(session, ctx, project_id)
    team = await _team_members(session, [project_id])
    return team.get(project_id, [])


@router.post("/{project_id}/members", response_model=MemberRead, status_code=201)
async def add_project_member(
    project_id: uuid.UUID,
    body: ProjectMemberAdd,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Invite by email (or change an existing member's role)."""
    await require_project_full_access(
        session, ctx, project_id, errors.no_permission_invite("project")
    )
    member = await upsert_project_member(session, project_id, body.email, body.role)
    return MemberRead(
        email=member.email, role=member.role, user_id=member.user_id, status=member.status
    )


@router.delete("/{project_id}/members/{email}")
async def remove_project_member(
    project_id: uuid.UUID,
    email: str,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_project_full_access(
        session, ctx, project_id, errors.no_permission_remove("project")
    )
    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.email == normalize_email(email),
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail=errors.not_found("Member"))
    await session.delete(member)
    await session.flush()
    log.info("project_member.removed", project_id=str(project_id), email=member.email)
    return {"success": True}


# ---------------------------------------------------------------------------
# Packages under a project
# ---------------------------------------------------------------------------


@router.post("/{project_id}/packages", response_model=PackageRead, status_code=201)
async def create_package(
    project_id: uuid.UUID,
    body: PackageCreate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Create a package with its contractors; the creator becomes package lead."""
    await require_project_full_access(
        session, ctx, project_id, errors.NO_PERMISSION_CREATE_PACKAGE
    )
    package = Package(
        project_id=project_id,
        name=body.name,
        currency=body.currency,
        technical_weight=body.technical_weight,
        commercial_weight=body.commercial_weight,
    )
    session.add(package)
    await session.flush()

    session.add(
        PackageMember(
            package_id=package.id,
            user_id=ctx.user_id,
            email=normalize_email(ctx.email),
            role=PackageRole.PACKAGE_LEAD.value,
        )
    )
    for name in body.contractors:
        session.add(PackageContractor(package_id=package.id, name=name))
    await session.flush()

    log.info(
        "package.created",
        package_id=str(package.id),
        project_id=str(project_id),
        contractors=len(body.contractors),
    )
    return package
