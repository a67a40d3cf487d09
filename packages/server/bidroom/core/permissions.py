"""
Access resolution for projects and packages.

Four signals feed a single effective access level:
- the caller's org role in the active organization
- whether the caller created the project
- the caller's project membership role
- the caller's package membership role(s)

Project access checks project-level grants before package grants; package
access checks the package grant before project-level roles, since a package
membership is the more specific grant when looking at that package. Both
orders are first-match-wins.

Resolution is read-only and recomputed on every call. A missing resource and
a resource in another organization both resolve to ``none`` with every role
field empty, so callers cannot tell the two apart.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Iterable, Optional, Type, TypeVar

import structlog
from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.models.membership import PackageMember, ProjectMember
from bidroom.models.org_member import OrgMember
from bidroom.models.package import Package
from bidroom.models.project import Project
from bidroom_shared.schemas.access import PackageAccess, ProjectAccess
from bidroom_shared.schemas.common import (
    AccessLevel,
    OrgRole,
    PackageRole,
    ProjectRole,
    best_package_role,
)

log = structlog.get_logger()

E = TypeVar("E", bound=Enum)


def _as_role(enum_cls: Type[E], value: Optional[str]) -> Optional[E]:
    """Read a stored role string; unknown values grant nothing."""
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        log.warning("access.unknown_role", kind=enum_cls.__name__, value=value)
        return None


# ---------------------------------------------------------------------------
# Precedence (pure)
# ---------------------------------------------------------------------------


def decide_project_access(
    org_role: Optional[OrgRole],
    is_creator: bool,
    project_role: Optional[ProjectRole],
    package_role: Optional[PackageRole],
) -> AccessLevel:
    """Project precedence: owner, creator, project role, then best package role."""
    if org_role == OrgRole.OWNER:
        return AccessLevel.FULL
    if is_creator:
        return AccessLevel.FULL
    if project_role == ProjectRole.PROJECT_LEAD:
        return AccessLevel.FULL
    if project_role == ProjectRole.COMMERCIAL_LEAD:
        return AccessLevel.COMMERCIAL
    if project_role == ProjectRole.TECHNICAL_LEAD:
        return AccessLevel.TECHNICAL
    # Package leads can see the whole project but hold no project-level grant
    if package_role == PackageRole.PACKAGE_LEAD:
        return AccessLevel.FULL
    if package_role == PackageRole.COMMERCIAL_TEAM:
        return AccessLevel.COMMERCIAL
    if package_role == PackageRole.TECHNICAL_TEAM:
        return AccessLevel.TECHNICAL
    return AccessLevel.NONE


def decide_package_access(
    org_role: Optional[OrgRole],
    is_project_creator: bool,
    package_role: Optional[PackageRole],
    project_role: Optional[ProjectRole],
) -> AccessLevel:
    """Package precedence: owner, project creator, package role, then project role."""
    if org_role == OrgRole.OWNER:
        return AccessLevel.FULL
    if is_project_creator:
        return AccessLevel.FULL
    if package_role == PackageRole.PACKAGE_LEAD:
        return AccessLevel.FULL
    if package_role == PackageRole.COMMERCIAL_TEAM:
        return AccessLevel.COMMERCIAL
    if package_role == PackageRole.TECHNICAL_TEAM:
        return AccessLevel.TECHNICAL
    if project_role == ProjectRole.PROJECT_LEAD:
        return AccessLevel.FULL
    if project_role == ProjectRole.COMMERCIAL_LEAD:
        return AccessLevel.COMMERCIAL
    if project_role == ProjectRole.TECHNICAL_LEAD:
        return AccessLevel.TECHNICAL
    return AccessLevel.NONE


def has_project_level_grant(
    org_role: Optional[OrgRole], is_creator: bool, project_role: Optional[ProjectRole]
) -> bool:
    """True when access comes from the project itself, not only from a package membership."""
    return org_role == OrgRole.OWNER or is_creator or project_role is not None


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


async def _package_roles_in_project(
    session: AsyncSession, user_id: uuid.UUID, project_id: uuid.UUID
) -> Iterable[Optional[PackageRole]]:
    result = await session.execute(
        select(PackageMember.role)
        .join(Package, PackageMember.package_id == Package.id)
        .where(Package.project_id == project_id, PackageMember.user_id == user_id)
    )
    return [_as_role(PackageRole, role) for role in result.scalars().all()]


async def resolve_project_access(
    session: AsyncSession,
    user_id: uuid.UUID,
    project_id: uuid.UUID,
    org_id: uuid.UUID,
) -> ProjectAccess:
    """Resolve the caller's effective access to a project in the active org."""
    result = await session.execute(
        select(
            Project.org_id,
            Project.creator_id,
            OrgMember.role.label("org_role"),
            ProjectMember.role.label("project_role"),
        )
        .select_from(Project)
        .outerjoin(
            OrgMember,
            and_(OrgMember.user_id == user_id, OrgMember.org_id == org_id),
        )
        .outerjoin(
            ProjectMember,
            and_(ProjectMember.user_id == user_id, ProjectMember.project_id == project_id),
        )
        .where(Project.id == project_id)
        .limit(1)
    )
    row = result.first()
    if row is None or row.org_id != org_id:
        log.debug("access.project.none", project_id=str(project_id), user_id=str(user_id))
        return ProjectAccess.no_access()

    org_role = _as_role(OrgRole, row.org_role)
    project_role = _as_role(ProjectRole, row.project_role)
    is_creator = row.creator_id == user_id
    package_role = best_package_role(
        await _package_roles_in_project(session, user_id, project_id)
    )

    access = decide_project_access(org_role, is_creator, project_role, package_role)
    log.debug(
        "access.project.resolved",
        project_id=str(project_id),
        user_id=str(user_id),
        access=access.value,
    )
    return ProjectAccess(
        org_role=org_role,
        project_role=project_role,
        package_role=package_role,
        is_creator=is_creator,
        access=access,
        has_project_level_access=has_project_level_grant(org_role, is_creator, project_role),
    )


async def resolve_package_access(
    session: AsyncSession,
    user_id: uuid.UUID,
    package_id: uuid.UUID,
    org_id: uuid.UUID,
) -> PackageAccess:
    """Resolve the caller's effective access to a package in the active org."""
    result = await session.execute(
        select(
            Package.project_id,
            Project.org_id,
            Project.creator_id,
            OrgMember.role.label("org_role"),
            ProjectMember.role.label("project_role"),
            PackageMember.role.label("package_role"),
        )
        .select_from(Package)
        .join(Project, Package.project_id == Project.id)
        .outerjoin(
            OrgMember,
            and_(OrgMember.user_id == user_id, OrgMember.org_id == org_id),
        )
        .outerjoin(
            ProjectMember,
            and_(
                ProjectMember.user_id == user_id,
                ProjectMember.project_id == Package.project_id,
            ),
        )
        .outerjoin(
            PackageMember,
            and_(PackageMember.user_id == user_id, PackageMember.package_id == package_id),
        )
        .where(Package.id == package_id)
        .limit(1)
    )
    row = result.first()
    if row is None or row.org_id != org_id:
        log.debug("access.package.none", package_id=str(package_id), user_id=str(user_id))
        return PackageAccess.no_access()

    org_role = _as_role(OrgRole, row.org_role)
    project_role = _as_role(ProjectRole, row.project_role)
    package_role = _as_role(PackageRole, row.package_role)
    is_project_creator = row.creator_id == user_id

    access = decide_package_access(org_role, is_project_creator, package_role, project_role)
    log.debug(
        "access.package.resolved",
        package_id=str(package_id),
        user_id=str(user_id),
        access=access.value,
    )
    return PackageAccess(
        org_role=org_role,
        project_role=project_role,
        package_role=package_role,
        is_project_creator=is_project_creator,
        access=access,
        project_id=row.project_id,
    )
