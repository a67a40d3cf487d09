"""
Package endpoints: detail, settings, archive/restore, members, contractors,
award and assets.

Packages are created under their project (``POST /projects/{id}/packages``).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.core import errors
from bidroom.core.auth import (
    AuthContext,
    get_org_role,
    require_org_context,
    require_package_access,
    require_package_full_access,
)
from bidroom.core.database import get_session
from bidroom.core.permissions import resolve_package_access
from bidroom.models.membership import PackageMember
from bidroom.models.package import Asset, Package, PackageContractor
from bidroom.models.project import Project
from bidroom.models.user import User
from bidroom.services.memberships import normalize_email, upsert_package_member
from bidroom_shared.schemas.access import PackageAccess, can_view_commercial
from bidroom_shared.schemas.common import OrgRole
from bidroom_shared.schemas.members import MemberRead, PackageMemberAdd
from bidroom_shared.schemas.packages import (
    ArchivedPackageRead,
    AssetCreate,
    AssetDetail,
    AssetRead,
    AwardRequest,
    ContractorCreate,
    ContractorRead,
    PackageDetail,
    PackageRead,
    PackageUpdate,
    ParentProject,
)

log = structlog.get_logger()
router = APIRouter()
assets_router = APIRouter()


async def _set_archived(session: AsyncSession, package_id: uuid.UUID, archived: bool) -> None:
    package = await session.get(Package, package_id)
    package.archived_at = datetime.now(timezone.utc) if archived else None
    session.add(package)
    await session.flush()


@router.get("/archived", response_model=List[ArchivedPackageRead])
async def list_archived_packages(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Archived packages: all of them for owners, else created projects or own memberships."""
    stmt = (
        select(Package.id, Package.name, Package.project_id, Project.name, Package.archived_at)
        .join(Project, Package.project_id == Project.id)
        .where(Project.org_id == ctx.active_org_id, Package.archived_at.is_not(None))
    )
    if await get_org_role(session, ctx.user_id, ctx.active_org_id) != OrgRole.OWNER:
        stmt = (
            stmt.outerjoin(
                PackageMember,
                and_(PackageMember.package_id == Package.id, PackageMember.user_id == ctx.user_id),
            )
            .where(or_(Project.creator_id == ctx.user_id, PackageMember.user_id == ctx.user_id))
            .distinct()
        )
    result = await session.execute(stmt.order_by(Package.archived_at.desc()))
    return [
        ArchivedPackageRead(
            id=pkg_id, name=name, project_id=project_id, project_name=project_name, archived_at=archived_at
        )
        for pkg_id, name, project_id, project_name, archived_at in result.all()
    ]


@router.get("/{package_id}", response_model=PackageDetail)
async def get_package(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Package with its parent project and assets (newest first)."""
    info = await require_package_access(session, ctx, package_id)
    package = await session.get(Package, package_id)
    if not package:
        raise HTTPException(status_code=404, detail=errors.not_found("Package"))
    project = await session.get(Project, package.project_id)
    if not project:
        raise HTTPException(status_code=404, detail=errors.not_found("Parent project"))

    result = await session.execute(
        select(Asset).where(Asset.package_id == package_id).order_by(Asset.created_at.desc())
    )

    package_read = PackageRead.model_validate(package)
    if not can_view_commercial(info.access):
        package_read = package_read.model_copy(update={"awarded_contractor_id": None})

    return PackageDetail(
        package=package_read,
        project=ParentProject(id=project.id, name=project.name, country=project.country),
        assets=[AssetRead.model_validate(a) for a in result.scalars().all()],
    )


@router.patch("/{package_id}", response_model=PackageRead)
async def update_package(
    package_id: uuid.UUID,
    body: PackageUpdate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Rename a package or change its currency (full access)."""
    await require_package_full_access(
        session, ctx, package_id, errors.no_permission_rename("package")
    )
    package = await session.get(Package, package_id)
    update_data = body.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        update_data["name"] = update_data["name"].strip()
    for key, value in update_data.items():
        setattr(package, key, value)
    session.add(package)
    await session.flush()

    log.info("package.updated", package_id=str(package_id), fields=sorted(update_data))
    return package


@router.post("/{package_id}/archive")
async def archive_package(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_full_access(
        session, ctx, package_id, errors.no_permission_archive("package")
    )
    await _set_archived(session, package_id, True)
    log.info("package.archived", package_id=str(package_id))
    return {"success": True}


@router.post("/{package_id}/restore")
async def restore_package(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_full_access(
        session, ctx, package_id, errors.no_permission_restore("package")
    )
    await _set_archived(session, package_id, False)
    log.info("package.restored", package_id=str(package_id))
    return {"success": True}


@router.get("/{package_id}/access", response_model=PackageAccess)
async def get_package_access(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    return await resolve_package_access(session, ctx.user_id, package_id, ctx.active_org_id)


# ---------------------------------------------------------------------------
# Package Membership
# ---------------------------------------------------------------------------


@router.get("/{package_id}/members", response_model=List[MemberRead])
async def list_package_members(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_access(session, ctx, package_id)
    result = await session.execute(
        select(PackageMember, User.name)
        .outerjoin(User, PackageMember.user_id == User.id)
        .where(PackageMember.package_id == package_id)
        .order_by(PackageMember.created_at)
    )
    return [
        MemberRead(email=pm.email, role=pm.role, user_id=pm.user_id, name=name, status=pm.status)
        for pm, name in result.all()
    ]


@router.post("/{package_id}/members", response_model=MemberRead, status_code=201)
async def add_package_member(
    package_id: uuid.UUID,
    body: PackageMemberAdd,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_full_access(
        session, ctx, package_id, errors.no_permission_invite("package")
    )
    member = await upsert_package_member(session, package_id, body.email, body.role)
    return MemberRead(
        email=member.email, role=member.role, user_id=member.user_id, status=member.status
    )


@router.delete("/{package_id}/members/{email}")
async def remove_package_member(
    package_id: uuid.UUID,
    email: str,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_full_access(
        session, ctx, package_id, errors.no_permission_remove("package")
    )
    result = await session.execute(
        select(PackageMember).where(
            PackageMember.package_id == package_id,
            PackageMember.email == normalize_email(email),
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise HTTPException(status_code=404, detail=errors.not_found("Member"))
    await session.delete(member)
    await session.flush()
    log.info("package_member.removed", package_id=str(package_id), email=member.email)
    return {"success": True}


# ---------------------------------------------------------------------------
# Contractors & Award
# ---------------------------------------------------------------------------


@router.get("/{package_id}/contractors", response_model=List[ContractorRead])
async def list_contractors(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_access(session, ctx, package_id)
    result = await session.execute(
        select(PackageContractor)
        .where(PackageContractor.package_id == package_id)
        .order_by(PackageContractor.created_at.desc())
    )
    return result.scalars().all()


@router.post("/{package_id}/contractors", response_model=ContractorRead, status_code=201)
async def add_contractor(
    package_id: uuid.UUID,
    body: ContractorCreate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_access(session, ctx, package_id)
    contractor = PackageContractor(package_id=package_id, name=body.name.strip())
    session.add(contractor)
    await session.flush()
    log.info("contractor.created", package_id=str(package_id), contractor_id=str(contractor.id))
    return contractor


@router.post("/{package_id}/award", response_model=PackageRead)
async def award_package(
    package_id: uuid.UUID,
    body: AwardRequest,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Award the package to one of its contractors (full access)."""
    await require_package_full_access(
        session, ctx, package_id, errors.no_permission_rename("package")
    )
    contractor = await session.get(PackageContractor, body.contractor_id)
    if not contractor or contractor.package_id != package_id:
        raise HTTPException(status_code=404, detail=errors.not_found("Contractor"))

    package = await session.get(Package, package_id)
    package.awarded_contractor_id = contractor.id
    package.award_comments = body.comments or None
    session.add(package)
    await session.flush()

    log.info("package.awarded", package_id=str(package_id), contractor_id=str(contractor.id))
    return package


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


@router.post("/{package_id}/assets", response_model=AssetRead, status_code=201)
async def create_asset(
    package_id: uuid.UUID,
    body: AssetCreate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_access(session, ctx, package_id)
    asset = Asset(package_id=package_id, name=body.name.strip())
    session.add(asset)
    await session.flush()
    log.info("asset.created", package_id=str(package_id), asset_id=str(asset.id))
    return asset


@assets_router.get("/{asset_id}", response_model=AssetDetail)
async def get_asset(
    asset_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Asset with its package and project names. Requires access to the package."""
    result = await session.execute(
        select(Asset, Package.name, Project.id, Project.name)
        .join(Package, Asset.package_id == Package.id)
        .join(Project, Package.project_id == Project.id)
        .where(Asset.id == asset_id)
        .limit(1)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail=errors.not_found("Asset"))
    asset, package_name, project_id, project_name = row

    await require_package_access(session, ctx, asset.package_id)
    return AssetDetail(
        asset=AssetRead.model_validate(asset),
        package_name=package_name,
        project_id=project_id,
        project_name=project_name,
    )
