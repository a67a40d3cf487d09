"""
Shared fixtures: in-memory SQLite database, seed helpers and an HTTP client
whose requests run against that database with Redis mocked out.
"""

from __future__ import annotations

import os

os.environ.setdefault("BR_DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import bidroom.models  # noqa: F401
from bidroom.core.auth import create_jwt
from bidroom.core.database import get_session
from bidroom.main import app
from bidroom.models.membership import PackageMember, ProjectMember
from bidroom.models.org_member import OrgMember
from bidroom.models.organization import Organization
from bidroom.models.package import Asset, Package, PackageContractor
from bidroom.models.project import Project
from bidroom.models.user import User


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture(autouse=True)
def redis_mocks():
    """Sessions are never revoked; revocation writes are recorded."""
    with patch("bidroom.core.auth.is_jwt_revoked", AsyncMock(return_value=False)), patch(
        "bidroom.api.v1.auth.revoke_jwt", AsyncMock()
    ) as revoke:
        yield revoke


@pytest.fixture
async def client(session_factory):
    async def _override_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


def auth_headers(user: User, org: Optional[Organization] = None) -> dict[str, str]:
    token, _ = create_jwt(
        user_id=user.id,
        email=user.email,
        active_org=str(org.id) if org else None,
        org_ids=[str(org.id)] if org else [],
    )
    return {"Authorization": f"Bearer {token}"}


async def make_user(session: AsyncSession, email: str, name: Optional[str] = None) -> User:
    user = User(email=email, name=name)
    session.add(user)
    await session.flush()
    return user


async def make_org(session: AsyncSession, name: str = "Acme") -> Organization:
    org = Organization(name=name, slug=f"{name.lower()}-{uuid.uuid4().hex[:6]}")
    session.add(org)
    await session.flush()
    return org


async def join_org(session: AsyncSession, user: User, org: Organization, role: str) -> None:
    session.add(OrgMember(user_id=user.id, org_id=org.id, role=role))
    await session.flush()


async def make_project(
    session: AsyncSession, org: Organization, creator: User, name: str = "Tower A"
) -> Project:
    project = Project(org_id=org.id, creator_id=creator.id, name=name)
    session.add(project)
    await session.flush()
    return project


async def make_package(
    session: AsyncSession, project: Project, name: str = "Facade", contractors: int = 0
) -> Package:
    package = Package(project_id=project.id, name=name)
    session.add(package)
    await session.flush()
    for i in range(contractors):
        session.add(PackageContractor(package_id=package.id, name=f"Contractor {i + 1}"))
    await session.flush()
    return package


async def make_asset(session: AsyncSession, package: Package, name: str = "Lot 1") -> Asset:
    asset = Asset(package_id=package.id, name=name)
    session.add(asset)
    await session.flush()
    return asset


async def add_project_member(
    session: AsyncSession, project: Project, user: Optional[User], role: str, email: Optional[str] = None
) -> ProjectMember:
    member = ProjectMember(
        project_id=project.id,
        email=email or user.email,
        user_id=user.id if user else None,
        role=role,
    )
    session.add(member)
    await session.flush()
    return member


async def add_package_member(
    session: AsyncSession, package: Package, user: Optional[User], role: str, email: Optional[str] = None
) -> PackageMember:
    member = PackageMember(
        package_id=package.id,
        email=email or user.email,
        user_id=user.id if user else None,
        role=role,
    )
    session.add(member)
    await session.flush()
    return member
