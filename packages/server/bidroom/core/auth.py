"""
Session handling and authorization guards for Bidroom.

Supports:
- JWT sessions (cookie for browsers, Bearer header for API clients) issued
  after the identity provider signs the user in
- Redis revocation list for logged-out sessions
- Org-role guards (owner-only, project creation)
- Project/package guards built on the access resolver

Guards resolve access on every request; a result is never reused across
requests because memberships can change between a check and the next action.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.core import errors
from bidroom.core.config import get_settings
from bidroom.core.database import get_session
from bidroom.core.permissions import _as_role, resolve_package_access, resolve_project_access
from bidroom.core.redis import get_redis, revoked_key
from bidroom.models.org_member import OrgMember
from bidroom_shared.schemas.access import (
    PackageAccess,
    ProjectAccess,
    can_manage,
    can_view_commercial,
    can_view_technical,
)
from bidroom_shared.schemas.common import (
    AccessLevel,
    OrgRole,
    PROJECT_CREATOR_ORG_ROLES,
)

log = structlog.get_logger()
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    email: str,
    active_org: Optional[str],
    org_ids: list[str],
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "org_ids": org_ids,
        "active_org": active_org,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(revoked_key(jti), ttl_seconds, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(revoked_key(jti)) > 0


# ---------------------------------------------------------------------------
# Session context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthContext:
    """The signed-in user and the organization their session is scoped to."""

    user_id: uuid.UUID
    email: str
    active_org_id: Optional[uuid.UUID]
    jti: Optional[str] = None


async def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthContext:
    """Authenticate the session. Tries the Bearer header first, then the cookie."""
    token = credentials.credentials if credentials else None
    if not token:
        token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(status_code=401, detail=errors.MUST_BE_LOGGED_IN)

    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
        email = payload["email"]
        active_org = payload.get("active_org")
        active_org_id = uuid.UUID(active_org) if active_org else None
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail=errors.MUST_BE_LOGGED_IN)

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise HTTPException(status_code=401, detail=errors.MUST_BE_LOGGED_IN)

    ctx = AuthContext(user_id=user_id, email=email, active_org_id=active_org_id, jti=jti)
    request.state.auth = ctx
    return ctx


async def require_org_context(
    ctx: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Session must have an active organization."""
    if ctx.active_org_id is None:
        raise HTTPException(status_code=401, detail=errors.MUST_BE_LOGGED_IN_WITH_ORG)
    return ctx


# ---------------------------------------------------------------------------
# Org-role guards
# ---------------------------------------------------------------------------

async def get_org_role(
    session: AsyncSession, user_id: uuid.UUID, org_id: uuid.UUID
) -> Optional[OrgRole]:
    result = await session.execute(
        select(OrgMember.role).where(OrgMember.user_id == user_id, OrgMember.org_id == org_id)
    )
    role = result.scalar_one_or_none()
    return _as_role(OrgRole, role)


async def require_org_owner(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
) -> AuthContext:
    """Org-level admin operations (edit org, invite/remove org members)."""
    role = await get_org_role(session, ctx.user_id, ctx.active_org_id)
    if role != OrgRole.OWNER:
        log.info("access.denied", check="org_owner", user_id=str(ctx.user_id))
        raise HTTPException(status_code=403, detail=errors.NO_PERMISSION_ADMIN)
    return ctx


async def require_can_create_project(
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
) -> AuthContext:
    """Owners and admins may create projects."""
    role = await get_org_role(session, ctx.user_id, ctx.active_org_id)
    if role not in PROJECT_CREATOR_ORG_ROLES:
        log.info("access.denied", check="create_project", user_id=str(ctx.user_id))
        raise HTTPException(status_code=403, detail=errors.NO_PERMISSION_CREATE_PROJECT)
    return ctx


# ---------------------------------------------------------------------------
# Resource guards (called from handlers with the path id)
# ---------------------------------------------------------------------------

def _deny(check: str, ctx: AuthContext, resource_id: uuid.UUID, detail: str) -> HTTPException:
    log.info(
        "access.denied",
        check=check,
        user_id=str(ctx.user_id),
        resource_id=str(resource_id),
    )
    return HTTPException(status_code=403, detail=detail)


async def require_project_access(
    session: AsyncSession, ctx: AuthContext, project_id: uuid.UUID
) -> ProjectAccess:
    """Any access other than ``none``."""
    info = await resolve_project_access(session, ctx.user_id, project_id, ctx.active_org_id)
    if info.access == AccessLevel.NONE:
        raise _deny("project", ctx, project_id, errors.no_access("project"))
    return info


async def require_project_full_access(
    session: AsyncSession,
    ctx: AuthContext,
    project_id: uuid.UUID,
    detail: Optional[str] = None,
) -> ProjectAccess:
    info = await resolve_project_access(session, ctx.user_id, project_id, ctx.active_org_id)
    if info.access == AccessLevel.NONE:
        raise _deny("project", ctx, project_id, errors.no_access("project"))
    if not can_manage(info.access):
        raise _deny(
            "project_full", ctx, project_id, detail or errors.no_permission_invite("project")
        )
    return info


async def require_package_access(
    session: AsyncSession, ctx: AuthContext, package_id: uuid.UUID
) -> PackageAccess:
    info = await resolve_package_access(session, ctx.user_id, package_id, ctx.active_org_id)
    if info.access == AccessLevel.NONE:
        raise _deny("package", ctx, package_id, errors.no_access("package"))
    return info


async def require_package_full_access(
    session: AsyncSession,
    ctx: AuthContext,
    package_id: uuid.UUID,
    detail: Optional[str] = None,
) -> PackageAccess:
    info = await resolve_package_access(session, ctx.user_id, package_id, ctx.active_org_id)
    if info.access == AccessLevel.NONE:
        raise _deny("package", ctx, package_id, errors.no_access("package"))
    if not can_manage(info.access):
        raise _deny(
            "package_full", ctx, package_id, detail or errors.no_permission_invite("package")
        )
    return info


async def require_package_technical_access(
    session: AsyncSession, ctx: AuthContext, package_id: uuid.UUID
) -> PackageAccess:
    """Allowed: full, technical."""
    info = await resolve_package_access(session, ctx.user_id, package_id, ctx.active_org_id)
    if not can_view_technical(info.access):
        raise _deny("package_technical", ctx, package_id, errors.NO_TECHNICAL_ACCESS)
    return info


async def require_package_commercial_access(
    session: AsyncSession, ctx: AuthContext, package_id: uuid.UUID
) -> PackageAccess:
    """Allowed: full, commercial."""
    info = await resolve_package_access(session, ctx.user_id, package_id, ctx.active_org_id)
    if not can_view_commercial(info.access):
        raise _deny("package_commercial", ctx, package_id, errors.NO_COMMERCIAL_ACCESS)
    return info
