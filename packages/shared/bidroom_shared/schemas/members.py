"""Membership schemas for organizations, projects and packages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, UUID4

from .common import InvitationStatus, MembershipStatus, OrgRole, PackageRole, ProjectRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ProjectMemberAdd(BaseModel):
    """Invite (or re-role) someone on a project by email."""
    email: EmailStr
    role: ProjectRole


class PackageMemberAdd(BaseModel):
    """Invite (or re-role) someone on a package by email."""
    email: EmailStr
    role: PackageRole


class OrgInviteRequest(BaseModel):
    email: EmailStr
    role: OrgRole = OrgRole.MEMBER


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class MemberRead(BaseModel):
    """A project or package member. user_id is None until the invite is linked."""
    email: str
    role: str
    user_id: Optional[UUID4] = None
    name: Optional[str] = None
    status: MembershipStatus = MembershipStatus.ACTIVE


class OrgMemberRead(BaseModel):
    user_id: UUID4
    email: Optional[str] = None
    name: Optional[str] = None
    role: OrgRole


class OrgInvitationRead(BaseModel):
    id: UUID4
    email: str
    role: OrgRole
    status: InvitationStatus
    created_at: datetime

    model_config = {"from_attributes": True}

