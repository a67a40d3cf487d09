"""Session and current-user schemas."""

from __future__ import annotations

from typing import Optional, List

from pydantic import BaseModel, UUID4

from .organizations import OrgListItem


class SessionResponse(BaseModel):
    """The caller's session as seen by the API."""
    user_id: UUID4
    email: str
    name: Optional[str] = None
    active_org_id: Optional[UUID4] = None
    orgs: List[OrgListItem] = []


class SetActiveOrgRequest(BaseModel):
    organization_id: UUID4


class LinkMembershipsResponse(BaseModel):
    """Counts of rows touched when pending invites were linked to the user."""
    invitations_accepted: int = 0
    project_memberships_linked: int = 0
    package_memberships_linked: int = 0
    orgs_joined: int = 0
