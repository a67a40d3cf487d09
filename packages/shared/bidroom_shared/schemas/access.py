"""Effective-access results and capability checks.

An access result is the resolved view of one user against one project or
package: the raw role signals that were found plus the single access level
they collapse to. Results are plain values, recomputed per request.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from .common import AccessLevel, OrgRole, PackageRole, ProjectRole


class ProjectAccess(BaseModel):
    org_role: Optional[OrgRole] = None
    project_role: Optional[ProjectRole] = None
    package_role: Optional[PackageRole] = None  # best role across the project's packages
    is_creator: bool = False
    access: AccessLevel = AccessLevel.NONE
    has_project_level_access: bool = False

    model_config = {"frozen": True}

    @classmethod
    def no_access(cls) -> "ProjectAccess":
        return cls()


class PackageAccess(BaseModel):
    org_role: Optional[OrgRole] = None
    project_role: Optional[ProjectRole] = None
    package_role: Optional[PackageRole] = None
    is_project_creator: bool = False
    access: AccessLevel = AccessLevel.NONE
    project_id: Optional[UUID] = None

    model_config = {"frozen": True}

    @classmethod
    def no_access(cls) -> "PackageAccess":
        return cls()


def can_view_technical(access: AccessLevel) -> bool:
    """Technical evaluation data is visible to full and technical access."""
    return access in (AccessLevel.FULL, AccessLevel.TECHNICAL)


def can_view_commercial(access: AccessLevel) -> bool:
    """Commercial evaluation data is visible to full and commercial access."""
    return access in (AccessLevel.FULL, AccessLevel.COMMERCIAL)


def can_manage(access: AccessLevel) -> bool:
    """Create, rename, archive, invite and remove-member operations need full access."""
    return access == AccessLevel.FULL
