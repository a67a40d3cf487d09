from enum import Enum
from typing import Iterable, Optional, Union

class OrgRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

class ProjectRole(str, Enum):
    PROJECT_LEAD = "project_lead"
    COMMERCIAL_LEAD = "commercial_lead"
    TECHNICAL_LEAD = "technical_lead"

class PackageRole(str, Enum):
    PACKAGE_LEAD = "package_lead"
    COMMERCIAL_TEAM = "commercial_team"
    TECHNICAL_TEAM = "technical_team"

class AccessLevel(str, Enum):
    FULL = "full"
    COMMERCIAL = "commercial"
    TECHNICAL = "technical"
    NONE = "none"

class MembershipStatus(str, Enum):
    INVITED = "invited"
    ACTIVE = "active"

class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELED = "canceled"

# Highest priority first
PACKAGE_ROLE_ORDER: list["PackageRole"] = [
    PackageRole.PACKAGE_LEAD,
    PackageRole.COMMERCIAL_TEAM,
    PackageRole.TECHNICAL_TEAM,
]

PROJECT_ROLE_ORDER: list["ProjectRole"] = [
    ProjectRole.PROJECT_LEAD,
    ProjectRole.COMMERCIAL_LEAD,
    ProjectRole.TECHNICAL_LEAD,
]

# Roles allowed to create projects in an org
PROJECT_CREATOR_ORG_ROLES = frozenset({OrgRole.OWNER, OrgRole.ADMIN})


def package_role_priority(role: PackageRole) -> int:
    """Rank of a package role; lower is stronger."""
    return PACKAGE_ROLE_ORDER.index(role)


def best_package_role(roles: Iterable[Optional[PackageRole]]) -> Optional[PackageRole]:
    """Reduce package roles held across a project to the strongest one.

    package_lead > commercial_team > technical_team. The result does not
    depend on the order the roles are discovered in; None entries are ignored.
    """
    best: Optional[PackageRole] = None
    for role in roles:
        if role is None:
            continue
        role = PackageRole(role)
        if role is PackageRole.PACKAGE_LEAD:
            return role
        if best is None or package_role_priority(role) < package_role_priority(best):
            best = role
    return best


def role_to_access(role: Union[ProjectRole, PackageRole, None]) -> AccessLevel:
    """Map a single project or package role to the access it grants on its own."""
    if role is None:
        return AccessLevel.NONE
    if role in (ProjectRole.PROJECT_LEAD, PackageRole.PACKAGE_LEAD):
        return AccessLevel.FULL
    if role in (ProjectRole.COMMERCIAL_LEAD, PackageRole.COMMERCIAL_TEAM):
        return AccessLevel.COMMERCIAL
    if role in (ProjectRole.TECHNICAL_LEAD, PackageRole.TECHNICAL_TEAM):
        return AccessLevel.TECHNICAL
    return AccessLevel.NONE
