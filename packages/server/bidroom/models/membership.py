"""Project and package membership rows.

Rows are keyed by (resource, email). ``user_id`` stays NULL while the invite
is pending and is filled in when the invited user signs in with that email.
"""

from datetime import datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from bidroom_shared.schemas.common import MembershipStatus


class _MembershipFields(SQLModel):
    email: str = Field(primary_key=True, index=True)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    role: str = Field(nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )

    @property
    def status(self) -> MembershipStatus:
        return MembershipStatus.INVITED if self.user_id is None else MembershipStatus.ACTIVE


class ProjectMember(_MembershipFields, table=True):
    __tablename__ = "project_members"

    project_id: uuid.UUID = Field(foreign_key="projects.id", primary_key=True)
    role: str = Field(nullable=False)  # project_lead | commercial_lead | technical_lead


class PackageMember(_MembershipFields, table=True):
    __tablename__ = "package_members"

    package_id: uuid.UUID = Field(foreign_key="packages.id", primary_key=True)
    role: str = Field(nullable=False)  # package_lead | commercial_team | technical_team
