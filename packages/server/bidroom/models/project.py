"""Project model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"
    __table_args__ = (sa.Index("ix_projects_org_id_archived_at", "org_id", "archived_at"),)

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    # Set once at creation; never reassigned.
    creator_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    country: Optional[str] = None
    archived_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
