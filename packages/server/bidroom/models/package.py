"""Package, asset and contractor models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Package(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "packages"
    __table_args__ = (sa.Index("ix_packages_project_id_archived_at", "project_id", "archived_at"),)

    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    currency: Optional[str] = None
    technical_weight: int = Field(default=50, nullable=False)
    commercial_weight: int = Field(default=50, nullable=False)
    awarded_contractor_id: Optional[uuid.UUID] = Field(default=None, index=True)
    award_comments: Optional[str] = None
    archived_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Asset(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "assets"

    package_id: uuid.UUID = Field(foreign_key="packages.id", nullable=False, index=True)
    name: str = Field(nullable=False)


class PackageContractor(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "package_contractors"

    package_id: uuid.UUID = Field(foreign_key="packages.id", nullable=False, index=True)
    name: str = Field(nullable=False)
