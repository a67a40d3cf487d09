from typing import Optional, List
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

from .members import MemberRead


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    country: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    country: Optional[str] = None


class ProjectRead(BaseModel):
    id: UUID
    org_id: UUID
    creator_id: UUID
    name: str
    country: Optional[str] = None
    archived_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PackageSummary(BaseModel):
    id: UUID
    name: str


class ProjectListItem(ProjectRead):
    """Project row for the sidebar / all-projects listing."""
    packages: List[PackageSummary] = Field(default_factory=list)
    package_count: int = 0
    awarded_package_count: int = 0
    team_members: List[MemberRead] = Field(default_factory=list)


class ProjectPackageRead(BaseModel):
    id: UUID
    name: str
    currency: Optional[str] = None
    project_id: UUID
    asset_count: int = 0
    # Only populated when the caller can view commercial data
    awarded_contractor_id: Optional[UUID] = None
    awarded_contractor_name: Optional[str] = None


class ProjectDetail(BaseModel):
    project: ProjectRead
    packages: List[ProjectPackageRead]


class ArchivedProjectRead(BaseModel):
    id: UUID
    name: str
    creator_id: UUID
    org_id: UUID
    archived_at: datetime
