from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class PackageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    currency: Optional[str] = None
    technical_weight: int = Field(default=50, ge=0, le=100)
    commercial_weight: int = Field(default=50, ge=0, le=100)
    contractors: List[str] = Field(min_length=2, description="At least 2 contractors are required")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("contractors")
    @classmethod
    def _strip_contractors(cls, v: List[str]) -> List[str]:
        names = [c.strip() for c in v]
        if any(not c for c in names):
            raise ValueError("contractor names must not be blank")
        return names


class PackageUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    currency: Optional[str] = None


class PackageRead(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    currency: Optional[str] = None
    technical_weight: int = 50
    commercial_weight: int = 50
    awarded_contractor_id: Optional[UUID] = None
    archived_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AssetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class AssetRead(BaseModel):
    id: UUID
    package_id: UUID
    name: str

    model_config = {"from_attributes": True}


class ParentProject(BaseModel):
    id: UUID
    name: str
    country: Optional[str] = None


class PackageDetail(BaseModel):
    package: PackageRead
    project: ParentProject
    assets: List[AssetRead]


class AssetDetail(BaseModel):
    asset: AssetRead
    package_name: str
    project_id: UUID
    project_name: str


class ContractorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class ContractorRead(BaseModel):
    id: UUID
    package_id: UUID
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AwardRequest(BaseModel):
    contractor_id: UUID
    comments: Optional[str] = None


class ArchivedPackageRead(BaseModel):
    id: UUID
    name: str
    project_id: UUID
    project_name: str
    archived_at: datetime
