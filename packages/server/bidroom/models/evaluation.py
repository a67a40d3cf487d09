"""Evaluation rounds. ``data`` holds the stored evaluation blob as-is."""

import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class TechnicalEvaluation(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "technical_evaluations"

    package_id: uuid.UUID = Field(foreign_key="packages.id", nullable=False, index=True)
    round_number: int = Field(nullable=False)
    round_name: str = Field(nullable=False)
    data: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)


class CommercialEvaluation(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "commercial_evaluations"

    asset_id: uuid.UUID = Field(foreign_key="assets.id", nullable=False, index=True)
    round_number: int = Field(nullable=False)
    round_name: str = Field(nullable=False)
    data: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
