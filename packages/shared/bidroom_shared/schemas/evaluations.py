"""Evaluation round schemas (technical rounds per package, commercial rounds per asset)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict
from uuid import UUID

from pydantic import BaseModel, Field


def round_name(round_number: int) -> str:
    return f"Round {round_number}"


class EvaluationCreate(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class EvaluationUpdate(BaseModel):
    data: Dict[str, Any]


class TechnicalEvaluationRead(BaseModel):
    id: UUID
    package_id: UUID
    round_number: int
    round_name: str
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommercialEvaluationRead(BaseModel):
    id: UUID
    asset_id: UUID
    round_number: int
    round_name: str
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
