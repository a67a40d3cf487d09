"""
Evaluation rounds.

Technical rounds belong to a package, commercial rounds to an asset. Each
new round takes the next number after the highest existing one (starting
at 1) and is named ``Round N``.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.core import errors
from bidroom.models.evaluation import CommercialEvaluation, TechnicalEvaluation
from bidroom.models.package import Asset
from bidroom_shared.schemas.evaluations import round_name

log = structlog.get_logger()


async def next_round_number(session: AsyncSession, column, parent_column, parent_id: uuid.UUID) -> int:
    result = await session.execute(select(func.max(column)).where(parent_column == parent_id))
    current = result.scalar_one_or_none()
    return (current or 0) + 1


async def get_asset_package_id(session: AsyncSession, asset_id: uuid.UUID) -> uuid.UUID:
    result = await session.execute(select(Asset.package_id).where(Asset.id == asset_id))
    package_id = result.scalar_one_or_none()
    if package_id is None:
        raise HTTPException(status_code=404, detail=errors.not_found("Asset"))
    return package_id


async def create_technical_round(
    session: AsyncSession, package_id: uuid.UUID, data: dict[str, Any]
) -> TechnicalEvaluation:
    number = await next_round_number(
        session, TechnicalEvaluation.round_number, TechnicalEvaluation.package_id, package_id
    )
    evaluation = TechnicalEvaluation(
        package_id=package_id,
        round_number=number,
        round_name=round_name(number),
        data=data,
    )
    session.add(evaluation)
    await session.flush()

    log.info("evaluation.technical.created", package_id=str(package_id), round=number)
    return evaluation


async def create_commercial_round(
    session: AsyncSession, asset_id: uuid.UUID, data: dict[str, Any]
) -> CommercialEvaluation:
    number = await next_round_number(
        session, CommercialEvaluation.round_number, CommercialEvaluation.asset_id, asset_id
    )
    evaluation = CommercialEvaluation(
        asset_id=asset_id,
        round_number=number,
        round_name=round_name(number),
        data=data,
    )
    session.add(evaluation)
    await session.flush()

    log.info("evaluation.commercial.created", asset_id=str(asset_id), round=number)
    return evaluation


async def replace_data(session: AsyncSession, evaluation, data: dict[str, Any]):
    """Overwrite the stored evaluation blob."""
    evaluation.data = dict(data)
    session.add(evaluation)
    await session.flush()
    return evaluation
