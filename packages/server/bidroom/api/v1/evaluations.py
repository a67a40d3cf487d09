"""
Evaluation round endpoints.

Technical rounds need technical visibility on the package; commercial rounds
need commercial visibility on the asset's package.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bidroom.core import errors
from bidroom.core.auth import (
    AuthContext,
    require_org_context,
    require_package_commercial_access,
    require_package_technical_access,
)
from bidroom.core.database import get_session
from bidroom.models.evaluation import CommercialEvaluation, TechnicalEvaluation
from bidroom.models.package import Asset
from bidroom.services import evaluations as evaluation_service
from bidroom_shared.schemas.evaluations import (
    CommercialEvaluationRead,
    EvaluationCreate,
    EvaluationUpdate,
    TechnicalEvaluationRead,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Technical (per package)
# ---------------------------------------------------------------------------


@router.post(
    "/packages/{package_id}/technical-evaluations",
    response_model=TechnicalEvaluationRead,
    status_code=201,
)
async def create_technical_evaluation(
    package_id: uuid.UUID,
    body: EvaluationCreate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    await require_package_technical_access(session, ctx, package_id)
    return await evaluation_service.create_technical_round(session, package_id, body.data)


@router.get(
    "/packages/{package_id}/technical-evaluations",
    response_model=List[TechnicalEvaluationRead],
)
async def list_technical_evaluations(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Rounds for the package, latest first."""
    await require_package_technical_access(session, ctx, package_id)
    result = await session.execute(
        select(TechnicalEvaluation)
        .where(TechnicalEvaluation.package_id == package_id)
        .order_by(TechnicalEvaluation.round_number.desc())
    )
    return result.scalars().all()


async def _technical_or_404(session: AsyncSession, evaluation_id: uuid.UUID) -> TechnicalEvaluation:
    evaluation = await session.get(TechnicalEvaluation, evaluation_id)
    if not evaluation:
        raise HTTPException(status_code=404, detail=errors.not_found("Evaluation"))
    return evaluation


@router.get("/technical-evaluations/{evaluation_id}", response_model=TechnicalEvaluationRead)
async def get_technical_evaluation(
    evaluation_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    evaluation = await _technical_or_404(session, evaluation_id)
    await require_package_technical_access(session, ctx, evaluation.package_id)
    return evaluation


@router.patch("/technical-evaluations/{evaluation_id}", response_model=TechnicalEvaluationRead)
async def update_technical_evaluation(
    evaluation_id: uuid.UUID,
    body: EvaluationUpdate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    evaluation = await _technical_or_404(session, evaluation_id)
    await require_package_technical_access(session, ctx, evaluation.package_id)
    return await evaluation_service.replace_data(session, evaluation, body.data)


# ---------------------------------------------------------------------------
# Commercial (per asset)
# ---------------------------------------------------------------------------


@router.post(
    "/assets/{asset_id}/commercial-evaluations",
    response_model=CommercialEvaluationRead,
    status_code=201,
)
async def create_commercial_evaluation(
    asset_id: uuid.UUID,
    body: EvaluationCreate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    package_id = await evaluation_service.get_asset_package_id(session, asset_id)
    await require_package_commercial_access(session, ctx, package_id)
    return await evaluation_service.create_commercial_round(session, asset_id, body.data)


@router.get(
    "/assets/{asset_id}/commercial-evaluations",
    response_model=List[CommercialEvaluationRead],
)
async def list_commercial_evaluations(
    asset_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    package_id = await evaluation_service.get_asset_package_id(session, asset_id)
    await require_package_commercial_access(session, ctx, package_id)
    result = await session.execute(
        select(CommercialEvaluation)
        .where(CommercialEvaluation.asset_id == asset_id)
        .order_by(CommercialEvaluation.round_number.desc())
    )
    return result.scalars().all()


@router.get("/packages/{package_id}/commercial-evaluations/exists")
async def has_commercial_evaluations(
    package_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Whether any asset in the package has a commercial round yet."""
    await require_package_commercial_access(session, ctx, package_id)
    result = await session.execute(
        select(func.count())
        .select_from(CommercialEvaluation)
        .join(Asset, CommercialEvaluation.asset_id == Asset.id)
        .where(Asset.package_id == package_id)
    )
    return {"exists": result.scalar_one() > 0}


async def _commercial_or_404(
    session: AsyncSession, evaluation_id: uuid.UUID
) -> CommercialEvaluation:
    evaluation = await session.get(CommercialEvaluation, evaluation_id)
    if not evaluation:
        raise HTTPException(status_code=404, detail=errors.not_found("Evaluation"))
    return evaluation


@router.get("/commercial-evaluations/{evaluation_id}", response_model=CommercialEvaluationRead)
async def get_commercial_evaluation(
    evaluation_id: uuid.UUID,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    evaluation = await _commercial_or_404(session, evaluation_id)
    package_id = await evaluation_service.get_asset_package_id(session, evaluation.asset_id)
    await require_package_commercial_access(session, ctx, package_id)
    return evaluation


@router.patch("/commercial-evaluations/{evaluation_id}", response_model=CommercialEvaluationRead)
async def update_commercial_evaluation(
    evaluation_id: uuid.UUID,
    body: EvaluationUpdate,
    ctx: AuthContext = Depends(require_org_context),
    session: AsyncSession = Depends(get_session),
):
    evaluation = await _commercial_or_404(session, evaluation_id)
    package_id = await evaluation_service.get_asset_package_id(session, evaluation.asset_id)
    await require_package_commercial_access(session, ctx, package_id)
    return await evaluation_service.replace_data(session, evaluation, body.data)
