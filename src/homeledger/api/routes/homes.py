"""Homeowner-facing REST API routes, scoped to one home.

Routes:
    GET    /api/v1/homes/{home_id}/work-records/pending        — Review queue
    POST   /api/v1/homes/{home_id}/work-records/{id}/verify    — Approve work
    POST   /api/v1/homes/{home_id}/work-records/{id}/dispute   — Send work back
    POST   /api/v1/homes/{home_id}/work-records/{id}/reject    — Reject work
    GET    /api/v1/homes/{home_id}/connections                 — Contractors connected to the home
    GET    /api/v1/homes/{home_id}/records                     — Home history, newest first
"""

from __future__ import annotations

import uuid  # noqa: TC003 - FastAPI resolves path parameter types at runtime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from homeledger.api.deps import get_current_actor, get_db_session
from homeledger.domain.access import Actor  # noqa: TC001
from homeledger.domain.exceptions import ForbiddenOperationError
from homeledger.logging_config import get_logger
from homeledger.schemas.common import ConnectionResponse, RecordResponse
from homeledger.schemas.work_records import (
    ReviewFeedbackRequest,
    VerifyWorkRequest,
    WorkRecordActionResponse,
    WorkRecordResponse,
)
from homeledger.services.access_gate import OwnershipAccessGate
from homeledger.services.connection_service import ConnectionManager
from homeledger.services.history_service import HistoryWriter
from homeledger.services.property_registry import PropertyRegistry
from homeledger.services.work_record_service import WorkRecordService

router = APIRouter(prefix="/api/v1/homes", tags=["Homes"])
logger = get_logger(__name__)


async def _require_home_access(session: AsyncSession, actor: Actor, home_id: uuid.UUID) -> None:
    await PropertyRegistry(session).get_home(home_id)
    if not await OwnershipAccessGate(session).can_access_home(actor, home_id):
        raise ForbiddenOperationError("You do not have access to this home")


# ---------------------------------------------------------------------------
# Review queue
# ---------------------------------------------------------------------------


@router.get(
    "/{home_id}/work-records/pending",
    response_model=list[WorkRecordResponse],
    summary="Work awaiting the homeowner's review",
)
async def list_pending_work(
    home_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[WorkRecordResponse]:
    svc = WorkRecordService(session)
    work_records = await svc.list_pending_for_home(actor, home_id)
    return [WorkRecordResponse.from_work_record(wr) for wr in work_records]


# ---------------------------------------------------------------------------
# Verify / Dispute / Reject
# ---------------------------------------------------------------------------


@router.post(
    "/{home_id}/work-records/{work_record_id}/verify",
    response_model=WorkRecordActionResponse,
    summary="Verify documented work",
)
async def verify_work(
    home_id: uuid.UUID,
    work_record_id: uuid.UUID,
    request: VerifyWorkRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordActionResponse:
    """Approve work; creates or refreshes the connection and writes the history record."""
    request = request or VerifyWorkRequest()
    svc = WorkRecordService(session)
    outcome = await svc.verify_work(
        actor,
        home_id,
        work_record_id,
        cost=request.cost,
        note=request.note,
    )
    return WorkRecordActionResponse.from_outcome(outcome)


@router.post(
    "/{home_id}/work-records/{work_record_id}/dispute",
    response_model=WorkRecordActionResponse,
    summary="Dispute documented work",
)
async def dispute_work(
    home_id: uuid.UUID,
    work_record_id: uuid.UUID,
    request: ReviewFeedbackRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordActionResponse:
    request = request or ReviewFeedbackRequest()
    svc = WorkRecordService(session)
    outcome = await svc.dispute_work(actor, home_id, work_record_id, feedback=request.feedback)
    return WorkRecordActionResponse.from_outcome(outcome)


@router.post(
    "/{home_id}/work-records/{work_record_id}/reject",
    response_model=WorkRecordActionResponse,
    summary="Reject documented work",
)
async def reject_work(
    home_id: uuid.UUID,
    work_record_id: uuid.UUID,
    request: ReviewFeedbackRequest | None = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordActionResponse:
    request = request or ReviewFeedbackRequest()
    svc = WorkRecordService(session)
    outcome = await svc.reject_work(actor, home_id, work_record_id, feedback=request.feedback)
    return WorkRecordActionResponse.from_outcome(outcome)


# ---------------------------------------------------------------------------
# Connections / History
# ---------------------------------------------------------------------------


@router.get(
    "/{home_id}/connections",
    response_model=list[ConnectionResponse],
    summary="Contractors connected to the home",
)
async def list_home_connections(
    home_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[ConnectionResponse]:
    await _require_home_access(session, actor, home_id)
    connections = await ConnectionManager(session).list_for_home(home_id)
    return [ConnectionResponse.model_validate(c) for c in connections]


@router.get(
    "/{home_id}/records",
    response_model=list[RecordResponse],
    summary="Home history",
)
async def list_home_records(
    home_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[RecordResponse]:
    await _require_home_access(session, actor, home_id)
    records = await HistoryWriter(session).list_for_home(home_id)
    return [RecordResponse.model_validate(r) for r in records]
