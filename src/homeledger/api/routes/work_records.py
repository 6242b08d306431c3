"""Contractor-facing work record REST API routes.

Routes:
    POST   /api/v1/work-records                — Document completed work
    GET    /api/v1/work-records                — List the caller's work records
    GET    /api/v1/work-records/{id}           — Get one work record
    PATCH  /api/v1/work-records/{id}           — Edit details / resubmit a disputed record
    POST   /api/v1/work-records/{id}/archive   — Archive (idempotent)

The homeowner review routes live in routes/homes.py.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - FastAPI resolves path/query parameter types at runtime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from homeledger.api.deps import get_current_actor, get_db_session
from homeledger.domain.access import Actor  # noqa: TC001
from homeledger.logging_config import get_logger
from homeledger.schemas.common import address_from_request
from homeledger.schemas.work_records import (
    CreateWorkRecordRequest,
    UpdateWorkRecordRequest,
    WorkRecordActionResponse,
    WorkRecordResponse,
)
from homeledger.services.work_record_service import WorkRecordService

router = APIRouter(prefix="/api/v1/work-records", tags=["Work Records"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=WorkRecordActionResponse,
    status_code=201,
    summary="Document completed work",
)
async def create_work_record(
    request: CreateWorkRecordRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordActionResponse:
    """Create a work record. DOCUMENTED if the home has an owner, else DOCUMENTED_UNVERIFIED."""
    svc = WorkRecordService(session)
    outcome = await svc.create_work_record(
        actor,
        home_id=request.home_id,
        address=address_from_request(request.address, request.home_address),
        work_type=request.work_type,
        work_date=request.work_date,
        description=request.description,
        cost=request.cost,
        warranty_included=request.warranty_included,
        warranty_length=request.warranty_length,
        warranty_details=request.warranty_details,
        photos=request.photos,
        invoice_url=request.invoice_url,
        invitation_id=request.invitation_id,
    )
    return WorkRecordActionResponse.from_outcome(outcome)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=list[WorkRecordResponse],
    summary="List the caller's work records",
)
async def list_work_records(
    home_id: uuid.UUID | None = None,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> list[WorkRecordResponse]:
    svc = WorkRecordService(session)
    work_records = await svc.list_for_contractor(actor, home_id=home_id)
    return [WorkRecordResponse.from_work_record(wr) for wr in work_records]


@router.get(
    "/{work_record_id}",
    response_model=WorkRecordResponse,
    summary="Get a work record",
)
async def get_work_record(
    work_record_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordResponse:
    svc = WorkRecordService(session)
    work_record = await svc.get_work_record(actor, work_record_id)
    return WorkRecordResponse.from_work_record(work_record)


# ---------------------------------------------------------------------------
# Update / Archive
# ---------------------------------------------------------------------------


@router.patch(
    "/{work_record_id}",
    response_model=WorkRecordActionResponse,
    summary="Edit a work record",
)
async def update_work_record(
    work_record_id: uuid.UUID,
    request: UpdateWorkRecordRequest,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordActionResponse:
    """Edit a non-terminal work record. Editing a DISPUTED record resubmits it."""
    svc = WorkRecordService(session)
    outcome = await svc.update_work_record(
        actor,
        work_record_id,
        **request.model_dump(exclude_unset=True),
    )
    return WorkRecordActionResponse.from_outcome(outcome)


@router.post(
    "/{work_record_id}/archive",
    response_model=WorkRecordActionResponse,
    summary="Archive a work record",
)
async def archive_work_record(
    work_record_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    session: AsyncSession = Depends(get_db_session),
) -> WorkRecordActionResponse:
    svc = WorkRecordService(session)
    outcome = await svc.archive_work_record(actor, work_record_id)
    return WorkRecordActionResponse.from_outcome(outcome)
