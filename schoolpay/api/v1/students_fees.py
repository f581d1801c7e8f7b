"""Student fee configuration API endpoints."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.database import get_db
from schoolpay.schemas.common import APIResponse
from schoolpay.schemas.fee_config import (
    ApplyFeeConfigurationRequest,
    ClassChangeRequest,
    FeeConfiguration,
    FeeConfigurationSnapshot,
    FeeHistoryResponse,
    FeeWindowSnapshot,
)
from schoolpay.services.fee_config_service import get_fee_config_service
from schoolpay.utils.permissions import require_office_staff
from schoolpay.utils.tenant_context import ActorContext

router = APIRouter()


@router.put("/{student_id}/fee-config", response_model=APIResponse[FeeWindowSnapshot])
async def apply_fee_configuration(
    student_id: uuid.UUID,
    data: ApplyFeeConfigurationRequest,
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Apply a new fee configuration to a student.

    The student's open fee window is closed the day before
    ``effective_from`` and a new one is opened.
    """
    service = get_fee_config_service()
    config = FeeConfiguration.model_validate(data.model_dump(exclude={"effective_from"}))
    snapshot = await service.apply_fee_configuration(
        db, actor, student_id, config, data.effective_from
    )

    return APIResponse(
        data=snapshot,
        message="Fee configuration applied successfully",
    )


@router.get("/{student_id}/fee-config", response_model=APIResponse[FeeConfigurationSnapshot])
async def get_fee_configuration(
    student_id: uuid.UUID,
    as_of: date | None = Query(None, description="Date to read the configuration for"),
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get the fee configuration in force on a date (default today)."""
    service = get_fee_config_service()
    snapshot = await service.get_fee_configuration(db, actor, student_id, as_of)

    return APIResponse(data=snapshot)


@router.get("/{student_id}/fee-history", response_model=APIResponse[FeeHistoryResponse])
async def get_fee_history(
    student_id: uuid.UUID,
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get every fee window of a student, oldest first."""
    service = get_fee_config_service()
    history = await service.get_fee_history(db, actor, student_id)

    return APIResponse(data=history)


@router.post("/{student_id}/class-change", response_model=APIResponse[FeeWindowSnapshot])
async def change_student_class(
    student_id: uuid.UUID,
    data: ClassChangeRequest,
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Move a student to another class with that class's default fees."""
    service = get_fee_config_service()
    snapshot = await service.change_student_class(
        db, actor, student_id, data.class_group_id, data.effective_from
    )

    return APIResponse(
        data=snapshot,
        message="Student moved to the new class",
    )
