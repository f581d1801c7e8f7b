"""Salary structure and payroll API endpoints."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.database import get_db
from schoolpay.exceptions import ForbiddenException
from schoolpay.models.salary import SalaryStatus
from schoolpay.models.user import Role
from schoolpay.schemas.common import APIResponse
from schoolpay.schemas.salary import (
    GenerateSalaryRequest,
    MarkPaidRequest,
    RejectSalaryRequest,
    SalaryRecordResponse,
    SalaryStructureCreate,
    SalaryStructureData,
    SalaryStructureResponse,
    SalaryStructureSnapshot,
    SalarySummaryResponse,
)
from schoolpay.services.roster_service import get_roster_service
from schoolpay.services.salary_service import get_salary_service
from schoolpay.services.salary_structure_service import get_salary_structure_service
from schoolpay.services.teacher_attendance_service import get_teacher_attendance_service
from schoolpay.utils.permissions import require_office_staff, require_principal, require_staff
from schoolpay.utils.tenant_context import ActorContext

router = APIRouter()


# === Salary structures ===

@router.post("/structures", response_model=APIResponse[SalaryStructureSnapshot])
async def set_salary_structure(
    data: SalaryStructureCreate,
    actor: ActorContext = Depends(require_principal()),
    db: AsyncSession = Depends(get_db),
):
    """Set a teacher's salary structure from ``effective_from`` (principal only)."""
    service = get_salary_structure_service()
    terms = SalaryStructureData.model_validate(
        data.model_dump(exclude={"teacher_id", "effective_from"})
    )
    snapshot = await service.set_salary_structure(
        db, actor, data.teacher_id, terms, data.effective_from
    )

    return APIResponse(
        data=snapshot,
        message="Salary structure saved",
    )


@router.get("/structures", response_model=APIResponse[list[SalaryStructureResponse]])
async def list_open_structures(
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """List the current salary structure of every teacher."""
    service = get_salary_structure_service()
    structures = await service.list_open_structures(db, actor)

    return APIResponse(data=[SalaryStructureResponse.model_validate(s) for s in structures])


@router.get("/structures/{teacher_id}", response_model=APIResponse[SalaryStructureResponse])
async def get_structure_for_date(
    teacher_id: uuid.UUID,
    on: date | None = Query(None, description="Date the structure must cover (default today)"),
    actor: ActorContext = Depends(require_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get the salary structure of a teacher on a date.

    Teachers can only view their own structure.
    """
    if actor.has_role(Role.TEACHER) and actor.id != teacher_id:
        raise ForbiddenException("You can only view your own salary structure")

    service = get_salary_structure_service()
    structure = await service.get_structure_for_date(db, actor, teacher_id, on or date.today())

    return APIResponse(data=SalaryStructureResponse.model_validate(structure))


@router.get(
    "/structures/{teacher_id}/history",
    response_model=APIResponse[list[SalaryStructureResponse]],
)
async def get_structure_history(
    teacher_id: uuid.UUID,
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get every salary structure of a teacher, oldest first."""
    service = get_salary_structure_service()
    structures = await service.get_structure_history(db, actor, teacher_id)

    return APIResponse(data=[SalaryStructureResponse.model_validate(s) for s in structures])


# === Salary records ===

@router.post("/records/generate", response_model=APIResponse[SalaryRecordResponse])
async def generate_salary(
    data: GenerateSalaryRequest,
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Generate a teacher's pending salary record for a month."""
    service = get_salary_service()
    record = await service.generate_salary(db, actor, data.teacher_id, data.month, data.year)

    return APIResponse(
        data=SalaryRecordResponse.model_validate(record),
        message="Salary generated",
    )


@router.get("/records", response_model=APIResponse[list[SalaryRecordResponse]])
async def list_salary_records(
    teacher_id: uuid.UUID | None = Query(None, description="Filter by teacher"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    status: SalaryStatus | None = Query(None, description="Filter by status"),
    actor: ActorContext = Depends(require_staff()),
    db: AsyncSession = Depends(get_db),
):
    """List salary records.

    Teachers only see their own records.
    """
    service = get_salary_service()
    records = await service.list_salary_records(
        db, actor, teacher_id=teacher_id, month=month, year=year, status=status
    )

    return APIResponse(data=[SalaryRecordResponse.model_validate(r) for r in records])


@router.get("/records/{record_id}", response_model=APIResponse[SalaryRecordResponse])
async def get_salary_record(
    record_id: uuid.UUID,
    actor: ActorContext = Depends(require_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get a single salary record."""
    service = get_salary_service()
    record = await service.get_salary_record(db, actor, record_id)

    return APIResponse(data=SalaryRecordResponse.model_validate(record))


@router.put("/records/{record_id}/approve", response_model=APIResponse[SalaryRecordResponse])
async def approve_salary(
    record_id: uuid.UUID,
    actor: ActorContext = Depends(require_principal()),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending salary record (principal only)."""
    service = get_salary_service()
    record = await service.approve_salary(db, actor, record_id)

    return APIResponse(
        data=SalaryRecordResponse.model_validate(record),
        message="Salary approved",
    )


@router.put("/records/{record_id}/reject", response_model=APIResponse[SalaryRecordResponse])
async def reject_salary(
    record_id: uuid.UUID,
    data: RejectSalaryRequest,
    actor: ActorContext = Depends(require_principal()),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending salary record (principal only)."""
    service = get_salary_service()
    record = await service.reject_salary(db, actor, record_id, data.reason)

    return APIResponse(
        data=SalaryRecordResponse.model_validate(record),
        message="Salary rejected",
    )


@router.put("/records/{record_id}/mark-paid", response_model=APIResponse[SalaryRecordResponse])
async def mark_salary_paid(
    record_id: uuid.UUID,
    data: MarkPaidRequest,
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Record the payment of an approved salary record."""
    service = get_salary_service()
    record = await service.mark_salary_paid(db, actor, record_id, data)

    return APIResponse(
        data=SalaryRecordResponse.model_validate(record),
        message="Salary marked as paid",
    )


@router.get("/summary", response_model=APIResponse[SalarySummaryResponse])
async def get_salary_summary(
    year: int = Query(..., ge=2000, le=2100),
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get record counts and net totals per status for a year."""
    service = get_salary_service()
    summary = await service.get_salary_summary(db, actor, year)

    return APIResponse(data=summary)


@router.get("/attendance/{teacher_id}", response_model=APIResponse[dict[str, int]])
async def get_attendance_summary(
    teacher_id: uuid.UUID,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get a teacher's attendance counts per status for a month."""
    teacher = await get_roster_service().get_teacher(db, actor, teacher_id)
    service = get_teacher_attendance_service()
    summary = await service.get_month_summary(db, actor, teacher.id, month, year)

    return APIResponse(data=summary)
