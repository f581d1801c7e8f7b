"""Monthly salary generation and the salary record lifecycle."""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.config import settings
from schoolpay.exceptions import (
    NotFoundException,
    StateTransitionException,
    UniquenessException,
    ValidationException,
)
from schoolpay.models import (
    SALARY_TRANSITIONS,
    SalaryRecord,
    SalaryStatus,
    SalaryStructure,
)
from schoolpay.models.user import Role
from schoolpay.schemas.salary import (
    MarkPaidRequest,
    SalaryStatusTotals,
    SalarySummaryResponse,
)
from schoolpay.services.roster_service import get_roster_service
from schoolpay.services.salary_structure_service import get_salary_structure_service
from schoolpay.services.teacher_attendance_service import get_teacher_attendance_service
from schoolpay.utils.tenant_context import ActorContext

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class SalaryBreakdown:
    """Amounts of one month's salary."""

    gross_salary: Decimal
    attendance_deduction: Decimal
    total_deductions: Decimal
    net_salary: Decimal


def compute_salary(
    structure: SalaryStructure,
    absent_days: int,
    divisor_days: int = 30,
) -> SalaryBreakdown:
    """Compute a month's salary from a structure and the absent-day count.

    Each absent day costs ``base_salary / divisor_days`` whatever the length
    of the month. The deduction applies only to attendance-based structures
    and is rounded half-up to cents.

    Args:
        structure: Structure in force on the first day of the month
        absent_days: Days marked absent in the month
        divisor_days: Days in a notional month

    Returns:
        The gross, deduction and net amounts
    """
    gross = (structure.base_salary + structure.hra + structure.other_allowances).quantize(CENT)

    attendance_deduction = Decimal("0.00")
    if structure.attendance_based_deduction and absent_days:
        attendance_deduction = (
            Decimal(absent_days) * structure.base_salary / Decimal(divisor_days)
        ).quantize(CENT, rounding=ROUND_HALF_UP)

    total_deductions = (structure.fixed_deductions + attendance_deduction).quantize(CENT)

    return SalaryBreakdown(
        gross_salary=gross,
        attendance_deduction=attendance_deduction,
        total_deductions=total_deductions,
        net_salary=gross - total_deductions,
    )


def expected_status_for(target: SalaryStatus) -> SalaryStatus:
    """Get the status a record must be in to move to ``target``."""
    for status, reachable in SALARY_TRANSITIONS.items():
        if target in reachable:
            return status
    raise ValueError(f"No transition leads to {target.value}")


class SalaryService:
    """Service for generating salary records and moving them through their lifecycle."""

    async def generate_salary(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        month: int,
        year: int,
    ) -> SalaryRecord:
        """Generate the pending salary record of a teacher for a month.

        Raises:
            NotFoundException: If the teacher or a structure covering the
                first day of the month is missing
            UniquenessException: If a record for the month already exists
        """
        if not 1 <= month <= 12:
            raise ValidationException("month must be between 1 and 12", "month")

        # The teacher lock serializes generation for every (month, year) of the teacher
        teacher = await get_roster_service().get_teacher(db, actor, teacher_id, for_update=True)

        existing = await self._find_record(db, actor, teacher.id, month, year)
        if existing:
            logger.warning(
                f"Salary for teacher {teacher.id} {month:02d}/{year} already exists "
                f"({existing.status})"
            )
            raise UniquenessException(
                f"Salary for {month:02d}/{year} already exists for this teacher"
            )

        structure = await get_salary_structure_service().get_structure_for_date(
            db, actor, teacher.id, date(year, month, 1)
        )
        absent_days = await get_teacher_attendance_service().count_absent_days_in_month(
            db, actor, teacher.id, month, year
        )
        breakdown = compute_salary(structure, absent_days, settings.attendance_divisor_days)

        record = SalaryRecord(
            tenant_id=actor.tenant_id,
            teacher_id=teacher.id,
            salary_structure_id=structure.id,
            month=month,
            year=year,
            gross_salary=breakdown.gross_salary,
            attendance_deduction=breakdown.attendance_deduction,
            total_deductions=breakdown.total_deductions,
            net_salary=breakdown.net_salary,
            absent_days=absent_days,
            status=SalaryStatus.PENDING.value,
            generated_by=actor.id,
        )
        db.add(record)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning(f"Concurrent salary generation for teacher {teacher.id} {month:02d}/{year}")
            raise UniquenessException(
                f"Salary for {month:02d}/{year} already exists for this teacher"
            ) from e

        logger.info(
            f"Generated salary {record.id} for teacher {teacher.id} {month:02d}/{year}: "
            f"net {record.net_salary} ({absent_days} absent day(s))"
        )
        return record

    async def approve_salary(
        self,
        db: AsyncSession,
        actor: ActorContext,
        record_id: uuid.UUID,
    ) -> SalaryRecord:
        """Approve a pending salary record."""
        record = await self._get_for_update(db, actor, record_id)
        self._check_transition(record, SalaryStatus.APPROVED, "approve")

        record.status = SalaryStatus.APPROVED.value
        record.approved_by = actor.id
        record.approved_at = datetime.now(timezone.utc)
        record.rejection_reason = None
        await db.flush()

        logger.info(f"Salary {record.id} approved by {actor.id}")
        return record

    async def reject_salary(
        self,
        db: AsyncSession,
        actor: ActorContext,
        record_id: uuid.UUID,
        reason: str,
    ) -> SalaryRecord:
        """Reject a pending salary record. Rejection is final for the month."""
        reason = (reason or "").strip()
        min_length = settings.rejection_reason_min_length
        max_length = settings.rejection_reason_max_length
        if not min_length <= len(reason) <= max_length:
            raise ValidationException(
                f"Rejection reason must be {min_length} to {max_length} characters",
                "reason",
            )

        record = await self._get_for_update(db, actor, record_id)
        self._check_transition(record, SalaryStatus.REJECTED, "reject")

        record.status = SalaryStatus.REJECTED.value
        record.rejection_reason = reason
        record.rejected_by = actor.id
        record.rejected_at = datetime.now(timezone.utc)
        await db.flush()

        logger.info(f"Salary {record.id} rejected by {actor.id}")
        return record

    async def mark_salary_paid(
        self,
        db: AsyncSession,
        actor: ActorContext,
        record_id: uuid.UUID,
        payment: MarkPaidRequest,
    ) -> SalaryRecord:
        """Record the payment of an approved salary record."""
        record = await self._get_for_update(db, actor, record_id)
        self._check_transition(record, SalaryStatus.PAID, "mark paid")

        record.status = SalaryStatus.PAID.value
        record.payment_date = payment.payment_date
        record.payment_mode = payment.payment_mode.value
        record.payment_proof = payment.payment_proof
        if payment.notes:
            record.notes = payment.notes
        record.paid_by = actor.id
        record.paid_at = datetime.now(timezone.utc)
        await db.flush()

        logger.info(f"Salary {record.id} paid by {actor.id} via {record.payment_mode}")
        return record

    async def get_salary_record(
        self,
        db: AsyncSession,
        actor: ActorContext,
        record_id: uuid.UUID,
    ) -> SalaryRecord:
        """Get a salary record. Teachers can only see their own."""
        query = select(SalaryRecord).where(
            SalaryRecord.id == record_id,
            SalaryRecord.tenant_id == actor.tenant_id,
        )
        if actor.has_role(Role.TEACHER):
            query = query.where(SalaryRecord.teacher_id == actor.id)

        result = await db.execute(query)
        record = result.scalar_one_or_none()

        if not record:
            raise NotFoundException("Salary record")

        return record

    async def list_salary_records(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID | None = None,
        month: int | None = None,
        year: int | None = None,
        status: SalaryStatus | None = None,
    ) -> list[SalaryRecord]:
        """List salary records, newest period first. Teachers only get their own."""
        if actor.has_role(Role.TEACHER):
            teacher_id = actor.id

        query = select(SalaryRecord).where(SalaryRecord.tenant_id == actor.tenant_id)

        if teacher_id:
            query = query.where(SalaryRecord.teacher_id == teacher_id)
        if month:
            query = query.where(SalaryRecord.month == month)
        if year:
            query = query.where(SalaryRecord.year == year)
        if status:
            query = query.where(SalaryRecord.status == status.value)

        query = query.order_by(
            SalaryRecord.year.desc(), SalaryRecord.month.desc(), SalaryRecord.created_at
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_salary_summary(
        self,
        db: AsyncSession,
        actor: ActorContext,
        year: int,
    ) -> SalarySummaryResponse:
        """Count records and total net pay per status for a year."""
        query = (
            select(
                SalaryRecord.status,
                func.count(SalaryRecord.id),
                func.coalesce(func.sum(SalaryRecord.net_salary), 0),
            )
            .where(
                SalaryRecord.tenant_id == actor.tenant_id,
                SalaryRecord.year == year,
            )
            .group_by(SalaryRecord.status)
        )
        result = await db.execute(query)

        statuses = {status.value: SalaryStatusTotals() for status in SalaryStatus}
        for status, count, total in result.all():
            statuses[status] = SalaryStatusTotals(
                count=count,
                total_net=Decimal(str(total)).quantize(CENT),
            )

        return SalarySummaryResponse(year=year, statuses=statuses)

    async def _find_record(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        month: int,
        year: int,
    ) -> SalaryRecord | None:
        query = select(SalaryRecord).where(
            SalaryRecord.tenant_id == actor.tenant_id,
            SalaryRecord.teacher_id == teacher_id,
            SalaryRecord.month == month,
            SalaryRecord.year == year,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def _get_for_update(
        self,
        db: AsyncSession,
        actor: ActorContext,
        record_id: uuid.UUID,
    ) -> SalaryRecord:
        query = (
            select(SalaryRecord)
            .where(
                SalaryRecord.id == record_id,
                SalaryRecord.tenant_id == actor.tenant_id,
            )
            .with_for_update()
        )
        result = await db.execute(query)
        record = result.scalar_one_or_none()

        if not record:
            raise NotFoundException("Salary record")

        return record

    def _check_transition(self, record: SalaryRecord, target: SalaryStatus, action: str) -> None:
        if record.can_transition_to(target):
            return

        expected = expected_status_for(target)
        logger.warning(
            f"Rejected '{action}' on salary {record.id}: status is {record.status}, "
            f"expected {expected.value}"
        )
        raise StateTransitionException(action, record.status, expected.value)


def get_salary_service() -> SalaryService:
    """Get salary service instance."""
    return SalaryService()
