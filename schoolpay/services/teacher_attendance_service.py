"""Teacher attendance aggregation for payroll."""

import uuid
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.exceptions import ValidationException
from schoolpay.models import TeacherAttendanceDay, TeacherAttendanceStatus
from schoolpay.utils.dates import month_bounds
from schoolpay.utils.tenant_context import ActorContext


class TeacherAttendanceService:
    """Read-only queries over teacher attendance days."""

    async def count_absent_days(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        date_from: date,
        date_to: date,
    ) -> int:
        """Count days marked absent in ``[date_from, date_to]``."""
        if date_from > date_to:
            raise ValidationException("date_from must not be after date_to", "date_from")

        query = select(func.count(TeacherAttendanceDay.id)).where(
            TeacherAttendanceDay.tenant_id == actor.tenant_id,
            TeacherAttendanceDay.teacher_id == teacher_id,
            TeacherAttendanceDay.status == TeacherAttendanceStatus.ABSENT.value,
            TeacherAttendanceDay.date >= date_from,
            TeacherAttendanceDay.date <= date_to,
        )
        result = await db.execute(query)
        return result.scalar() or 0

    async def count_absent_days_in_month(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        month: int,
        year: int,
    ) -> int:
        """Count days marked absent in a calendar month."""
        first_day, last_day = month_bounds(month, year)
        return await self.count_absent_days(db, actor, teacher_id, first_day, last_day)

    async def get_month_summary(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        month: int,
        year: int,
    ) -> dict[str, int]:
        """Count recorded days per status for a calendar month.

        Every status is present in the result, with 0 when no day has it.
        """
        first_day, last_day = month_bounds(month, year)

        query = (
            select(TeacherAttendanceDay.status, func.count(TeacherAttendanceDay.id))
            .where(
                TeacherAttendanceDay.tenant_id == actor.tenant_id,
                TeacherAttendanceDay.teacher_id == teacher_id,
                TeacherAttendanceDay.date >= first_day,
                TeacherAttendanceDay.date <= last_day,
            )
            .group_by(TeacherAttendanceDay.status)
        )
        result = await db.execute(query)

        summary = {status.value: 0 for status in TeacherAttendanceStatus}
        for status, count in result.all():
            summary[status] = count
        return summary


def get_teacher_attendance_service() -> TeacherAttendanceService:
    """Get teacher attendance service instance."""
    return TeacherAttendanceService()
