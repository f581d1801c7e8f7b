"""Teacher attendance (read-only input to payroll)."""

import uuid
from datetime import date
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from schoolpay.models.base import TenantScopedModel


class TeacherAttendanceStatus(str, Enum):
    """Teacher attendance status options."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEAVE = "leave"


class TeacherAttendanceDay(TenantScopedModel):
    """Attendance of one teacher on one day.

    Written by the attendance module; payroll only reads it.
    """

    __tablename__ = "teacher_attendance_days"
    __table_args__ = (
        UniqueConstraint("teacher_id", "date", name="uq_teacher_attendance_teacher_date"),
        Index("idx_teacher_attendance_tenant_date", "tenant_id", "date"),
    )

    teacher_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TeacherAttendanceStatus.PRESENT.value,
    )
