"""Teacher salary structures and monthly salary records."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolpay.models.base import EffectiveWindowMixin, TenantScopedModel


class SalaryCycle(str, Enum):
    """How often a structure is paid out."""

    MONTHLY = "monthly"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"


class SalaryStatus(str, Enum):
    """Lifecycle states of a salary record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class PaymentMode(str, Enum):
    """How a salary was paid out."""

    BANK = "bank"
    CASH = "cash"
    UPI = "upi"


# Legal transitions: status -> statuses reachable from it.
# REJECTED and PAID are terminal.
SALARY_TRANSITIONS: dict[SalaryStatus, frozenset[SalaryStatus]] = {
    SalaryStatus.PENDING: frozenset({SalaryStatus.APPROVED, SalaryStatus.REJECTED}),
    SalaryStatus.APPROVED: frozenset({SalaryStatus.PAID}),
    SalaryStatus.REJECTED: frozenset(),
    SalaryStatus.PAID: frozenset(),
}


class SalaryStructure(TenantScopedModel, EffectiveWindowMixin):
    """A teacher's compensation for a window. At most one is open per teacher."""

    __tablename__ = "salary_structures"
    __table_args__ = (
        Index("idx_salary_structures_teacher", "tenant_id", "teacher_id"),
        Index(
            "uq_salary_structures_open",
            "teacher_id",
            unique=True,
            postgresql_where=text("effective_to IS NULL AND is_active"),
            sqlite_where=text("effective_to IS NULL AND is_active"),
        ),
    )

    teacher_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    base_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    hra: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    other_allowances: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    fixed_deductions: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    salary_cycle: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SalaryCycle.MONTHLY.value
    )
    attendance_based_deduction: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    @property
    def gross_salary(self) -> Decimal:
        """Base salary plus allowances."""
        return self.base_salary + self.hra + self.other_allowances


class SalaryRecord(TenantScopedModel):
    """One teacher's payroll for one month.

    Created once per (teacher, month, year) and afterwards changed only by
    status transitions; never versioned or superseded.
    """

    __tablename__ = "salary_records"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "teacher_id", "month", "year", name="uq_salary_records_teacher_period"
        ),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_salary_records_month"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'paid')",
            name="ck_salary_records_status",
        ),
        Index("idx_salary_records_tenant_period", "tenant_id", "year", "month"),
    )

    teacher_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    salary_structure_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("salary_structures.id", ondelete="RESTRICT"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    attendance_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    absent_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SalaryStatus.PENDING.value
    )
    generated_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    paid_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_mode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    payment_proof: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    teacher = relationship("User", foreign_keys=[teacher_id], lazy="selectin")
    salary_structure = relationship("SalaryStructure", lazy="selectin")

    def can_transition_to(self, target: SalaryStatus) -> bool:
        """Check if the state machine allows moving to ``target``."""
        return target in SALARY_TRANSITIONS[SalaryStatus(self.status)]
