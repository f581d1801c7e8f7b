"""Pydantic schemas for salary structures and salary records."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from schoolpay.models.salary import PaymentMode, SalaryCycle
from schoolpay.schemas.common import WindowMixin


class SalaryStructureData(BaseModel):
    """Compensation terms of a salary structure."""

    base_salary: Decimal = Field(..., gt=0, decimal_places=2)
    hra: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    other_allowances: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    fixed_deductions: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    salary_cycle: SalaryCycle = SalaryCycle.MONTHLY
    attendance_based_deduction: bool = False


class SalaryStructureCreate(SalaryStructureData):
    """Request body for setting a teacher's salary structure."""

    teacher_id: uuid.UUID
    effective_from: date


class SalaryStructureResponse(WindowMixin):
    """Schema for salary structure response."""

    teacher_id: uuid.UUID
    base_salary: Decimal
    hra: Decimal
    other_allowances: Decimal
    fixed_deductions: Decimal
    gross_salary: Decimal
    salary_cycle: str
    attendance_based_deduction: bool
    created_by: uuid.UUID | None = None


class SalaryStructureSnapshot(BaseModel):
    """Result of setting a salary structure."""

    structure: SalaryStructureResponse
    closed_structure_id: uuid.UUID | None = None
    warnings: list[str] = Field(default_factory=list)


class GenerateSalaryRequest(BaseModel):
    """Request body for generating a monthly salary record."""

    teacher_id: uuid.UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class RejectSalaryRequest(BaseModel):
    """Request body for rejecting a salary record."""

    reason: str


class MarkPaidRequest(BaseModel):
    """Payment details recorded when a salary is paid."""

    payment_date: date
    payment_mode: PaymentMode
    payment_proof: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)


class SalaryRecordResponse(BaseModel):
    """Schema for salary record response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    teacher_id: uuid.UUID
    salary_structure_id: uuid.UUID
    month: int
    year: int
    gross_salary: Decimal
    attendance_deduction: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    absent_days: int
    status: str
    generated_by: uuid.UUID | None = None
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    rejected_by: uuid.UUID | None = None
    rejected_at: datetime | None = None
    paid_by: uuid.UUID | None = None
    paid_at: datetime | None = None
    payment_date: date | None = None
    payment_mode: str | None = None
    payment_proof: str | None = None
    notes: str | None = None


class SalaryStatusTotals(BaseModel):
    """Count and net total of records in one status."""

    count: int = 0
    total_net: Decimal = Decimal("0")


class SalarySummaryResponse(BaseModel):
    """Payroll totals for a year, per status."""

    year: int
    statuses: dict[str, SalaryStatusTotals]
