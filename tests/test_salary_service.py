"""Tests for salary generation and the salary record lifecycle."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from schoolpay.exceptions import (
    NotFoundException,
    StateTransitionException,
    UniquenessException,
    ValidationException,
)
from schoolpay.models import (
    PaymentMode,
    SalaryRecord,
    SalaryStatus,
    TeacherAttendanceDay,
    TeacherAttendanceStatus,
)
from schoolpay.schemas.salary import MarkPaidRequest, SalaryStructureData
from schoolpay.services.salary_service import compute_salary, get_salary_service
from schoolpay.services.salary_structure_service import get_salary_structure_service


@pytest.fixture
def service():
    return get_salary_service()


@pytest.fixture
async def structure(db, school):
    """Scenario A structure for the school's teacher."""
    snapshot = await get_salary_structure_service().set_salary_structure(
        db,
        school.as_principal,
        school.teacher.id,
        SalaryStructureData(
            base_salary=Decimal("30000"),
            hra=Decimal("3000"),
            other_allowances=Decimal("0"),
            fixed_deductions=Decimal("500"),
            attendance_based_deduction=True,
        ),
        date(2024, 1, 1),
    )
    return snapshot.structure


async def _mark(db, school, teacher, day, status):
    db.add(
        TeacherAttendanceDay(
            tenant_id=school.tenant.id,
            teacher_id=teacher.id,
            date=day,
            status=status.value,
        )
    )
    await db.flush()


def _payment(mode=PaymentMode.BANK) -> MarkPaidRequest:
    return MarkPaidRequest(payment_date=date(2024, 4, 5), payment_mode=mode, payment_proof="TXN-001")


def test_compute_salary_applies_fixed_thirty_day_divisor():
    structure = SimpleNamespace(
        base_salary=Decimal("30000"),
        hra=Decimal("3000"),
        other_allowances=Decimal("0"),
        fixed_deductions=Decimal("500"),
        attendance_based_deduction=True,
    )

    breakdown = compute_salary(structure, absent_days=2)

    assert breakdown.gross_salary == Decimal("33000.00")
    assert breakdown.attendance_deduction == Decimal("2000.00")
    assert breakdown.total_deductions == Decimal("2500.00")
    assert breakdown.net_salary == Decimal("30500.00")


def test_compute_salary_rounds_deduction_half_up():
    structure = SimpleNamespace(
        base_salary=Decimal("1000"),
        hra=Decimal("0"),
        other_allowances=Decimal("0"),
        fixed_deductions=Decimal("0"),
        attendance_based_deduction=True,
    )

    # 1000 / 30 = 33.333...
    assert compute_salary(structure, 1).attendance_deduction == Decimal("33.33")
    # 5 * 1000 / 30 = 166.666...
    assert compute_salary(structure, 5).attendance_deduction == Decimal("166.67")


def test_compute_salary_ignores_absences_without_attendance_deduction():
    structure = SimpleNamespace(
        base_salary=Decimal("30000"),
        hra=Decimal("0"),
        other_allowances=Decimal("1000"),
        fixed_deductions=Decimal("200"),
        attendance_based_deduction=False,
    )

    breakdown = compute_salary(structure, absent_days=4)

    assert breakdown.attendance_deduction == Decimal("0.00")
    assert breakdown.net_salary == Decimal("30800.00")


async def test_generate_salary_scenario_a(db, school, service, structure):
    await _mark(db, school, school.teacher, date(2024, 3, 4), TeacherAttendanceStatus.ABSENT)
    await _mark(db, school, school.teacher, date(2024, 3, 5), TeacherAttendanceStatus.ABSENT)
    await _mark(db, school, school.teacher, date(2024, 3, 6), TeacherAttendanceStatus.LATE)
    await _mark(db, school, school.teacher, date(2024, 4, 1), TeacherAttendanceStatus.ABSENT)

    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)

    assert record.status == SalaryStatus.PENDING.value
    assert record.salary_structure_id == structure.id
    assert record.absent_days == 2
    assert record.gross_salary == Decimal("33000")
    assert record.attendance_deduction == Decimal("2000")
    assert record.total_deductions == Decimal("2500")
    assert record.net_salary == Decimal("30500")
    assert record.generated_by == school.clerk.id


async def test_generate_twice_fails_with_uniqueness(db, school, service, structure):
    await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)

    with pytest.raises(UniquenessException):
        await service.generate_salary(db, school.as_principal, school.teacher.id, 3, 2024)

    count = await db.scalar(
        select(func.count(SalaryRecord.id)).where(
            SalaryRecord.teacher_id == school.teacher.id,
            SalaryRecord.month == 3,
            SalaryRecord.year == 2024,
        )
    )
    assert count == 1


async def test_generate_without_covering_structure_is_not_found(db, school, service, structure):
    with pytest.raises(NotFoundException):
        await service.generate_salary(db, school.as_clerk, school.teacher.id, 12, 2023)

    with pytest.raises(NotFoundException):
        await service.generate_salary(db, school.as_clerk, school.other_teacher.id, 3, 2024)


async def test_generate_uses_structure_in_force_on_first_of_month(db, school, service, structure):
    await get_salary_structure_service().set_salary_structure(
        db,
        school.as_principal,
        school.teacher.id,
        SalaryStructureData(base_salary=Decimal("36000")),
        date(2024, 6, 2),
    )

    june = await service.generate_salary(db, school.as_clerk, school.teacher.id, 6, 2024)
    july = await service.generate_salary(db, school.as_clerk, school.teacher.id, 7, 2024)

    assert june.salary_structure_id == structure.id
    assert july.gross_salary == Decimal("36000")


async def test_generate_for_other_school_teacher_is_not_found(db, school, other_school, service):
    with pytest.raises(NotFoundException):
        await service.generate_salary(db, school.as_clerk, other_school.teacher.id, 3, 2024)


async def test_generate_rejects_invalid_month(db, school, service, structure):
    with pytest.raises(ValidationException):
        await service.generate_salary(db, school.as_clerk, school.teacher.id, 13, 2024)


async def test_full_lifecycle_to_paid(db, school, service, structure):
    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)

    approved = await service.approve_salary(db, school.as_principal, record.id)
    assert approved.status == SalaryStatus.APPROVED.value
    assert approved.approved_by == school.principal.id
    assert approved.approved_at is not None

    paid = await service.mark_salary_paid(db, school.as_clerk, record.id, _payment(PaymentMode.UPI))
    assert paid.status == SalaryStatus.PAID.value
    assert paid.payment_mode == "upi"
    assert paid.payment_proof == "TXN-001"
    assert paid.payment_date == date(2024, 4, 5)
    assert paid.paid_by == school.clerk.id
    assert paid.paid_at is not None


async def test_approve_non_pending_fails(db, school, service, structure):
    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)
    await service.approve_salary(db, school.as_principal, record.id)

    with pytest.raises(StateTransitionException) as exc_info:
        await service.approve_salary(db, school.as_principal, record.id)

    assert exc_info.value.current_status == "approved"
    assert exc_info.value.expected_status == "pending"


async def test_mark_paid_requires_approval(db, school, service, structure):
    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)

    with pytest.raises(StateTransitionException) as exc_info:
        await service.mark_salary_paid(db, school.as_clerk, record.id, _payment())

    assert str(exc_info.value) == "cannot mark paid: expected approved, got pending"


async def test_rejected_salary_cannot_be_paid_scenario_c(db, school, service, structure):
    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)

    rejected = await service.reject_salary(
        db, school.as_principal, record.id, "insufficient attendance data"
    )
    assert rejected.status == SalaryStatus.REJECTED.value
    assert rejected.rejection_reason == "insufficient attendance data"
    assert rejected.rejected_by == school.principal.id

    with pytest.raises(StateTransitionException) as exc_info:
        await service.mark_salary_paid(db, school.as_clerk, record.id, _payment())

    assert "expected approved, got rejected" in str(exc_info.value)


async def test_rejection_is_terminal(db, school, service, structure):
    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)
    await service.reject_salary(db, school.as_principal, record.id, "wrong month")

    with pytest.raises(StateTransitionException):
        await service.approve_salary(db, school.as_principal, record.id)

    with pytest.raises(UniquenessException):
        await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)


@pytest.mark.parametrize("reason", ["", "   ", "bad", " no  ", "x" * 501])
async def test_reject_requires_reason_of_valid_length(db, school, service, structure, reason):
    record = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)

    with pytest.raises(ValidationException):
        await service.reject_salary(db, school.as_principal, record.id, reason)

    assert record.status == SalaryStatus.PENDING.value


async def test_teacher_sees_only_own_records(db, school, service, structure):
    await get_salary_structure_service().set_salary_structure(
        db,
        school.as_principal,
        school.other_teacher.id,
        SalaryStructureData(base_salary=Decimal("20000")),
        date(2024, 1, 1),
    )
    own = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)
    other = await service.generate_salary(db, school.as_clerk, school.other_teacher.id, 3, 2024)

    records = await service.list_salary_records(db, school.as_teacher, teacher_id=school.other_teacher.id)
    assert [r.id for r in records] == [own.id]

    with pytest.raises(NotFoundException):
        await service.get_salary_record(db, school.as_teacher, other.id)

    all_records = await service.list_salary_records(db, school.as_clerk, month=3, year=2024)
    assert {r.id for r in all_records} == {own.id, other.id}


async def test_salary_summary_counts_per_status(db, school, service, structure):
    march = await service.generate_salary(db, school.as_clerk, school.teacher.id, 3, 2024)
    april = await service.generate_salary(db, school.as_clerk, school.teacher.id, 4, 2024)
    await service.generate_salary(db, school.as_clerk, school.teacher.id, 5, 2024)
    await service.approve_salary(db, school.as_principal, march.id)
    await service.mark_salary_paid(db, school.as_clerk, march.id, _payment())
    await service.reject_salary(db, school.as_principal, april.id, "duplicate entry")

    summary = await service.get_salary_summary(db, school.as_clerk, 2024)

    assert summary.statuses["paid"].count == 1
    assert summary.statuses["paid"].total_net == Decimal("32500.00")
    assert summary.statuses["rejected"].count == 1
    assert summary.statuses["pending"].count == 1
    assert summary.statuses["approved"].count == 0
