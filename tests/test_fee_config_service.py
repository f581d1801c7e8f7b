"""Tests for student fee window versioning."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from schoolpay.exceptions import (
    InconsistentStateException,
    NotFoundException,
    StateTransitionException,
    ValidationException,
)
from schoolpay.models import (
    StudentFeeOverride,
    StudentFeeProfile,
    StudentTransportEnrollment,
)
from schoolpay.schemas.fee_config import CustomFeeConfig, FeeConfiguration, OtherFeeConfig
from schoolpay.services.fee_config_service import get_fee_config_service


@pytest.fixture
def service():
    return get_fee_config_service()


async def _open_rows(db, model, student_id):
    query = select(model).where(model.student_id == student_id, model.open_window())
    return list((await db.execute(query)).scalars().all())


async def _all_rows(db, model, student_id):
    query = select(model).where(model.student_id == student_id).order_by(model.effective_from)
    return list((await db.execute(query)).scalars().all())


async def test_first_configuration_starts_on_admission_date(db, school, service):
    snapshot = await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration()
    )

    assert snapshot.effective_from == date(2024, 1, 1)
    assert snapshot.profile.transport_enabled is False
    assert snapshot.profile.class_fee_id == school.grade1_tuition.id
    assert snapshot.profile.effective_to is None
    assert snapshot.enrollment is None
    assert snapshot.overrides == []
    assert snapshot.closed_profile_ids == []


async def test_full_price_entitlements_insert_no_override(db, school, service):
    config = FeeConfiguration(
        other_fees=[OtherFeeConfig(fee_category_id=school.library.id, enabled=True)],
        custom_fees=[CustomFeeConfig(custom_fee_id=school.trip_fee.id)],
    )

    snapshot = await service.apply_fee_configuration(db, school.as_clerk, school.student.id, config)

    assert snapshot.overrides == []
    assert await _open_rows(db, StudentFeeOverride, school.student.id) == []
    assert len(await _open_rows(db, StudentFeeProfile, school.student.id)) == 1


async def test_each_departure_from_full_price_opens_one_override(db, school, service):
    config = FeeConfiguration(
        class_fee_discount=Decimal("100"),
        transport_enabled=True,
        transport_route_id=school.route_a.id,
        transport_fee_discount=Decimal("50"),
        other_fees=[
            OtherFeeConfig(fee_category_id=school.library.id, enabled=False),
            OtherFeeConfig(fee_category_id=school.lab.id, enabled=True, discount=Decimal("20")),
        ],
        custom_fees=[CustomFeeConfig(custom_fee_id=school.trip_fee.id, exempt=True)],
        notes="Sibling discount",
    )

    snapshot = await service.apply_fee_configuration(
        db, school.as_principal, school.student.id, config, date(2024, 2, 1)
    )

    by_category = {o.fee_category_id: o for o in snapshot.overrides}
    assert set(by_category) == {
        school.tuition.id,
        school.transport.id,
        school.library.id,
        school.lab.id,
        school.trip.id,
    }
    assert by_category[school.tuition.id].discount_amount == Decimal("100")
    assert by_category[school.transport.id].discount_amount == Decimal("50")
    assert by_category[school.library.id].is_full_free is True
    assert by_category[school.library.id].discount_amount is None
    assert by_category[school.lab.id].discount_amount == Decimal("20")
    assert by_category[school.trip.id].is_full_free is True
    assert all(o.applied_by == school.principal.id for o in snapshot.overrides)
    assert all(o.notes == "Sibling discount" for o in snapshot.overrides)

    assert snapshot.profile.transport_enabled is True
    assert snapshot.profile.transport_route == "Route A"
    assert snapshot.enrollment.route_id == school.route_a.id
    assert snapshot.enrollment.fee_profile_id == snapshot.profile.id


async def test_class_change_closes_override_not_carried_over(db, school, service):
    """A discount omitted from the new class's configuration ends the day before."""
    first = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(
            other_fees=[
                OtherFeeConfig(
                    fee_category_id=school.library.id, enabled=True, discount=Decimal("200")
                )
            ]
        ),
        date(2024, 1, 1),
    )
    library_override = first.overrides[0]

    snapshot = await service.change_student_class(
        db, school.as_clerk, school.student.id, school.grade2.id, date(2024, 6, 1)
    )

    closed = await db.get(StudentFeeOverride, library_override.id)
    assert closed.effective_to == date(2024, 5, 31)
    assert closed.is_active is False
    assert library_override.id in snapshot.closed_override_ids
    assert await _open_rows(db, StudentFeeOverride, school.student.id) == []

    assert snapshot.effective_from == date(2024, 6, 1)
    assert snapshot.profile.class_group_id == school.grade2.id
    assert snapshot.profile.class_fee_id == school.grade2_tuition.id
    assert snapshot.profile.transport_enabled is False
    assert school.student.class_group_id == school.grade2.id


async def test_class_change_to_current_class_is_rejected(db, school, service):
    with pytest.raises(ValidationException):
        await service.change_student_class(db, school.as_clerk, school.student.id, school.grade1.id)


async def test_closed_window_ends_day_before_successor(db, school, service):
    await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration(), date(2024, 1, 1)
    )
    await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(class_fee_discount=Decimal("10")),
        date(2024, 4, 1),
    )

    profiles = await _all_rows(db, StudentFeeProfile, school.student.id)
    assert len(profiles) == 2
    assert profiles[0].effective_to == date(2024, 3, 31)
    assert profiles[0].effective_to >= profiles[0].effective_from
    assert profiles[0].is_active is False
    assert profiles[1].is_open


async def test_reapplying_same_configuration_is_idempotent_in_result(db, school, service):
    config = FeeConfiguration(
        class_fee_discount=Decimal("150"),
        transport_enabled=True,
        transport_route_id=school.route_b.id,
    )
    first = await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, config, date(2024, 3, 1)
    )
    second = await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, config, date(2024, 3, 1)
    )

    assert second.closed_profile_ids == [first.profile.id]
    assert len(await _all_rows(db, StudentFeeProfile, school.student.id)) == 2

    for field in ("effective_from", "class_fee_id", "transport_enabled", "transport_route"):
        assert getattr(second.profile, field) == getattr(first.profile, field)
    assert [(o.fee_category_id, o.discount_amount) for o in second.overrides] == [
        (o.fee_category_id, o.discount_amount) for o in first.overrides
    ]

    open_overrides = await _open_rows(db, StudentFeeOverride, school.student.id)
    assert len(open_overrides) == 1

    # The superseded same-day window never matches a point-in-time read
    current = await service.get_fee_configuration(
        db, school.as_clerk, school.student.id, date(2024, 3, 1)
    )
    assert current.profile.id == second.profile.id


async def test_effective_from_before_admission_is_rejected(db, school, service):
    with pytest.raises(ValidationException) as exc_info:
        await service.apply_fee_configuration(
            db, school.as_clerk, school.student.id, FeeConfiguration(), date(2023, 12, 31)
        )

    assert exc_info.value.errors[0]["field"] == "effective_from"


async def test_effective_from_before_open_window_is_rejected(db, school, service):
    await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration(), date(2024, 3, 1)
    )

    with pytest.raises(ValidationException):
        await service.apply_fee_configuration(
            db, school.as_clerk, school.student.id, FeeConfiguration(), date(2024, 2, 1)
        )

    assert len(await _all_rows(db, StudentFeeProfile, school.student.id)) == 1


async def test_other_school_ids_are_not_found(db, school, other_school, service):
    with pytest.raises(NotFoundException):
        await service.apply_fee_configuration(
            db, school.as_clerk, other_school.student.id, FeeConfiguration()
        )

    with pytest.raises(NotFoundException):
        await service.apply_fee_configuration(
            db,
            school.as_clerk,
            school.student.id,
            FeeConfiguration(transport_enabled=True, transport_route_id=other_school.route_a.id),
        )

    with pytest.raises(NotFoundException):
        await service.apply_fee_configuration(
            db,
            school.as_clerk,
            school.student.id,
            FeeConfiguration(class_group_id=other_school.grade1.id),
        )

    with pytest.raises(NotFoundException):
        await service.apply_fee_configuration(
            db,
            school.as_clerk,
            school.student.id,
            FeeConfiguration(
                other_fees=[OtherFeeConfig(fee_category_id=other_school.library.id, enabled=False)]
            ),
        )


async def test_same_category_twice_is_rejected(db, school, service):
    config = FeeConfiguration(
        other_fees=[
            OtherFeeConfig(fee_category_id=school.library.id, enabled=False),
            OtherFeeConfig(fee_category_id=school.library.id, enabled=True, discount=Decimal("5")),
        ]
    )

    with pytest.raises(ValidationException):
        await service.apply_fee_configuration(db, school.as_clerk, school.student.id, config)


async def test_discount_above_catalog_amount_is_rejected(db, school, service):
    with pytest.raises(ValidationException) as exc_info:
        await service.apply_fee_configuration(
            db,
            school.as_clerk,
            school.student.id,
            FeeConfiguration(class_fee_discount=Decimal("1000.01")),
        )

    assert exc_info.value.errors[0]["field"] == "class_fee_discount"


async def test_transport_reuses_route_of_closed_enrollment(db, school, service):
    first = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(transport_enabled=True, transport_route_id=school.route_b.id),
        date(2024, 1, 1),
    )

    second = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(transport_enabled=True, transport_fee_discount=Decimal("25")),
        date(2024, 9, 1),
    )

    assert second.enrollment.route_id == school.route_b.id
    assert second.profile.transport_route == "Route B"
    assert second.closed_enrollment_ids == [first.enrollment.id]
    assert len(await _open_rows(db, StudentTransportEnrollment, school.student.id)) == 1


async def test_transport_without_any_route_is_rejected(db, school, service):
    with pytest.raises(ValidationException) as exc_info:
        await service.apply_fee_configuration(
            db, school.as_clerk, school.student.id, FeeConfiguration(transport_enabled=True)
        )

    assert exc_info.value.errors[0]["field"] == "transport_route_id"


async def test_disabling_transport_closes_enrollment(db, school, service):
    await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(transport_enabled=True, transport_route_id=school.route_a.id),
        date(2024, 1, 1),
    )

    snapshot = await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration(), date(2024, 7, 1)
    )

    assert snapshot.enrollment is None
    assert snapshot.profile.transport_enabled is False
    assert len(snapshot.closed_enrollment_ids) == 1
    assert await _open_rows(db, StudentTransportEnrollment, school.student.id) == []

    enrollments = await _all_rows(db, StudentTransportEnrollment, school.student.id)
    assert enrollments[0].effective_to == date(2024, 6, 30)


async def test_point_in_time_reads_follow_history(db, school, service):
    await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(class_fee_discount=Decimal("100")),
        date(2024, 1, 1),
    )
    await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration(), date(2024, 5, 1)
    )

    january = await service.get_fee_configuration(
        db, school.as_clerk, school.student.id, date(2024, 1, 15)
    )
    assert january.configured is True
    assert [o.discount_amount for o in january.overrides] == [Decimal("100")]

    may = await service.get_fee_configuration(db, school.as_clerk, school.student.id, date(2024, 5, 1))
    assert may.overrides == []
    assert may.profile.effective_from == date(2024, 5, 1)

    history = await service.get_fee_history(db, school.as_clerk, school.student.id)
    assert [p.effective_from for p in history.profiles] == [date(2024, 1, 1), date(2024, 5, 1)]
    assert len(history.overrides) == 1


async def test_unconfigured_student_has_no_window(db, school, service):
    snapshot = await service.get_fee_configuration(db, school.as_clerk, school.student.id)

    assert snapshot.configured is False
    assert snapshot.profile is None


async def test_close_override_withdraws_single_discount(db, school, service):
    snapshot = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(
            class_fee_discount=Decimal("100"),
            other_fees=[OtherFeeConfig(fee_category_id=school.lab.id, enabled=False)],
        ),
        date(2024, 1, 1),
    )
    lab_override = next(o for o in snapshot.overrides if o.fee_category_id == school.lab.id)

    closed = await service.close_override(db, school.as_principal, lab_override.id, date(2024, 3, 31))

    assert closed.effective_to == date(2024, 3, 31)
    assert closed.is_open is False
    open_overrides = await _open_rows(db, StudentFeeOverride, school.student.id)
    assert [o.fee_category_id for o in open_overrides] == [school.tuition.id]
    assert len(await _open_rows(db, StudentFeeProfile, school.student.id)) == 1

    with pytest.raises(StateTransitionException):
        await service.close_override(db, school.as_principal, lab_override.id)


async def test_close_override_of_other_school_is_not_found(db, school, other_school, service):
    snapshot = await service.apply_fee_configuration(
        db,
        other_school.as_clerk,
        other_school.student.id,
        FeeConfiguration(class_fee_discount=Decimal("100")),
    )

    with pytest.raises(NotFoundException):
        await service.close_override(db, school.as_principal, snapshot.overrides[0].id)


def _lab_config(lab_id, **kwargs) -> FeeConfiguration:
    return FeeConfiguration(other_fees=[OtherFeeConfig(fee_category_id=lab_id, **kwargs)])


async def test_reconfiguring_cuts_back_override_closed_ahead_of_time(db, school, service):
    today = date.today()
    snapshot = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        _lab_config(school.lab.id, enabled=False),
        date(2024, 1, 1),
    )
    exemption_id = snapshot.overrides[0].id
    await service.close_override(db, school.as_principal, exemption_id, today + timedelta(days=30))

    reapplied = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        _lab_config(school.lab.id, enabled=True, discount=Decimal("10")),
    )

    assert exemption_id in reapplied.closed_override_ids
    current = await service.get_fee_configuration(
        db, school.as_clerk, school.student.id, today + timedelta(days=1)
    )
    lab_rows = [o for o in current.overrides if o.fee_category_id == school.lab.id]
    assert len(lab_rows) == 1
    assert lab_rows[0].discount_amount == Decimal("10")
    assert lab_rows[0].is_full_free is False

    history = await _all_rows(db, StudentFeeOverride, school.student.id)
    exemption = next(o for o in history if o.id == exemption_id)
    assert exemption.effective_to == today - timedelta(days=1)


async def test_close_override_then_reapply_same_day_reads_one_row_per_category(
    db, school, service
):
    snapshot = await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(
            class_fee_discount=Decimal("100"),
            other_fees=[OtherFeeConfig(fee_category_id=school.lab.id, enabled=False)],
        ),
        date(2024, 1, 1),
    )
    lab_override = next(o for o in snapshot.overrides if o.fee_category_id == school.lab.id)
    await service.close_override(db, school.as_principal, lab_override.id)

    await service.apply_fee_configuration(
        db,
        school.as_clerk,
        school.student.id,
        FeeConfiguration(
            class_fee_discount=Decimal("100"),
            other_fees=[OtherFeeConfig(fee_category_id=school.lab.id, enabled=False)],
        ),
    )

    current = await service.get_fee_configuration(db, school.as_clerk, school.student.id)
    categories = [o.fee_category_id for o in current.overrides]
    assert len(categories) == 2
    assert set(categories) == {school.tuition.id, school.lab.id}


async def test_default_date_follows_window_scheduled_ahead(db, school, service):
    next_term = date.today() + timedelta(days=30)
    scheduled = await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration(), next_term
    )

    snapshot = await service.apply_fee_configuration(
        db, school.as_clerk, school.student.id, FeeConfiguration(class_fee_discount=Decimal("50"))
    )

    assert snapshot.effective_from == next_term
    assert snapshot.closed_profile_ids == [scheduled.profile.id]
    assert len(await _open_rows(db, StudentFeeProfile, school.student.id)) == 1


async def test_open_override_without_category_is_unique_per_student(db, school):
    for _ in range(2):
        db.add(
            StudentFeeOverride(
                tenant_id=school.tenant.id,
                student_id=school.student.id,
                fee_category_id=None,
                discount_amount=Decimal("25"),
                effective_from=date(2024, 1, 1),
                is_active=True,
            )
        )

    with pytest.raises(IntegrityError):
        await db.flush()


async def test_failure_while_closing_raises_inconsistent_state(db, school, service, monkeypatch):
    async def failing_flush(*args, **kwargs):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(db, "flush", failing_flush)

    with pytest.raises(InconsistentStateException):
        await service.apply_fee_configuration(
            db, school.as_clerk, school.student.id, FeeConfiguration()
        )


async def test_at_most_one_open_override_per_category(db, school, service):
    for day in (date(2024, 1, 1), date(2024, 2, 1), date(2024, 2, 1), date(2024, 3, 1)):
        await service.apply_fee_configuration(
            db,
            school.as_clerk,
            school.student.id,
            FeeConfiguration(
                class_fee_discount=Decimal("10"),
                other_fees=[OtherFeeConfig(fee_category_id=school.lab.id, enabled=False)],
            ),
            day,
        )

    query = (
        select(StudentFeeOverride.fee_category_id, func.count())
        .where(StudentFeeOverride.student_id == school.student.id, StudentFeeOverride.open_window())
        .group_by(StudentFeeOverride.fee_category_id)
    )
    counts = dict((await db.execute(query)).all())
    assert counts == {school.tuition.id: 1, school.lab.id: 1}
