"""Versioning of student fee configuration.

A student's fee configuration is a set of effective-dated rows: one
``StudentFeeProfile``, an optional ``StudentTransportEnrollment`` and one
``StudentFeeOverride`` per entitlement that departs from the catalog price.
A change never edits those rows. The open rows are closed the day before
the change takes effect and a fresh set is opened, so the tables hold the
full history and any past date can be read back.

All writes of one change happen in the request's transaction while the
student row is locked.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.exceptions import (
    InconsistentStateException,
    NotFoundException,
    StateTransitionException,
    ValidationException,
)
from schoolpay.models import (
    ClassFeeDefault,
    FeeType,
    Student,
    StudentFeeOverride,
    StudentFeeProfile,
    StudentTransportEnrollment,
    TransportRoute,
)
from schoolpay.schemas.fee_config import (
    FeeConfiguration,
    FeeConfigurationSnapshot,
    FeeHistoryResponse,
    FeeOverrideResponse,
    FeeProfileResponse,
    FeeWindowSnapshot,
    TransportEnrollmentResponse,
)
from schoolpay.services.fee_catalog_service import get_fee_catalog_service
from schoolpay.services.roster_service import get_roster_service
from schoolpay.utils.dates import day_before
from schoolpay.utils.tenant_context import ActorContext

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class ClosedWindow:
    """Rows closed by one configuration change."""

    overrides: list[StudentFeeOverride] = field(default_factory=list)
    profiles: list[StudentFeeProfile] = field(default_factory=list)
    enrollments: list[StudentTransportEnrollment] = field(default_factory=list)


class FeeConfigService:
    """Service that opens and closes student fee windows."""

    async def apply_fee_configuration(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student_id: uuid.UUID,
        config: FeeConfiguration,
        effective_from: date | None = None,
    ) -> FeeWindowSnapshot:
        """Replace the student's open fee window with one built from ``config``.

        Args:
            db: Database session (the request's transaction)
            actor: Caller; all ids are resolved in its school
            student_id: Student to configure
            config: Desired entitlements
            effective_from: First day of the new window. Defaults to the
                admission date for a student never configured, else today
                or the start of a window scheduled later than today.

        Returns:
            The rows of the new window and the ids of the rows it closed

        Raises:
            NotFoundException: If any referenced id is unknown to the school
            ValidationException: If dates or amounts are out of range
            InconsistentStateException: If writing the window fails midway
        """
        roster = get_roster_service()
        student = await roster.get_student(db, actor, student_id, for_update=True)

        class_group_id = student.class_group_id
        if config.class_group_id:
            await roster.get_class_group(db, actor, config.class_group_id)
            class_group_id = config.class_group_id

        open_profile = await self._get_open_profile(db, actor, student.id)
        open_enrollment = await self._get_open_enrollment(db, actor, student.id)
        effective_from = self._resolve_effective_from(student, open_profile, effective_from)

        route = await self._resolve_route(db, actor, config, open_enrollment)
        class_fee = await self._resolve_class_fee(
            db, actor, class_group_id, config.class_fee_id, effective_from
        )
        overrides = await self._build_overrides(
            db, actor, student, class_group_id, class_fee, config, effective_from
        )

        closed = await self._close_open_windows(db, actor, student.id, effective_from)

        if class_group_id != student.class_group_id:
            logger.info(
                f"Moving student {student.id} from class {student.class_group_id} "
                f"to {class_group_id} on {effective_from}"
            )
            student.class_group_id = class_group_id

        profile = StudentFeeProfile(
            tenant_id=actor.tenant_id,
            student_id=student.id,
            class_group_id=class_group_id,
            class_fee_id=class_fee.id if class_fee else None,
            transport_enabled=route is not None,
            transport_route=route.route_name if route else None,
            effective_from=effective_from,
            effective_to=None,
            is_active=True,
        )
        db.add(profile)
        db.add_all(overrides)

        enrollment = None
        try:
            await db.flush()
            if route:
                enrollment = StudentTransportEnrollment(
                    tenant_id=actor.tenant_id,
                    student_id=student.id,
                    route_id=route.id,
                    fee_profile_id=profile.id,
                    effective_from=effective_from,
                    effective_to=None,
                    is_active=True,
                )
                db.add(enrollment)
                await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Opening fee window for student {student.id} failed: {e}")
            raise InconsistentStateException(
                f"Fee window of student {student.id} was closed but the new window "
                "could not be written"
            ) from e

        logger.info(
            f"Opened fee window for student {student.id} from {effective_from}: "
            f"{len(overrides)} override(s), transport {'on' if route else 'off'}"
        )

        return FeeWindowSnapshot(
            student_id=student.id,
            effective_from=effective_from,
            profile=FeeProfileResponse.model_validate(profile),
            enrollment=(
                TransportEnrollmentResponse.model_validate(enrollment) if enrollment else None
            ),
            overrides=[FeeOverrideResponse.model_validate(o) for o in overrides],
            closed_override_ids=[o.id for o in closed.overrides],
            closed_profile_ids=[p.id for p in closed.profiles],
            closed_enrollment_ids=[e.id for e in closed.enrollments],
        )

    async def change_student_class(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student_id: uuid.UUID,
        class_group_id: uuid.UUID,
        effective_from: date | None = None,
    ) -> FeeWindowSnapshot:
        """Move a student to another class with that class's default fees.

        The new window carries the class tuition fee at full price, no
        discounts and no transport.
        """
        student = await get_roster_service().get_student(db, actor, student_id)
        if student.class_group_id == class_group_id:
            raise ValidationException("Student is already in this class", "class_group_id")

        config = FeeConfiguration(
            class_group_id=class_group_id,
            transport_enabled=False,
            notes="Class change",
        )
        return await self.apply_fee_configuration(db, actor, student_id, config, effective_from)

    async def get_fee_configuration(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student_id: uuid.UUID,
        as_of: date | None = None,
    ) -> FeeConfigurationSnapshot:
        """Get the fee window in force for a student on a date (default today)."""
        student = await get_roster_service().get_student(db, actor, student_id)
        as_of = as_of or date.today()

        profile = (
            await db.execute(
                select(StudentFeeProfile).where(
                    StudentFeeProfile.tenant_id == actor.tenant_id,
                    StudentFeeProfile.student_id == student.id,
                    StudentFeeProfile.active_on(as_of),
                )
            )
        ).scalar_one_or_none()

        enrollment = (
            await db.execute(
                select(StudentTransportEnrollment).where(
                    StudentTransportEnrollment.tenant_id == actor.tenant_id,
                    StudentTransportEnrollment.student_id == student.id,
                    StudentTransportEnrollment.active_on(as_of),
                )
            )
        ).scalar_one_or_none()

        overrides = (
            await db.execute(
                select(StudentFeeOverride)
                .where(
                    StudentFeeOverride.tenant_id == actor.tenant_id,
                    StudentFeeOverride.student_id == student.id,
                    StudentFeeOverride.active_on(as_of),
                )
                .order_by(StudentFeeOverride.created_at)
            )
        ).scalars().all()

        return FeeConfigurationSnapshot(
            student_id=student.id,
            as_of=as_of,
            configured=profile is not None,
            profile=FeeProfileResponse.model_validate(profile) if profile else None,
            enrollment=(
                TransportEnrollmentResponse.model_validate(enrollment) if enrollment else None
            ),
            overrides=[FeeOverrideResponse.model_validate(o) for o in overrides],
        )

    async def get_fee_history(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student_id: uuid.UUID,
    ) -> FeeHistoryResponse:
        """Get every fee window of a student, open and closed, oldest first."""
        student = await get_roster_service().get_student(db, actor, student_id)

        history = {}
        for key, model in (
            ("profiles", StudentFeeProfile),
            ("enrollments", StudentTransportEnrollment),
            ("overrides", StudentFeeOverride),
        ):
            query = (
                select(model)
                .where(model.tenant_id == actor.tenant_id, model.student_id == student.id)
                .order_by(model.effective_from, model.created_at)
            )
            history[key] = list((await db.execute(query)).scalars().all())

        return FeeHistoryResponse(
            student_id=student.id,
            profiles=[FeeProfileResponse.model_validate(p) for p in history["profiles"]],
            enrollments=[
                TransportEnrollmentResponse.model_validate(e) for e in history["enrollments"]
            ],
            overrides=[FeeOverrideResponse.model_validate(o) for o in history["overrides"]],
        )

    async def close_override(
        self,
        db: AsyncSession,
        actor: ActorContext,
        override_id: uuid.UUID,
        effective_to: date | None = None,
    ) -> StudentFeeOverride:
        """End a single open override; the student pays catalog price afterwards.

        The rest of the student's window is left as it is. ``effective_to`` may
        lie in the future; a configuration change starting earlier cuts it
        back to the day before the change.
        """
        query = select(StudentFeeOverride).where(
            StudentFeeOverride.id == override_id,
            StudentFeeOverride.tenant_id == actor.tenant_id,
        )
        override = (await db.execute(query)).scalar_one_or_none()
        if not override:
            raise NotFoundException("Fee override")

        await get_roster_service().get_student(db, actor, override.student_id, for_update=True)
        # Re-read under the lock
        await db.refresh(override)

        if not override.is_open:
            raise StateTransitionException("close override", "closed", "open")

        effective_to = effective_to or date.today()
        if effective_to < override.effective_from:
            raise ValidationException(
                f"effective_to must not be before {override.effective_from}", "effective_to"
            )

        override.close(effective_to)
        await db.flush()

        logger.info(f"Closed fee override {override.id} of student {override.student_id} at {effective_to}")
        return override

    # --- helpers -------------------------------------------------------

    async def _get_open_profile(
        self, db: AsyncSession, actor: ActorContext, student_id: uuid.UUID
    ) -> StudentFeeProfile | None:
        query = select(StudentFeeProfile).where(
            StudentFeeProfile.tenant_id == actor.tenant_id,
            StudentFeeProfile.student_id == student_id,
            StudentFeeProfile.open_window(),
        )
        return (await db.execute(query)).scalar_one_or_none()

    async def _get_open_enrollment(
        self, db: AsyncSession, actor: ActorContext, student_id: uuid.UUID
    ) -> StudentTransportEnrollment | None:
        query = select(StudentTransportEnrollment).where(
            StudentTransportEnrollment.tenant_id == actor.tenant_id,
            StudentTransportEnrollment.student_id == student_id,
            StudentTransportEnrollment.open_window(),
        )
        return (await db.execute(query)).scalar_one_or_none()

    def _resolve_effective_from(
        self,
        student: Student,
        open_profile: StudentFeeProfile | None,
        requested: date | None,
    ) -> date:
        """Pick the first day of the new window and check it against history."""
        admission = student.admission_date

        if requested is None:
            if open_profile is None and admission:
                requested = admission
            else:
                requested = date.today()
                if admission and requested < admission:
                    requested = admission
                # A window scheduled ahead (next term) is replaced on its own start
                if open_profile and requested < open_profile.effective_from:
                    requested = open_profile.effective_from

        if admission and requested < admission:
            logger.warning(
                f"Rejected fee window for student {student.id}: {requested} is before "
                f"admission on {admission}"
            )
            raise ValidationException(
                f"effective_from must not be before the admission date {admission}",
                "effective_from",
            )

        if open_profile and requested < open_profile.effective_from:
            logger.warning(
                f"Rejected fee window for student {student.id}: {requested} is before "
                f"the open window starting {open_profile.effective_from}"
            )
            raise ValidationException(
                f"effective_from must not be before the current window start "
                f"{open_profile.effective_from}",
                "effective_from",
            )

        return requested

    async def _resolve_route(
        self,
        db: AsyncSession,
        actor: ActorContext,
        config: FeeConfiguration,
        open_enrollment: StudentTransportEnrollment | None,
    ) -> TransportRoute | None:
        """Get the route of the new window, reusing the current one if none is given."""
        roster = get_roster_service()

        if not config.transport_enabled:
            if config.transport_route_id:
                await roster.get_route(db, actor, config.transport_route_id)
            return None

        if config.transport_route_id:
            return await roster.get_route(db, actor, config.transport_route_id)
        if open_enrollment:
            return await roster.get_route(db, actor, open_enrollment.route_id)

        raise ValidationException(
            "A transport route is required to enable transport", "transport_route_id"
        )

    async def _resolve_class_fee(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_group_id: uuid.UUID | None,
        class_fee_id: uuid.UUID | None,
        effective_from: date,
    ) -> ClassFeeDefault | None:
        """Get the selected class fee, or the class's tuition default."""
        catalog = get_fee_catalog_service()

        if class_fee_id:
            class_fee = await catalog.get_class_fee(db, actor, class_fee_id)
            if class_fee.class_group_id != class_group_id:
                raise ValidationException(
                    "Class fee does not belong to the student's class", "class_fee_id"
                )
            return class_fee

        if class_group_id is None:
            return None
        return await catalog.get_tuition_default(db, actor, class_group_id, effective_from)

    async def _build_overrides(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student: Student,
        class_group_id: uuid.UUID | None,
        class_fee: ClassFeeDefault | None,
        config: FeeConfiguration,
        effective_from: date,
    ) -> list[StudentFeeOverride]:
        """Create (unsaved) override rows for entitlements below catalog price."""
        catalog = get_fee_catalog_service()
        overrides: list[StudentFeeOverride] = []
        seen: set[uuid.UUID | None] = set()

        def add(category_id, field_name, discount=None, full_free=False):
            if category_id in seen:
                raise ValidationException(
                    "Fee category is configured more than once", field_name
                )
            seen.add(category_id)
            overrides.append(
                StudentFeeOverride(
                    tenant_id=actor.tenant_id,
                    student_id=student.id,
                    fee_category_id=category_id,
                    discount_amount=None if full_free else discount,
                    is_full_free=full_free,
                    applied_by=actor.id,
                    notes=config.notes,
                    effective_from=effective_from,
                    effective_to=None,
                    is_active=True,
                )
            )

        # Class (tuition) fee
        if config.class_fee_discount > ZERO:
            if class_fee is None:
                raise ValidationException(
                    "The student's class has no class fee to discount", "class_fee_discount"
                )
            self._check_discount(config.class_fee_discount, class_fee.amount, "class_fee_discount")
            add(class_fee.fee_category_id, "class_fee_discount", config.class_fee_discount)

        # Transport
        if config.transport_fee_discount > ZERO:
            if not config.transport_enabled:
                raise ValidationException(
                    "A transport discount requires transport to be enabled",
                    "transport_fee_discount",
                )
            transport = await catalog.get_transport_category(db, actor)
            if transport is None:
                raise ValidationException(
                    "The school has no transport fee category", "transport_fee_discount"
                )
            amount = await catalog.get_catalog_amount(
                db, actor, class_group_id, transport.id, effective_from
            )
            self._check_discount(config.transport_fee_discount, amount, "transport_fee_discount")
            add(transport.id, "transport_fee_discount", config.transport_fee_discount)

        # Other fees: disabled means fully exempt
        for other in config.other_fees:
            category = await catalog.get_fee_category(db, actor, other.fee_category_id)
            if category.fee_type != FeeType.OTHER.value:
                raise ValidationException(
                    f"Fee category {category.name} is not an optional fee", "other_fees"
                )
            if not other.enabled:
                add(category.id, "other_fees", full_free=True)
            elif other.discount > ZERO:
                amount = await catalog.get_catalog_amount(
                    db, actor, class_group_id, category.id, effective_from
                )
                self._check_discount(other.discount, amount, "other_fees")
                add(category.id, "other_fees", other.discount)

        # Custom fees
        for custom in config.custom_fees:
            definition = await catalog.get_custom_fee(db, actor, custom.custom_fee_id)
            if definition.class_group_id not in (None, class_group_id):
                raise ValidationException(
                    "Custom fee is not offered to the student's class", "custom_fees"
                )
            if custom.exempt:
                add(definition.fee_category_id, "custom_fees", full_free=True)
            elif custom.discount > ZERO:
                self._check_discount(custom.discount, definition.amount, "custom_fees")
                add(definition.fee_category_id, "custom_fees", custom.discount)

        return overrides

    @staticmethod
    def _check_discount(discount: Decimal, amount: Decimal | None, field_name: str) -> None:
        if amount is not None and discount > amount:
            raise ValidationException(
                f"Discount {discount} exceeds the catalog amount {amount}", field_name
            )

    async def _close_open_windows(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student_id: uuid.UUID,
        effective_from: date,
    ) -> ClosedWindow:
        """End every row of the student still in force on ``effective_from``.

        Open rows are closed the day before. Rows closed earlier with an end
        date on or after ``effective_from`` (an override withdrawn ahead of
        time) are cut back to the same day, so no two windows overlap.
        """
        cutoff = day_before(effective_from)
        closed = ClosedWindow()

        for model, bucket in (
            (StudentFeeOverride, closed.overrides),
            (StudentFeeProfile, closed.profiles),
            (StudentTransportEnrollment, closed.enrollments),
        ):
            query = select(model).where(
                model.tenant_id == actor.tenant_id,
                model.student_id == student_id,
                or_(model.open_window(), model.effective_to >= effective_from),
            )
            for row in (await db.execute(query)).scalars().all():
                row.close(cutoff)
                bucket.append(row)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Closing fee window of student {student_id} failed: {e}")
            raise InconsistentStateException(
                f"Could not close the open fee window of student {student_id}"
            ) from e

        if closed.profiles or closed.overrides or closed.enrollments:
            logger.info(
                f"Closed fee window of student {student_id} at {cutoff}: "
                f"{len(closed.overrides)} override(s), {len(closed.profiles)} profile(s), "
                f"{len(closed.enrollments)} enrollment(s)"
            )
        return closed


def get_fee_config_service() -> FeeConfigService:
    """Get fee config service instance."""
    return FeeConfigService()
