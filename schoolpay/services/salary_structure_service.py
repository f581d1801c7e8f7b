"""Versioning of teacher salary structures."""

import logging
import uuid
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.config import settings
from schoolpay.exceptions import (
    InconsistentStateException,
    NotFoundException,
    ValidationException,
)
from schoolpay.models import SalaryStructure
from schoolpay.schemas.salary import (
    SalaryStructureData,
    SalaryStructureResponse,
    SalaryStructureSnapshot,
)
from schoolpay.services.roster_service import get_roster_service
from schoolpay.utils.dates import day_before
from schoolpay.utils.tenant_context import ActorContext

logger = logging.getLogger(__name__)


class SalaryStructureService:
    """Service for a teacher's effective-dated salary structures.

    A teacher has at most one open structure. Setting a new one closes the
    open structure the day before the new one starts.
    """

    async def set_salary_structure(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        data: SalaryStructureData,
        effective_from: date,
    ) -> SalaryStructureSnapshot:
        """Open a new salary structure for a teacher.

        Raises:
            NotFoundException: If the teacher is not a teacher of the school
            ValidationException: If ``effective_from`` does not come after
                the open structure's start
            InconsistentStateException: If the open structure could not be
                closed or the new one written
        """
        teacher = await get_roster_service().get_teacher(db, actor, teacher_id, for_update=True)
        current = await self.get_open_structure(db, actor, teacher.id)
        warnings: list[str] = []

        if current:
            if effective_from <= current.effective_from:
                logger.warning(
                    f"Rejected salary structure for teacher {teacher.id}: {effective_from} "
                    f"is not after the open structure's start {current.effective_from}"
                )
                raise ValidationException(
                    f"effective_from must be after {current.effective_from}, "
                    "the start of the current structure",
                    "effective_from",
                )

            current.close(day_before(effective_from))
            try:
                await db.flush()
            except SQLAlchemyError as e:
                logger.error(f"Closing salary structure {current.id} failed: {e}")
                raise InconsistentStateException(
                    f"Could not close the open salary structure of teacher {teacher.id}"
                ) from e
            logger.info(
                f"Closed salary structure {current.id} of teacher {teacher.id} "
                f"at {current.effective_to}"
            )
        elif effective_from < date.today() - timedelta(days=settings.backdate_warning_days):
            message = (
                f"effective_from {effective_from} is more than "
                f"{settings.backdate_warning_days} days in the past"
            )
            logger.warning(f"Backdated salary structure for teacher {teacher.id}: {message}")
            warnings.append(message)

        structure = SalaryStructure(
            tenant_id=actor.tenant_id,
            teacher_id=teacher.id,
            base_salary=data.base_salary,
            hra=data.hra,
            other_allowances=data.other_allowances,
            fixed_deductions=data.fixed_deductions,
            salary_cycle=data.salary_cycle.value,
            attendance_based_deduction=data.attendance_based_deduction,
            created_by=actor.id,
            effective_from=effective_from,
            effective_to=None,
            is_active=True,
        )
        db.add(structure)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Opening salary structure for teacher {teacher.id} failed: {e}")
            raise InconsistentStateException(
                f"Could not open a salary structure for teacher {teacher.id}"
            ) from e

        logger.info(
            f"Opened salary structure {structure.id} for teacher {teacher.id} from {effective_from}"
        )

        return SalaryStructureSnapshot(
            structure=SalaryStructureResponse.model_validate(structure),
            closed_structure_id=current.id if current else None,
            warnings=warnings,
        )

    async def get_open_structure(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
    ) -> SalaryStructure | None:
        """Get the teacher's open structure, if any."""
        query = select(SalaryStructure).where(
            SalaryStructure.tenant_id == actor.tenant_id,
            SalaryStructure.teacher_id == teacher_id,
            SalaryStructure.open_window(),
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_structure_for_date(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        on: date,
    ) -> SalaryStructure:
        """Get the structure whose window covers ``on``, open or closed."""
        query = select(SalaryStructure).where(
            SalaryStructure.tenant_id == actor.tenant_id,
            SalaryStructure.teacher_id == teacher_id,
            SalaryStructure.active_on(on),
        )
        result = await db.execute(query)
        structure = result.scalar_one_or_none()

        if not structure:
            raise NotFoundException("Salary structure")

        return structure

    async def list_open_structures(
        self,
        db: AsyncSession,
        actor: ActorContext,
    ) -> list[SalaryStructure]:
        """Get the open structure of every teacher in the school."""
        query = (
            select(SalaryStructure)
            .where(
                SalaryStructure.tenant_id == actor.tenant_id,
                SalaryStructure.open_window(),
            )
            .order_by(SalaryStructure.effective_from)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_structure_history(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
    ) -> list[SalaryStructure]:
        """Get every structure of a teacher, oldest first."""
        teacher = await get_roster_service().get_teacher(db, actor, teacher_id)

        query = (
            select(SalaryStructure)
            .where(
                SalaryStructure.tenant_id == actor.tenant_id,
                SalaryStructure.teacher_id == teacher.id,
            )
            .order_by(SalaryStructure.effective_from)
        )
        result = await db.execute(query)
        return list(result.scalars().all())


def get_salary_structure_service() -> SalaryStructureService:
    """Get salary structure service instance."""
    return SalaryStructureService()
