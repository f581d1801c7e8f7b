"""Read-only access to the fee catalog.

Catalog rows are effective-dated reference data maintained elsewhere; this
service only answers "what did the catalog say on this date".
"""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.exceptions import NotFoundException
from schoolpay.models import (
    ClassFeeDefault,
    FeeCategory,
    FeeType,
    OptionalFeeDefinition,
)
from schoolpay.utils.tenant_context import ActorContext


class FeeCatalogService:
    """Service for reading class fee defaults and optional fee definitions."""

    async def get_fee_category(
        self,
        db: AsyncSession,
        actor: ActorContext,
        category_id: uuid.UUID,
    ) -> FeeCategory:
        """Get a fee category of the actor's school."""
        query = select(FeeCategory).where(
            FeeCategory.id == category_id,
            FeeCategory.tenant_id == actor.tenant_id,
        )
        result = await db.execute(query)
        category = result.scalar_one_or_none()

        if not category:
            raise NotFoundException("Fee category")

        return category

    async def get_transport_category(
        self,
        db: AsyncSession,
        actor: ActorContext,
    ) -> FeeCategory | None:
        """Get the school's transport fee category, if it has one."""
        query = (
            select(FeeCategory)
            .where(
                FeeCategory.tenant_id == actor.tenant_id,
                FeeCategory.fee_type == FeeType.TRANSPORT.value,
                FeeCategory.is_active == True,
            )
            .order_by(FeeCategory.created_at)
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_class_fee(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_fee_id: uuid.UUID,
    ) -> ClassFeeDefault:
        """Get a class fee default row by id."""
        query = select(ClassFeeDefault).where(
            ClassFeeDefault.id == class_fee_id,
            ClassFeeDefault.tenant_id == actor.tenant_id,
        )
        result = await db.execute(query)
        class_fee = result.scalar_one_or_none()

        if not class_fee:
            raise NotFoundException("Class fee")

        return class_fee

    async def get_custom_fee(
        self,
        db: AsyncSession,
        actor: ActorContext,
        definition_id: uuid.UUID,
    ) -> OptionalFeeDefinition:
        """Get a custom fee definition by id."""
        query = (
            select(OptionalFeeDefinition)
            .join(FeeCategory, OptionalFeeDefinition.fee_category_id == FeeCategory.id)
            .where(
                OptionalFeeDefinition.id == definition_id,
                OptionalFeeDefinition.tenant_id == actor.tenant_id,
                FeeCategory.fee_type == FeeType.CUSTOM.value,
            )
        )
        result = await db.execute(query)
        definition = result.scalar_one_or_none()

        if not definition:
            raise NotFoundException("Custom fee")

        return definition

    async def get_class_fee_defaults(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_group_id: uuid.UUID,
        on: date,
    ) -> list[ClassFeeDefault]:
        """Get every class fee default of a class that is active on a date."""
        query = (
            select(ClassFeeDefault)
            .where(
                ClassFeeDefault.tenant_id == actor.tenant_id,
                ClassFeeDefault.class_group_id == class_group_id,
                ClassFeeDefault.active_on(on),
            )
            .order_by(ClassFeeDefault.effective_from)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_tuition_default(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_group_id: uuid.UUID,
        on: date,
    ) -> ClassFeeDefault | None:
        """Get the class's general fee: a tuition row, or one with no category."""
        query = (
            select(ClassFeeDefault)
            .outerjoin(FeeCategory, ClassFeeDefault.fee_category_id == FeeCategory.id)
            .where(
                ClassFeeDefault.tenant_id == actor.tenant_id,
                ClassFeeDefault.class_group_id == class_group_id,
                ClassFeeDefault.active_on(on),
                or_(
                    ClassFeeDefault.fee_category_id.is_(None),
                    FeeCategory.fee_type == FeeType.TUITION.value,
                ),
            )
            .order_by(ClassFeeDefault.effective_from.desc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_optional_fees(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_group_id: uuid.UUID | None,
        on: date,
        fee_type: FeeType | None = None,
    ) -> list[OptionalFeeDefinition]:
        """Get optional fee definitions for a class (or all classes) on a date."""
        query = (
            select(OptionalFeeDefinition)
            .join(FeeCategory, OptionalFeeDefinition.fee_category_id == FeeCategory.id)
            .where(
                OptionalFeeDefinition.tenant_id == actor.tenant_id,
                OptionalFeeDefinition.active_on(on),
                or_(
                    OptionalFeeDefinition.class_group_id.is_(None),
                    OptionalFeeDefinition.class_group_id == class_group_id,
                ),
            )
            .order_by(FeeCategory.name)
        )
        if fee_type:
            query = query.where(FeeCategory.fee_type == fee_type.value)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_catalog_amount(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_group_id: uuid.UUID | None,
        fee_category_id: uuid.UUID,
        on: date,
    ) -> Decimal | None:
        """Get the catalog price of a category for a class on a date.

        A class-level default wins over an optional definition. Returns None
        when the catalog has no price for the category.
        """
        if class_group_id:
            query = (
                select(ClassFeeDefault.amount)
                .where(
                    ClassFeeDefault.tenant_id == actor.tenant_id,
                    ClassFeeDefault.class_group_id == class_group_id,
                    ClassFeeDefault.fee_category_id == fee_category_id,
                    ClassFeeDefault.active_on(on),
                )
                .order_by(ClassFeeDefault.effective_from.desc())
                .limit(1)
            )
            amount = (await db.execute(query)).scalar_one_or_none()
            if amount is not None:
                return amount

        query = (
            select(OptionalFeeDefinition.amount)
            .where(
                OptionalFeeDefinition.tenant_id == actor.tenant_id,
                OptionalFeeDefinition.fee_category_id == fee_category_id,
                OptionalFeeDefinition.active_on(on),
                or_(
                    OptionalFeeDefinition.class_group_id.is_(None),
                    OptionalFeeDefinition.class_group_id == class_group_id,
                ),
            )
            # Class-specific definitions sort before school-wide ones
            .order_by(OptionalFeeDefinition.class_group_id.is_(None))
            .limit(1)
        )
        return (await db.execute(query)).scalar_one_or_none()


def get_fee_catalog_service() -> FeeCatalogService:
    """Get fee catalog service instance."""
    return FeeCatalogService()
