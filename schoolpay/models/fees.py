"""Fee catalog reference data and per-student fee windows."""

import uuid
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolpay.models.base import EffectiveWindowMixin, TenantScopedModel


class FeeType(str, Enum):
    """Kinds of fee category."""

    TUITION = "tuition"
    TRANSPORT = "transport"
    CUSTOM = "custom"
    OTHER = "other"


class FeeCycle(str, Enum):
    """Billing cycle of a catalog fee."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


OPEN_WINDOW = "effective_to IS NULL AND is_active"


class FeeCategory(TenantScopedModel):
    """A named kind of fee (Tuition, Transport, Library, Lab...)."""

    __tablename__ = "fee_categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    fee_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ClassFeeDefault(TenantScopedModel, EffectiveWindowMixin):
    """Catalog price of a fee for every student of a class."""

    __tablename__ = "class_fee_defaults"
    __table_args__ = (
        Index("idx_class_fee_defaults_class", "tenant_id", "class_group_id"),
    )

    class_group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("class_groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    # NULL means the general class (tuition) fee
    fee_category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fee_categories.id", ondelete="RESTRICT"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    fee_cycle: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FeeCycle.MONTHLY.value
    )

    # Relationships
    fee_category = relationship("FeeCategory", lazy="selectin")


class OptionalFeeDefinition(TenantScopedModel, EffectiveWindowMixin):
    """Catalog price of a fee that is not mandatory at class level.

    Used for both "other" and "custom" fee types. ``class_group_id`` of NULL
    makes the definition apply to all classes.
    """

    __tablename__ = "optional_fee_definitions"
    __table_args__ = (
        Index("idx_optional_fee_definitions_category", "tenant_id", "fee_category_id"),
    )

    class_group_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("class_groups.id", ondelete="CASCADE"),
        nullable=True,
    )
    fee_category_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fee_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    fee_cycle: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FeeCycle.MONTHLY.value
    )

    # Relationships
    fee_category = relationship("FeeCategory", lazy="selectin")


class StudentFeeOverride(TenantScopedModel, EffectiveWindowMixin):
    """A per-student exception to the catalog price.

    The existence of an open row is the switch: no open row means the
    student pays the catalog price for that category.
    """

    __tablename__ = "student_fee_overrides"
    __table_args__ = (
        Index("idx_student_fee_overrides_student", "tenant_id", "student_id"),
        Index(
            "uq_student_fee_overrides_open",
            "student_id",
            "fee_category_id",
            unique=True,
            postgresql_where=text(OPEN_WINDOW),
            sqlite_where=text(OPEN_WINDOW),
        ),
        # NULLs are distinct in the index above
        Index(
            "uq_student_fee_overrides_open_class_fee",
            "student_id",
            unique=True,
            postgresql_where=text(f"fee_category_id IS NULL AND {OPEN_WINDOW}"),
            sqlite_where=text(f"fee_category_id IS NULL AND {OPEN_WINDOW}"),
        ),
    )

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    fee_category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fee_categories.id", ondelete="RESTRICT"),
        nullable=True,
    )
    discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    is_full_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applied_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    fee_category = relationship("FeeCategory", lazy="selectin")


class StudentFeeProfile(TenantScopedModel, EffectiveWindowMixin):
    """The student's transport status for a window.

    Once a student has been configured, exactly one profile is open.
    """

    __tablename__ = "student_fee_profiles"
    __table_args__ = (
        Index("idx_student_fee_profiles_student", "tenant_id", "student_id"),
        Index(
            "uq_student_fee_profiles_open",
            "student_id",
            unique=True,
            postgresql_where=text(OPEN_WINDOW),
            sqlite_where=text(OPEN_WINDOW),
        ),
    )

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    class_group_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("class_groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    class_fee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("class_fee_defaults.id", ondelete="SET NULL"),
        nullable=True,
    )
    transport_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    transport_route: Mapped[str | None] = mapped_column(String(100), nullable=True)
