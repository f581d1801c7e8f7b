"""Pydantic schemas for student fee configuration and its windows."""

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from schoolpay.schemas.common import WindowMixin


class OtherFeeConfig(BaseModel):
    """Requested entitlement for an "other" fee category."""

    fee_category_id: uuid.UUID
    enabled: bool = True
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class CustomFeeConfig(BaseModel):
    """Requested entitlement for a custom fee definition."""

    custom_fee_id: uuid.UUID
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    exempt: bool = False


class FeeConfiguration(BaseModel):
    """Desired fee configuration of one student.

    Entitlements left at full price produce no override row.
    """

    class_group_id: uuid.UUID | None = None
    class_fee_id: uuid.UUID | None = None
    class_fee_discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    transport_enabled: bool = False
    transport_route_id: uuid.UUID | None = None
    transport_fee_discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    other_fees: list[OtherFeeConfig] = Field(default_factory=list)
    custom_fees: list[CustomFeeConfig] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=1000)


class ApplyFeeConfigurationRequest(FeeConfiguration):
    """Request body for applying a fee configuration."""

    effective_from: date | None = None


class ClassChangeRequest(BaseModel):
    """Request body for moving a student to another class."""

    class_group_id: uuid.UUID
    effective_from: date | None = None


class FeeOverrideResponse(WindowMixin):
    """A per-student exception to the catalog price."""

    student_id: uuid.UUID
    fee_category_id: uuid.UUID | None = None
    discount_amount: Decimal | None = None
    is_full_free: bool
    applied_by: uuid.UUID | None = None
    notes: str | None = None


class FeeProfileResponse(WindowMixin):
    """A student's transport status for a window."""

    student_id: uuid.UUID
    class_group_id: uuid.UUID | None = None
    class_fee_id: uuid.UUID | None = None
    transport_enabled: bool
    transport_route: str | None = None


class TransportEnrollmentResponse(WindowMixin):
    """A student's route assignment for a window."""

    student_id: uuid.UUID
    route_id: uuid.UUID
    fee_profile_id: uuid.UUID


class FeeWindowSnapshot(BaseModel):
    """Rows of the window opened by a configuration change."""

    model_config = ConfigDict(from_attributes=True)

    student_id: uuid.UUID
    effective_from: date
    profile: FeeProfileResponse
    enrollment: TransportEnrollmentResponse | None = None
    overrides: list[FeeOverrideResponse] = Field(default_factory=list)
    closed_override_ids: list[uuid.UUID] = Field(default_factory=list)
    closed_profile_ids: list[uuid.UUID] = Field(default_factory=list)
    closed_enrollment_ids: list[uuid.UUID] = Field(default_factory=list)


class FeeConfigurationSnapshot(BaseModel):
    """The configuration in force for a student on a given date."""

    student_id: uuid.UUID
    as_of: date
    configured: bool
    profile: FeeProfileResponse | None = None
    enrollment: TransportEnrollmentResponse | None = None
    overrides: list[FeeOverrideResponse] = Field(default_factory=list)


class FeeHistoryResponse(BaseModel):
    """Every window of a student, oldest first."""

    student_id: uuid.UUID
    profiles: list[FeeProfileResponse] = Field(default_factory=list)
    enrollments: list[TransportEnrollmentResponse] = Field(default_factory=list)
    overrides: list[FeeOverrideResponse] = Field(default_factory=list)


class CatalogFeeResponse(WindowMixin):
    """A catalog price row."""

    fee_category_id: uuid.UUID | None = None
    fee_category_name: str | None = None
    fee_type: str | None = None
    class_group_id: uuid.UUID | None = None
    amount: Decimal
    fee_cycle: str


class ClassCatalogResponse(BaseModel):
    """The catalog of one class on a date."""

    class_group_id: uuid.UUID
    on: date
    class_fees: list[CatalogFeeResponse] = Field(default_factory=list)
    optional_fees: list[CatalogFeeResponse] = Field(default_factory=list)
