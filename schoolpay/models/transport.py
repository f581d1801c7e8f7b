"""Transport routes and per-student route enrollment windows."""

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolpay.models.base import EffectiveWindowMixin, SoftDeleteMixin, TenantScopedModel


class TransportRoute(TenantScopedModel, SoftDeleteMixin):
    """A bus route offered by the school."""

    __tablename__ = "transport_routes"

    route_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class StudentTransportEnrollment(TenantScopedModel, EffectiveWindowMixin):
    """A student's assignment to a route.

    Exists only alongside an open fee profile with transport enabled, and
    is opened and closed together with that profile.
    """

    __tablename__ = "student_transport_enrollments"
    __table_args__ = (
        Index(
            "uq_transport_enrollment_open",
            "student_id",
            unique=True,
            postgresql_where=text("effective_to IS NULL AND is_active"),
            sqlite_where=text("effective_to IS NULL AND is_active"),
        ),
    )

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
    )
    route_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("transport_routes.id", ondelete="RESTRICT"),
        nullable=False,
    )
    fee_profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("student_fee_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Relationships
    route = relationship("TransportRoute", lazy="selectin")
