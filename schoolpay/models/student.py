"""Student model."""

import uuid
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolpay.models.base import SoftDeleteMixin, TenantScopedModel


class Student(TenantScopedModel, SoftDeleteMixin):
    """Student entity, owner of fee override and profile windows."""

    __tablename__ = "students"
    __table_args__ = (
        Index(
            "idx_students_tenant_class",
            "tenant_id",
            "class_group_id",
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    class_group_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("class_groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    admission_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    class_group = relationship("ClassGroup", lazy="selectin")

    @property
    def full_name(self) -> str:
        """Get the student's full name."""
        return f"{self.first_name} {self.last_name}"
