"""Class group model (a grade/class within a school)."""

from sqlalchemy import Boolean, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from schoolpay.models.base import SoftDeleteMixin, TenantScopedModel


class ClassGroup(TenantScopedModel, SoftDeleteMixin):
    """A class within a school. Class fee defaults hang off this."""

    __tablename__ = "class_groups"
    __table_args__ = (
        Index(
            "idx_class_groups_tenant",
            "tenant_id",
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
