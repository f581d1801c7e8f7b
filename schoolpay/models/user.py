"""User model with role-based access control."""

import uuid
from enum import Enum

from sqlalchemy import Boolean, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from schoolpay.models.base import SoftDeleteMixin, TenantScopedModel


class Role(str, Enum):
    """User roles within a school."""

    PRINCIPAL = "PRINCIPAL"  # Approves payroll, edits salary structures
    CLERK = "CLERK"  # Generates and pays salaries, edits fee configuration
    TEACHER = "TEACHER"  # Salaried staff, sees own payroll only


class User(TenantScopedModel, SoftDeleteMixin):
    """Staff account. Teachers are the payees of the payroll engine."""

    __tablename__ = "users"
    __table_args__ = (
        Index(
            "idx_users_tenant_role",
            "tenant_id",
            "role",
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def full_name(self) -> str:
        """Get the user's full name."""
        return f"{self.first_name} {self.last_name}"
