"""Base SQLAlchemy models and mixins."""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, and_, func, or_
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from uuid_extensions import uuid7


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin that adds soft delete support."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )


class EffectiveWindowMixin:
    """Mixin for effective-dated rows.

    A row is valid over ``[effective_from, effective_to]``; ``effective_to``
    of NULL means the window is still open. Rows are closed, never deleted,
    so the table is the full history of the entity.
    """

    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def is_open(self) -> bool:
        """Check if this is the currently open window."""
        return self.is_active and self.effective_to is None

    def close(self, cutoff: date) -> None:
        """End the window on ``cutoff`` (inclusive).

        ``cutoff`` is normally on or after ``effective_from``. The one
        exception is a window superseded on its own first day: it ends the
        day before it starts and so never matches a point-in-time read.
        """
        self.effective_to = cutoff
        self.is_active = False

    @classmethod
    def open_window(cls):
        """SQL filter matching the currently open row(s)."""
        return and_(cls.effective_to.is_(None), cls.is_active == True)

    @classmethod
    def active_on(cls, day: date):
        """SQL filter matching rows whose window includes ``day``.

        Closed rows are matched on their dates alone; an open row must also
        still be active.
        """
        return and_(
            cls.effective_from <= day,
            or_(
                cls.effective_to >= day,
                and_(cls.effective_to.is_(None), cls.is_active == True),
            ),
        )


class TenantScopedModel(Base, TimestampMixin):
    """Abstract base model for all tenant-scoped entities.

    Every tenant-scoped table MUST have a tenant_id foreign key.
    All queries against tenant-scoped tables MUST filter by tenant_id.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid7,
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
