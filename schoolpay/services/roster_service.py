"""Tenant-scoped roster lookups.

Every id that reaches the payroll or fee engines is resolved here first.
An id that is missing and an id that belongs to another school both raise
``NotFoundException`` so callers cannot probe for other tenants' records.

Passing ``for_update=True`` takes a row lock that is held until the
request's transaction ends; the fee engine locks the student and the
payroll engine locks the teacher before touching their windows.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.exceptions import NotFoundException
from schoolpay.models import ClassGroup, Student, TransportRoute, User
from schoolpay.models.user import Role
from schoolpay.utils.tenant_context import ActorContext


class RosterService:
    """Service for resolving roster ids within the caller's school."""

    async def get_student(
        self,
        db: AsyncSession,
        actor: ActorContext,
        student_id: uuid.UUID,
        for_update: bool = False,
    ) -> Student:
        """Get a student of the actor's school."""
        query = select(Student).where(
            Student.id == student_id,
            Student.tenant_id == actor.tenant_id,
            Student.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update()

        result = await db.execute(query)
        student = result.scalar_one_or_none()

        if not student:
            raise NotFoundException("Student")

        return student

    async def get_teacher(
        self,
        db: AsyncSession,
        actor: ActorContext,
        teacher_id: uuid.UUID,
        for_update: bool = False,
    ) -> User:
        """Get a teacher of the actor's school.

        Users with other roles are reported as missing teachers.
        """
        query = select(User).where(
            User.id == teacher_id,
            User.tenant_id == actor.tenant_id,
            User.role == Role.TEACHER.value,
            User.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update()

        result = await db.execute(query)
        teacher = result.scalar_one_or_none()

        if not teacher:
            raise NotFoundException("Teacher")

        return teacher

    async def get_class_group(
        self,
        db: AsyncSession,
        actor: ActorContext,
        class_group_id: uuid.UUID,
    ) -> ClassGroup:
        """Get a class of the actor's school."""
        query = select(ClassGroup).where(
            ClassGroup.id == class_group_id,
            ClassGroup.tenant_id == actor.tenant_id,
            ClassGroup.deleted_at.is_(None),
        )
        result = await db.execute(query)
        class_group = result.scalar_one_or_none()

        if not class_group:
            raise NotFoundException("Class")

        return class_group

    async def get_route(
        self,
        db: AsyncSession,
        actor: ActorContext,
        route_id: uuid.UUID,
    ) -> TransportRoute:
        """Get an active transport route of the actor's school."""
        query = select(TransportRoute).where(
            TransportRoute.id == route_id,
            TransportRoute.tenant_id == actor.tenant_id,
            TransportRoute.is_active == True,
            TransportRoute.deleted_at.is_(None),
        )
        result = await db.execute(query)
        route = result.scalar_one_or_none()

        if not route:
            raise NotFoundException("Transport route")

        return route


def get_roster_service() -> RosterService:
    """Get roster service instance."""
    return RosterService()
