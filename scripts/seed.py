#!/usr/bin/env python3
"""
Development seed data script.

Creates test data for development:
- 1 tenant (Hillcrest Primary)
- 1 principal, 1 clerk, 2 teachers
- 2 classes with tuition defaults, 2 transport routes
- School-wide transport and library fees, a Grade 2 field trip fee
- 3 students
- A salary structure for each teacher

Usage:
    python scripts/seed.py

Prints a 24-hour access token for every seeded user.
"""

import asyncio
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import delete, select

from schoolpay.database import async_session_factory, engine
from schoolpay.models import (
    ClassFeeDefault,
    ClassGroup,
    FeeCategory,
    FeeType,
    OptionalFeeDefinition,
    SalaryRecord,
    SalaryStructure,
    Student,
    StudentFeeOverride,
    StudentFeeProfile,
    StudentTransportEnrollment,
    TeacherAttendanceDay,
    Tenant,
    TransportRoute,
    User,
)
from schoolpay.models.user import Role
from schoolpay.utils.security import create_access_token

TENANT_SLUG = "hillcrest-primary"
CATALOG_START = date(date.today().year, 1, 1)

# Children before parents
TENANT_TABLES = [
    SalaryRecord,
    SalaryStructure,
    TeacherAttendanceDay,
    StudentFeeOverride,
    StudentTransportEnrollment,
    StudentFeeProfile,
    OptionalFeeDefinition,
    ClassFeeDefault,
    Student,
    TransportRoute,
    FeeCategory,
    ClassGroup,
    User,
]


async def seed_database():
    """Seed the database with test data."""
    print("\n" + "=" * 50)
    print("SchoolPay - Seeding Development Data")
    print("=" * 50 + "\n")

    async with async_session_factory() as session:
        # Check if tenant already exists
        result = await session.execute(
            select(Tenant).where(Tenant.slug == TENANT_SLUG)
        )
        existing_tenant = result.scalar_one_or_none()

        if existing_tenant:
            print(f"Seed data already exists (tenant '{TENANT_SLUG}' found).")
            confirm = input("Delete and recreate? (y/n): ").strip().lower()
            if confirm != "y":
                print("Aborting.")
                return False

            print("Deleting existing data...")
            for model in TENANT_TABLES:
                await session.execute(delete(model).where(model.tenant_id == existing_tenant.id))
            await session.execute(delete(Tenant).where(Tenant.id == existing_tenant.id))
            await session.commit()
            print("Existing data deleted.\n")

        # Create tenant
        print("Creating tenant: Hillcrest Primary...")
        tenant = Tenant(name="Hillcrest Primary", slug=TENANT_SLUG, is_active=True)
        session.add(tenant)
        await session.flush()  # Get the tenant ID

        print("Creating staff...")
        staff = {}
        for key, role, first_name, last_name in [
            ("principal", Role.PRINCIPAL, "Grace", "Moyo"),
            ("clerk", Role.CLERK, "Peter", "Ndlovu"),
            ("teacher1", Role.TEACHER, "Jane", "Smith"),
            ("teacher2", Role.TEACHER, "Mary", "Williams"),
        ]:
            user = User(
                tenant_id=tenant.id,
                email=f"{first_name.lower()}.{last_name.lower()}@hillcrest.school",
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                is_active=True,
            )
            session.add(user)
            staff[key] = user

        print("Creating classes, fee categories and routes...")
        grade1 = ClassGroup(tenant_id=tenant.id, name="Grade 1", is_active=True)
        grade2 = ClassGroup(tenant_id=tenant.id, name="Grade 2", is_active=True)
        categories = {
            fee_type: FeeCategory(
                tenant_id=tenant.id,
                name=name,
                fee_type=fee_type.value,
                is_active=True,
            )
            for name, fee_type in [
                ("Tuition", FeeType.TUITION),
                ("Transport", FeeType.TRANSPORT),
                ("Library", FeeType.OTHER),
                ("Field Trip", FeeType.CUSTOM),
            ]
        }
        routes = [
            TransportRoute(tenant_id=tenant.id, route_name="North Loop", is_active=True),
            TransportRoute(tenant_id=tenant.id, route_name="South Loop", is_active=True),
        ]
        session.add_all([grade1, grade2, *categories.values(), *routes])
        await session.flush()

        print("Creating fee catalog...")
        catalog = [
            ClassFeeDefault(
                class_group_id=grade1.id,
                fee_category_id=categories[FeeType.TUITION].id,
                amount=Decimal("1000.00"),
            ),
            ClassFeeDefault(
                class_group_id=grade2.id,
                fee_category_id=categories[FeeType.TUITION].id,
                amount=Decimal("1200.00"),
            ),
            OptionalFeeDefinition(
                class_group_id=None,
                fee_category_id=categories[FeeType.TRANSPORT].id,
                amount=Decimal("500.00"),
            ),
            OptionalFeeDefinition(
                class_group_id=None,
                fee_category_id=categories[FeeType.OTHER].id,
                amount=Decimal("200.00"),
            ),
            OptionalFeeDefinition(
                class_group_id=grade2.id,
                fee_category_id=categories[FeeType.CUSTOM].id,
                amount=Decimal("1500.00"),
            ),
        ]
        for row in catalog:
            row.tenant_id = tenant.id
            row.effective_from = CATALOG_START
            row.is_active = True
        session.add_all(catalog)

        print("Creating students...")
        students = [
            Student(
                tenant_id=tenant.id,
                first_name=first_name,
                last_name=last_name,
                class_group_id=class_group.id,
                admission_date=CATALOG_START,
                is_active=True,
            )
            for first_name, last_name, class_group in [
                ("Tendai", "Brown", grade1),
                ("Lerato", "Davis", grade1),
                ("Sipho", "Miller", grade2),
            ]
        ]
        session.add_all(students)

        print("Creating salary structures...")
        for teacher, base_salary in [
            (staff["teacher1"], Decimal("30000.00")),
            (staff["teacher2"], Decimal("28000.00")),
        ]:
            session.add(
                SalaryStructure(
                    tenant_id=tenant.id,
                    teacher_id=teacher.id,
                    base_salary=base_salary,
                    hra=Decimal("3000.00"),
                    other_allowances=Decimal("0"),
                    fixed_deductions=Decimal("500.00"),
                    attendance_based_deduction=True,
                    effective_from=CATALOG_START,
                    is_active=True,
                    created_by=staff["principal"].id,
                )
            )

        await session.commit()

        print("\n" + "=" * 50)
        print("Seed Data Created Successfully!")
        print("=" * 50)
        print("\nTenant:")
        print(f"  Name: {tenant.name}")
        print(f"  Slug: {tenant.slug}")
        print(f"  ID: {tenant.id}")
        print("\nUsers (bearer tokens valid for 24 hours):")
        for user in staff.values():
            print(f"  {user.role}: {user.full_name} <{user.email}>")
            print(f"    {create_access_token(user.id, tenant.id, user.role)}")
        print("\nStudents:")
        for student in students:
            print(f"  {student.full_name}: {student.id}")
        print("=" * 50 + "\n")

        return True


async def main():
    """Main entry point."""
    try:
        success = await seed_database()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nAborted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
