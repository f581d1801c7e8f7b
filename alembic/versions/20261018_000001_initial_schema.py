"""Initial schema: roster, fee windows and payroll

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_WINDOW = 'effective_to IS NULL AND is_active'


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _window() -> list[sa.Column]:
    return [
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
    ]


def upgrade() -> None:
    # === TENANTS ===
    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index('idx_tenants_slug', 'tenants', ['slug'], postgresql_where=sa.text('deleted_at IS NULL'))

    # === USERS ===
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])
    op.create_index('idx_users_tenant_role', 'users', ['tenant_id', 'role'],
                    postgresql_where=sa.text('deleted_at IS NULL'))

    # === CLASS GROUPS ===
    op.create_table(
        'class_groups',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_class_groups_tenant_id', 'class_groups', ['tenant_id'])
    op.create_index('idx_class_groups_tenant', 'class_groups', ['tenant_id'],
                    postgresql_where=sa.text('deleted_at IS NULL'))

    # === STUDENTS ===
    op.create_table(
        'students',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('class_group_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_group_id'], ['class_groups.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_students_tenant_id', 'students', ['tenant_id'])
    op.create_index('idx_students_tenant_class', 'students', ['tenant_id', 'class_group_id'],
                    postgresql_where=sa.text('deleted_at IS NULL'))

    # === TRANSPORT ROUTES ===
    op.create_table(
        'transport_routes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('route_name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transport_routes_tenant_id', 'transport_routes', ['tenant_id'])

    # === FEE CATALOG ===
    op.create_table(
        'fee_categories',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('fee_type', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_fee_categories_tenant_id', 'fee_categories', ['tenant_id'])

    op.create_table(
        'class_fee_defaults',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('class_group_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('fee_category_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('fee_cycle', sa.String(length=20), nullable=False, server_default='monthly'),
        *_window(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_group_id'], ['class_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['fee_category_id'], ['fee_categories.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_class_fee_defaults_tenant_id', 'class_fee_defaults', ['tenant_id'])
    op.create_index('idx_class_fee_defaults_class', 'class_fee_defaults', ['tenant_id', 'class_group_id'])

    op.create_table(
        'optional_fee_definitions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('class_group_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('fee_category_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('fee_cycle', sa.String(length=20), nullable=False, server_default='monthly'),
        *_window(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_group_id'], ['class_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['fee_category_id'], ['fee_categories.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_optional_fee_definitions_tenant_id', 'optional_fee_definitions', ['tenant_id'])
    op.create_index('idx_optional_fee_definitions_category', 'optional_fee_definitions',
                    ['tenant_id', 'fee_category_id'])

    # === STUDENT FEE WINDOWS ===
    op.create_table(
        'student_fee_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('class_group_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('class_fee_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('transport_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('transport_route', sa.String(length=100), nullable=True),
        *_window(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_group_id'], ['class_groups.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['class_fee_id'], ['class_fee_defaults.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_student_fee_profiles_tenant_id', 'student_fee_profiles', ['tenant_id'])
    op.create_index('idx_student_fee_profiles_student', 'student_fee_profiles', ['tenant_id', 'student_id'])
    op.create_index('uq_student_fee_profiles_open', 'student_fee_profiles', ['student_id'], unique=True,
                    postgresql_where=sa.text(OPEN_WINDOW))

    op.create_table(
        'student_fee_overrides',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('fee_category_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('discount_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('is_full_free', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('applied_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_window(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['fee_category_id'], ['fee_categories.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['applied_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_student_fee_overrides_tenant_id', 'student_fee_overrides', ['tenant_id'])
    op.create_index('idx_student_fee_overrides_student', 'student_fee_overrides', ['tenant_id', 'student_id'])
    op.create_index('uq_student_fee_overrides_open', 'student_fee_overrides',
                    ['student_id', 'fee_category_id'], unique=True,
                    postgresql_where=sa.text(OPEN_WINDOW))
    op.create_index('uq_student_fee_overrides_open_class_fee', 'student_fee_overrides',
                    ['student_id'], unique=True,
                    postgresql_where=sa.text(f'fee_category_id IS NULL AND {OPEN_WINDOW}'))

    op.create_table(
        'student_transport_enrollments',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('route_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('fee_profile_id', postgresql.UUID(as_uuid=True), nullable=False),
        *_window(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['route_id'], ['transport_routes.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['fee_profile_id'], ['student_fee_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_student_transport_enrollments_tenant_id', 'student_transport_enrollments', ['tenant_id'])
    op.create_index('uq_transport_enrollment_open', 'student_transport_enrollments', ['student_id'], unique=True,
                    postgresql_where=sa.text(OPEN_WINDOW))

    # === PAYROLL ===
    op.create_table(
        'salary_structures',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('base_salary', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('hra', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('other_allowances', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('fixed_deductions', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('salary_cycle', sa.String(length=20), nullable=False, server_default='monthly'),
        sa.Column('attendance_based_deduction', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        *_window(),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_salary_structures_tenant_id', 'salary_structures', ['tenant_id'])
    op.create_index('idx_salary_structures_teacher', 'salary_structures', ['tenant_id', 'teacher_id'])
    op.create_index('uq_salary_structures_open', 'salary_structures', ['teacher_id'], unique=True,
                    postgresql_where=sa.text(OPEN_WINDOW))

    op.create_table(
        'salary_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('salary_structure_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('gross_salary', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('attendance_deduction', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_deductions', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('net_salary', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('absent_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('generated_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('rejected_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('payment_mode', sa.String(length=10), nullable=True),
        sa.Column('payment_proof', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['salary_structure_id'], ['salary_structures.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['generated_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rejected_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['paid_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'teacher_id', 'month', 'year', name='uq_salary_records_teacher_period'),
        sa.CheckConstraint('month BETWEEN 1 AND 12', name='ck_salary_records_month'),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected', 'paid')",
                           name='ck_salary_records_status')
    )
    op.create_index('ix_salary_records_tenant_id', 'salary_records', ['tenant_id'])
    op.create_index('idx_salary_records_tenant_period', 'salary_records', ['tenant_id', 'year', 'month'])

    # === TEACHER ATTENDANCE ===
    op.create_table(
        'teacher_attendance_days',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('teacher_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='present'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('teacher_id', 'date', name='uq_teacher_attendance_teacher_date')
    )
    op.create_index('ix_teacher_attendance_days_tenant_id', 'teacher_attendance_days', ['tenant_id'])
    op.create_index('idx_teacher_attendance_tenant_date', 'teacher_attendance_days', ['tenant_id', 'date'])


def downgrade() -> None:
    op.drop_table('teacher_attendance_days')
    op.drop_table('salary_records')
    op.drop_table('salary_structures')
    op.drop_table('student_transport_enrollments')
    op.drop_table('student_fee_overrides')
    op.drop_table('student_fee_profiles')
    op.drop_table('optional_fee_definitions')
    op.drop_table('class_fee_defaults')
    op.drop_table('fee_categories')
    op.drop_table('transport_routes')
    op.drop_table('students')
    op.drop_table('class_groups')
    op.drop_table('users')
    op.drop_table('tenants')
