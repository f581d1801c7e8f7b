"""SQLAlchemy models for SchoolPay."""

from schoolpay.models.base import (
    Base,
    EffectiveWindowMixin,
    SoftDeleteMixin,
    TenantScopedModel,
    TimestampMixin,
)
from schoolpay.models.tenant import Tenant
from schoolpay.models.user import User, Role
from schoolpay.models.class_group import ClassGroup
from schoolpay.models.student import Student
from schoolpay.models.fees import (
    ClassFeeDefault,
    FeeCategory,
    FeeCycle,
    FeeType,
    OptionalFeeDefinition,
    StudentFeeOverride,
    StudentFeeProfile,
)
from schoolpay.models.transport import StudentTransportEnrollment, TransportRoute
from schoolpay.models.salary import (
    SALARY_TRANSITIONS,
    PaymentMode,
    SalaryCycle,
    SalaryRecord,
    SalaryStatus,
    SalaryStructure,
)
from schoolpay.models.teacher_attendance import TeacherAttendanceDay, TeacherAttendanceStatus

__all__ = [
    # Base
    "Base",
    "TenantScopedModel",
    "TimestampMixin",
    "SoftDeleteMixin",
    "EffectiveWindowMixin",
    # Tenant
    "Tenant",
    # User
    "User",
    "Role",
    # Roster
    "ClassGroup",
    "Student",
    "TransportRoute",
    "StudentTransportEnrollment",
    # Fees
    "FeeCategory",
    "FeeType",
    "FeeCycle",
    "ClassFeeDefault",
    "OptionalFeeDefinition",
    "StudentFeeOverride",
    "StudentFeeProfile",
    # Salary
    "SalaryStructure",
    "SalaryRecord",
    "SalaryStatus",
    "SalaryCycle",
    "PaymentMode",
    "SALARY_TRANSITIONS",
    # Teacher attendance
    "TeacherAttendanceDay",
    "TeacherAttendanceStatus",
]
