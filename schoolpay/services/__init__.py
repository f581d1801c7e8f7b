"""Service layer for business logic."""

from schoolpay.services.fee_catalog_service import FeeCatalogService, get_fee_catalog_service
from schoolpay.services.fee_config_service import FeeConfigService, get_fee_config_service
from schoolpay.services.roster_service import RosterService, get_roster_service
from schoolpay.services.salary_service import SalaryService, get_salary_service
from schoolpay.services.salary_structure_service import (
    SalaryStructureService,
    get_salary_structure_service,
)
from schoolpay.services.teacher_attendance_service import (
    TeacherAttendanceService,
    get_teacher_attendance_service,
)

__all__ = [
    "RosterService",
    "get_roster_service",
    "FeeCatalogService",
    "get_fee_catalog_service",
    "FeeConfigService",
    "get_fee_config_service",
    "TeacherAttendanceService",
    "get_teacher_attendance_service",
    "SalaryStructureService",
    "get_salary_structure_service",
    "SalaryService",
    "get_salary_service",
]
