"""Pydantic schemas for request/response validation."""

from schoolpay.schemas.common import APIResponse, ErrorDetail, ErrorResponse
from schoolpay.schemas.fee_config import (
    ApplyFeeConfigurationRequest,
    CatalogFeeResponse,
    ClassCatalogResponse,
    ClassChangeRequest,
    CustomFeeConfig,
    FeeConfiguration,
    FeeConfigurationSnapshot,
    FeeHistoryResponse,
    FeeOverrideResponse,
    FeeProfileResponse,
    FeeWindowSnapshot,
    OtherFeeConfig,
    TransportEnrollmentResponse,
)
from schoolpay.schemas.salary import (
    GenerateSalaryRequest,
    MarkPaidRequest,
    RejectSalaryRequest,
    SalaryRecordResponse,
    SalaryStatusTotals,
    SalaryStructureCreate,
    SalaryStructureData,
    SalaryStructureResponse,
    SalaryStructureSnapshot,
    SalarySummaryResponse,
)

__all__ = [
    # Common
    "APIResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Fee configuration
    "FeeConfiguration",
    "OtherFeeConfig",
    "CustomFeeConfig",
    "ApplyFeeConfigurationRequest",
    "ClassChangeRequest",
    "FeeWindowSnapshot",
    "FeeConfigurationSnapshot",
    "FeeHistoryResponse",
    "FeeOverrideResponse",
    "FeeProfileResponse",
    "TransportEnrollmentResponse",
    "CatalogFeeResponse",
    "ClassCatalogResponse",
    # Salary
    "SalaryStructureData",
    "SalaryStructureCreate",
    "SalaryStructureResponse",
    "SalaryStructureSnapshot",
    "GenerateSalaryRequest",
    "RejectSalaryRequest",
    "MarkPaidRequest",
    "SalaryRecordResponse",
    "SalaryStatusTotals",
    "SalarySummaryResponse",
]
