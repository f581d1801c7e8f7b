"""API v1 router aggregator."""

from fastapi import APIRouter

from schoolpay.api.v1 import fee_catalog, fee_overrides, salary, students_fees

api_router = APIRouter(tags=["API v1"])

# Include all API routers
api_router.include_router(students_fees.router, prefix="/students", tags=["Student fees"])
api_router.include_router(fee_overrides.router, prefix="/fee-overrides", tags=["Student fees"])
api_router.include_router(fee_catalog.router, prefix="/fee-catalog", tags=["Fee catalog"])
api_router.include_router(salary.router, prefix="/salary", tags=["Salary"])
