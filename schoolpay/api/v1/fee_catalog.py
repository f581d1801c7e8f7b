"""Fee catalog API endpoints."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.database import get_db
from schoolpay.schemas.common import APIResponse
from schoolpay.schemas.fee_config import CatalogFeeResponse, ClassCatalogResponse
from schoolpay.services.fee_catalog_service import get_fee_catalog_service
from schoolpay.services.roster_service import get_roster_service
from schoolpay.utils.permissions import require_office_staff
from schoolpay.utils.tenant_context import ActorContext

router = APIRouter()


def _build_catalog_fee_response(row) -> CatalogFeeResponse:
    """Build catalog row response with its category."""
    category = row.fee_category
    return CatalogFeeResponse(
        id=row.id,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        is_active=row.is_active,
        fee_category_id=row.fee_category_id,
        fee_category_name=category.name if category else None,
        fee_type=category.fee_type if category else None,
        class_group_id=row.class_group_id,
        amount=row.amount,
        fee_cycle=row.fee_cycle,
    )


@router.get("/classes/{class_group_id}", response_model=APIResponse[ClassCatalogResponse])
async def get_class_catalog(
    class_group_id: uuid.UUID,
    on: date | None = Query(None, description="Catalog date (default today)"),
    actor: ActorContext = Depends(require_office_staff()),
    db: AsyncSession = Depends(get_db),
):
    """Get the class fees and optional fees offered to a class on a date."""
    class_group = await get_roster_service().get_class_group(db, actor, class_group_id)
    on = on or date.today()

    service = get_fee_catalog_service()
    class_fees = await service.get_class_fee_defaults(db, actor, class_group.id, on)
    optional_fees = await service.get_optional_fees(db, actor, class_group.id, on)

    return APIResponse(
        data=ClassCatalogResponse(
            class_group_id=class_group.id,
            on=on,
            class_fees=[_build_catalog_fee_response(f) for f in class_fees],
            optional_fees=[_build_catalog_fee_response(f) for f in optional_fees],
        )
    )
