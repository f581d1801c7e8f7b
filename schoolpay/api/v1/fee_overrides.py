"""Fee override API endpoints."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolpay.database import get_db
from schoolpay.schemas.common import APIResponse
from schoolpay.schemas.fee_config import FeeOverrideResponse
from schoolpay.services.fee_config_service import get_fee_config_service
from schoolpay.utils.permissions import require_principal
from schoolpay.utils.tenant_context import ActorContext

router = APIRouter()


@router.delete("/{override_id}", response_model=APIResponse[FeeOverrideResponse])
async def close_fee_override(
    override_id: uuid.UUID,
    effective_to: date | None = Query(None, description="Last day the override applies"),
    actor: ActorContext = Depends(require_principal()),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a single discount or exemption (principal only).

    The override is closed, not deleted.
    """
    service = get_fee_config_service()
    override = await service.close_override(db, actor, override_id, effective_to)

    return APIResponse(
        data=FeeOverrideResponse.model_validate(override),
        message="Fee override closed",
    )
