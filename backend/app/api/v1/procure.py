r"""backend/app/api/v1/procure.py

Routes for stock reorder recommendations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query

from ...core.observability import record_recommendations
from ...models import schemas
from ...services.inventory_service import InventoryService
from ...services.procurement_service import ProcurementService
from ..deps import load_snapshot, resolve_now

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_procurement_service = ProcurementService()
_inventory_service = InventoryService()


@router.get("/procure/recommendations", response_model=List[schemas.StockRecommendation])
async def get_recommendations(
    urgency: Optional[schemas.Urgency] = Query(None, description="Only return this urgency level"),
    as_of: Optional[datetime] = Query(None, description="Reference moment (ISO 8601)"),
) -> List[schemas.StockRecommendation]:
    """Articles needing a reorder, most urgent first."""

    LOGGER.info("Reorder recommendation request received urgency=%s", urgency)
    articles, sales = load_snapshot(_inventory_service)
    recommendations = _procurement_service.recommend(articles, sales, resolve_now(as_of))
    if urgency is not None:
        recommendations = [rec for rec in recommendations if rec.urgency == urgency]

    record_recommendations([rec.urgency for rec in recommendations])
    return recommendations
