"""Routes for performance insights."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query

from ...models import schemas
from ...services.insights_service import InsightsService
from ...services.inventory_service import InventoryService
from ..deps import load_snapshot, resolve_now

router = APIRouter()

_insights_service = InsightsService()
_inventory_service = InventoryService()


@router.get("/insights", response_model=List[schemas.PerformanceInsight])
async def get_insights(
    as_of: Optional[datetime] = Query(None, description="Reference moment (ISO 8601)"),
) -> List[schemas.PerformanceInsight]:
    """Qualitative observations in check order: unsold, top profit, low margin, trend."""

    articles, sales = load_snapshot(_inventory_service)
    return _insights_service.insights(articles, sales, resolve_now(as_of))
