r"""backend\app\api\v1\statistics.py

Sales summary and article profitability routes."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from ...models import schemas
from ...services.inventory_service import InventoryService
from ...services.statistics_service import SORT_COLUMNS, analyze_profitability, summarize_sales
from ..deps import display_settings, error_payload, load_articles, load_sales, resolve_now

LOGGER = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_SUMMARY_DAYS = 30

_inventory_service = InventoryService()


@router.get("/statistics/summary", response_model=schemas.SalesSummary)
async def get_summary(
    days: Optional[int] = Query(None, ge=1, le=365, description="Trailing window in days"),
    as_of: Optional[datetime] = Query(None, description="Reference moment (ISO 8601)"),
) -> schemas.SalesSummary:
    """Revenue, profit, daily chart and best sellers."""

    window = days if days is not None else int(display_settings().get("summary_days", DEFAULT_SUMMARY_DAYS))
    sales = load_sales(_inventory_service)
    return summarize_sales(sales, resolve_now(as_of), days=window)


@router.get("/statistics/profitability", response_model=List[schemas.ArticleProfitability])
async def get_profitability(
    sort_by: str = Query("margin", description=f"One of {sorted(SORT_COLUMNS)}"),
) -> List[schemas.ArticleProfitability]:
    """Per-article margins for active articles."""

    articles = load_articles(_inventory_service)
    try:
        return analyze_profitability(articles, sort_by=sort_by)
    except ValueError as exc:
        LOGGER.warning("Profitability request rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_payload("invalid_sort", str(exc)),
        ) from exc
