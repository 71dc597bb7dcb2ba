"""Routes for revenue trend analysis and sales prediction."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...models import schemas
from ...services.forecasting_service import ForecastingService
from ...services.insights_service import InsightsService
from ...services.inventory_service import InventoryService
from ...services.procurement_service import ProcurementService
from ..deps import display_settings, error_payload, load_sales, resolve_now

LOGGER = logging.getLogger(__name__)

router = APIRouter()

MIN_FORECAST_HORIZON_DAYS = 1
MAX_FORECAST_HORIZON_DAYS = 90

_forecast_service = ForecastingService()
_procurement_service = ProcurementService()
_insights_service = InsightsService()
_inventory_service = InventoryService()


def _parse_horizon(raw_horizon: Optional[int]) -> int:
    """Validate the requested horizon, falling back to ``default_horizon_days``."""

    if raw_horizon is None:
        raw_horizon = display_settings().get("default_horizon_days", ForecastingService.DEFAULT_HORIZON_DAYS)
    try:
        horizon = int(raw_horizon)
    except (TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_invalid_horizon(),
        ) from exc

    if horizon < MIN_FORECAST_HORIZON_DAYS or horizon > MAX_FORECAST_HORIZON_DAYS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_invalid_horizon())
    return horizon


def _invalid_horizon() -> dict[str, str]:
    return error_payload(
        "invalid_horizon",
        f"horizon_days must be between {MIN_FORECAST_HORIZON_DAYS} and {MAX_FORECAST_HORIZON_DAYS} days.",
    )


class AnalysisRequest(BaseModel):
    """Inline snapshot supplied by the caller instead of the data directory."""

    articles: List[schemas.ArticleRecord] = Field(default_factory=list)
    sales: List[schemas.SaleRecord] = Field(default_factory=list)
    now: Optional[datetime] = Field(None, description="Reference moment; defaults to the current UTC time")
    horizon_days: int = Field(
        ForecastingService.DEFAULT_HORIZON_DAYS,
        ge=MIN_FORECAST_HORIZON_DAYS,
        le=MAX_FORECAST_HORIZON_DAYS,
    )


@router.get("/forecasts/trend", response_model=schemas.TrendResult)
async def get_trend(
    as_of: Optional[datetime] = Query(None, description="Reference moment (ISO 8601)"),
) -> schemas.TrendResult:
    """Week-over-week revenue trend."""

    sales = load_sales(_inventory_service)
    return _forecast_service.trend(sales, resolve_now(as_of))


@router.get("/forecasts/sales", response_model=schemas.SalesForecastResponse)
async def get_sales_forecast(
    horizon_days: Optional[int] = Query(None, description="Number of future days to predict"),
    as_of: Optional[datetime] = Query(None, description="Reference moment (ISO 8601)"),
) -> schemas.SalesForecastResponse:
    """Flat-line revenue prediction for the next ``horizon_days`` days."""

    horizon = _parse_horizon(horizon_days)
    LOGGER.info("Sales forecast request received horizon=%s", horizon)
    sales = load_sales(_inventory_service)
    predictions = _forecast_service.predict(sales, resolve_now(as_of), horizon)
    return schemas.SalesForecastResponse(horizon_days=horizon, predictions=predictions)


@router.post("/forecasts/analyze", response_model=schemas.ForecastReport)
async def analyze(body: AnalysisRequest) -> schemas.ForecastReport:
    """Compute trend, predictions, reorders and insights for an inline snapshot."""

    now = resolve_now(body.now)
    LOGGER.info(
        "Analysis request received articles=%d sales=%d horizon=%d",
        len(body.articles),
        len(body.sales),
        body.horizon_days,
    )
    try:
        return schemas.ForecastReport(
            generated_at=now,
            trend=_forecast_service.trend(body.sales, now),
            predictions=_forecast_service.predict(body.sales, now, body.horizon_days),
            recommendations=_procurement_service.recommend(body.articles, body.sales, now),
            insights=_insights_service.insights(body.articles, body.sales, now),
        )
    except Exception as exc:
        LOGGER.exception("Unexpected error while analysing snapshot")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("forecast_failed", "An unexpected error occurred while forecasting."),
        ) from exc
