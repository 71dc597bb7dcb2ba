r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both the typed records the forecasting engine works on
and the response serialisation schemas.  Rows coming from files or the hosted
database are loosened into these shapes by the inventory service; the
analytical functions only ever see validated records.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Trend = Literal["increasing", "decreasing", "stable"]
Urgency = Literal["critical", "high", "medium", "low"]
InsightType = Literal["success", "warning", "danger", "info"]
SaleStatus = Literal["completed", "suspended", "cancelled"]
ArticleStatus = Literal["active", "inactive"]


class LineItem(BaseModel):
    """A single article line on a sale."""

    article_id: str = Field(..., description="Identifier of the article sold")
    quantity: int = Field(0, ge=0)
    price: float = Field(0.0, description="Unit sell price")
    buy_price: float = Field(0.0, description="Unit buy price")
    profit: float = Field(0.0, description="(price - buy_price) * quantity")
    total: float = Field(0.0, description="Line total")
    name: Optional[str] = None


class SaleRecord(BaseModel):
    """A checkout with its line items."""

    id: str
    created_at: datetime
    total: float = 0.0
    items: List[LineItem] = Field(default_factory=list)
    status: SaleStatus = "completed"


class ArticleRecord(BaseModel):
    """A catalog article with its on-hand stock."""

    id: str
    name: str
    unit: str = "unit"
    stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    status: ArticleStatus = "active"
    buy_price: float = 0.0
    sell_price: float = 0.0
    category: Optional[str] = None


class ForecastThresholds(BaseModel):
    """Windows and cut-offs used by the forecasting engine."""

    model_config = ConfigDict(extra="ignore")

    min_trend_sales: int = Field(7, ge=0)
    trend_window_days: int = Field(7, ge=1)
    trend_change_pct: float = Field(10.0, ge=0.0)
    prediction_window_days: int = Field(30, ge=1)
    moving_average_days: int = Field(7, ge=1)
    confident_day_count: int = Field(7, ge=1)
    stock_window_days: int = Field(30, ge=1)
    reorder_cover_days: int = Field(30, ge=0)
    soon_cover_days: int = Field(20, ge=0)
    high_urgency_days: float = Field(7.0, ge=0.0)
    medium_urgency_days: float = Field(14.0, ge=0.0)
    stockout_sentinel_days: float = Field(999.0, ge=0.0)
    unsold_window_days: int = Field(30, ge=1)
    low_margin_rate: float = Field(0.10, ge=0.0, le=1.0)
    low_margin_min_sales: int = Field(5, ge=0)


class TrendResult(BaseModel):
    """Week-over-week revenue trend."""

    trend: Trend
    percentage_change: float
    description: str


class SalesPrediction(BaseModel):
    """Predicted revenue for one future day."""

    date: date
    predicted_sales: int = Field(..., ge=0)
    confidence: float = Field(..., description="0.75 with a week of history, else 0.5")


class SalesForecastResponse(BaseModel):
    horizon_days: int
    predictions: List[SalesPrediction]


class StockRecommendation(BaseModel):
    """Reorder advice for a single article."""

    article: ArticleRecord
    current_stock: int
    recommended_stock: int = Field(..., description="Target stock level, not an order quantity")
    urgency: Urgency
    reason: str
    daily_average: float = Field(..., description="Units sold over the window divided by its length")
    days_until_stockout: float

    @property
    def order_qty(self) -> int:
        return max(self.recommended_stock - self.current_stock, 0)


class PerformanceInsight(BaseModel):
    """A qualitative observation about the shop's performance."""

    type: InsightType
    title: str
    description: str
    actionable: Optional[str] = None


class ForecastReport(BaseModel):
    """Everything the forecasting screen renders, computed from one snapshot."""

    generated_at: datetime
    trend: TrendResult
    predictions: List[SalesPrediction]
    recommendations: List[StockRecommendation]
    insights: List[PerformanceInsight]


class DailySalesPoint(BaseModel):
    date: date
    revenue: float
    profit: float
    margin_pct: float


class TopProduct(BaseModel):
    article_id: str
    name: Optional[str] = None
    quantity: int
    revenue: float


class SalesSummary(BaseModel):
    """Revenue and profit figures over a trailing window."""

    window_days: int
    total_sales: int
    total_revenue: float
    total_profit: float
    avg_margin_pct: float
    daily: List[DailySalesPoint]
    top_products: List[TopProduct]


class ArticleProfitability(BaseModel):
    article_id: str
    name: str
    unit_profit: float
    margin_pct: float = Field(..., description="Unit profit relative to the buy price")
    stock_value: float
    potential_profit: float
