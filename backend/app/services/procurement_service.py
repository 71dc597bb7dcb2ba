"""Classify articles by reorder urgency from their recent sell-through."""

from __future__ import annotations

import logging
import math
import os
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..core.config import load_thresholds
from ..models.schemas import (
    ArticleRecord,
    ForecastThresholds,
    SaleRecord,
    StockRecommendation,
)
from .forecasting_service import DEFAULT_THRESHOLDS, completed_sales, round_half_up, sales_within

LOGGER = logging.getLogger(__name__)

URGENCY_RANK = {"critical": 0, "high": 1, "medium": 2, "low": 3}


# ---------------------------------------------------------------------------
def units_sold(article_id: str, sales: Iterable[SaleRecord]) -> int:
    """Total quantity of ``article_id`` across every line of ``sales``."""

    return sum(
        item.quantity
        for sale in sales
        for item in sale.items
        if item.article_id == article_id
    )


def cover_quantity(total_sold: int, cover_days: int, window_days: int) -> int:
    """Units needed to cover ``cover_days`` of amortised demand, rounded up."""

    return math.ceil(total_sold * cover_days / window_days)


def classify_urgency(
    stock: int,
    min_stock: int,
    total_sold: int,
    cfg: ForecastThresholds,
) -> Tuple[str, str, int, float, float]:
    """Return ``(urgency, reason, recommended_stock, daily_average, days_left)``.

    The first matching rule wins: exhausted stock, stock under its minimum,
    a stockout within the high-urgency horizon, a stockout within the medium
    horizon, otherwise sufficient stock.
    """

    window = cfg.stock_window_days
    daily_average = total_sold / window
    if daily_average > 0:
        days_left = stock * window / total_sold
    else:
        days_left = cfg.stockout_sentinel_days

    restock = cover_quantity(total_sold, cfg.reorder_cover_days, window)

    if stock == 0:
        return "critical", "Stock exhausted, order immediately", restock, daily_average, days_left
    if stock <= min_stock:
        return "high", "Stock below minimum threshold", restock, daily_average, days_left
    if days_left <= cfg.high_urgency_days:
        reason = f"Stockout predicted within {math.ceil(days_left)} days"
        return "high", reason, restock, daily_average, days_left
    if days_left <= cfg.medium_urgency_days:
        soon = cover_quantity(total_sold, cfg.soon_cover_days, window)
        return "medium", "Plan a reorder soon", soon, daily_average, days_left
    return "low", "Stock sufficient", stock, daily_average, days_left


def recommend_reorders(
    articles: Iterable[ArticleRecord],
    sales: Iterable[SaleRecord],
    now: datetime,
    *,
    thresholds: Optional[ForecastThresholds] = None,
) -> List[StockRecommendation]:
    """Rank active articles needing attention, most urgent first.

    Ties keep the order of ``articles``.
    """

    cfg = thresholds or DEFAULT_THRESHOLDS
    recent = sales_within(completed_sales(sales), now, cfg.stock_window_days)

    recommendations: List[StockRecommendation] = []
    for article in articles:
        if article.status != "active":
            continue

        total_sold = units_sold(article.id, recent)
        urgency, reason, recommended, daily_average, days_left = classify_urgency(
            article.stock, article.min_stock, total_sold, cfg
        )
        if urgency == "low" and article.stock > article.min_stock:
            continue

        # Urgency is decided on exact figures; only the reported ones are rounded.
        recommendations.append(
            StockRecommendation(
                article=article,
                current_stock=article.stock,
                recommended_stock=recommended,
                urgency=urgency,
                reason=reason,
                daily_average=round_half_up(daily_average, 1),
                days_until_stockout=round_half_up(days_left),
            )
        )

    recommendations.sort(key=lambda rec: URGENCY_RANK[rec.urgency])
    LOGGER.debug("%d articles need restocking", len(recommendations))
    return recommendations


class ProcurementService:
    """Reorder recommendations bound to the configured thresholds."""

    def __init__(self, config_root: Optional[str] = None) -> None:
        self.config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        self.thresholds = load_thresholds(self.config_root)

    def reload(self) -> None:
        self.thresholds = load_thresholds(self.config_root)

    # ------------------------------------------------------------------
    def recommend(
        self,
        articles: Iterable[ArticleRecord],
        sales: Iterable[SaleRecord],
        now: datetime,
    ) -> List[StockRecommendation]:
        recommendations = recommend_reorders(articles, sales, now, thresholds=self.thresholds)
        if recommendations:
            LOGGER.info(
                "Reorder recommendations: %s",
                ", ".join(f"{rec.article.id}={rec.urgency}" for rec in recommendations),
            )
        return recommendations

    def recommendation_for(
        self,
        article_id: str,
        articles: Iterable[ArticleRecord],
        sales: Iterable[SaleRecord],
        now: datetime,
    ) -> Optional[StockRecommendation]:
        """Return the recommendation for one article, or ``None`` if it needs none."""

        for rec in self.recommend(articles, sales, now):
            if rec.article.id == article_id:
                return rec
        return None
