r"""backend\app\services\insights_service.py

Qualitative performance insights for the shop owner.

Four independent checks run in a fixed order (unsold stock, top profit
article, low-margin sales, revenue trend) and each contributes at most one
insight.  The output keeps that order; it is not sorted by severity.
"""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..core.config import load_thresholds
from ..models.schemas import (
    ArticleRecord,
    ForecastThresholds,
    PerformanceInsight,
    SaleRecord,
)
from .forecasting_service import (
    DEFAULT_THRESHOLDS,
    analyze_trend,
    completed_sales,
    sales_within,
)

LOGGER = logging.getLogger(__name__)


def sale_profit(sale: SaleRecord) -> float:
    return sum(float(item.profit) for item in sale.items)


def _unsold_insight(
    articles: List[ArticleRecord],
    sales: List[SaleRecord],
    now: datetime,
    cfg: ForecastThresholds,
) -> Optional[PerformanceInsight]:
    recent = sales_within(sales, now, cfg.unsold_window_days)
    sold_ids = {item.article_id for sale in recent for item in sale.items}
    unsold = [
        article
        for article in articles
        if article.status == "active" and article.stock > 0 and article.id not in sold_ids
    ]
    if not unsold:
        return None
    return PerformanceInsight(
        type="warning",
        title=f"{len(unsold)} articles unsold",
        description=f"Some articles have not sold in the last {cfg.unsold_window_days} days",
        actionable="Consider a promotion or review their prices",
    )


def _top_profit_insight(
    articles: List[ArticleRecord],
    sales: List[SaleRecord],
) -> Optional[PerformanceInsight]:
    # Lifetime totals: every completed sale counts, whatever its age.
    profit_by_article: Dict[str, float] = defaultdict(float)
    item_names: Dict[str, str] = {}
    for sale in sales:
        for item in sale.items:
            profit_by_article[item.article_id] += float(item.profit)
            if item.name and item.article_id not in item_names:
                item_names[item.article_id] = item.name

    if not profit_by_article:
        return None

    top_id = max(profit_by_article, key=profit_by_article.__getitem__)
    if profit_by_article[top_id] <= 0:
        return None

    names = {article.id: article.name for article in articles}
    name = names.get(top_id) or item_names.get(top_id)
    if not name:
        LOGGER.debug("Top profit article %s is unknown; skipping insight", top_id)
        return None

    return PerformanceInsight(
        type="success",
        title="Star product identified",
        description=f'"{name}" generates the most profit',
        actionable="Make sure this product is always in stock",
    )


def _low_margin_insight(
    sales: List[SaleRecord],
    cfg: ForecastThresholds,
) -> Optional[PerformanceInsight]:
    low_margin = 0
    for sale in sales:
        margin = sale_profit(sale) / sale.total if sale.total > 0 else 0.0
        if 0 < margin < cfg.low_margin_rate:
            low_margin += 1

    if low_margin <= cfg.low_margin_min_sales:
        return None
    return PerformanceInsight(
        type="warning",
        title="Low profit margins detected",
        description=f"{low_margin} sales with less than {cfg.low_margin_rate:.0%} margin",
        actionable="Review your selling prices to improve profitability",
    )


def _trend_insight(
    sales: List[SaleRecord],
    now: datetime,
    cfg: ForecastThresholds,
) -> Optional[PerformanceInsight]:
    trend = analyze_trend(sales, now, thresholds=cfg)
    if trend.trend == "increasing":
        return PerformanceInsight(
            type="success",
            title="Sales growth",
            description=trend.description,
            actionable="Keep up the momentum",
        )
    if trend.trend == "decreasing":
        return PerformanceInsight(
            type="danger",
            title="Sales decline",
            description=trend.description,
            actionable="Look into the causes and consider marketing actions",
        )
    return None


def generate_insights(
    articles: Iterable[ArticleRecord],
    sales: Iterable[SaleRecord],
    now: datetime,
    *,
    thresholds: Optional[ForecastThresholds] = None,
) -> List[PerformanceInsight]:
    """Run every insight check and return the ones that fired, in check order."""

    cfg = thresholds or DEFAULT_THRESHOLDS
    article_list = list(articles)
    completed = completed_sales(sales)

    checks = (
        _unsold_insight(article_list, completed, now, cfg),
        _top_profit_insight(article_list, completed),
        _low_margin_insight(completed, cfg),
        _trend_insight(completed, now, cfg),
    )
    return [insight for insight in checks if insight is not None]


class InsightsService:
    def __init__(self, config_root: Optional[str] = None) -> None:
        self.config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        self.thresholds = load_thresholds(self.config_root)

    def reload(self) -> None:
        self.thresholds = load_thresholds(self.config_root)

    def insights(
        self,
        articles: Iterable[ArticleRecord],
        sales: Iterable[SaleRecord],
        now: datetime,
    ) -> List[PerformanceInsight]:
        return generate_insights(articles, sales, now, thresholds=self.thresholds)
