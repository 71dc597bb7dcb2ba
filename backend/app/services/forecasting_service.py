r"""backend\app\services\forecasting_service.py

Revenue trend analysis and short-horizon sales prediction.

Both calculations work on already-materialised sale records and take the
reference moment ``now`` explicitly, so they are deterministic for a given
snapshot.  The prediction is a deliberately naive flat line: the moving
average of the most recent daily totals is repeated for every future day.

Sparse data never raises; it degrades to a ``stable`` trend or a zero
prediction with low confidence.
"""

from __future__ import annotations

import logging
import math
import os
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..core.config import load_thresholds
from ..models.schemas import (
    ForecastThresholds,
    SaleRecord,
    SalesPrediction,
    TrendResult,
)

LOGGER = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)
DEFAULT_THRESHOLDS = ForecastThresholds()

HIGH_CONFIDENCE = 0.75
LOW_CONFIDENCE = 0.5


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves towards positive infinity, like ``Math.round`` does."""

    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def _align(now: datetime, moment: datetime) -> tuple[datetime, datetime]:
    now_aware = now.utcoffset() is not None
    moment_aware = moment.utcoffset() is not None
    if now_aware and not moment_aware:
        moment = moment.replace(tzinfo=timezone.utc)
    elif moment_aware and not now_aware:
        now = now.replace(tzinfo=timezone.utc)
    return now, moment


def age_in_days(now: datetime, created_at: datetime) -> int:
    """Whole days elapsed between ``created_at`` and ``now``, truncated."""

    now, created_at = _align(now, created_at)
    return math.trunc((now - created_at) / _ONE_DAY)


def completed_sales(sales: Iterable[SaleRecord]) -> List[SaleRecord]:
    return [sale for sale in sales if sale.status == "completed"]


def sales_within(sales: Iterable[SaleRecord], now: datetime, max_age_days: int) -> List[SaleRecord]:
    """Return the sales at most ``max_age_days`` old."""

    return [sale for sale in sales if age_in_days(now, sale.created_at) <= max_age_days]


def daily_totals(sales: Iterable[SaleRecord]) -> Dict[date, float]:
    """Sum sale totals per calendar day, keyed and ordered by day."""

    buckets: defaultdict[date, float] = defaultdict(float)
    for sale in sales:
        buckets[sale.created_at.date()] += float(sale.total)
    return dict(sorted(buckets.items()))


def calculate_moving_average(values: Sequence[float], period: int) -> float:
    """Mean of the last ``period`` values, 0 for an empty sequence."""

    if not values or period <= 0:
        return 0.0
    return float(np.mean(np.asarray(values[-period:], dtype=float)))


# ---------------------------------------------------------------------------
# Trend analysis


def analyze_trend(
    sales: Iterable[SaleRecord],
    now: datetime,
    *,
    thresholds: Optional[ForecastThresholds] = None,
) -> TrendResult:
    """Compare revenue of the last week with the week before."""

    cfg = thresholds or DEFAULT_THRESHOLDS
    completed = completed_sales(sales)

    if len(completed) < cfg.min_trend_sales:
        LOGGER.debug("Trend skipped: only %d completed sales", len(completed))
        return TrendResult(
            trend="stable",
            percentage_change=0.0,
            description="Insufficient data for a trend analysis",
        )

    window = cfg.trend_window_days
    recent_total = 0.0
    previous_total = 0.0
    for sale in completed:
        age = age_in_days(now, sale.created_at)
        if 0 <= age <= window:
            recent_total += float(sale.total)
        elif window < age <= 2 * window:
            previous_total += float(sale.total)

    if previous_total == 0:
        return TrendResult(
            trend="stable",
            percentage_change=0.0,
            description="Insufficient data to compare with the previous week",
        )

    change = (recent_total - previous_total) / previous_total * 100.0
    percentage_change = round_half_up(change, 1)

    if percentage_change > cfg.trend_change_pct:
        trend = "increasing"
        description = f"Sales are up {abs(int(round_half_up(change)))}% on the previous week"
    elif percentage_change < -cfg.trend_change_pct:
        trend = "decreasing"
        description = f"Sales are down {abs(int(round_half_up(change)))}% on the previous week"
    else:
        trend = "stable"
        description = "Sales are stable"

    LOGGER.debug(
        "Trend %s: recent=%.2f previous=%.2f change=%.1f%%",
        trend,
        recent_total,
        previous_total,
        percentage_change,
    )
    return TrendResult(trend=trend, percentage_change=percentage_change, description=description)


# ---------------------------------------------------------------------------
# Short-horizon prediction


def predict_sales(
    sales: Iterable[SaleRecord],
    horizon_days: int = 7,
    now: Optional[datetime] = None,
    *,
    thresholds: Optional[ForecastThresholds] = None,
) -> List[SalesPrediction]:
    """Flat-line revenue prediction for each of the next ``horizon_days`` days."""

    if now is None:
        raise TypeError("predict_sales() missing required argument: 'now'")

    cfg = thresholds or DEFAULT_THRESHOLDS
    recent = sales_within(completed_sales(sales), now, cfg.prediction_window_days)
    totals = daily_totals(recent)
    values = list(totals.values())

    average = calculate_moving_average(values, min(cfg.moving_average_days, len(values)))
    predicted = int(round_half_up(max(average, 0.0)))
    confidence = HIGH_CONFIDENCE if len(values) >= cfg.confident_day_count else LOW_CONFIDENCE

    LOGGER.debug(
        "Prediction over %d day buckets: average=%.2f confidence=%.2f",
        len(values),
        average,
        confidence,
    )
    return [
        SalesPrediction(
            date=(now + timedelta(days=offset)).date(),
            predicted_sales=predicted,
            confidence=confidence,
        )
        for offset in range(1, max(int(horizon_days), 0) + 1)
    ]


# ---------------------------------------------------------------------------
# Core service implementation


class ForecastingService:
    """Trend and prediction endpoints bound to the configured thresholds."""

    DEFAULT_HORIZON_DAYS: int = 7

    def __init__(self, config_root: Optional[str] = None) -> None:
        self.config_root = config_root or os.getenv("CONFIG_DIR", "configs")
        self.thresholds = load_thresholds(self.config_root)

    def reload(self) -> None:
        self.thresholds = load_thresholds(self.config_root)

    def trend(self, sales: Iterable[SaleRecord], now: datetime) -> TrendResult:
        return analyze_trend(sales, now, thresholds=self.thresholds)

    def predict(
        self,
        sales: Iterable[SaleRecord],
        now: datetime,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
    ) -> List[SalesPrediction]:
        if horizon_days <= 0:
            raise ValueError("horizon_days must be a positive integer")
        return predict_sales(sales, horizon_days, now, thresholds=self.thresholds)
