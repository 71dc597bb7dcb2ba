from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest


ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import ForecastThresholds, SaleRecord
from backend.app.services.forecasting_service import (
    ForecastingService,
    age_in_days,
    analyze_trend,
    calculate_moving_average,
    daily_totals,
    predict_sales,
    round_half_up,
)


NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _sale(sale_id: str, days_ago: float, total: float, status: str = "completed") -> SaleRecord:
    return SaleRecord(
        id=sale_id,
        created_at=NOW - timedelta(days=days_ago),
        total=total,
        items=[],
        status=status,
    )


def test_round_half_up_matches_math_round() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(12.25, 1) == 12.3
    assert round_half_up(0.0) == 0


def test_age_in_days_truncates_partial_days() -> None:
    assert age_in_days(NOW, NOW) == 0
    assert age_in_days(NOW, NOW - timedelta(days=7, hours=23)) == 7
    assert age_in_days(NOW, NOW - timedelta(days=8)) == 8
    assert age_in_days(NOW, NOW + timedelta(hours=36)) == -1


def test_age_in_days_treats_naive_timestamps_as_utc() -> None:
    naive = datetime(2024, 6, 28, 12, 0)
    assert age_in_days(NOW, naive) == 2
    assert age_in_days(NOW.replace(tzinfo=None), NOW - timedelta(days=3)) == 3


def test_trend_requires_minimum_sales() -> None:
    sales = [_sale(f"s{i}", i, 100.0) for i in range(6)]

    result = analyze_trend(sales, NOW)

    assert result.trend == "stable"
    assert result.percentage_change == 0
    assert "Insufficient data" in result.description


def test_trend_ignores_non_completed_sales_for_minimum() -> None:
    sales = [_sale(f"s{i}", i, 100.0) for i in range(6)]
    sales.append(_sale("cancelled", 9, 100.0, status="cancelled"))
    sales.append(_sale("suspended", 10, 100.0, status="suspended"))

    result = analyze_trend(sales, NOW)

    assert result.percentage_change == 0
    assert result.description == "Insufficient data for a trend analysis"


def test_trend_without_previous_week_is_stable() -> None:
    sales = [_sale(f"s{i}", i % 7, 100.0) for i in range(8)]

    result = analyze_trend(sales, NOW)

    assert result.trend == "stable"
    assert result.percentage_change == 0
    assert result.description == "Insufficient data to compare with the previous week"


def test_trend_increasing_week_over_week() -> None:
    recent = [_sale(f"a{i}", i, 30_000.0) for i in range(5)]
    previous = [_sale(f"b{i}", 8 + i, 25_000.0) for i in range(4)]

    result = analyze_trend(recent + previous, NOW)

    assert result.trend == "increasing"
    assert result.percentage_change == 50.0
    assert "50%" in result.description


def test_trend_decreasing_week_over_week() -> None:
    recent = [_sale(f"a{i}", i, 10.0) for i in range(5)]
    previous = [_sale(f"b{i}", 9 + i, 25.0) for i in range(4)]

    result = analyze_trend(recent + previous, NOW)

    assert result.trend == "decreasing"
    assert result.percentage_change == -50.0
    assert "50%" in result.description
    assert "-" not in result.description


def test_trend_small_change_is_stable() -> None:
    recent = [_sale(f"a{i}", i, 21.0) for i in range(5)]
    previous = [_sale(f"b{i}", 8 + i, 25.0) for i in range(4)]

    result = analyze_trend(recent + previous, NOW)

    assert result.trend == "stable"
    assert result.percentage_change == 5.0
    assert result.description == "Sales are stable"


def test_trend_exactly_ten_percent_is_stable() -> None:
    previous = [_sale(f"b{i}", 8 + i, 25.0) for i in range(4)]
    up = [_sale(f"a{i}", i, 22.0) for i in range(5)]
    down = [_sale(f"a{i}", i, 18.0) for i in range(5)]

    rising = analyze_trend(up + previous, NOW)
    falling = analyze_trend(down + previous, NOW)

    assert (rising.trend, rising.percentage_change) == ("stable", 10.0)
    assert (falling.trend, falling.percentage_change) == ("stable", -10.0)


def test_trend_classified_on_rounded_percentage() -> None:
    previous = [_sale(f"b{i}", 8 + i, 25.0) for i in range(4)]
    just_above = [_sale(f"a{i}", i, 22.008) for i in range(5)]
    clearly_above = [_sale(f"a{i}", i, 22.012) for i in range(5)]

    # +10.04% is reported as 10.0, so it stays stable.
    assert analyze_trend(just_above + previous, NOW).trend == "stable"
    result = analyze_trend(clearly_above + previous, NOW)
    assert (result.trend, result.percentage_change) == ("increasing", 10.1)


def test_trend_window_boundaries() -> None:
    # Age 7 belongs to the recent week, age 14 to the previous one, age 15 to neither.
    sales = [_sale(f"a{i}", 0, 10.0) for i in range(5)]
    sales.append(_sale("edge-recent", 7.5, 100.0))
    sales.append(_sale("edge-previous", 14.9, 100.0))
    sales.append(_sale("too-old", 15, 10_000.0))

    result = analyze_trend(sales, NOW)

    assert result.percentage_change == 50.0
    assert result.trend == "increasing"


def test_trend_percentage_rounds_to_one_decimal() -> None:
    sales = [_sale(f"a{i}", 1, 1.0) for i in range(6)]
    sales.append(_sale("a-big", 2, 995.0))
    sales.append(_sale("b", 10, 300.0))

    result = analyze_trend(sales, NOW)

    assert result.percentage_change == 233.7
    assert "234%" in result.description


def test_trend_threshold_is_configurable() -> None:
    recent = [_sale(f"a{i}", i, 21.0) for i in range(5)]
    previous = [_sale(f"b{i}", 8 + i, 25.0) for i in range(4)]

    result = analyze_trend(recent + previous, NOW, thresholds=ForecastThresholds(trend_change_pct=2))

    assert result.trend == "increasing"


def test_calculate_moving_average_uses_suffix() -> None:
    assert calculate_moving_average([1.0, 2.0, 3.0, 4.0], 2) == 3.5
    assert calculate_moving_average([], 7) == 0.0


def test_daily_totals_sorted_and_summed() -> None:
    sales = [_sale("x", 1, 10.0), _sale("y", 3, 5.0), _sale("z", 1, 2.5)]

    totals = daily_totals(sales)

    assert list(totals.values()) == [5.0, 12.5]
    assert list(totals) == sorted(totals)


def test_predict_without_sales_is_zero_low_confidence() -> None:
    predictions = predict_sales([], 7, NOW)

    assert len(predictions) == 7
    assert all(p.predicted_sales == 0 for p in predictions)
    assert all(p.confidence == 0.5 for p in predictions)
    assert [p.date for p in predictions] == [NOW.date() + timedelta(days=offset) for offset in range(1, 8)]


def test_predict_flat_line_from_last_seven_days() -> None:
    sales = [_sale(f"s{age}", age, 100.0 * (age + 1)) for age in range(10)]

    predictions = predict_sales(sales, 3, NOW)

    assert len(predictions) == 3
    assert {p.predicted_sales for p in predictions} == {400}
    assert {p.confidence for p in predictions} == {0.75}


def test_predict_ignores_sales_older_than_thirty_days() -> None:
    sales = [_sale(f"s{age}", age, 100.0 * (age + 1)) for age in range(10)]
    baseline = predict_sales(sales, 3, NOW)

    sales.append(_sale("old", 31, 1_000_000.0))
    sales.append(_sale("cancelled", 1, 1_000_000.0, status="cancelled"))

    assert predict_sales(sales, 3, NOW) == baseline


def test_predict_buckets_by_calendar_day() -> None:
    sales = [
        _sale("a", 1, 1.0),
        _sale("b", 1, 1.0),
        _sale("c", 2, 1.0),
    ]

    predictions = predict_sales(sales, 1, NOW)

    # Two buckets (2.0 and 1.0), mean 1.5 rounds half up.
    assert predictions[0].predicted_sales == 2
    assert predictions[0].confidence == 0.5


def test_predict_non_positive_horizon_is_empty() -> None:
    assert predict_sales([_sale("a", 1, 10.0)], 0, NOW) == []


def test_predict_requires_now() -> None:
    with pytest.raises(TypeError):
        predict_sales([], 7)


def test_service_rejects_non_positive_horizon(tmp_path: Path) -> None:
    service = ForecastingService(config_root=str(tmp_path))

    with pytest.raises(ValueError):
        service.predict([], NOW, 0)


def test_service_reads_threshold_overrides(tmp_path: Path) -> None:
    (tmp_path / "thresholds.yaml").write_text("min_trend_sales: 2\n")
    service = ForecastingService(config_root=str(tmp_path))
    sales = [_sale("a", 1, 200.0), _sale("b", 9, 100.0)]

    result = service.trend(sales, NOW)

    assert service.thresholds.min_trend_sales == 2
    assert result.trend == "increasing"
    assert result.percentage_change == 100.0
