r"""backend/tests/test_catalog_api.py"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.main import app  # noqa: E402


client = TestClient(app)

AS_OF = "2024-06-30T12:00:00Z"
NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)

ARTICLES = [
    {"id": 1, "name": "Rice", "unit": "kg", "stock": 10, "minStock": 2, "status": "active", "buyPrice": 100, "sellPrice": 150},
    {"id": 2, "name": "Oil", "unit": "litre", "stock": 100, "minStock": 2, "status": "active", "buyPrice": 50, "sellPrice": 60},
    {"id": 3, "name": "Tea", "unit": "box", "stock": 4, "minStock": 2, "status": "inactive", "buyPrice": 10, "sellPrice": 30},
]

SALES = [
    {
        "id": 1,
        "createdAt": (NOW - timedelta(days=1)).isoformat(),
        "total": 300,
        "status": "completed",
        "items": [{"articleId": 1, "name": "Rice", "quantity": 2, "profit": 100, "total": 300}],
    },
    {
        "id": 2,
        "createdAt": (NOW - timedelta(days=45)).isoformat(),
        "total": 120,
        "status": "completed",
        "items": [{"articleId": 2, "name": "Oil", "quantity": 2, "profit": 20, "total": 120}],
    },
]


def test_health_endpoints(tmp_path: Path, write_snapshot, use_data_dir) -> None:
    assert client.get("/api/v1/health").json() == {"status": "ok"}

    use_data_dir(tmp_path / "missing")
    assert client.get("/api/v1/health/ready").status_code == 503

    use_data_dir(write_snapshot(ARTICLES, SALES))
    assert client.get("/api/v1/health/ready").json() == {"status": "ready"}


def test_catalog_lists_active_articles(write_snapshot, use_data_dir) -> None:
    use_data_dir(write_snapshot(ARTICLES, SALES))

    response = client.get("/api/v1/catalog/articles")

    assert response.status_code == 200
    assert response.json()["articles"] == [
        {"id": "1", "name": "Rice", "unit": "kg", "stock": 10},
        {"id": "2", "name": "Oil", "unit": "litre", "stock": 100},
    ]


def test_catalog_limit_and_inactive(write_snapshot, use_data_dir) -> None:
    use_data_dir(write_snapshot(ARTICLES, SALES))

    response = client.get("/api/v1/catalog/articles", params={"include_inactive": True, "limit": 5})
    assert [row["id"] for row in response.json()["articles"]] == ["1", "2", "3"]

    response = client.get("/api/v1/catalog/articles", params={"limit": 1})
    assert [row["id"] for row in response.json()["articles"]] == ["1"]

    assert client.get("/api/v1/catalog/articles", params={"limit": 0}).status_code == 422


def test_statistics_summary(write_snapshot, use_data_dir) -> None:
    use_data_dir(write_snapshot(ARTICLES, SALES))

    response = client.get("/api/v1/statistics/summary", params={"as_of": AS_OF, "days": 30})

    assert response.status_code == 200
    summary = response.json()
    assert summary["total_sales"] == 1
    assert summary["total_revenue"] == 300.0
    assert summary["avg_margin_pct"] == 33.3
    assert len(summary["daily"]) == 7
    assert summary["top_products"][0]["article_id"] == "1"


def test_statistics_profitability(write_snapshot, use_data_dir) -> None:
    use_data_dir(write_snapshot(ARTICLES, SALES))

    response = client.get("/api/v1/statistics/profitability", params={"sort_by": "stock"})

    assert response.status_code == 200
    assert [row["article_id"] for row in response.json()] == ["2", "1"]

    response = client.get("/api/v1/statistics/profitability", params={"sort_by": "colour"})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_sort"
