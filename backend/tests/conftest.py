from __future__ import annotations

import json
import sys
from collections import defaultdict, deque
from pathlib import Path
from typing import Callable, Iterable

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core import observability as obs  # noqa: E402

ROUTER_MODULES = (
    "approvals",
    "catalog",
    "forecasts",
    "health",
    "insights",
    "procure",
    "statistics",
)


@pytest.fixture(autouse=True)
def _fresh_middleware_state(monkeypatch) -> None:
    """Every test starts unauthenticated with an empty rate-limit window."""

    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", None, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_per_minute", 60, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_buckets", defaultdict(deque), raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_last_sweep", 0.0, raising=False)


@pytest.fixture
def write_snapshot(tmp_path: Path) -> Callable[[Iterable[dict], Iterable[dict]], Path]:
    """Write ``articles.csv`` and ``sales.jsonl`` under ``tmp_path/data``."""

    def _write(articles: Iterable[dict], sales: Iterable[dict]) -> Path:
        data_dir = tmp_path / "data"
        data_dir.mkdir(exist_ok=True)
        pd.DataFrame(list(articles)).to_csv(data_dir / "articles.csv", index=False)
        with (data_dir / "sales.jsonl").open("w", encoding="utf-8") as handle:
            for sale in sales:
                handle.write(json.dumps(sale) + "\n")
        return data_dir

    return _write


@pytest.fixture
def use_data_dir(monkeypatch) -> Callable[[Path], None]:
    """Point every router's inventory service at ``data_dir``."""

    def _use(data_dir: Path) -> None:
        for name in ROUTER_MODULES:
            monkeypatch.setattr(
                f"backend.app.api.v1.{name}._inventory_service.data_root", Path(data_dir)
            )

    return _use
