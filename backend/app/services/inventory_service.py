r"""backend\app\services\inventory_service.py

Data-access layer for the shop's articles and sales snapshots.

Exports from the hosted database arrive as loosely typed rows: camelCase or
snake_case keys, integer or UUID identifiers, line items as nested JSON.  This
is the only place where those rows are loosened into ``ArticleRecord`` and
``SaleRecord``; rows that cannot be validated are logged and skipped.
"""

from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
from pydantic import ValidationError

from ..models.schemas import ArticleRecord, SaleRecord
from .io_utils import prefer_parquet, read_json_lines

LOGGER = logging.getLogger(__name__)

ARTICLES_FILE = "articles.csv"
SALES_FILE = "sales.jsonl"

_KEY_ALIASES = {
    "articleId": "article_id",
    "buyPrice": "buy_price",
    "sellPrice": "sell_price",
    "minStock": "min_stock",
    "createdAt": "created_at",
}


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def normalise_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Map camelCase keys to snake_case and drop missing values."""

    clean: Dict[str, Any] = {}
    for key, value in row.items():
        if _is_missing(value):
            continue
        if isinstance(value, np.generic):
            value = value.item()
        clean[_KEY_ALIASES.get(str(key), str(key))] = value
    for key in ("id", "article_id"):
        if key in clean:
            clean[key] = str(clean[key])
    return clean


def _line_items(raw: Any) -> List[Dict[str, Any]]:
    if isinstance(raw, list):
        return [normalise_row(item) for item in raw if isinstance(item, dict)]
    return []


class InventoryService:
    """Load articles and sales from ``DATA_DIR`` as typed records."""

    def __init__(self, data_root: Optional[str] = None) -> None:
        self.data_root = Path(data_root or os.getenv("DATA_DIR", "data"))

    # ------------------------------------------------------------------
    def _articles_path(self) -> Path:
        return self.data_root / ARTICLES_FILE

    def _sales_path(self) -> Path:
        return self.data_root / SALES_FILE

    def data_files_present(self) -> bool:
        articles = self._articles_path()
        return (articles.exists() or articles.with_suffix(".parquet").exists()) and self._sales_path().exists()

    # ------------------------------------------------------------------
    def load_articles(self) -> List[ArticleRecord]:
        frame = prefer_parquet(self._articles_path())
        return self.parse_articles(frame.to_dict(orient="records"))

    def load_sales(self) -> List[SaleRecord]:
        frame = read_json_lines(self._sales_path())
        return self.parse_sales(frame.to_dict(orient="records"))

    # ------------------------------------------------------------------
    @staticmethod
    def parse_articles(rows: Iterable[Dict[str, Any]]) -> List[ArticleRecord]:
        articles: List[ArticleRecord] = []
        for index, row in enumerate(rows):
            clean = normalise_row(row)
            stock = clean.get("stock")
            if isinstance(stock, (int, float)) and stock < 0:
                # Oversold articles count as exhausted rather than vanishing.
                LOGGER.warning("Article %s has negative stock %s; treating it as 0", clean.get("id"), stock)
                clean["stock"] = 0
            try:
                articles.append(ArticleRecord.model_validate(clean))
            except ValidationError as exc:
                LOGGER.warning("Skipping invalid article row %d: %s", index, exc.errors()[0]["msg"])
        return articles

    @staticmethod
    def parse_sales(rows: Iterable[Dict[str, Any]]) -> List[SaleRecord]:
        sales: List[SaleRecord] = []
        for index, row in enumerate(rows):
            clean = normalise_row(row)
            clean["items"] = _line_items(clean.get("items"))
            try:
                sales.append(SaleRecord.model_validate(clean))
            except ValidationError as exc:
                LOGGER.warning("Skipping invalid sale row %d: %s", index, exc.errors()[0]["msg"])
        return sales

    # ------------------------------------------------------------------
    def get_article(self, article_id: str) -> Optional[ArticleRecord]:
        for article in self.load_articles():
            if article.id == article_id:
                return article
        return None

    def article_exists(self, article_id: str) -> bool:
        return self.get_article(article_id) is not None
