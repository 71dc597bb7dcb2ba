r"""backend\app\services\validation_service.py"""

from __future__ import annotations

import os

from .inventory_service import ARTICLES_FILE, SALES_FILE
from .io_utils import prefer_parquet, read_json_lines

REQUIRED_ARTICLE_COLS = ["id", "name", "stock"]
REQUIRED_SALE_COLS = ["id", "total", "items"]
CREATED_AT_COLS = ("created_at", "createdAt")


class ValidationService:
    def __init__(self, data_root: str | None = None):
        self.data_root = data_root or os.getenv("DATA_DIR", "data")

    def run(self) -> dict:
        checks = []

        def add(name: str, ok: bool, msg: str = "") -> None:
            checks.append({"name": name, "ok": bool(ok), "message": msg})

        articles = os.path.join(self.data_root, ARTICLES_FILE)
        articles_pq = os.path.splitext(articles)[0] + ".parquet"
        sales = os.path.join(self.data_root, SALES_FILE)

        has_articles = os.path.exists(articles) or os.path.exists(articles_pq)
        add("file_articles_exists", has_articles, articles)
        add("file_sales_exists", os.path.exists(sales), sales)

        if has_articles:
            df = prefer_parquet(articles)
            missing = [c for c in REQUIRED_ARTICLE_COLS if c not in df.columns]
            add("articles_columns_ok", not missing, f"missing: {missing}" if missing else f"{len(df)} rows")

        if os.path.exists(sales):
            dfs = read_json_lines(sales)
            missing = [c for c in REQUIRED_SALE_COLS if c not in dfs.columns]
            if not any(c in dfs.columns for c in CREATED_AT_COLS):
                missing.append("created_at")
            if dfs.empty:
                add("sales_columns_ok", True, "0 rows")
            else:
                add("sales_columns_ok", not missing, f"missing: {missing}" if missing else f"{len(dfs)} rows")

        overall = all(x["ok"] for x in checks)
        return {"ok": overall, "checks": checks}
