"""Sales summaries and article profitability built on pandas group-bys."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, List

import pandas as pd

from ..models.schemas import (
    ArticleProfitability,
    ArticleRecord,
    DailySalesPoint,
    SaleRecord,
    SalesSummary,
    TopProduct,
)
from .forecasting_service import age_in_days, completed_sales, round_half_up

LOGGER = logging.getLogger(__name__)

SORT_COLUMNS = {
    "margin": "margin_pct",
    "profit": "potential_profit",
    "stock": "stock_value",
}

_SALE_COLUMNS = ["sale_id", "day", "revenue", "profit"]
_ITEM_COLUMNS = ["article_id", "name", "quantity", "revenue"]


def _margin_pct(profit: float, revenue: float) -> float:
    return round_half_up(profit / revenue * 100.0, 1) if revenue > 0 else 0.0


def _frames(sales: List[SaleRecord]) -> tuple[pd.DataFrame, pd.DataFrame]:
    sale_rows = []
    item_rows = []
    for sale in sales:
        sale_rows.append(
            {
                "sale_id": sale.id,
                "day": sale.created_at.date(),
                "revenue": float(sale.total),
                "profit": sum(float(item.profit) for item in sale.items),
            }
        )
        for item in sale.items:
            item_rows.append(
                {
                    "article_id": item.article_id,
                    "name": item.name,
                    "quantity": int(item.quantity),
                    "revenue": float(item.total),
                }
            )
    return (
        pd.DataFrame(sale_rows, columns=_SALE_COLUMNS),
        pd.DataFrame(item_rows, columns=_ITEM_COLUMNS),
    )


def summarize_sales(
    sales: Iterable[SaleRecord],
    now: datetime,
    days: int = 30,
    chart_days: int = 7,
    top_n: int = 5,
) -> SalesSummary:
    """Revenue, profit and best sellers over the trailing ``days`` window."""

    window = [
        sale
        for sale in completed_sales(sales)
        if 0 <= age_in_days(now, sale.created_at) <= days
    ]
    sales_df, items_df = _frames(window)

    chart_index = [(now - timedelta(days=offset)).date() for offset in range(chart_days - 1, -1, -1)]
    per_day = (
        sales_df.groupby("day")[["revenue", "profit"]]
        .sum()
        .reindex(chart_index, fill_value=0.0)
    )
    daily = [
        DailySalesPoint(
            date=day,
            revenue=float(row.revenue),
            profit=float(row.profit),
            margin_pct=_margin_pct(float(row.profit), float(row.revenue)),
        )
        for day, row in per_day.iterrows()
    ]

    top_products: List[TopProduct] = []
    if not items_df.empty:
        ranked = (
            items_df.groupby("article_id", sort=False)
            .agg(name=("name", "first"), quantity=("quantity", "sum"), revenue=("revenue", "sum"))
            .sort_values("revenue", ascending=False, kind="stable")
            .head(top_n)
        )
        top_products = [
            TopProduct(
                article_id=str(article_id),
                name=None if pd.isna(row["name"]) else str(row["name"]),
                quantity=int(row["quantity"]),
                revenue=float(row["revenue"]),
            )
            for article_id, row in ranked.iterrows()
        ]

    total_revenue = float(sales_df["revenue"].sum())
    total_profit = float(sales_df["profit"].sum())
    LOGGER.debug("Summarised %d sales over %d days", len(sales_df), days)
    return SalesSummary(
        window_days=days,
        total_sales=int(len(sales_df)),
        total_revenue=total_revenue,
        total_profit=total_profit,
        avg_margin_pct=_margin_pct(total_profit, total_revenue),
        daily=daily,
        top_products=top_products,
    )


def analyze_profitability(
    articles: Iterable[ArticleRecord],
    sort_by: str = "margin",
) -> List[ArticleProfitability]:
    """Per-article unit margin, stock value and potential profit, best first."""

    if sort_by not in SORT_COLUMNS:
        raise ValueError(f"sort_by must be one of {sorted(SORT_COLUMNS)}")

    frame = pd.DataFrame(
        [
            {
                "article_id": article.id,
                "name": article.name,
                "buy_price": float(article.buy_price),
                "sell_price": float(article.sell_price),
                "stock": int(article.stock),
            }
            for article in articles
            if article.status == "active"
        ],
        columns=["article_id", "name", "buy_price", "sell_price", "stock"],
    )
    if frame.empty:
        return []

    frame["unit_profit"] = frame["sell_price"] - frame["buy_price"]
    frame["margin_pct"] = (
        (frame["unit_profit"] / frame["buy_price"].where(frame["buy_price"] > 0)) * 100.0
    ).fillna(0.0)
    frame["stock_value"] = frame["stock"] * frame["buy_price"]
    frame["potential_profit"] = frame["stock"] * frame["unit_profit"]
    frame = frame.sort_values(SORT_COLUMNS[sort_by], ascending=False, kind="stable")

    return [
        ArticleProfitability(
            article_id=str(row.article_id),
            name=str(row.name),
            unit_profit=float(row.unit_profit),
            margin_pct=float(row.margin_pct),
            stock_value=float(row.stock_value),
            potential_profit=float(row.potential_profit),
        )
        for row in frame.itertuples(index=False)
    ]
