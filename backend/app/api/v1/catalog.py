r"""backend\app\api\v1\catalog.py"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Query

from ...services.inventory_service import InventoryService
from ..deps import load_articles

router = APIRouter()

_inventory_service = InventoryService()


@router.get("/catalog/articles")
def get_articles(
    limit: int = Query(50, ge=1, le=1000),
    include_inactive: bool = Query(False),
) -> dict[str, List[Dict[str, Any]]]:
    """Return up to ``limit`` articles for UI pickers, active ones by default."""

    articles = load_articles(_inventory_service)
    if not include_inactive:
        articles = [article for article in articles if article.status == "active"]
    return {
        "articles": [
            {"id": article.id, "name": article.name, "unit": article.unit, "stock": article.stock}
            for article in articles[:limit]
        ]
    }
