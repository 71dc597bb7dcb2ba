"""Helpers shared by the v1 routers."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, TypeVar

from fastapi import HTTPException, status

from ..core.config import load_yaml
from ..models.schemas import ArticleRecord, SaleRecord
from ..services.inventory_service import InventoryService

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DATA_UNAVAILABLE_MESSAGE = (
    "Required data files are missing. Export articles.csv and sales.jsonl to the data directory and retry."
)


def error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def resolve_now(as_of: Optional[datetime]) -> datetime:
    """Reference moment for an analysis: ``as_of`` if given, else current UTC time."""

    return as_of if as_of is not None else datetime.now(timezone.utc)


def display_settings() -> dict:
    return load_yaml(os.path.join(os.getenv("CONFIG_DIR", "configs"), "settings.yaml"))


def _guarded(inventory: InventoryService, loader: Callable[[], T]) -> T:
    try:
        return loader()
    except FileNotFoundError as exc:
        LOGGER.error("Snapshot unavailable under %s: %s", inventory.data_root, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_payload("data_unavailable", DATA_UNAVAILABLE_MESSAGE),
        ) from exc
    except ValueError as exc:
        LOGGER.exception("Snapshot under %s could not be parsed", inventory.data_root)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_payload("data_unavailable", f"Data files could not be parsed: {exc}"),
        ) from exc


def load_articles(inventory: InventoryService) -> List[ArticleRecord]:
    return _guarded(inventory, inventory.load_articles)


def load_sales(inventory: InventoryService) -> List[SaleRecord]:
    return _guarded(inventory, inventory.load_sales)


def load_snapshot(inventory: InventoryService) -> Tuple[List[ArticleRecord], List[SaleRecord]]:
    """Load articles and sales, mapping missing or unreadable files to a 503."""

    return load_articles(inventory), load_sales(inventory)
