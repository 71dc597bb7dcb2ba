r"""backend\app\api\v1\approvals.py

Endpoints recording what the shop owner did with reorder recommendations."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from ...services.inventory_service import InventoryService
from ...services.procurement_service import ProcurementService
from ..deps import error_payload, load_snapshot

LOGGER = logging.getLogger(__name__)

router = APIRouter()

DATA_DIR = os.getenv("DATA_DIR", "data")
LOG_PATH = os.path.join(DATA_DIR, "reorder_audit_log.jsonl")

_inventory_service = InventoryService()
_procurement_service = ProcurementService()


class ApprovalRequest(BaseModel):
    article_id: str = Field(..., min_length=1)
    action: Literal["order", "skip"]
    qty: int | None = Field(None, ge=0)
    reason: str | None = Field(None, min_length=1)

    @field_validator("action", mode="before")
    @classmethod
    def _normalise_action(cls, value: str) -> str:
        return (value or "").lower()


def _ensure_storage(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _write_event(event: Dict[str, Any]) -> None:
    path = Path(LOG_PATH)
    _ensure_storage(path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(event, separators=(",", ":")) + "\n")


def _read_events(limit: int) -> List[Dict[str, Any]]:
    path = Path(LOG_PATH)
    if not path.exists():
        return []

    events: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                LOGGER.warning("Skipping malformed audit log line in %s", path)
                continue
    if limit <= 0:
        return events
    return events[-limit:]


@router.post("/approvals")
def create_approval(request: ApprovalRequest) -> Dict[str, Any]:
    """Record an order/skip decision and append it to the audit log.

    An ``order`` without an explicit ``qty`` uses the quantity needed to reach
    the article's recommended stock level.
    """

    now = datetime.now(timezone.utc)
    articles, sales = load_snapshot(_inventory_service)
    if not any(article.id == request.article_id for article in articles):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("article_not_found", f"Article '{request.article_id}' was not found."),
        )

    recommendation = _procurement_service.recommendation_for(request.article_id, articles, sales, now)
    qty = request.qty
    if qty is None and request.action == "order" and recommendation is not None:
        qty = recommendation.order_qty

    event: Dict[str, Any] = {
        "article_id": request.article_id,
        "action": request.action,
        "recorded_at": now.isoformat(),
    }
    if recommendation is not None:
        event["urgency"] = recommendation.urgency
        event["recommended_stock"] = recommendation.recommended_stock
    if qty is not None:
        event["qty"] = int(qty)
    if request.reason is not None:
        event["reason"] = request.reason
    _write_event(event)
    LOGGER.info("Reorder decision recorded for article_id=%s action=%s", request.article_id, request.action)
    return {"status": "ok", "event": event}


@router.get("/approvals/audit-log")
def get_audit_log(limit: int = 50) -> Dict[str, List[Dict[str, Any]]]:
    """Return the most recent reorder decisions."""

    if limit < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_payload("invalid_limit", "limit must be non-negative."),
        )
    return {"events": _read_events(limit)}
