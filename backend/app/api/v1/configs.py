"""API endpoints for reading and updating configuration YAML files."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Optional

import yaml
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ..deps import error_payload

LOGGER = logging.getLogger(__name__)

router = APIRouter()

CONFIG_DIR = os.getenv("CONFIG_DIR", "configs")


def _settings_path() -> str:
    return os.path.join(CONFIG_DIR, "settings.yaml")


def _thresholds_path() -> str:
    return os.path.join(CONFIG_DIR, "thresholds.yaml")


def _load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _safe_write_yaml(path: str, payload: Dict[str, Any]) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".yaml", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)
        shutil.move(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class SettingsUpdate(BaseModel):
    default_horizon_days: Optional[int] = Field(None, ge=1, le=90)
    summary_days: Optional[int] = Field(None, ge=1, le=365)
    currency: Optional[str] = Field(None, min_length=1, max_length=8)


class ThresholdsUpdate(BaseModel):
    trend_change_pct: Optional[float] = Field(None, ge=0.0, le=100.0)
    high_urgency_days: Optional[float] = Field(None, ge=0.0, le=365.0)
    medium_urgency_days: Optional[float] = Field(None, ge=0.0, le=365.0)
    reorder_cover_days: Optional[int] = Field(None, ge=0, le=365)
    soon_cover_days: Optional[int] = Field(None, ge=0, le=365)
    stock_window_days: Optional[int] = Field(None, ge=1, le=365)
    unsold_window_days: Optional[int] = Field(None, ge=1, le=365)
    low_margin_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    low_margin_min_sales: Optional[int] = Field(None, ge=0)


def _merge_updates(original: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    result = original.copy()
    result.update({k: v for k, v in updates.items() if v is not None})
    return result


def _reload_services() -> None:
    """Push new thresholds into the routers' service singletons."""

    from . import forecasts, insights, procure

    for service in (
        forecasts._forecast_service,
        forecasts._procurement_service,
        forecasts._insights_service,
        procure._procurement_service,
        insights._insights_service,
    ):
        service.config_root = CONFIG_DIR
        service.reload()


def _get_document(path: str, name: str) -> Dict[str, Any]:
    try:
        return _load_yaml(path)
    except FileNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("not_found", f"{name} not found"),
        ) from exc


def _put_document(path: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    try:
        current = _load_yaml(path)
    except FileNotFoundError:
        current = {}

    updated = _merge_updates(current, updates)
    if updated == current:
        return current

    try:
        _safe_write_yaml(path, updated)
    except OSError as exc:
        LOGGER.exception("Failed to write %s", path)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("write_failed", str(exc)),
        ) from exc
    return updated


@router.get("/configs/settings")
def get_settings() -> Dict[str, Any]:
    return _get_document(_settings_path(), "settings.yaml")


@router.put("/configs/settings")
def put_settings(body: SettingsUpdate) -> Dict[str, Any]:
    return _put_document(_settings_path(), body.model_dump(exclude_none=True))


@router.get("/configs/thresholds")
def get_thresholds() -> Dict[str, Any]:
    return _get_document(_thresholds_path(), "thresholds.yaml")


@router.put("/configs/thresholds")
def put_thresholds(body: ThresholdsUpdate) -> Dict[str, Any]:
    updated = _put_document(_thresholds_path(), body.model_dump(exclude_none=True))
    _reload_services()
    return updated
