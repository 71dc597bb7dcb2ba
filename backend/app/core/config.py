"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables and provides helper functions to load the YAML files
holding the forecasting thresholds and display settings.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.schemas import ForecastThresholds

LOGGER = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Where the sales/articles snapshots and YAML configs live
    data_dir: str = "data"
    config_dir: str = "configs"

    currency: str = "FCFA"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        LOGGER.warning("Configuration at %s is not a mapping; ignoring it", file_path)
        return {}
    return data


def load_thresholds(config_root: str = "configs") -> ForecastThresholds:
    """Build ``ForecastThresholds`` from ``thresholds.yaml`` over the defaults.

    Invalid values are logged and the defaults are used instead, so a bad edit
    to the YAML file never takes the forecasting endpoints down.
    """
    raw = load_yaml(os.path.join(config_root, "thresholds.yaml"))
    try:
        return ForecastThresholds.model_validate(raw)
    except ValidationError as exc:
        LOGGER.warning("Invalid thresholds in %s; using defaults: %s", config_root, exc)
        return ForecastThresholds()
