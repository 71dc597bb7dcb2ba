r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API exposes the retail forecasting engine: revenue trend, short-horizon
sales predictions, stock reorder recommendations and performance insights,
plus sales statistics for the dashboard.  A health endpoint is also provided
for readiness/liveness checks.  Configuration is read from environment
variables and YAML files in `configs/`.
"""


import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

# Load .env from repo root before anything reads DATA_DIR / CONFIG_DIR
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

from .api.v1 import (  # noqa: E402
    approvals,
    catalog,
    configs,
    data,
    forecasts,
    health,
    insights,
    procure,
    statistics,
)
from .core.config import get_settings  # noqa: E402
from .core.observability import TokenAndRateLimitMiddleware, metrics_endpoint  # noqa: E402

logging.getLogger(__name__).info(
    "Data directory: %s, config directory: %s",
    os.getenv("DATA_DIR", get_settings().data_dir),
    os.getenv("CONFIG_DIR", get_settings().config_dir),
)

app = FastAPI(title="Retail Forecasting API", version="0.1.0")

# Allow cross-origin requests from the point-of-sale front end (and others).
origins_env = os.getenv("CORS_ORIGINS", "")
origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TokenAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")
app.include_router(procure.router, prefix="/api/v1")
app.include_router(insights.router, prefix="/api/v1")
app.include_router(statistics.router, prefix="/api/v1")
app.include_router(catalog.router, prefix="/api/v1")
app.include_router(configs.router, prefix="/api/v1")
app.include_router(approvals.router, prefix="/api/v1")
app.include_router(data.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""

    import uvicorn

    settings = get_settings()
    uvicorn.run("backend.app.main:app", host=settings.api_host, port=settings.api_port)
