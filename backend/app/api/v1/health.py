r"""backend\app\api\v1\health.py

Liveness and readiness checks for orchestrators and load balancers.

`/api/v1/health` only says the process is up; `/api/v1/health/ready`
additionally requires the articles and sales exports to be in place.
"""

from fastapi import APIRouter, HTTPException, status

from ...services.inventory_service import InventoryService
from ..deps import DATA_UNAVAILABLE_MESSAGE, error_payload

router = APIRouter()

_inventory_service = InventoryService()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Return a basic health indicator."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, str]:
    if not _inventory_service.data_files_present():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=error_payload("data_unavailable", DATA_UNAVAILABLE_MESSAGE),
        )
    return {"status": "ready"}
