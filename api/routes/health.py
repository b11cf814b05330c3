"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Response
from pydantic import BaseModel

from api.services.configuration_store import get_configuration_store
from core import __version__
from reference_data import get_all_invoicing_item_names, get_all_money_movement_names


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str
    services: Dict[str, str]
    configuration: Dict[str, int]


def _catalog_loaded() -> bool:
    return bool(get_all_invoicing_item_names()) and bool(get_all_money_movement_names())


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check with a summary of the loaded configuration."""
    config = get_configuration_store().get()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        services={
            "api": "up",
            "reference_catalog": "up" if _catalog_loaded() else "empty",
        },
        configuration={
            "fieldMappings": len(config.field_mappings),
            "conditionMappings": len(config.condition_mappings),
        },
    )


@router.get("/ready")
async def readiness_check(response: Response) -> Dict[str, str]:
    """Readiness probe; not ready until the reference catalog is loaded."""
    if not _catalog_loaded():
        response.status_code = 503
        return {"status": "not_ready"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}
