from datetime import datetime, timezone
import time

from fastapi import APIRouter, Depends

from ..dependencies import Services, get_services

router = APIRouter(tags=["health"])

STARTED_AT = time.monotonic()


@router.get("/health")
def health(services: Services = Depends(get_services)):
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": services.settings.environment,
        "xrpl_mode": services.settings.xrpl_mode,
    }
