from fastapi import APIRouter
from fastapi.responses import JSONResponse

from backend.core.time_utils import utc_now_iso

API_VERSION = "1.0.0"
INDEX_ENDPOINTS = [
    "/",
    "/fleet/summary",
    "/fleet/health",
    "/fleet/score",
    "/history",
    "/now",
    "/status",
    "/tools/search",
    "/metrics",
]
NO_STORE = {"Cache-Control": "no-store"}

router = APIRouter(tags=["system"])


@router.get("/")
async def service_index() -> JSONResponse:
    return JSONResponse(
        {
            "ok": True,
            "version": API_VERSION,
            "timestamp": utc_now_iso(),
            "endpoints": INDEX_ENDPOINTS,
        },
        headers=NO_STORE,
    )
