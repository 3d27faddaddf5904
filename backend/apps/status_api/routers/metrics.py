"""Request counters (token gated) and Prometheus exposition (gated by env)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from backend.apps.status_api.dependencies import get_app_settings, get_reconciler
from backend.apps.status_api.perf.metrics.reconciler import MetricsReconciler
from backend.apps.status_api.security import require_metrics_token
from backend.core.settings import Settings
from backend.core.time_utils import utc_now_iso

router = APIRouter(tags=["metrics"])

NO_STORE = {"Cache-Control": "no-store"}


@router.get("/metrics", dependencies=[Depends(require_metrics_token)])
async def metrics(reconciler: MetricsReconciler = Depends(get_reconciler)) -> JSONResponse:
    state = await reconciler.snapshot()
    return JSONResponse(
        {
            "uptime_ms": reconciler.uptime_ms(),
            **state.to_dict(),
            "timestamp": utc_now_iso(),
        },
        headers=NO_STORE,
    )


@router.get("/metrics/prometheus", include_in_schema=False)
async def prometheus_metrics(settings: Settings = Depends(get_app_settings)) -> Response:
    if not settings.metrics_enabled:
        raise HTTPException(status_code=404)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
