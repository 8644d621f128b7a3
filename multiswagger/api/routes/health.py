"""
Health check endpoints.

Liveness never depends on the cluster. Readiness waits for the first
successful ConfigMap poll, so traffic only reaches a pod that has a catalog.
"""
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Request, Response, status

from multiswagger import __version__

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Liveness check - Is the service running?"""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/readyz")
async def readyz(request: Request, response: Response):
    """
    Readiness check - Has the spec catalog been loaded?

    Returns 200 once the watcher installed a snapshot (or watching is
    disabled), 503 before that.
    """
    watcher = request.app.state.watcher
    registry = request.app.state.registry

    checks: Dict[str, Any] = {"specs": len(registry)}
    if watcher is None:
        ready = True
        checks["watcher"] = {"status": "disabled"}
    else:
        ready = watcher.ready
        checks["watcher"] = watcher.get_status()

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }
