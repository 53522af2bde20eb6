"""
Liveness endpoints for the installations API.

GET /health returns {"status": "ok"} and GET /ping returns "pong", both with
HTTP 200 and without authentication. Intended for Docker HEALTHCHECK and
load balancer health checks.

CHANGELOG:
- 2026-10-11: Initial creation
"""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Return a simple health status.

    Returns:
        dict: ``{"status": "ok"}`` indicating the service is alive.
    """
    return {"status": "ok"}


@router.get("/ping")
async def ping() -> str:
    return "pong"
