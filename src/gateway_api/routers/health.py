import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()

PROCESS_START = time.monotonic()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def index(request: Request):
    """Service banner listing the available endpoints."""
    settings = request.app.state.settings
    return {
        "message": f"Welcome to {settings.app_name}!",
        "status": "Server is running successfully",
        "version": settings.version,
        "timestamp": _now(),
        "endpoints": {
            "health": "/health - Health check",
            "docs": "/docs - OpenAPI documentation",
            "upload": "/api/upload - Upload single file",
            "uploadMultiple": "/api/upload/multiple - Upload multiple files",
            "signedUrl": "/api/get-signed-url - Get signed URL",
            "fetchFile": "/api/files/{key} - Fetch file content directly",
            "messages": "/api/messages - Queue a message for broadcast",
            "dashboard": "/dashboard - Live SQS Messaging Dashboard",
            "realtime": "/ws - Realtime WebSocket channel",
        },
    }


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint for monitoring API status and component readiness.

    Reports process uptime, connected realtime clients and whether the
    queue poller task is alive.
    """
    state = request.app.state
    poller_task = getattr(state, "poller_task", None)
    if poller_task is None:
        poller_status = "disabled"
    elif poller_task.done():
        poller_status = "stopped"
    else:
        poller_status = "running"

    return {
        "status": "OK",
        "uptime": time.monotonic() - PROCESS_START,
        "version": state.settings.version,
        "timestamp": _now(),
        "components": {
            "api": "ready",
            "poller": poller_status,
            "realtimeClients": len(state.transport),
        },
    }
