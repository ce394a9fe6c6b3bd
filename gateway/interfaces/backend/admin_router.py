"""
FastAPI router for administrative endpoints.

System information, backend connection tests, a detailed health check,
a dashboard summary and activity analytics. Connection probes never
fail the request; the health check answers 503 when any service is
unreachable.
"""

import os
import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from gateway.application.backend.check_connections import (
    AnalyticsPeriod,
    BackendHealthService,
)
from gateway.core.config import Settings
from gateway.infrastructure.realtime.fanout import ChangeFanout
from gateway.interfaces.backend.dependencies import (
    get_fanout,
    get_health_service,
    get_settings,
)
from gateway.interfaces.backend.schemas import ApiResponse
from gateway.shared.security.rate_limiting import enforce_rate_limit

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(enforce_rate_limit)],
)


def _uptime(request: Request) -> float:
    started = getattr(request.app.state, "started_at", None)
    return round(time.monotonic() - started, 3) if started else 0.0


@router.get(
    "/system-info",
    response_model=ApiResponse[dict],
    summary="System information",
)
def system_info(
    request: Request,
    config: Settings = Depends(get_settings),
    fanout: ChangeFanout = Depends(get_fanout),
) -> ApiResponse[dict]:
    return ApiResponse(
        data={
            "server": {
                "pythonVersion": platform.python_version(),
                "platform": platform.system().lower(),
                "architecture": platform.machine(),
                "uptime": _uptime(request),
                "environment": config.environment,
                "processId": os.getpid(),
            },
            "configuration": {
                "version": config.version,
                "logLevel": config.log_level,
                "apiPrefix": config.api_prefix,
                "corsConfigured": bool(config.cors_origins),
                "rateLimitingEnabled": bool(config.rate_limit_default),
                "rateLimit": config.rate_limit_default,
                "inMemoryBackends": config.use_in_memory_backends,
                "firebaseConfigured": config.has_firebase_credentials,
                "storageBucket": config.firebase_storage_bucket,
                "maxUploadSizeBytes": config.max_upload_size_bytes,
                "maxUploadFiles": config.max_upload_files,
            },
            "realtime": fanout.stats,
        }
    )


@router.post(
    "/test-connections",
    summary="Test backend connections",
    description="Probe Firestore, Auth and Storage and report each one's status.",
)
def test_connections(
    service: BackendHealthService = Depends(get_health_service),
) -> dict:
    report = service.test_connections()
    return {
        "success": report.all_connected,
        "data": {
            "overall": (
                "all services connected"
                if report.all_connected
                else "some services failed"
            ),
            "services": {
                name: {"status": s.status, "error": s.error}
                for name, s in report.services.items()
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }


@router.get(
    "/health-detailed",
    summary="Detailed health check",
    description="200 when every backend service responds, 503 otherwise.",
)
def health_detailed(
    request: Request,
    service: BackendHealthService = Depends(get_health_service),
) -> JSONResponse:
    report = service.test_connections()
    healthy = report.all_connected
    body = {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": _uptime(request),
        "services": {
            name: (
                {"status": "healthy", "message": "Connected"}
                if s.status == "connected"
                else {"status": "unhealthy", "message": s.error}
            )
            for name, s in report.services.items()
        },
        "system": {
            "pythonVersion": platform.python_version(),
            "platform": platform.system().lower(),
        },
    }
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"success": healthy, "data": body},
    )


@router.get(
    "/dashboard",
    response_model=ApiResponse[dict],
    summary="Dashboard summary",
    description="Collection, user and file counts with sample documents.",
)
def dashboard(
    request: Request,
    config: Settings = Depends(get_settings),
    service: BackendHealthService = Depends(get_health_service),
) -> ApiResponse[dict]:
    summary = service.dashboard()
    summary["project"] = {
        "projectId": config.firebase_project_id,
        "storageBucket": config.firebase_storage_bucket,
    }
    summary["system"] = {
        "pythonVersion": platform.python_version(),
        "uptime": _uptime(request),
        "environment": config.environment,
    }
    summary["timestamp"] = datetime.now(timezone.utc).isoformat()
    return ApiResponse(data=summary)


@router.get(
    "/analytics",
    response_model=ApiResponse[dict],
    summary="Activity analytics",
    description=(
        "Collections with documents updated in the last hour, day, week or "
        "month, and users created in the same window."
    ),
)
def analytics(
    request: Request,
    service: BackendHealthService = Depends(get_health_service),
    period: AnalyticsPeriod = "day",
) -> ApiResponse[dict]:
    report = service.analytics(period)
    report["systemMetrics"] = {
        "cpuTimeSeconds": round(time.process_time(), 3),
        "uptime": _uptime(request),
        "processId": os.getpid(),
    }
    return ApiResponse(data=report)
