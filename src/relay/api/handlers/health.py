"""Health check endpoint handler."""

import asyncio
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Response

from relay import __version__
from relay.api.deps import RegistryDep
from relay.core.catalog import ModelRegistry
from relay.models.response import ComponentHealth, HealthResponse, HealthStatus
from relay.utils.errors import RelayError

logger = logging.getLogger(__name__)

router = APIRouter()

# Thresholds for health status determination
LATENCY_DEGRADED_MS = 2000
HEALTH_CHECK_TIMEOUT_SECONDS = 5


async def check_catalog_health(registry: ModelRegistry) -> ComponentHealth:
    """Check that a model catalog snapshot can be served.

    Args:
        registry: The model registry.

    Returns:
        ComponentHealth for the catalog.
    """
    start_time = time.perf_counter()
    try:
        catalog = await registry.get_catalog()
    except RelayError as e:
        return ComponentHealth(status=HealthStatus.UNHEALTHY, error=e.message)

    latency_ms = int((time.perf_counter() - start_time) * 1000)

    if not catalog.chat_model_ids:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            latency_ms=latency_ms,
            message="Catalog has no chat models",
        )
    if latency_ms > LATENCY_DEGRADED_MS:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            latency_ms=latency_ms,
            message="High latency detected",
        )
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        latency_ms=latency_ms,
        message=f"{len(catalog.chat_model_ids)} chat models",
    )


def determine_overall_status(checks: dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health status from component checks."""
    statuses = [check.status for check in checks.values()]

    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


@router.get("/health", response_model=HealthResponse)
async def health_check(registry: RegistryDep, response: Response) -> HealthResponse:
    """Service health including the model catalog.

    - HTTP 200: Service is healthy or degraded
    - HTTP 503: Service is unhealthy
    """
    try:
        catalog_check = await asyncio.wait_for(
            check_catalog_health(registry),
            timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        catalog_check = ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            error="Health check timeout",
        )

    checks = {"catalog": catalog_check}
    overall_status = determine_overall_status(checks)

    if overall_status == HealthStatus.UNHEALTHY:
        response.status_code = 503

    return HealthResponse(
        status=overall_status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness endpoint with no dependency checks."""
    return {"status": "alive"}


@router.get("/")
async def service_info() -> dict:
    """Describe the service and its endpoints."""
    return {
        "name": "relay-server",
        "version": __version__,
        "endpoints": ["/v1/models", "/v1/chat/completions", "/v1/messages"],
    }
