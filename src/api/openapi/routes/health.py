"""Health, liveness and readiness probes for the pipeline's backing services."""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.api.dependencies import FactoryDep, SettingsDep
from src.commons.infrastructure.blob.base import HealthStatus as ProbeResult
from src.commons.settings import Settings
from src.infrastructure.factory import InfrastructureFactory

router = APIRouter()

# Uploads, state and dispatch stop working without these
INGESTION_COMPONENTS = frozenset({"blob_storage", "document_db", "queue"})


class HealthStatus(str, Enum):
    """Overall or per-component health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Probe outcome for one backing service."""

    name: str = Field(description="Component name")
    status: HealthStatus
    required: bool = Field(description="Whether ingestion depends on it")
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Aggregated health of the service."""

    status: HealthStatus
    version: str
    environment: str
    transcription_enabled: bool
    search_enabled: bool
    components: list[ComponentHealth] = Field(default_factory=list)


class LivenessResponse(BaseModel):
    status: str = "ok"


class ReadinessResponse(BaseModel):
    """Whether the service can take uploads and encoder webhooks."""

    ready: bool
    checks: dict[str, bool] = Field(default_factory=dict)


async def _probe(
    name: str, check: Callable[[], Awaitable[ProbeResult]]
) -> tuple[str, ProbeResult]:
    try:
        return name, await check()
    except Exception as e:
        return name, ProbeResult(healthy=False, latency_ms=0.0, message=str(e))


async def _probe_components(
    factory: InfrastructureFactory, settings: Settings
) -> dict[str, ProbeResult]:
    checks = {
        "blob_storage": factory.get_blob_storage().health_check,
        "document_db": factory.get_document_db().health_check,
        "queue": factory.get_queue_publisher().health_check,
    }
    if settings.rag.enabled:
        checks["vector_db"] = factory.get_vector_db().health_check

    results = await asyncio.gather(*(_probe(n, c) for n, c in checks.items()))
    return dict(results)


def _overall(components: list[ComponentHealth]) -> HealthStatus:
    down = [c for c in components if c.status == HealthStatus.UNHEALTHY]
    if not down:
        return HealthStatus.HEALTHY
    if any(c.required for c in down):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description=(
        "Probe storage, queue and vector index. A vector index outage only "
        "degrades search; ingestion components make the service unhealthy."
    ),
)
async def health_check(settings: SettingsDep, factory: FactoryDep) -> HealthResponse:
    """Probe every backing service and aggregate their health."""
    probes = await _probe_components(factory, settings)
    components = [
        ComponentHealth(
            name=name,
            status=HealthStatus.HEALTHY if probe.healthy else HealthStatus.UNHEALTHY,
            required=name in INGESTION_COMPONENTS,
            latency_ms=round(probe.latency_ms, 2),
            message=probe.message,
        )
        for name, probe in probes.items()
    ]

    return HealthResponse(
        status=_overall(components),
        version=settings.app.version,
        environment=settings.app.environment,
        transcription_enabled=settings.transcription.enabled,
        search_enabled=settings.rag.enabled,
        components=components,
    )


@router.get("/health/live", response_model=LivenessResponse, summary="Liveness probe")
async def liveness() -> LivenessResponse:
    """Report that the process is serving requests."""
    return LivenessResponse()


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Ready when every component ingestion depends on is reachable.",
)
async def readiness(settings: SettingsDep, factory: FactoryDep) -> ReadinessResponse:
    """Report whether ingestion dependencies are reachable."""
    probes = await _probe_components(factory, settings)
    checks = {name: probe.healthy for name, probe in probes.items()}
    ready = all(checks[name] for name in INGESTION_COMPONENTS)
    return ReadinessResponse(ready=ready, checks=checks)
