"""
Health check endpoints.

GET /__health - Health report for Neo4j and (when consuming) the message queue
GET /__gtg - Good-to-go status for load balancers
GET /__ping - Liveness check
GET /__build-info - Build information
GET /metrics - Prometheus metrics endpoint
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional
from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from annotations_rw import __version__
from annotations_rw.api.dependencies import get_annotations_service, get_queue_handler, get_settings
from annotations_rw.api.schemas import BuildInfoResponse, HealthCheckResult, HealthResponse
from annotations_rw.core.config import Settings
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.services.messaging.queue_handler import QueueHandler
from annotations_rw.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])
metrics_router = APIRouter(tags=["metrics"])


@dataclass
class HealthCheck:
    """A named check: ``checker`` returns a status message or raises."""
    id: str
    name: str
    severity: int
    business_impact: str
    technical_summary: str
    checker: Callable[[], str]

    def run(self, system_code: str) -> HealthCheckResult:
        try:
            output = self.checker()
            ok = True
        except Exception as e:
            output = str(e)
            ok = False
            logger.warning("health_check_failed", check=self.id, error=output)
        return HealthCheckResult(
            id=self.id,
            name=self.name,
            ok=ok,
            severity=self.severity,
            businessImpact=self.business_impact,
            technicalSummary=self.technical_summary,
            panicGuide=f"https://runbooks.in.ft.com/{system_code}",
            checkOutput=output,
            lastUpdated=datetime.now(timezone.utc).isoformat(),
        )


def writer_check(service: AnnotationsService) -> HealthCheck:
    def check() -> str:
        service.check()
        return "Connectivity to neo4j is ok"

    return HealthCheck(
        id="write-message-datastore-reachable",
        name="Write Message Data Store Reachable",
        severity=1,
        business_impact="Unable to respond to Annotation API requests",
        technical_summary="Cannot connect to Neo4j a instance with at least one person loaded in it",
        checker=check,
    )


def read_queue_check(queue_handler: QueueHandler) -> HealthCheck:
    return HealthCheck(
        id="read-message-queue-reachable",
        name="Read Message Queue Reachable",
        severity=1,
        business_impact=(
            "Content metadata can't be read from queue. "
            "This will negatively impact metadata/annotations availability."
        ),
        technical_summary="Read message queue is not reachable/healthy",
        checker=queue_handler.connectivity_check,
    )


def consumer_lag_check(queue_handler: QueueHandler) -> HealthCheck:
    return HealthCheck(
        id="consumer-lag-check",
        name="Kafka Consumer Lag Check",
        severity=3,
        business_impact="Consumer is lagging behind when reading messages from the queue",
        technical_summary=(
            "Read message queue is slow due to consumer exceeding the configured "
            "lag tolerance. Check if consumer is stuck"
        ),
        checker=queue_handler.monitor_check,
    )


def build_checks(service: AnnotationsService, queue_handler: Optional[QueueHandler]) -> List[HealthCheck]:
    checks = [writer_check(service)]
    if queue_handler is not None:
        checks.extend([read_queue_check(queue_handler), consumer_lag_check(queue_handler)])
    return checks


@router.get("/__health", response_model=HealthResponse)
def health_check(
    settings: Settings = Depends(get_settings),
    service: AnnotationsService = Depends(get_annotations_service),
    queue_handler: Optional[QueueHandler] = Depends(get_queue_handler),
) -> HealthResponse:
    """
    Health check endpoint.

    Runs every check and reports each outcome; the endpoint itself always
    answers 200.
    """
    results = [
        check.run(settings.app_system_code)
        for check in build_checks(service, queue_handler)
    ]
    return HealthResponse(
        systemCode=settings.app_system_code,
        name=settings.app_name,
        description="Checks if all the dependent services are reachable and healthy.",
        checks=results,
        ok=all(result.ok for result in results),
    )


@router.get("/__gtg")
def good_to_go(
    service: AnnotationsService = Depends(get_annotations_service),
    queue_handler: Optional[QueueHandler] = Depends(get_queue_handler),
) -> Response:
    """
    Good-to-go endpoint.

    Fails fast on the first failing check (queue connectivity, then Neo4j).
    """
    checkers = [writer_check(service).checker]
    if queue_handler is not None:
        checkers.insert(0, queue_handler.connectivity_check)
    for checker in checkers:
        try:
            checker()
        except Exception as e:
            return PlainTextResponse(str(e), status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return PlainTextResponse("OK")


@router.get("/__ping")
def ping() -> Response:
    """Liveness check endpoint."""
    return PlainTextResponse("pong")


@router.get("/__build-info", response_model=BuildInfoResponse)
def build_info(settings: Settings = Depends(get_settings)) -> BuildInfoResponse:
    """Build information endpoint."""
    return BuildInfoResponse(
        name=settings.app_name,
        systemCode=settings.app_system_code,
        version=__version__,
        environment=settings.environment,
        details={"api_version": settings.api_version, "payload_version": settings.payload_version},
    )


@metrics_router.get("/metrics")
def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus format for scraping.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
