"""
FastAPI dependencies.

Routes receive the objects built at startup (stored on ``app.state`` by the
lifespan) through these functions, so tests can swap them freely.
"""
from typing import Optional
from fastapi import HTTPException, Request, status

from annotations_rw.core.config import Settings, settings
from annotations_rw.services.annotations.decoders import AnnotationDecoder
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.services.messaging.forwarder import Forwarder
from annotations_rw.services.messaging.queue_handler import QueueHandler


def get_settings() -> Settings:
    """Return the application settings."""
    return settings


def get_annotations_service(request: Request) -> AnnotationsService:
    """
    Get the AnnotationsService created at startup.

    Raises:
        HTTPException: 503 if the service was never initialized
    """
    service = getattr(request.app.state, "annotations_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Annotations service is not initialized",
        )
    return service


def get_payload_decoder(request: Request) -> AnnotationDecoder:
    """
    Get the payload decoder selected by configuration.

    Raises:
        HTTPException: 503 if no decoder was initialized
    """
    decoder = getattr(request.app.state, "payload_decoder", None)
    if decoder is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payload decoder is not initialized",
        )
    return decoder


def get_forwarder(request: Request) -> Optional[Forwarder]:
    """Get the Forwarder, or None when forwarding is disabled."""
    return getattr(request.app.state, "forwarder", None)


def get_queue_handler(request: Request) -> Optional[QueueHandler]:
    """Get the QueueHandler, or None when queue consumption is disabled."""
    return getattr(request.app.state, "queue_handler", None)
