"""
Annotation endpoints.

PUT /content/{uuid}/annotations/{annotationLifecycle} - Replace a content's annotations
GET /content/{uuid}/annotations/{annotationLifecycle} - Read a content's annotations
DELETE /content/{uuid}/annotations/{annotationLifecycle} - Delete a content's annotations
GET /content/annotations/{annotationLifecycle}/__count - Count annotations in a lifecycle
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from annotations_rw.api.dependencies import (
    get_annotations_service,
    get_forwarder,
    get_payload_decoder,
    get_settings,
)
from annotations_rw.api.schemas import AnnotationOut, ErrorResponse, MessageResponse
from annotations_rw.core.config import Settings
from annotations_rw.services.annotations.decoders import AnnotationDecoder
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.services.messaging.forwarder import Forwarder
from annotations_rw.utils.exceptions import AnnotationInputError, ForwardingError, StoreError
from annotations_rw.utils.logging import get_logger, get_transaction_id

logger = get_logger(__name__)

router = APIRouter(tags=["annotations"])

BOOKMARK_HEADER = "Neo4j-Bookmark"
PUBLICATION_HEADER = "Publication"


def require_platform_version(settings: Settings, lifecycle: str) -> str:
    """
    Look up the platform version of a lifecycle.

    Raises:
        HTTPException: 400 if the lifecycle is not configured
    """
    platform_version = settings.platform_version_for(lifecycle)
    if platform_version is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="annotationLifecycle not supported by this application",
        )
    return platform_version


def split_publication(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated Publication header; None when absent."""
    if not value:
        return None
    return value.split(",")


@router.put(
    "/content/{uuid}/annotations/{annotationLifecycle}",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": MessageResponse},
        503: {"model": ErrorResponse},
    },
)
async def put_annotations(
    uuid: str,
    annotationLifecycle: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    service: AnnotationsService = Depends(get_annotations_service),
    decoder: AnnotationDecoder = Depends(get_payload_decoder),
    forwarder: Optional[Forwarder] = Depends(get_forwarder),
) -> JSONResponse:
    """
    Replace every annotation of a content in one lifecycle.

    The body is a JSON array of annotations. On success the response carries
    the bookmark of the write, which later reads can pass back to observe it.
    """
    content_type = request.headers.get("content-type", "").lower()
    if "application/json" not in content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Http Header 'Content-Type' is not 'application/json', this is a JSON API",
        )

    lifecycle = annotationLifecycle
    platform_version = require_platform_version(settings, lifecycle)
    origin_system = settings.origin_system_for(lifecycle)
    if origin_system is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No Origin-System-Id could be deduced from the lifecycle parameter",
        )

    try:
        payload = await request.json()
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error ({str(e)}) parsing annotation request",
        ) from e

    try:
        annotations = decoder.decode(payload)
        bookmark = await run_in_threadpool(service.write, uuid, lifecycle, platform_version, annotations)
    except AnnotationInputError as e:
        logger.error("annotations_validation_failed", uuid=uuid, lifecycle=lifecycle, error=e.message)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error validating annotations ({e.message})",
        ) from e
    except StoreError as e:
        logger.error(
            "annotations_write_failed",
            monitoring_event="SaveNeo4j",
            content_type=settings.message_type,
            uuid=uuid,
            error=e.message,
            details=e.details,
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Error creating annotations ({e.message})",
        ) from e

    logger.info(
        "annotations_saved",
        monitoring_event="SaveNeo4j",
        content_type=settings.message_type,
        uuid=uuid,
        message=f"{settings.message_type} successfully written in Neo4j",
    )

    if forwarder is not None:
        logger.debug("forwarding_message", uuid=uuid)
        try:
            await run_in_threadpool(
                forwarder.send_message,
                get_transaction_id(),
                origin_system,
                bookmark,
                platform_version,
                uuid,
                payload,
                split_publication(request.headers.get(PUBLICATION_HEADER)),
            )
        except ForwardingError as e:
            logger.error("message_forward_failed", uuid=uuid, error=e.message)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"message": "Failed to forward message to queue"},
            )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": f"Annotations for content {uuid} created"},
        headers={BOOKMARK_HEADER: bookmark},
    )


@router.get(
    "/content/{uuid}/annotations/{annotationLifecycle}",
    response_model=List[AnnotationOut],
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def get_annotations(
    uuid: str,
    annotationLifecycle: str,
    neo4j_bookmark: Optional[str] = Header(default=None, alias=BOOKMARK_HEADER),
    settings: Settings = Depends(get_settings),
    service: AnnotationsService = Depends(get_annotations_service),
) -> List[AnnotationOut]:
    """
    Read the annotations of a content in one lifecycle.

    This is a view of what was written, in the same shape as the PUT body;
    it is not the public annotations API.
    """
    require_platform_version(settings, annotationLifecycle)
    try:
        annotations, found = service.read(uuid, neo4j_bookmark, annotationLifecycle)
    except StoreError as e:
        logger.error("annotations_read_failed", uuid=uuid, error=e.message, details=e.details)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Error getting annotations ({e.message})",
        ) from e
    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No annotations found for content with uuid {uuid}.",
        )
    return [AnnotationOut.from_annotation(annotation) for annotation in annotations]


@router.delete(
    "/content/{uuid}/annotations/{annotationLifecycle}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def delete_annotations(
    uuid: str,
    annotationLifecycle: str,
    settings: Settings = Depends(get_settings),
    service: AnnotationsService = Depends(get_annotations_service),
) -> Response:
    """Delete every annotation of a content in one lifecycle."""
    require_platform_version(settings, annotationLifecycle)
    try:
        found, bookmark = service.delete(uuid, annotationLifecycle)
    except StoreError as e:
        logger.error("annotations_delete_failed", uuid=uuid, error=e.message, details=e.details)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        ) from e
    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No annotations found for content with uuid {uuid}.",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={BOOKMARK_HEADER: bookmark})


@router.get(
    "/content/annotations/{annotationLifecycle}/__count",
    response_model=int,
    responses={
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def count_annotations(
    annotationLifecycle: str,
    neo4j_bookmark: Optional[str] = Header(default=None, alias=BOOKMARK_HEADER),
    settings: Settings = Depends(get_settings),
    service: AnnotationsService = Depends(get_annotations_service),
) -> int:
    """Count the annotations stored for a lifecycle's platform version."""
    platform_version = require_platform_version(settings, annotationLifecycle)
    try:
        return service.count(annotationLifecycle, neo4j_bookmark, platform_version)
    except StoreError as e:
        logger.error("annotations_count_failed", lifecycle=annotationLifecycle, error=e.message, details=e.details)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        ) from e
