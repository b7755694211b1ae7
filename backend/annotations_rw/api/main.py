"""
FastAPI application initialization.

This module creates and configures the FastAPI application instance.
"""
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI

from annotations_rw.core.config import settings
from annotations_rw.api.routes import api_router
from annotations_rw.api.middleware import TransactionIDMiddleware
from annotations_rw.services.messaging.transport import MessageConsumer, MessageProducer
from annotations_rw.utils.logging import get_logger, configure_logging

# Configure structured logging with JSON output
configure_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    json_output=settings.log_json,
    include_timestamp=True,
    service_name=settings.app_system_code,
)

logger = get_logger(__name__)


def build_lifespan(
    consumer: Optional[MessageConsumer] = None,
    producer: Optional[MessageProducer] = None,
):
    """
    Build the lifespan handler for the given message transports.

    Args:
        consumer: Queue consumer; ingestion starts only if configured and given
        producer: Queue producer; forwarding is enabled only if configured and given
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for FastAPI application.

        Initializes at startup:
        - Neo4j driver and graph store
        - Thing uniqueness constraint
        - AnnotationsService and payload decoder
        - Forwarder and QueueHandler when messaging is enabled

        Closes the consumer and the driver on shutdown.
        """
        from annotations_rw.core.neo4j_database import get_neo4j_driver, close_neo4j_driver
        from annotations_rw.repositories.graph_store import GraphStore
        from annotations_rw.services.annotations.decoders import get_decoder
        from annotations_rw.services.annotations.predicates import PredicateMapper
        from annotations_rw.services.annotations.service import AnnotationsService
        from annotations_rw.services.messaging.forwarder import Forwarder
        from annotations_rw.services.messaging.queue_handler import QueueHandler

        logger.info("application_startup", app_name=settings.app_name)

        try:
            logger.info("service_initialization", service="Neo4j", status="starting")
            store = GraphStore(get_neo4j_driver(), database=settings.neo4j_database)
            logger.info("service_initialization", service="Neo4j", status="ready")

            service = AnnotationsService(
                store,
                settings.public_api_url,
                PredicateMapper(allow_default_predicate=settings.allow_default_predicate),
            )
            service.initialise()
            app.state.annotations_service = service
            app.state.payload_decoder = get_decoder(settings.payload_version)
            logger.info(
                "service_initialization",
                service="AnnotationsService",
                status="ready",
                payload_version=settings.payload_version,
                allow_default_predicate=settings.allow_default_predicate,
            )

            forwarder = None
            if settings.should_forward_messages and producer is not None:
                forwarder = Forwarder(producer, settings.message_type)
                logger.info("service_initialization", service="Forwarder", status="ready", topic=settings.producer_topic)
            app.state.forwarder = forwarder

            queue_handler = None
            if settings.should_consume_messages and consumer is not None:
                queue_handler = QueueHandler(
                    service,
                    app.state.payload_decoder,
                    settings.origin_map,
                    settings.lifecycle_map,
                    settings.message_type,
                    forwarder=forwarder,
                )
                queue_handler.ingest(consumer)
                logger.info("service_initialization", service="QueueHandler", status="ready", topics=settings.consumer_topics)
            app.state.queue_handler = queue_handler

        except Exception as e:
            logger.error(
                "application_startup_error",
                error_type=type(e).__name__,
                error_message=str(e),
                exc_info=True,
            )
            close_neo4j_driver()
            raise

        logger.info("application_startup", status="ready")

        yield

        logger.info("application_shutdown", message="Shutting down application...")
        if app.state.queue_handler is not None:
            app.state.queue_handler.close()
        close_neo4j_driver()

    return lifespan


def create_app(
    consumer: Optional[MessageConsumer] = None,
    producer: Optional[MessageProducer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        consumer: Optional queue consumer for annotation messages
        producer: Optional queue producer for forwarded messages

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description=settings.api_description,
        debug=settings.debug,
        lifespan=build_lifespan(consumer, producer),
    )

    app.add_middleware(TransactionIDMiddleware)

    # Include API routes
    app.include_router(api_router)

    return app


# Create the app instance
app = create_app()
