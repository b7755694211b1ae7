"""
Queue ingestion.

Each message carries one annotation set for one content item. The origin
system header selects the lifecycle; the set then goes through the same
write path as an HTTP PUT and is optionally forwarded.

Failures never stop the consumer: the message is logged and dropped.
"""
import json
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from annotations_rw.services.annotations.decoders import AnnotationDecoder
from annotations_rw.services.annotations.service import AnnotationsService
from annotations_rw.services.messaging.forwarder import Forwarder
from annotations_rw.services.messaging.transport import Message, MessageConsumer
from annotations_rw.utils.exceptions import BaseAppException
from annotations_rw.utils.logging import get_logger, set_transaction_id, transaction_id_var
from annotations_rw.utils.metrics import queue_messages_consumed_total

logger = get_logger(__name__)

TRANSACTION_ID_HEADER = "X-Request-Id"
ORIGIN_SYSTEM_HEADER = "Origin-System-Id"


class QueueMessageBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uuid: str
    annotations: List[Any] = []


class QueueHandler:
    """Writes annotation sets received from a message queue."""

    def __init__(
        self,
        service: AnnotationsService,
        decoder: AnnotationDecoder,
        origin_map: Mapping[str, str],
        lifecycle_map: Mapping[str, str],
        message_type: str,
        forwarder: Optional[Forwarder] = None,
        consumer: Optional[MessageConsumer] = None,
    ):
        self.service = service
        self.decoder = decoder
        self.origin_map = origin_map
        self.lifecycle_map = lifecycle_map
        self.message_type = message_type
        self.forwarder = forwarder
        self.consumer = consumer

    def ingest(self, consumer: Optional[MessageConsumer] = None) -> None:
        """Start consuming, routing every message to ``handle_message``."""
        if consumer is not None:
            self.consumer = consumer
        if self.consumer is None:
            raise ValueError("No consumer configured for queue ingestion")
        logger.info("queue_ingestion_started", message_type=self.message_type)
        self.consumer.start(self.handle_message)

    def close(self) -> None:
        if self.consumer is not None:
            self.consumer.close()

    def source_for(self, origin_system: str) -> Tuple[str, str]:
        """
        Resolve an origin system to its (lifecycle, platform version).

        Raises:
            LookupError: If either mapping is missing
        """
        lifecycle = self.origin_map.get(origin_system)
        if lifecycle is None:
            raise LookupError(f"Annotation Lifecycle not found for origin system id: {origin_system}")
        platform_version = self.lifecycle_map.get(lifecycle)
        if platform_version is None:
            raise LookupError(
                f"Platform version not found for origin system id: {origin_system} "
                f"and annotation lifecycle: {lifecycle}"
            )
        return lifecycle, platform_version

    def handle_message(self, message: Message) -> bool:
        """
        Process one queue message.

        Args:
            message: Incoming message

        Returns:
            True if the annotations were written (and forwarded, when enabled)
        """
        token = transaction_id_var.set("")
        try:
            return self._process(message)
        finally:
            transaction_id_var.reset(token)

    def _process(self, message: Message) -> bool:
        transaction_id = message.headers.get(TRANSACTION_ID_HEADER)
        if not transaction_id:
            logger.error("queue_message_rejected", reason="Missing transaction id from message")
            queue_messages_consumed_total.labels(status="skipped").inc()
            return False
        set_transaction_id(transaction_id)

        origin_system = message.headers.get(ORIGIN_SYSTEM_HEADER)
        if not origin_system:
            logger.error("queue_message_rejected", reason="Missing Origin-System-Id header from message")
            queue_messages_consumed_total.labels(status="skipped").inc()
            return False

        try:
            lifecycle, platform_version = self.source_for(origin_system)
        except LookupError as e:
            logger.error("queue_message_rejected", reason="Could not get source from header", error=str(e))
            queue_messages_consumed_total.labels(status="skipped").inc()
            return False

        try:
            body = QueueMessageBody.model_validate(json.loads(message.body))
            annotations = self.decoder.decode(body.annotations)
        except (ValueError, BaseAppException) as e:
            # JSON and pydantic decode errors are ValueErrors
            logger.error(
                "queue_message_rejected",
                reason="Cannot process received message",
                error_type=type(e).__name__,
                error=str(e),
            )
            queue_messages_consumed_total.labels(status="skipped").inc()
            return False

        try:
            bookmark = self.service.write(body.uuid, lifecycle, platform_version, annotations)
        except BaseAppException as e:
            logger.error(
                "annotations_write_failed",
                monitoring_event="SaveNeo4j",
                content_type=self.message_type,
                uuid=body.uuid,
                error_type=type(e).__name__,
                error=e.message,
            )
            queue_messages_consumed_total.labels(status="error").inc()
            return False

        logger.info(
            "annotations_saved",
            monitoring_event="SaveNeo4j",
            content_type=self.message_type,
            uuid=body.uuid,
            message=f"{self.message_type} successfully written in Neo4j",
        )

        if self.forwarder is not None:
            logger.debug("forwarding_message", uuid=body.uuid)
            try:
                self.forwarder.send_message(
                    transaction_id,
                    origin_system,
                    bookmark,
                    platform_version,
                    body.uuid,
                    body.annotations,
                )
            except BaseAppException as e:
                logger.error("message_forward_failed", uuid=body.uuid, error=e.message)
                queue_messages_consumed_total.labels(status="error").inc()
                return False

        queue_messages_consumed_total.labels(status="success").inc()
        return True

    def connectivity_check(self) -> str:
        """
        Check the consumer can reach the broker.

        Raises:
            Exception: Whatever the consumer raised
        """
        if self.consumer is None:
            raise ValueError("No consumer configured")
        self.consumer.connectivity_check()
        return "Successfully connected to Kafka"

    def monitor_check(self) -> str:
        if self.consumer is None:
            raise ValueError("No consumer configured")
        self.consumer.monitor_check()
        return "Kafka consumer status is healthy"
