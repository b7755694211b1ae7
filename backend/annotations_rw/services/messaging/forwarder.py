"""
Post-write message forwarding.

After a successful write the original annotations are wrapped in an event
and sent to the next queue, together with the bookmark of the write so
consumers can read their own writes.
"""
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from annotations_rw.services.messaging.transport import Message, MessageProducer
from annotations_rw.utils.exceptions import ForwardingError
from annotations_rw.utils.logging import get_logger
from annotations_rw.utils.metrics import messages_forwarded_total

logger = get_logger(__name__)

MESSAGE_TYPE_HEADER_VALUE = "concept-annotation"


def format_message_timestamp(moment: datetime) -> str:
    """Format a timestamp as ``2006-01-02T15:04:05.000Z`` (UTC, milliseconds)."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def create_headers(transaction_id: str, origin_system: str, bookmark: str) -> Dict[str, str]:
    """
    Build the headers of a forwarded message.

    Args:
        transaction_id: Transaction id of the originating request/message
        origin_system: Origin-System-Id the annotations came from
        bookmark: Bookmark of the committed write

    Returns:
        Header mapping with a fresh message id and timestamp
    """
    return {
        "X-Request-Id": transaction_id,
        "Message-Timestamp": format_message_timestamp(datetime.now(timezone.utc)),
        "Message-Id": str(uuid.uuid4()),
        "Message-Type": MESSAGE_TYPE_HEADER_VALUE,
        "Content-Type": "application/json",
        "Origin-System-Id": origin_system,
        "Neo4j-Bookmark": bookmark,
    }


class Forwarder:
    """Sends written annotation sets to the next queue."""

    def __init__(self, producer: MessageProducer, message_type: str):
        """
        Initialize forwarder.

        Args:
            producer: Queue producer
            message_type: Configured message type (e.g. "Annotations"); its
                lowercase form names the payload key and the content URI host
        """
        self.producer = producer
        self.message_type = message_type

    def prepare_body(
        self,
        platform_version: str,
        content_id: str,
        annotations: Any,
        last_modified: str,
        publication: Optional[List[str]],
    ) -> str:
        message_type = self.message_type.lower()
        body = {
            "payload": {
                message_type: annotations,
                "lastModified": last_modified,
                "publication": publication,
                "uuid": content_id,
            },
            "contentUri": (
                f"http://{platform_version}.{message_type}-rw-neo4j.svc.ft.com/annotations/{content_id}"
            ),
            "lastModified": last_modified,
        }
        return json.dumps(body)

    def send_message(
        self,
        transaction_id: str,
        origin_system: str,
        bookmark: str,
        platform_version: str,
        content_id: str,
        annotations: Any,
        publication: Optional[List[str]] = None,
    ) -> None:
        """
        Forward an annotation set.

        Args:
            transaction_id: Transaction id to propagate
            origin_system: Origin-System-Id of the annotations
            bookmark: Bookmark of the committed write
            platform_version: Platform version of the lifecycle written
            content_id: Content uuid
            annotations: Annotations exactly as received (JSON-serializable)
            publication: Publication ids, if any were supplied

        Raises:
            ForwardingError: If the body cannot be built or the producer fails
        """
        headers = create_headers(transaction_id, origin_system, bookmark)
        try:
            body = self.prepare_body(
                platform_version,
                content_id,
                annotations,
                headers["Message-Timestamp"],
                publication,
            )
            self.producer.send_message(Message(headers=headers, body=body))
        except Exception as e:
            messages_forwarded_total.labels(status="error").inc()
            logger.error(
                "message_forward_failed",
                uuid=content_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise ForwardingError(
                f"Failed to forward message for content {content_id}: {str(e)}",
                {"uuid": content_id},
            ) from e

        messages_forwarded_total.labels(status="success").inc()
        logger.debug("message_forwarded", uuid=content_id, message_id=headers["Message-Id"])
