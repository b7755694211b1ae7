"""
Structured logging configuration with structlog.

Every log entry carries the transaction id of the request or queue message
being processed, so a single annotation update can be followed from the
HTTP/queue boundary down to the Neo4j write.
"""
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

# Transaction id of the request/message currently being handled
transaction_id_var: ContextVar[str] = ContextVar("transaction_id", default="")


def add_transaction_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Processor to add the transaction id to log events.

    Args:
        logger: The logger instance
        method_name: The logging method name (info, error, etc.)
        event_dict: The event dictionary

    Returns:
        Event dictionary with transaction_id added
    """
    transaction_id = transaction_id_var.get()
    if transaction_id and "transaction_id" not in event_dict:
        event_dict["transaction_id"] = transaction_id
    return event_dict


def add_service_name(service_name: str) -> Processor:
    """Build a processor stamping every event with the service name."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service_name", service_name)
        return event_dict

    return processor


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    include_timestamp: bool = True,
    service_name: Optional[str] = None,
) -> None:
    """
    Configure structlog for structured JSON logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON format (True) or human-readable (False)
        include_timestamp: Whether to include timestamps in logs
        service_name: System code stamped on every entry, if given
    """
    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_transaction_id,
        *([add_service_name(service_name)] if service_name else []),
        structlog.processors.TimeStamper(fmt="iso", key="@time") if include_timestamp else structlog.processors.TimeStamper(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )
    # The driver is chatty at INFO; keep it at WARNING unless debugging
    logging.getLogger("neo4j").setLevel(
        logging.DEBUG if log_level.upper() == "DEBUG" else logging.WARNING
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name or "annotations_rw")


def set_transaction_id(transaction_id: str) -> None:
    """
    Set the transaction id for the current context.

    Args:
        transaction_id: Identifier of the request/message being processed
    """
    transaction_id_var.set(transaction_id)


def get_transaction_id() -> str:
    """Get the current transaction id, or empty string if not set."""
    return transaction_id_var.get()


def generate_transaction_id() -> str:
    """
    Generate a new transaction id.

    Returns:
        A ``tid_``-prefixed random identifier
    """
    return f"tid_{uuid.uuid4().hex[:10]}"


configure_logging(log_level="INFO", json_output=True)
