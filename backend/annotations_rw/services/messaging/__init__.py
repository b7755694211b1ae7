"""
Messaging services.

Provides:
- Queue ingestion of annotation sets
- Forwarding of written sets to the next queue
"""

from annotations_rw.services.messaging.transport import Message, MessageConsumer, MessageProducer
from annotations_rw.services.messaging.forwarder import Forwarder
from annotations_rw.services.messaging.queue_handler import QueueHandler

__all__ = [
    "Message",
    "MessageConsumer",
    "MessageProducer",
    "Forwarder",
    "QueueHandler",
]
