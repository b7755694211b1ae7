"""
Message transport interfaces.

The queue client lives outside this service; anything exposing these
methods can feed the queue handler or receive forwarded messages.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict


@dataclass
class Message:
    """A queue message: string headers and a raw (JSON) body."""
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""


class MessageConsumer(ABC):
    """Source of incoming annotation messages."""

    @abstractmethod
    def start(self, handler: Callable[[Message], None]) -> None:
        """Start delivering messages to ``handler``."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def connectivity_check(self) -> None:
        """Raise if the broker cannot be reached."""
        pass

    @abstractmethod
    def monitor_check(self) -> None:
        """Raise if the consumer is lagging beyond its tolerance."""
        pass


class MessageProducer(ABC):
    """Sink for forwarded messages."""

    @abstractmethod
    def send_message(self, message: Message) -> None:
        pass
