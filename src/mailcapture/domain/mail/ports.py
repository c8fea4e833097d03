"""Decoder port - contract for the MIME decoding collaborator.

The ingestor feeds raw message chunks to a decoder as they arrive and asks
for the decoded message once the stream ends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class MessageDecodeError(Exception):
    """Raised when a message cannot be decoded."""
    pass


@dataclass
class DecodedMessage:
    """Structured view of a decoded message.

    Attributes:
        from_addresses: Sender addresses in header order
        subject: Subject header, if any
        content: Full JSON-serializable representation
    """
    from_addresses: List[str] = field(default_factory=list)
    subject: Optional[str] = None
    content: Dict[str, Any] = field(default_factory=dict)


class MessageDecoder(ABC):
    """Incremental decoder for one message."""

    @abstractmethod
    def feed(self, chunk: bytes) -> None:
        """Push the next chunk of raw message bytes."""

    @abstractmethod
    def close(self) -> DecodedMessage:
        """Finish decoding.

        Raises:
            MessageDecodeError: If the message could not be decoded
        """
