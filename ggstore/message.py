from __future__ import annotations

from dataclasses import dataclass

INCOMING_MESSAGE = 0x1
INCOMING_STREAM = 0x2


@dataclass(frozen=True)
class RPC:
    """Arbitrary data sent between two nodes over a transport.

    ``stream`` tells the transport that a separate stream transfer follows
    instead of ``payload`` being the whole message. The store never reads it.
    """

    sender: str
    payload: bytes
    stream: bool = False

    @property
    def kind(self) -> int:
        return INCOMING_STREAM if self.stream else INCOMING_MESSAGE
