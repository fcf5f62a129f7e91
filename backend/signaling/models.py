"""Pydantic models for peer signaling."""

import time
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field


class PeerTransport(Protocol):
    """Outbound handle to a peer's live connection."""

    session_id: str

    def send(self, event: str, data: dict) -> None:
        """Queue an event for delivery. Must not block."""


class PeerStatus(str, Enum):
    AVAILABLE = "available"
    BUSY = "busy"


class Peer(BaseModel):
    """A registered endpoint, keyed by its connection ID."""
    connection_id: str  # "123-456-789"
    transport: Any = Field(exclude=True)
    status: PeerStatus = PeerStatus.AVAILABLE
    connected_to: str | None = None
    transport_lost: bool = False  # True while the grace window is running
    registered_at: float = Field(default_factory=time.time)

    def pair_with(self, connection_id: str) -> None:
        self.status = PeerStatus.BUSY
        self.connected_to = connection_id

    def release(self) -> None:
        self.status = PeerStatus.AVAILABLE
        self.connected_to = None


class PendingRequest(BaseModel):
    """A viewer's connection request awaiting the host's answer. One-shot."""
    request_id: str
    viewer_connection_id: str
    host_connection_id: str
    viewer_transport: Any = Field(exclude=True)
    host_transport: Any = Field(exclude=True)
    viewer_name: Any = "Unknown"
    created_at: float = Field(default_factory=time.time)


# --- Wire protocol payloads ---

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegisterPayload(_Payload):
    preferred_id: str | None = Field(default=None, alias="preferredId")


class RequestConnectionPayload(_Payload):
    target_id: str = Field(alias="targetId")
    viewer_name: Any = Field(default=None, alias="viewerName")
    password: Any = None  # opaque, forwarded to the host as sent


class ConnectionResponsePayload(_Payload):
    request_id: str = Field(alias="requestId")
    accepted: bool = False


class TargetPayload(_Payload):
    """Any relayed event; only the target is interpreted."""
    target_id: str = Field(alias="targetId")
