"""Pydantic models for ICE server descriptors."""

from pydantic import BaseModel, ConfigDict


class IceServer(BaseModel):
    """A STUN/TURN server entry as handed to RTCPeerConnection."""
    model_config = ConfigDict(extra="allow")

    urls: str | list[str]
    username: str | None = None
    credential: str | None = None
