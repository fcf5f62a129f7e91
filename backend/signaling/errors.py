"""Signaling error types.

Handshake errors carry the human-readable message sent back to the caller.
"""


class SignalingError(Exception):
    """Base class for errors raised by the signaling core."""

    message = "Signaling error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def reason(self) -> str:
        return str(self)


class PeerNotFound(SignalingError):
    """Target connection ID is not registered."""

    message = "Peer not found or offline"


class PeerBusy(SignalingError):
    """Target peer is already paired with another peer."""

    message = "Peer is busy with another session"


class NotRegistered(SignalingError):
    """The calling transport has not registered a connection ID yet."""

    message = "Not registered"


class InvalidRequestId(SignalingError):
    """Response references an unknown or already resolved request."""

    message = "Unknown or already resolved request"
