"""
Connection request broker.

Tracks viewer -> host connection requests until the host answers or one
side goes away. Every request is resolved at most once.
"""

import logging
import uuid
from typing import Any

from signaling.errors import InvalidRequestId, PeerBusy, PeerNotFound
from signaling.models import Peer, PeerStatus, PendingRequest
from signaling.registry import PeerRegistry, normalize_id

logger = logging.getLogger(__name__)

DISCONNECT_REASON = "Peer disconnected"


class ConnectionRequestBroker:
    """Owns pending connection requests."""

    def __init__(self, registry: PeerRegistry) -> None:
        self._registry = registry
        self._pending: dict[str, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def get(self, request_id: str) -> PendingRequest | None:
        return self._pending.get(request_id)

    def request_connection(
        self,
        viewer: Peer,
        target_id: str,
        viewer_name: Any = None,
        password: Any = None,
    ) -> str:
        """
        Ask the target host to accept a session with ``viewer``.

        The password is forwarded to the host as-is and never checked here.

        Returns:
            The new request ID.

        Raises:
            PeerNotFound: no peer is registered under ``target_id``.
            PeerBusy: the target is already paired.
        """
        logger.info(f"Connection request from {viewer.connection_id} to {target_id}")
        host = self._registry.lookup(target_id)
        if host is None:
            raise PeerNotFound()
        if host.status == PeerStatus.BUSY:
            raise PeerBusy()

        request = PendingRequest(
            request_id=str(uuid.uuid4()),
            viewer_connection_id=viewer.connection_id,
            host_connection_id=host.connection_id,
            viewer_transport=viewer.transport,
            host_transport=host.transport,
            viewer_name=viewer_name or "Unknown",
        )
        self._pending[request.request_id] = request

        notification = {
            "requestId": request.request_id,
            "viewerId": viewer.connection_id,
            "viewerName": request.viewer_name,
        }
        if password:
            notification["password"] = password
        host.transport.send("connection-request", notification)
        return request.request_id

    def respond(
        self, request_id: str, accepted: bool, responder: Peer | None = None
    ) -> None:
        """
        Resolve a pending request with the host's decision.

        Raises:
            InvalidRequestId: the request is unknown, already resolved, or
                ``responder`` is not the request's host.
        """
        request = self._pending.get(request_id)
        if request is None:
            raise InvalidRequestId()
        if responder is not None and normalize_id(
            responder.connection_id
        ) != normalize_id(request.host_connection_id):
            raise InvalidRequestId(
                f"{responder.connection_id} is not the host of request {request_id}"
            )
        del self._pending[request_id]

        viewer_id = request.viewer_connection_id
        host_id = request.host_connection_id
        if not self._registry.holds(viewer_id, request.viewer_transport):
            logger.info(f"Viewer {viewer_id} is gone, discarding request {request_id}")
            return

        if not accepted:
            logger.info(f"Connection rejected: {viewer_id} -> {host_id}")
            request.viewer_transport.send("connection-rejected", {"hostId": host_id})
            return

        host = self._registry.lookup(host_id)
        viewer = self._registry.lookup(viewer_id)
        if _paired_elsewhere(host, viewer_id) or _paired_elsewhere(viewer, host_id):
            logger.info(f"Connection {viewer_id} -> {host_id} accepted too late, peer busy")
            request.viewer_transport.send(
                "connection-rejected", {"hostId": host_id, "error": PeerBusy.message}
            )
            return

        logger.info(f"Connection accepted: {viewer_id} -> {host_id}")
        if host:
            host.pair_with(viewer_id)
        viewer.pair_with(host_id)
        request.viewer_transport.send("connection-accepted", {"hostId": host_id})

    def reap(self, connection_id: str) -> int:
        """
        Drop every request involving a departed peer.

        Viewers waiting on a departed host are told the request was
        rejected; requests made by a departed viewer vanish silently.
        """
        digits = normalize_id(connection_id)
        reaped = 0
        for request_id, request in list(self._pending.items()):
            if normalize_id(request.host_connection_id) == digits:
                if self._registry.holds(
                    request.viewer_connection_id, request.viewer_transport
                ):
                    request.viewer_transport.send(
                        "connection-rejected",
                        {"hostId": request.host_connection_id, "error": DISCONNECT_REASON},
                    )
            elif normalize_id(request.viewer_connection_id) != digits:
                continue
            del self._pending[request_id]
            reaped += 1
        if reaped:
            logger.info(f"Reaped {reaped} pending request(s) of {connection_id}")
        return reaped


def _paired_elsewhere(peer: Peer | None, partner_id: str) -> bool:
    return (
        peer is not None
        and peer.connected_to is not None
        and normalize_id(peer.connected_to) != normalize_id(partner_id)
    )
