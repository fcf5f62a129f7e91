"""Relay of opaque negotiation messages between registered peers."""

import logging
from dataclasses import dataclass

from signaling.models import Peer
from signaling.registry import PeerRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayKind:
    """How an incoming event is re-emitted to its target."""
    outgoing: str  # event name delivered to the target
    source_key: str  # key carrying the sender's connection ID
    fields: tuple[str, ...] = ()  # payload keys passed through untouched
    log_level: int = logging.DEBUG


RELAY_KINDS: dict[str, RelayKind] = {
    "host-ready": RelayKind("host-ready", "hostId", log_level=logging.INFO),
    "request-camera": RelayKind("camera-request", "requesterId"),
    "camera-response": RelayKind("camera-response", "hostId", ("accepted",)),
    "camera-ready": RelayKind("camera-ready", "hostId"),
    "webrtc-offer": RelayKind("webrtc-offer", "fromId", ("offer",), logging.INFO),
    "webrtc-answer": RelayKind("webrtc-answer", "fromId", ("answer",), logging.INFO),
    "webrtc-ice-candidate": RelayKind("webrtc-ice-candidate", "fromId", ("candidate",)),
    "end-session": RelayKind("session-ended", "fromId", log_level=logging.INFO),
}


class SignalRelay:
    """Forwards messages best-effort; payloads are never inspected."""

    def __init__(self, registry: PeerRegistry) -> None:
        self._registry = registry

    def forward(self, kind: str, sender: Peer, target_id: str, payload: dict) -> bool:
        """
        Send a relayed event to ``target_id``.

        Returns False when the target is not registered; the message is
        dropped without telling the sender.
        """
        try:
            relay_kind = RELAY_KINDS[kind]
        except KeyError:
            raise ValueError(f"Unknown relay event: {kind}") from None

        target = self._registry.lookup(target_id)
        if target is None:
            logger.log(
                max(relay_kind.log_level, logging.INFO),
                f"Dropping {kind} from {sender.connection_id}: {target_id} not found",
            )
            return False

        message = {relay_kind.source_key: sender.connection_id}
        for field in relay_kind.fields:
            message[field] = payload.get(field)
        logger.log(
            relay_kind.log_level,
            f"Forwarding {kind} from {sender.connection_id} to {target.connection_id}",
        )
        target.transport.send(relay_kind.outgoing, message)
        return True

    def end_session(self, sender: Peer, target_id: str) -> None:
        """Notify the other side and make both peers available again."""
        target = self._registry.lookup(target_id)
        if target is not None:
            target.release()
        self.forward("end-session", sender, target_id, {})
        sender.release()
