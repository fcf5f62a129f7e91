"""
Peer registry.

Maps connection IDs (``123-456-789``) to registered peers. IDs are
stored under their bare digit sequence, so lookups ignore separators.
Not thread-safe on its own: callers serialize access through the hub lock.
"""

import logging
import random
import re

from signaling.models import Peer, PeerTransport

logger = logging.getLogger(__name__)

ID_DIGITS = 9
_SEPARATORS = re.compile(r"[\s-]")


def normalize_id(connection_id: str) -> str:
    """Strip separators: ``"123-456-789"`` -> ``"123456789"``."""
    return _SEPARATORS.sub("", connection_id)


def format_id(digits: str) -> str:
    """Group nine digits as ``NNN-NNN-NNN``."""
    return f"{digits[0:3]}-{digits[3:6]}-{digits[6:9]}"


def is_well_formed(connection_id: str) -> bool:
    digits = normalize_id(connection_id)
    return len(digits) == ID_DIGITS and digits.isascii() and digits.isdigit()


def generate_connection_id() -> str:
    """Draw a random 9-digit connection ID (similar to AnyDesk)."""
    return format_id(str(random.randint(100_000_000, 999_999_999)))


class PeerRegistry:
    """Owns every registered peer and the transport it is reachable on."""

    def __init__(self) -> None:
        self._peers: dict[str, Peer] = {}  # digits -> peer
        self._sessions: dict[str, str] = {}  # transport session_id -> digits

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, connection_id: str) -> bool:
        return normalize_id(connection_id) in self._peers

    def register(
        self, transport: PeerTransport, preferred_id: str | None = None
    ) -> str:
        """
        Register a transport and return its connection ID.

        Idempotent per live transport. A well-formed, unused preferred ID
        is adopted; a preferred ID whose previous transport was lost is
        handed over to the new transport with its pairing intact.
        Anything else gets a freshly generated ID.
        """
        existing = self.peer_for(transport)
        if existing:
            return existing.connection_id

        connection_id = None
        if preferred_id and is_well_formed(preferred_id):
            digits = normalize_id(preferred_id)
            current = self._peers.get(digits)
            if current is None:
                connection_id = format_id(digits)
                logger.info(f"Reusing preferred ID: {connection_id}")
            elif current.transport_lost:
                self._reactivate(current, transport)
                return current.connection_id

        if connection_id is None:
            connection_id = generate_connection_id()
            while normalize_id(connection_id) in self._peers:
                connection_id = generate_connection_id()

        digits = normalize_id(connection_id)
        self._peers[digits] = Peer(connection_id=connection_id, transport=transport)
        self._sessions[transport.session_id] = digits
        logger.info(f"Peer registered: {connection_id} (total: {len(self._peers)})")
        return connection_id

    def _reactivate(self, peer: Peer, transport: PeerTransport) -> None:
        digits = normalize_id(peer.connection_id)
        self._sessions.pop(peer.transport.session_id, None)
        peer.transport = transport
        peer.transport_lost = False
        self._sessions[transport.session_id] = digits
        logger.info(
            f"Peer {peer.connection_id} re-registered during grace period "
            f"(status: {peer.status.value})"
        )

    def lookup(self, connection_id: str) -> Peer | None:
        """Find a peer by connection ID, ignoring separators."""
        return self._peers.get(normalize_id(connection_id))

    def peer_for(self, transport: PeerTransport) -> Peer | None:
        """Return the peer currently registered on this transport, if any."""
        digits = self._sessions.get(transport.session_id)
        if digits is None:
            return None
        peer = self._peers.get(digits)
        if peer is None or peer.transport is not transport:
            return None
        return peer

    def holds(self, connection_id: str, transport: PeerTransport) -> bool:
        """True if ``connection_id`` is still registered on ``transport``."""
        peer = self.lookup(connection_id)
        return peer is not None and peer.transport is transport

    def mark_lost(self, transport: PeerTransport) -> Peer | None:
        """Flag the peer on a dropped transport as being in its grace window."""
        peer = self.peer_for(transport)
        if peer:
            peer.transport_lost = True
        return peer

    def remove(self, connection_id: str) -> Peer | None:
        """Delete a registry entry. Related peers are not notified."""
        digits = normalize_id(connection_id)
        peer = self._peers.pop(digits, None)
        if peer is None:
            return None
        if self._sessions.get(peer.transport.session_id) == digits:
            del self._sessions[peer.transport.session_id]
        logger.info(
            f"Peer unregistered: {peer.connection_id} (remaining: {len(self._peers)})"
        )
        return peer
