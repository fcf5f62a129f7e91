"""
Signaling hub.

Single entry point for everything a transport session can ask for.
All registry and broker state is mutated under one asyncio lock; the
components below it are plain synchronous objects.
"""

import asyncio
import logging
from typing import Any

from config import GRACE_PERIOD
from signaling.broker import ConnectionRequestBroker
from signaling.errors import NotRegistered
from signaling.models import Peer, PeerTransport
from signaling.reclaimer import DisconnectReclaimer
from signaling.registry import PeerRegistry
from signaling.relay import SignalRelay

logger = logging.getLogger(__name__)


class SignalingHub:
    """Rendezvous state shared by all connected peers."""

    def __init__(self, grace_period: float = GRACE_PERIOD) -> None:
        self._lock = asyncio.Lock()
        self.registry = PeerRegistry()
        self.broker = ConnectionRequestBroker(self.registry)
        self.relay = SignalRelay(self.registry)
        self.reclaimer = DisconnectReclaimer(
            self.registry, self.broker, self._lock, grace_period
        )

    @property
    def peer_count(self) -> int:
        return len(self.registry)

    def _caller(self, transport: PeerTransport) -> Peer:
        peer = self.registry.peer_for(transport)
        if peer is None:
            raise NotRegistered()
        return peer

    async def register(
        self, transport: PeerTransport, preferred_id: str | None = None
    ) -> str:
        async with self._lock:
            return self.registry.register(transport, preferred_id)

    async def request_connection(
        self,
        transport: PeerTransport,
        target_id: str,
        viewer_name: Any = None,
        password: Any = None,
    ) -> str:
        async with self._lock:
            viewer = self._caller(transport)
            return self.broker.request_connection(
                viewer, target_id, viewer_name=viewer_name, password=password
            )

    async def respond(
        self, transport: PeerTransport, request_id: str, accepted: bool
    ) -> None:
        async with self._lock:
            host = self._caller(transport)
            self.broker.respond(request_id, accepted, responder=host)

    async def forward(
        self, transport: PeerTransport, kind: str, target_id: str, payload: dict
    ) -> bool:
        async with self._lock:
            sender = self.registry.peer_for(transport)
            if sender is None:
                logger.warning(f"Dropping {kind} from unregistered session {transport.session_id}")
                return False
            return self.relay.forward(kind, sender, target_id, payload)

    async def end_session(self, transport: PeerTransport, target_id: str) -> None:
        async with self._lock:
            sender = self.registry.peer_for(transport)
            if sender is None:
                logger.warning(f"Ignoring end-session from unregistered session {transport.session_id}")
                return
            self.relay.end_session(sender, target_id)

    async def transport_lost(self, transport: PeerTransport) -> asyncio.Task | None:
        """Begin the grace window for the peer registered on ``transport``."""
        async with self._lock:
            peer = self.registry.mark_lost(transport)
            if peer is None:
                return None
            logger.info(
                f"Transport lost for {peer.connection_id}, "
                f"cleanup in {self.reclaimer.grace_period}s"
            )
            return self.reclaimer.schedule(peer.connection_id, transport)

    async def stop(self) -> None:
        await self.reclaimer.stop()
