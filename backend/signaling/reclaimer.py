"""
Disconnect reclaimer.

When a peer's transport drops, its registration survives for a grace
window so a brief network blip does not tear down a live session. If the
same connection ID is re-registered on a new transport in the meantime,
the deferred cleanup notices the swapped transport and does nothing.
"""

import asyncio
import logging

from signaling.broker import ConnectionRequestBroker
from signaling.models import PeerTransport
from signaling.registry import PeerRegistry

logger = logging.getLogger(__name__)


class DisconnectReclaimer:
    """Schedules and performs cleanup of peers whose transport was lost."""

    def __init__(
        self,
        registry: PeerRegistry,
        broker: ConnectionRequestBroker,
        lock: asyncio.Lock,
        grace_period: float,
    ) -> None:
        self._registry = registry
        self._broker = broker
        self._lock = lock
        self._grace_period = grace_period
        self._tasks: set[asyncio.Task] = set()

    @property
    def grace_period(self) -> float:
        return self._grace_period

    @property
    def pending(self) -> int:
        """Number of grace windows still running."""
        return len(self._tasks)

    def schedule(self, connection_id: str, transport: PeerTransport) -> asyncio.Task:
        """Start the grace window for ``connection_id`` lost on ``transport``."""
        task = asyncio.create_task(self._reclaim_later(connection_id, transport))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _reclaim_later(self, connection_id: str, transport: PeerTransport) -> None:
        await asyncio.sleep(self._grace_period)
        async with self._lock:
            self.reclaim(connection_id, transport)

    def reclaim(self, connection_id: str, transport: PeerTransport) -> bool:
        """
        Tear down ``connection_id`` if it is still held by ``transport``.

        Must be called with the hub lock held. Returns True if the peer
        was removed.
        """
        peer = self._registry.lookup(connection_id)
        if peer is None:
            logger.info(f"Peer {connection_id} already cleaned up")
            return False
        if peer.transport is not transport:
            logger.info(
                f"Peer {connection_id} reconnected during grace period, skipping cleanup"
            )
            return False

        if peer.connected_to:
            partner = self._registry.lookup(peer.connected_to)
            if partner is not None:
                partner.transport.send("peer-disconnected", {"peerId": peer.connection_id})
                partner.release()
        self._broker.reap(peer.connection_id)
        self._registry.remove(peer.connection_id)
        return True

    async def stop(self) -> None:
        """Cancel every running grace window."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
