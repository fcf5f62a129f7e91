"""
ICE server provider.

Fetches short-lived TURN credentials from Metered and caches them next to
the public STUN servers. A failed refresh keeps the previous list.
"""

import asyncio
import logging
import time

import httpx
from pydantic import TypeAdapter, ValidationError

from config import (
    DEFAULT_ICE_SERVERS,
    ICE_FETCH_TIMEOUT,
    ICE_REFRESH_INTERVAL,
    METERED_API_KEY,
    ice_credentials_url,
)
from ice.models import IceServer

logger = logging.getLogger(__name__)

_server_list = TypeAdapter(list[IceServer])


class CredentialFetchError(Exception):
    """The credential endpoint answered with something unusable."""


class IceServerProvider:
    """Caches the ICE server list handed to peers on registration."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str = METERED_API_KEY,
        refresh_interval: float = ICE_REFRESH_INTERVAL,
        timeout: float = ICE_FETCH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url if url is not None else ice_credentials_url()
        self._api_key = api_key
        self._refresh_interval = refresh_interval
        self._timeout = timeout
        self._transport = transport  # injectable for tests
        self._defaults = [IceServer(**s) for s in DEFAULT_ICE_SERVERS]
        self._servers: list[IceServer] = list(self._defaults)
        self._last_refresh: float | None = None
        self._last_attempt: float | None = None  # end of the latest fetch, ok or not
        self._last_ok = False
        self._lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self._url)

    @property
    def stale(self) -> bool:
        if not self.configured:
            return False
        if self._last_refresh is None:
            return True
        return time.monotonic() - self._last_refresh > self._refresh_interval

    async def start(self) -> None:
        """Initial fetch on startup."""
        if not self.configured:
            logger.info("No TURN credentials configured, serving STUN servers only")
            return
        await self.refresh()

    async def get_ice_servers(self) -> list[dict]:
        """Return the current ICE servers, refreshing them first if stale."""
        if self.stale:
            await self.refresh()
        return [s.model_dump(exclude_none=True) for s in self._servers]

    async def refresh(self) -> bool:
        """Refetch TURN credentials. Returns False if the cache was kept."""
        if not self.configured:
            return False
        requested_at = time.monotonic()
        async with self._lock:
            # A fetch finished while we waited: share its outcome
            if self._last_attempt is not None and self._last_attempt > requested_at:
                return self._last_ok
            try:
                turn_servers = await self._fetch()
            except (httpx.HTTPError, CredentialFetchError) as e:
                logger.error(f"Failed to refresh ICE servers: {e}")
                self._last_attempt = time.monotonic()
                self._last_ok = False
                return False

            self._servers = self._defaults + turn_servers
            self._last_refresh = self._last_attempt = time.monotonic()
            self._last_ok = True
            logger.info(
                f"ICE servers refreshed: {len(self._servers)} servers "
                f"({len(turn_servers)} TURN)"
            )
            return True

    async def _fetch(self) -> list[IceServer]:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.get(self._url, params={"apiKey": self._api_key})
            response.raise_for_status()
        try:
            return _server_list.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise CredentialFetchError(f"Malformed credentials response: {e}") from e
