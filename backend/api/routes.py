"""HTTP routes: health probes and ICE configuration."""

import logging
import time

from fastapi import APIRouter

from config import SERVICE_NAME, VERSION

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected by main.py at startup
_hub = None
_ice_provider = None
_started_at = time.monotonic()


def init_routes(hub, ice_provider) -> None:
    """Inject service dependencies into the routes module."""
    global _hub, _ice_provider, _started_at
    _hub = hub
    _ice_provider = ice_provider
    _started_at = time.monotonic()


# --- Health ---

@router.get("/")
async def status():
    """Service status, used by hosting platforms and client probes."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "peers": _hub.peer_count,
        "uptime": int(time.monotonic() - _started_at),
        "version": VERSION,
    }


@router.get("/health")
async def health():
    return {"status": "ok"}


# --- Configuration ---

@router.get("/config")
async def get_config():
    """Return the ICE servers clients should use for NAT traversal."""
    ice_servers = await _ice_provider.get_ice_servers()
    return {"iceServers": ice_servers}
