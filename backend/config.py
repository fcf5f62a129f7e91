"""Application-wide configuration constants."""

import os

# --- Identity ---
SERVICE_NAME = "Remote Desktop Signaling Server"
VERSION = "1.0.0"

# --- Networking ---
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("PORT", "3000"))
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

# --- Sessions ---
GRACE_PERIOD = float(os.environ.get("GRACE_PERIOD", "10"))  # seconds

# --- ICE / TURN credentials ---
METERED_API_KEY = os.environ.get("METERED_API_KEY", "")
METERED_DOMAIN = os.environ.get("METERED_DOMAIN", "")
ICE_REFRESH_INTERVAL = float(os.environ.get("ICE_REFRESH_INTERVAL", str(6 * 60 * 60)))
ICE_FETCH_TIMEOUT = float(os.environ.get("ICE_FETCH_TIMEOUT", "10"))

DEFAULT_ICE_SERVERS = [
    {"urls": "stun:stun.l.google.com:19302"},
    {"urls": "stun:stun1.l.google.com:19302"},
]


def ice_credentials_url() -> str | None:
    """Return the TURN credentials endpoint, or None when not configured."""
    if not METERED_DOMAIN or not METERED_API_KEY:
        return None
    return f"https://{METERED_DOMAIN}/api/v1/turn/credentials"
