"""
Signaling server: FastAPI application entry point.

Brokers connection IDs, connection requests and WebRTC negotiation
between remote desktop hosts and viewers over a WebSocket at ``/ws``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from api.routes import init_routes, router
from api.websocket import ConnectionManager
from config import API_HOST, API_PORT, CORS_ORIGINS, SERVICE_NAME, VERSION
from ice.provider import IceServerProvider
from signaling.hub import SignalingHub

# --- Logging ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    hub: SignalingHub | None = None,
    ice_provider: IceServerProvider | None = None,
) -> FastAPI:
    """Build the application around a hub and ICE provider."""
    hub = hub or SignalingHub()
    ice_provider = ice_provider or IceServerProvider()
    ws_manager = ConnectionManager(hub, ice_provider)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start/stop background services."""
        logger.info("Starting signaling services...")
        try:
            await ice_provider.start()
            logger.info(f"{SERVICE_NAME} ready, listening on {API_HOST}:{API_PORT}")
            yield
        except Exception as e:
            logger.error(f"Startup failed: {e}", exc_info=True)
            raise
        finally:
            logger.info("Shutting down signaling services...")
            await hub.stop()

    app = FastAPI(title=SERVICE_NAME, version=VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Inject services into routes
    init_routes(hub, ice_provider)
    app.include_router(router)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        session = await ws_manager.connect(websocket)
        try:
            while True:
                await session.handle_text(await websocket.receive_text())
        except WebSocketDisconnect:
            pass
        finally:
            await ws_manager.disconnect(session)

    app.state.hub = hub
    app.state.ws_manager = ws_manager
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=API_HOST,
        port=API_PORT,
        log_level="info",
    )
