"""
WebSocket signaling endpoint.

Frames are JSON objects: ``{"event": ..., "data": {...}, "ack": n}``.
When a frame carries ``ack`` the result is sent back as an ``ack`` event
with the same number, in order with every other message for that client.
"""

import asyncio
import json
import logging
import uuid

from fastapi import WebSocket
from pydantic import ValidationError

from ice.provider import IceServerProvider
from signaling.errors import InvalidRequestId, SignalingError
from signaling.hub import SignalingHub
from signaling.models import (
    ConnectionResponsePayload,
    RegisterPayload,
    RequestConnectionPayload,
    TargetPayload,
)
from signaling.relay import RELAY_KINDS

logger = logging.getLogger(__name__)

INVALID_PAYLOAD = "Invalid payload"


class WebSocketPeer:
    """Peer transport backed by a WebSocket and a single ordered writer."""

    def __init__(self, websocket: WebSocket) -> None:
        self.session_id = str(uuid.uuid4())
        self._websocket = websocket
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._writer: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._writer = asyncio.create_task(self._write_loop())

    def send(self, event: str, data: dict) -> None:
        self._put({"event": event, "data": data})

    def ack(self, ack_id: int | str, data: dict) -> None:
        self._put({"event": "ack", "ack": ack_id, "data": data})

    def _put(self, message: dict) -> None:
        if self._closed:
            logger.debug(f"Session {self.session_id} closed, dropping {message['event']}")
            return
        self._queue.put_nowait(json.dumps(message))

    async def _write_loop(self) -> None:
        while True:
            message = await self._queue.get()
            if message is None:
                return
            try:
                await self._websocket.send_text(message)
            except Exception as e:
                logger.debug(f"Send failed on session {self.session_id}: {e}")
                self._closed = True
                return

    async def close(self) -> None:
        """Stop accepting messages; already queued ones are still flushed."""
        if self._closed and self._writer is None:
            return
        self._closed = True
        self._queue.put_nowait(None)
        if self._writer:
            await self._writer
            self._writer = None


class SignalingSession:
    """Translates one client's frames into hub operations."""

    def __init__(
        self,
        hub: SignalingHub,
        ice_provider: IceServerProvider,
        transport: WebSocketPeer,
    ) -> None:
        self.hub = hub
        self.ice_provider = ice_provider
        self.transport = transport

    async def handle_text(self, text: str) -> None:
        try:
            frame = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring malformed frame on session {self.transport.session_id}")
            return
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            logger.debug(f"Ignoring frame without event on session {self.transport.session_id}")
            return

        event = frame["event"]
        ack_id = frame.get("ack")
        try:
            result = await self.dispatch(event, frame.get("data") or {})
        except ValidationError as e:
            logger.warning(f"Invalid {event} payload: {e.error_count()} error(s)")
            result = {"success": False, "error": INVALID_PAYLOAD}
        except InvalidRequestId as e:
            logger.debug(f"Ignoring {event}: {e}")
            result = None
        except SignalingError as e:
            result = {"success": False, "error": e.reason}

        if ack_id is not None and result is not None:
            self.transport.ack(ack_id, result)

    async def dispatch(self, event: str, data) -> dict | None:
        """Run one event. Returns the ack result, or None if it has none."""
        if event == "register":
            payload = RegisterPayload.model_validate(data)
            connection_id = await self.hub.register(self.transport, payload.preferred_id)
            ice_servers = await self.ice_provider.get_ice_servers()
            return {"success": True, "connectionId": connection_id, "iceServers": ice_servers}

        if event == "request-connection":
            payload = RequestConnectionPayload.model_validate(data)
            request_id = await self.hub.request_connection(
                self.transport,
                payload.target_id,
                viewer_name=payload.viewer_name,
                password=payload.password,
            )
            return {"success": True, "requestId": request_id}

        if event == "connection-response":
            payload = ConnectionResponsePayload.model_validate(data)
            await self.hub.respond(self.transport, payload.request_id, payload.accepted)
            return None

        if event == "end-session":
            payload = TargetPayload.model_validate(data)
            await self.hub.end_session(self.transport, payload.target_id)
            return None

        if event in RELAY_KINDS:
            payload = TargetPayload.model_validate(data)
            await self.hub.forward(self.transport, event, payload.target_id, data)
            return None

        logger.debug(f"Unknown event {event!r} on session {self.transport.session_id}")
        return None


class ConnectionManager:
    """Tracks live WebSocket sessions and hands transport loss to the hub."""

    def __init__(self, hub: SignalingHub, ice_provider: IceServerProvider) -> None:
        self._hub = hub
        self._ice_provider = ice_provider
        self._sessions: dict[str, SignalingSession] = {}

    @property
    def active(self) -> int:
        return len(self._sessions)

    async def connect(self, websocket: WebSocket) -> SignalingSession:
        await websocket.accept()
        transport = WebSocketPeer(websocket)
        transport.start()
        session = SignalingSession(self._hub, self._ice_provider, transport)
        self._sessions[transport.session_id] = session
        logger.info(f"New connection: {transport.session_id} (open: {len(self._sessions)})")
        return session

    async def disconnect(self, session: SignalingSession) -> None:
        transport = session.transport
        self._sessions.pop(transport.session_id, None)
        await transport.close()
        logger.info(f"Disconnected: {transport.session_id} (open: {len(self._sessions)})")
        await self._hub.transport_lost(transport)
