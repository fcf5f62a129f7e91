from __future__ import annotations

import uuid

import pytest

from signaling.broker import ConnectionRequestBroker
from signaling.hub import SignalingHub
from signaling.registry import PeerRegistry


class FakeTransport:
    """In-memory peer transport that records every event sent to it."""

    def __init__(self) -> None:
        self.session_id = str(uuid.uuid4())
        self.sent: list[tuple[str, dict]] = []

    def send(self, event: str, data: dict) -> None:
        self.sent.append((event, data))

    def events(self, name: str) -> list[dict]:
        return [data for event, data in self.sent if event == name]


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def registry() -> PeerRegistry:
    return PeerRegistry()


@pytest.fixture
def broker(registry) -> ConnectionRequestBroker:
    return ConnectionRequestBroker(registry)


@pytest.fixture
def hub() -> SignalingHub:
    return SignalingHub(grace_period=0.05)
