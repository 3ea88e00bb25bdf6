"""
Shared pytest fixtures for Signalbox tests.

This module provides common fixtures including:
- FakeEndpoint: In-memory endpoint recording everything sent to it
- FakeClock: Controllable time source for the session registry
- Registry, router and FastAPI app builders
"""

import json
import os
import sys
from typing import Any, Dict, List

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from signalbox.modules.config import ConfigModule
from signalbox.modules.relay import DeliveryStatus, RelayRouter
from signalbox.modules.session import SessionRegistry


# =============================================================================
# Endpoint and Clock Fakes
# =============================================================================

class FakeEndpoint:
    """
    Endpoint double that records outbound frames.

    Usage:
        def test_reply(router):
            sender = FakeEndpoint("sender")
            await router.handle_frame(sender, '{"type": "join-session", "pin": "1"}')
            assert sender.messages == [{"type": "session-not-found"}]
    """

    def __init__(self, name: str = "endpoint", is_open: bool = True):
        self.endpoint_id = name
        self.is_open = is_open
        self.sent: List[str] = []

    async def send_text(self, text: str) -> DeliveryStatus:
        if not self.is_open:
            return DeliveryStatus.DROPPED
        self.sent.append(text)
        return DeliveryStatus.DELIVERED

    async def send_json(self, obj: Any) -> DeliveryStatus:
        return await self.send_text(json.dumps(obj))

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    def close(self) -> None:
        self.is_open = False

    def __repr__(self) -> str:
        return f"FakeEndpoint({self.endpoint_id})"


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    """Registry driven by the fake clock."""
    return SessionRegistry(clock=clock)


@pytest.fixture
def router(registry):
    return RelayRouter(registry)


@pytest.fixture
def initiator():
    return FakeEndpoint("initiator")


@pytest.fixture
def responder():
    return FakeEndpoint("responder")


@pytest.fixture
def app_config(monkeypatch):
    """Config isolated from the developer's environment."""
    for name in ("HOST", "PORT", "LOG_LEVEL", "STATIC_DIR", "CORS_ORIGINS",
                 "SWEEP_INTERVAL", "SESSION_MAX_AGE", "SEND_TIMEOUT",
                 "NOTIFY_ON_EXPIRY", "DEBUG"):
        monkeypatch.delenv(name, raising=False)
    return ConfigModule()


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Tests driving the FastAPI app through TestClient"
    )
