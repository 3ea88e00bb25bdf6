"""
Relay Module - Black Box Interface

Purpose: Route protocol messages between the two endpoints of a session
Interface: RelayRouter, WebSocketEndpoint, DeliveryStatus
Hidden: Dispatch table, best-effort send handling

The router holds no session state; it drives the session module.
"""

from .endpoint import DeliveryStatus, Endpoint, WebSocketEndpoint
from .router import RelayRouter

__all__ = ["DeliveryStatus", "Endpoint", "RelayRouter", "WebSocketEndpoint"]
