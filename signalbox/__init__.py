"""
Signalbox - Rendezvous and signaling relay for peer-to-peer file transfer

Two peers sharing a short pin find each other here and exchange WebRTC
negotiation messages; the file itself never passes through the service.

Architecture:
- Each module is self-contained with clear interfaces
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- session: Session registry and expiry reaper
- relay: Per-connection message routing
- api: Wire message models
- config: Environment configuration
"""

__version__ = "1.0.0"
