"""
Session Module - Black Box Interface

Purpose: Own rendezvous session lifecycle (create, join, pair, expire, remove)
Interface: SessionRegistry, SessionReaper, SessionResult, PeerResolution
Hidden: Session storage, locking, expiry bookkeeping

Replaceable with any backend that keeps create/join atomic per pin.
"""

from .reaper import SessionReaper
from .session import (
    PeerResolution,
    SessionError,
    SessionInfo,
    SessionRegistry,
    SessionResult,
    SessionState,
)

__all__ = [
    "PeerResolution",
    "SessionError",
    "SessionInfo",
    "SessionReaper",
    "SessionRegistry",
    "SessionResult",
    "SessionState",
]
