import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SessionError(str, Enum):
    """Conditions the registry reports back to callers instead of raising."""

    PIN_TAKEN = "pin-taken"
    SESSION_NOT_FOUND = "session-not-found"
    SESSION_FULL = "session-full"
    PEER_UNAVAILABLE = "peer-unavailable"


class SessionState(str, Enum):
    OPEN = "open"
    PAIRED = "paired"


@dataclass
class _Session:
    pin: str
    initiator: Any
    metadata: Dict[str, Any]
    created_at: float
    responder: Any = None

    def bound_to(self, endpoint: Any) -> bool:
        return self.initiator is endpoint or self.responder is endpoint

    def snapshot(self) -> "SessionInfo":
        return SessionInfo(
            pin=self.pin,
            initiator=self.initiator,
            responder=self.responder,
            metadata=dict(self.metadata),
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class SessionInfo:
    """Read-only view of a session handed out by the registry."""

    pin: str
    initiator: Any
    responder: Any
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: float = 0.0

    @property
    def state(self) -> SessionState:
        return SessionState.OPEN if self.responder is None else SessionState.PAIRED


@dataclass
class SessionResult:
    """Standardized result of create/join."""

    ok: bool
    session: Optional[SessionInfo] = None
    error: Optional[SessionError] = None


@dataclass
class PeerResolution:
    """Standardized result of resolve_peer."""

    ok: bool
    peer: Any = None
    error: Optional[SessionError] = None


class SessionRegistry:
    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the session registry.

        Args:
            clock: Returns the current time in seconds; injectable for tests
        """
        self._sessions: Dict[str, _Session] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    async def create_session(
        self, pin: str, metadata: Optional[Dict[str, Any]], endpoint: Any
    ) -> SessionResult:
        """
        Create a new open session keyed by pin.

        Args:
            pin: Session key chosen by the initiator
            metadata: Opaque fields forwarded to the responder on join
            endpoint: The creating endpoint, bound as initiator

        Returns:
            SessionResult; error is PIN_TAKEN if a live session holds the pin
        """
        async with self._lock:
            if pin in self._sessions:
                return SessionResult(ok=False, error=SessionError.PIN_TAKEN)

            session = _Session(
                pin=pin,
                initiator=endpoint,
                metadata=dict(metadata or {}),
                created_at=self._clock(),
            )
            self._sessions[pin] = session
            return SessionResult(ok=True, session=session.snapshot())

    async def join_session(self, pin: str, endpoint: Any) -> SessionResult:
        """
        Bind endpoint as the responder of the session keyed by pin.

        The responder slot is compare-and-set under the registry lock, so of
        two racing joiners exactly one wins.

        Returns:
            SessionResult with the session snapshot (including metadata), or
            error SESSION_NOT_FOUND / SESSION_FULL
        """
        async with self._lock:
            session = self._sessions.get(pin)
            if session is None:
                return SessionResult(ok=False, error=SessionError.SESSION_NOT_FOUND)

            if session.responder is not None:
                return SessionResult(ok=False, error=SessionError.SESSION_FULL)

            session.responder = endpoint
            return SessionResult(ok=True, session=session.snapshot())

    async def resolve_peer(self, pin: Optional[str], requesting_endpoint: Any) -> PeerResolution:
        """
        Find the endpoint opposite requesting_endpoint within a session.

        PEER_UNAVAILABLE is returned when the session exists but the peer slot
        is empty or the requester is not bound to it. Callers treat it as a
        dropped forward, not as a session error.
        """
        async with self._lock:
            session = self._sessions.get(pin) if pin is not None else None
            if session is None:
                return PeerResolution(ok=False, error=SessionError.SESSION_NOT_FOUND)

            if session.initiator is requesting_endpoint:
                peer = session.responder
            elif session.responder is requesting_endpoint:
                peer = session.initiator
            else:
                peer = None

            if peer is None:
                return PeerResolution(ok=False, error=SessionError.PEER_UNAVAILABLE)
            return PeerResolution(ok=True, peer=peer)

    async def get_session(self, pin: str) -> Optional[SessionInfo]:
        async with self._lock:
            session = self._sessions.get(pin)
            return session.snapshot() if session else None

    async def remove_session_by_endpoint(self, endpoint: Any) -> Optional[str]:
        """
        Remove the session bound to endpoint in either role.

        Every session is scanned, so an endpoint that somehow ended up in more
        than one session leaves none behind.

        Returns:
            The removed pin, or None if the endpoint was not bound
        """
        async with self._lock:
            pins = [pin for pin, session in self._sessions.items() if session.bound_to(endpoint)]
            for pin in pins:
                del self._sessions[pin]

        if len(pins) > 1:
            logger.warning(f"Endpoint was bound to {len(pins)} sessions: {', '.join(pins)}")
        return pins[0] if pins else None

    async def remove_session(self, pin: str) -> bool:
        """Unconditionally remove a session. Returns True if one was removed."""
        async with self._lock:
            return self._sessions.pop(pin, None) is not None

    async def evict_expired(self, max_age: float, now: Optional[float] = None) -> List[SessionInfo]:
        """
        Remove every session whose age has reached max_age.

        Args:
            max_age: Maximum session age in seconds
            now: Reference time; defaults to the registry clock

        Returns:
            Snapshots of the removed sessions
        """
        if now is None:
            now = self._clock()

        async with self._lock:
            expired = [
                session
                for session in self._sessions.values()
                if now - session.created_at >= max_age
            ]
            for session in expired:
                del self._sessions[session.pin]

        return [session.snapshot() for session in expired]

    async def sweep_expired(self, max_age: float, now: Optional[float] = None) -> List[str]:
        """Remove expired sessions and return their pins."""
        return [info.pin for info in await self.evict_expired(max_age, now)]

    async def clear(self) -> int:
        """Drop every session (service shutdown). Returns how many were dropped."""
        async with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            return count

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            paired = sum(1 for s in self._sessions.values() if s.responder is not None)
            total = len(self._sessions)
        return {"total": total, "open": total - paired, "paired": paired}
