import logging
from typing import Iterable, Optional, Union

from signalbox.modules.api import (
    SIGNALING_TYPES,
    CreateSessionMessage,
    DecodedMessage,
    JoinSessionMessage,
    MessageDecodeError,
    MessageType,
    ReceiverJoinedNotice,
    ReplyType,
    SessionCreatedReply,
    SessionExpiredNotice,
    SessionJoinedReply,
    decode_message,
    status_reply,
)
from signalbox.modules.session import SessionError, SessionInfo, SessionRegistry

from .endpoint import DeliveryStatus, Endpoint

logger = logging.getLogger(__name__)


class RelayRouter:
    """
    Per-message dispatcher between connections and the session registry.

    The router keeps no state of its own; every decision is taken against the
    registry, which is injected at construction.
    """

    def __init__(self, registry: SessionRegistry, notify_on_expiry: bool = False):
        self.registry = registry
        self.notify_on_expiry = notify_on_expiry

    async def handle_frame(self, endpoint: Endpoint, frame: Union[str, bytes]) -> Optional[DecodedMessage]:
        """
        Decode and dispatch one inbound frame.

        Returns:
            The decoded message, or None if the frame was dropped as malformed
        """
        try:
            decoded = decode_message(frame)
        except MessageDecodeError as e:
            logger.error(f"Error parsing message from endpoint {endpoint.endpoint_id}: {e}")
            return None

        await self.dispatch(endpoint, decoded)
        return decoded

    async def dispatch(self, endpoint: Endpoint, decoded: DecodedMessage) -> None:
        logger.info(f"Received message: {decoded.type_name} {decoded.pin or 'no-pin'}")

        if decoded.type == MessageType.CREATE_SESSION:
            await self.handle_create_session(endpoint, decoded.message)
        elif decoded.type == MessageType.JOIN_SESSION:
            await self.handle_join_session(endpoint, decoded.message)
        elif decoded.type in SIGNALING_TYPES:
            await self.handle_signaling_message(endpoint, decoded)
        else:
            logger.info(f"Unknown message type: {decoded.type_name}")

    async def handle_create_session(self, endpoint: Endpoint, message: CreateSessionMessage) -> None:
        metadata = message.metadata()
        result = await self.registry.create_session(message.pin, metadata, endpoint)

        if not result.ok:
            await endpoint.send_json(status_reply(ReplyType.PIN_TAKEN).to_wire())
            return

        logger.info(
            f"Created session {message.pin} for file: {metadata.get('fileName')} "
            f"({metadata.get('fileSize')} bytes)"
        )
        reply = SessionCreatedReply(pin=message.pin, **metadata)
        await endpoint.send_json(reply.to_wire())

    async def handle_join_session(self, endpoint: Endpoint, message: JoinSessionMessage) -> None:
        result = await self.registry.join_session(message.pin, endpoint)

        if not result.ok:
            reply_type = (
                ReplyType.SESSION_FULL
                if result.error == SessionError.SESSION_FULL
                else ReplyType.SESSION_NOT_FOUND
            )
            await endpoint.send_json(status_reply(reply_type).to_wire())
            return

        session = result.session
        logger.info(f"Receiver joined session {session.pin}")

        notice = ReceiverJoinedNotice(**session.metadata)
        status = await session.initiator.send_json(notice.to_wire())
        if status == DeliveryStatus.DROPPED:
            logger.info(f"Initiator of session {session.pin} unavailable, receiver-joined dropped")

        await endpoint.send_json(SessionJoinedReply(**session.metadata).to_wire())

    async def handle_signaling_message(self, endpoint: Endpoint, decoded: DecodedMessage) -> None:
        pin = decoded.pin
        resolution = await self.registry.resolve_peer(pin, endpoint)

        if resolution.error == SessionError.SESSION_NOT_FOUND:
            await endpoint.send_json(status_reply(ReplyType.SESSION_NOT_FOUND).to_wire())
            return

        if resolution.ok:
            status = await resolution.peer.send_text(decoded.raw)
            if status == DeliveryStatus.DELIVERED:
                logger.info(f"Forwarded {decoded.type_name} message for session {pin}")
                return

        logger.info(f"Failed to forward {decoded.type_name} message - target not available")

    async def handle_disconnect(self, endpoint: Endpoint) -> Optional[str]:
        """Remove the session the closed endpoint was bound to, if any."""
        pin = await self.registry.remove_session_by_endpoint(endpoint)
        if pin is not None:
            logger.info(f"Cleaned up session after disconnect: {pin}")
        return pin

    async def notify_expired(self, sessions: Iterable[SessionInfo]) -> int:
        """
        Tell still-connected endpoints that their session expired.

        Does nothing unless notify_on_expiry is enabled.

        Returns:
            Number of notices delivered
        """
        if not self.notify_on_expiry:
            return 0

        delivered = 0
        for info in sessions:
            notice = SessionExpiredNotice(pin=info.pin).to_wire()
            for bound in (info.initiator, info.responder):
                if bound is None:
                    continue
                if await bound.send_json(notice) == DeliveryStatus.DELIVERED:
                    delivered += 1
        return delivered
