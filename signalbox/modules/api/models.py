"""
Signalbox wire models.

These models define the structure of every message exchanged over the
relay WebSocket, plus the decoding step that turns a raw frame into one.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

PIN_MAX_LENGTH = 128

# Forwarded to the responder on join; opaque, never validated
METADATA_FIELDS = ("fileName", "fileSize")

# Enums


class MessageType(str, Enum):
    """Inbound message tags understood by the router."""

    CREATE_SESSION = "create-session"
    JOIN_SESSION = "join-session"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"


SIGNALING_TYPES = frozenset({MessageType.OFFER, MessageType.ANSWER, MessageType.ICE_CANDIDATE})


class ReplyType(str, Enum):
    """Outbound message tags sent by the relay."""

    SESSION_CREATED = "session-created"
    PIN_TAKEN = "pin-taken"
    SESSION_JOINED = "session-joined"
    RECEIVER_JOINED = "receiver-joined"
    SESSION_NOT_FOUND = "session-not-found"
    SESSION_FULL = "session-full"
    SESSION_EXPIRED = "session-expired"


# Inbound Models


class CreateSessionMessage(BaseModel):
    """Initiator asks for a new session under its chosen pin."""

    model_config = ConfigDict(extra="allow")

    type: MessageType = MessageType.CREATE_SESSION
    pin: str = Field(..., description="Shared secret chosen by the initiator", min_length=1, max_length=PIN_MAX_LENGTH)

    def metadata(self) -> Dict[str, Any]:
        """
        Metadata stored with the session.

        Values are taken exactly as received (fileName, fileSize); fields the
        client did not send are left out.
        """
        extra = self.model_extra or {}
        return {key: extra[key] for key in METADATA_FIELDS if key in extra}


class JoinSessionMessage(BaseModel):
    """Responder asks to join the session holding pin."""

    model_config = ConfigDict(extra="ignore")

    type: MessageType = MessageType.JOIN_SESSION
    pin: str = Field(..., min_length=1, max_length=PIN_MAX_LENGTH)


class SignalingMessage(BaseModel):
    """
    Offer, answer or ICE candidate.

    Only the routing fields are modelled; everything else is opaque and
    forwarded as received.
    """

    model_config = ConfigDict(extra="allow")

    type: MessageType
    # Any value; one that is not a live pin resolves to session-not-found
    pin: Any = None


InboundMessage = Union[CreateSessionMessage, JoinSessionMessage, SignalingMessage]

MESSAGE_MODELS: Dict[MessageType, Type[BaseModel]] = {
    MessageType.CREATE_SESSION: CreateSessionMessage,
    MessageType.JOIN_SESSION: JoinSessionMessage,
    MessageType.OFFER: SignalingMessage,
    MessageType.ANSWER: SignalingMessage,
    MessageType.ICE_CANDIDATE: SignalingMessage,
}


# Outbound Models


class ServerMessage(BaseModel):
    """Base for everything the relay sends."""

    type: ReplyType

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class MetadataMessage(ServerMessage):
    """Reply carrying session metadata as extra fields, untouched."""

    model_config = ConfigDict(extra="allow")


class SessionCreatedReply(MetadataMessage):
    type: ReplyType = ReplyType.SESSION_CREATED
    pin: str


class SessionJoinedReply(MetadataMessage):
    type: ReplyType = ReplyType.SESSION_JOINED


class ReceiverJoinedNotice(MetadataMessage):
    type: ReplyType = ReplyType.RECEIVER_JOINED


class SessionExpiredNotice(ServerMessage):
    type: ReplyType = ReplyType.SESSION_EXPIRED
    pin: str


def status_reply(reply_type: ReplyType) -> ServerMessage:
    """Bare reply carrying only its tag (pin-taken, session-full, ...)."""
    return ServerMessage(type=reply_type)


# Decoding


class MessageDecodeError(ValueError):
    """Raised when an inbound frame cannot be turned into a message."""


@dataclass
class DecodedMessage:
    """
    A decoded inbound frame.

    message is None when the tag is not one the router understands; raw keeps
    the original frame text so signaling payloads can be forwarded verbatim.
    """

    type: Any
    raw: str
    payload: Dict[str, Any]
    message: Optional[InboundMessage] = None

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, MessageType) else str(self.type)

    @property
    def pin(self) -> Optional[str]:
        pin = self.payload.get("pin")
        return pin if isinstance(pin, str) else None


def decode_message(frame: Union[str, bytes]) -> DecodedMessage:
    """
    Decode one WebSocket frame.

    Raises:
        MessageDecodeError: frame is not UTF-8 JSON, not an object, or a known
            message type fails validation
    """
    if isinstance(frame, bytes):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageDecodeError(f"Frame is not valid UTF-8: {e}") from e

    try:
        payload = json.loads(frame)
    except json.JSONDecodeError as e:
        raise MessageDecodeError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MessageDecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    tag = payload.get("type")
    try:
        message_type = MessageType(tag)
    except ValueError:
        return DecodedMessage(type=tag, raw=frame, payload=payload)

    try:
        message = MESSAGE_MODELS[message_type].model_validate(payload)
    except ValidationError as e:
        raise MessageDecodeError(f"Invalid {message_type.value} message: {e}") from e

    return DecodedMessage(type=message_type, raw=frame, payload=payload, message=message)
