"""
API Module - Black Box Interface

Purpose: Wire format of the relay protocol
Interface: decode_message(), inbound message models, reply models
Hidden: JSON parsing and validation details

The API module only describes messages - routing lives in the relay module.
"""

from .models import (
    SIGNALING_TYPES,
    CreateSessionMessage,
    DecodedMessage,
    JoinSessionMessage,
    MessageDecodeError,
    MessageType,
    ReceiverJoinedNotice,
    ReplyType,
    ServerMessage,
    SessionCreatedReply,
    SessionExpiredNotice,
    SessionJoinedReply,
    SignalingMessage,
    decode_message,
    status_reply,
)

__all__ = [
    "SIGNALING_TYPES",
    "CreateSessionMessage",
    "DecodedMessage",
    "JoinSessionMessage",
    "MessageDecodeError",
    "MessageType",
    "ReceiverJoinedNotice",
    "ReplyType",
    "ServerMessage",
    "SessionCreatedReply",
    "SessionExpiredNotice",
    "SessionJoinedReply",
    "SignalingMessage",
    "decode_message",
    "status_reply",
]
