"""
Inbound webhook payload parsing.

WasenderAPI posts a nested ``messages.received`` envelope; other relays post
a flat object. A body tagged ``messages.received`` must be a valid envelope
and is rejected otherwise; only bodies without that tag are read as the
flat shape.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rsvp.models import InboundMessage
from rsvp.runtime import normalize_phone

MIN_PHONE_LENGTH = 10  # '+' plus nine digits

SOURCE_WASENDER = "wasender"
SOURCE_GENERIC = "generic"
WASENDER_EVENT = "messages.received"


class PayloadError(ValueError):
    """The webhook body carries no usable phone/message pair."""

    def __init__(self, reason: str, code: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.code = code


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _first_text(*values: Any) -> str:
    for value in values:
        text = _text(value)
        if text.strip():
            return text
    return ""


def _strip_jid(value: Any) -> str:
    # 31612345678@s.whatsapp.net / 1234@lid → 31612345678 / 1234
    return _text(value).split("@", 1)[0]


# ---------------------------------------------------------------------------
# WasenderAPI envelope
# ---------------------------------------------------------------------------


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WasenderKey(_Lenient):
    cleanedSenderPn: Any = None
    senderPn: Any = None
    remoteJid: Any = None
    fromMe: Any = None


class WasenderContent(_Lenient):
    conversation: Any = None
    text: Any = None


class WasenderMessage(_Lenient):
    key: WasenderKey = Field(default_factory=WasenderKey)
    messageBody: Any = None
    message: Optional[WasenderContent] = None
    pushName: Any = None

    def phone(self) -> str:
        return _first_text(
            _strip_jid(self.key.cleanedSenderPn),
            _strip_jid(self.key.senderPn),
            _strip_jid(self.key.remoteJid),
        )

    def body(self) -> str:
        content = self.message or WasenderContent()
        return _first_text(self.messageBody, content.conversation, content.text)


class WasenderData(_Lenient):
    messages: Union[WasenderMessage, List[WasenderMessage]]


class WasenderEnvelope(_Lenient):
    event: Literal["messages.received"]
    data: WasenderData

    def first_message(self) -> Optional[WasenderMessage]:
        messages = self.data.messages
        if isinstance(messages, list):
            return messages[0] if messages else None
        return messages


# ---------------------------------------------------------------------------
# Flat shape
# ---------------------------------------------------------------------------


class FlatPayload(_Lenient):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    from_: Any = Field(default=None, alias="from")
    phone: Any = None
    sender: Any = None
    from_number: Any = None
    body: Any = None
    text: Any = None
    message: Any = None
    content: Any = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_inbound(payload: Any) -> InboundMessage:
    """Turn a decoded webhook body into an InboundMessage or raise PayloadError."""
    if not isinstance(payload, dict):
        raise PayloadError("Payload is not a JSON object", "unrecognized_payload")

    push_name = None
    try:
        envelope = WasenderEnvelope.model_validate(payload)
    except ValidationError:
        if payload.get("event") == WASENDER_EVENT:
            raise PayloadError("Malformed messages.received envelope", "unrecognized_payload")
        flat = FlatPayload.model_validate(payload)
        source = SOURCE_GENERIC
        raw_phone = _first_text(flat.from_, flat.phone, flat.sender, flat.from_number)
        raw_text = _first_text(flat.body, flat.text, flat.message, flat.content)
    else:
        msg = envelope.first_message()
        if msg is None:
            raise PayloadError("Envelope carries no messages", "unrecognized_payload")
        if msg.key.fromMe is True:
            raise PayloadError("Message was sent by this account", "own_message")
        source = SOURCE_WASENDER
        raw_phone = msg.phone()
        raw_text = msg.body()
        push_name = _text(msg.pushName) or None

    phone = normalize_phone(raw_phone)
    if not raw_phone.strip() or len(phone) < MIN_PHONE_LENGTH:
        raise PayloadError("Invalid or missing phone number", "invalid_phone")

    text = raw_text.strip()
    if not text:
        raise PayloadError("Missing message content", "missing_message")

    return InboundMessage(phone=phone, text=text, source=source, raw_phone=raw_phone, push_name=push_name)
