from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from rsvp.schema import ApprovalStatus, AttendeeKind, ReplyStatus


@dataclass
class Attendee:
    """A registrant (kind=rsvp) or one of their guests (kind=guest)."""

    id: str
    kind: AttendeeKind
    name: str
    phone: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    rsvp_id: Optional[str] = None
    reply_status: Optional[ReplyStatus] = None
    reply_received_at: Optional[str] = None
    reply_message: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == ApprovalStatus.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "name": self.name,
            "phone": self.phone,
            "status": self.status.value,
            "reply_status": self.reply_status.value if self.reply_status else None,
            "reply_received_at": self.reply_received_at,
            "reply_message": self.reply_message,
            "created_at": self.created_at,
        }
        if self.kind == AttendeeKind.GUEST:
            out["rsvp_id"] = self.rsvp_id
        return out


@dataclass(frozen=True)
class MatchedAttendee:
    kind: AttendeeKind
    id: str
    name: str
    phone: str


@dataclass(frozen=True)
class InboundMessage:
    """One received WhatsApp message; never persisted on its own."""

    phone: str
    text: str
    source: str
    raw_phone: str = ""
    push_name: Optional[str] = None
