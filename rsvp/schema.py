"""
Central Airtable schema definitions for the RSVP base.

Field names default to the column names the RSVP tables were created with;
environment variables can override individual names to line up with a copy
of the base that was renamed by hand.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


@dataclass(frozen=True)
class FieldDefinition:
    """
    One Airtable column.

    ``default`` is the column name as created; ``env_vars`` are checked in
    order and the first non-blank value renames the column.
    """

    default: str
    env_vars: Tuple[str, ...] = ()

    def resolve(self) -> str:
        for env in self.env_vars:
            override = (os.getenv(env) or "").strip()
            if override:
                return override
        return self.default


@dataclass(frozen=True)
class TableDefinition:
    fields: Dict[str, FieldDefinition] = field(default_factory=dict)

    def names(self) -> Dict[str, str]:
        return {key: column.resolve() for key, column in self.fields.items()}


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReplyStatus(str, Enum):
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"


class AttendeeKind(str, Enum):
    RSVP = "rsvp"
    GUEST = "guest"


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

RSVPS_TABLE = TableDefinition(
    fields={
        "NAME": FieldDefinition("full_name", ("RSVP_NAME_FIELD",)),
        "PHONE": FieldDefinition("phone", ("RSVP_PHONE_FIELD",)),
        "STATUS": FieldDefinition("status", ("RSVP_STATUS_FIELD",)),
        "REPLY_STATUS": FieldDefinition("reply_status", ("RSVP_REPLY_STATUS_FIELD",)),
        "REPLY_RECEIVED_AT": FieldDefinition("reply_received_at", ("RSVP_REPLY_AT_FIELD",)),
        "REPLY_MESSAGE": FieldDefinition("reply_message", ("RSVP_REPLY_MESSAGE_FIELD",)),
        "CREATED_AT": FieldDefinition("created_at"),
        "UPDATED_AT": FieldDefinition("updated_at"),
    },
)

GUESTS_TABLE = TableDefinition(
    fields={
        "RSVP_LINK": FieldDefinition("rsvp_id", ("GUEST_RSVP_LINK_FIELD",)),
        "NAME": FieldDefinition("name", ("GUEST_NAME_FIELD",)),
        "PHONE": FieldDefinition("phone", ("GUEST_PHONE_FIELD",)),
        "STATUS": FieldDefinition("status", ("GUEST_STATUS_FIELD",)),
        "REPLY_STATUS": FieldDefinition("reply_status", ("GUEST_REPLY_STATUS_FIELD",)),
        "REPLY_RECEIVED_AT": FieldDefinition("reply_received_at", ("GUEST_REPLY_AT_FIELD",)),
        "REPLY_MESSAGE": FieldDefinition("reply_message", ("GUEST_REPLY_MESSAGE_FIELD",)),
        "CREATED_AT": FieldDefinition("created_at"),
    },
)


def rsvps_field_map() -> Dict[str, str]:
    return RSVPS_TABLE.names()


def guests_field_map() -> Dict[str, str]:
    return GUESTS_TABLE.names()
