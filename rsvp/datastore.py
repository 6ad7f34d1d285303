"""Airtable attendee datastore with an in-memory fallback for local runs and tests."""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from pyairtable import Api

from rsvp.config import Settings, settings as load_settings
from rsvp.models import Attendee
from rsvp.runtime import get_logger, iso_now
from rsvp.schema import (
    ApprovalStatus,
    AttendeeKind,
    ReplyStatus,
    guests_field_map,
    rsvps_field_map,
)

logger = get_logger(__name__)

_FORMULA_EQ = re.compile(r"\{([^}]+)\}\s*=\s*'([^']*)'")


class RecordNotFound(KeyError):
    """Raised when an attendee id does not exist in its table."""


class InMemoryTable:
    """
    Stand-in for a pyairtable ``Table`` when no base is configured.

    Supports the calls the store makes: ``create``, ``update``, ``get`` and
    ``all(formula=..., max_records=...)`` where the formula is one or more
    ``{field}='value'`` equalities.
    """

    def __init__(self, name: str):
        self.name = name
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": f"rec_{next(self._ids)}", "createdTime": iso_now(), "fields": dict(fields)}
        self._rows[row["id"]] = row
        return row

    def update(self, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        row = self._rows.get(record_id)
        if row is None:
            raise KeyError(f"{self.name}: no record {record_id}")
        row["fields"].update(fields)
        return row

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self._rows.get(record_id)

    def all(self, formula: Optional[str] = None, max_records: Optional[int] = None, **_ignored) -> List[Dict[str, Any]]:
        rows = [row for row in self._rows.values() if not formula or _formula_match(row, formula)]
        return rows if max_records is None else rows[: int(max_records)]


def _formula_match(record: Dict[str, Any], formula: str) -> bool:
    clauses = _FORMULA_EQ.findall(formula)
    values = record.get("fields", {})
    return bool(clauses) and all(str(values.get(name)) == expected for name, expected in clauses)


def _eq_formula(field_name: str, value: str) -> str:
    return "{%s}='%s'" % (field_name, value.replace("'", "\\'"))


def _first_link(value: Any) -> Optional[str]:
    # Linked-record cells come back as ["recX"], [{"id": "recX"}] or a bare id
    items = value if isinstance(value, (list, tuple)) else [value]
    for item in items:
        if isinstance(item, dict):
            item = item.get("id")
        if isinstance(item, str) and item:
            return item
    return None


@dataclass
class TableHandle:
    table: Any
    in_memory: bool


# ------------------------------------------------------------
# CONNECTOR
# ------------------------------------------------------------


class DataConnector:
    """Hands out one table handle per (base, table); Airtable when configured, memory otherwise."""

    def __init__(self, cfg: Optional[Settings] = None) -> None:
        self.settings = cfg or load_settings()
        self._tables: Dict[Tuple[str, str], TableHandle] = {}
        self._api: Optional[Api] = None

    def _table(self, table_name: str) -> TableHandle:
        s = self.settings
        key = (s.RSVP_BASE or "memory", table_name)
        if key in self._tables:
            return self._tables[key]

        if s.store_configured:
            if self._api is None:
                self._api = Api(s.AIRTABLE_API_KEY)
            handle = TableHandle(self._api.table(s.RSVP_BASE, table_name), in_memory=False)
        else:
            if not s.FORCE_IN_MEMORY:
                logger.warning("Airtable not configured; using in-memory table for %s", table_name)
            handle = TableHandle(InMemoryTable(table_name), in_memory=True)
        self._tables[key] = handle
        return handle

    def rsvps(self) -> TableHandle:
        return self._table(self.settings.RSVPS_TABLE)

    def guests(self) -> TableHandle:
        return self._table(self.settings.GUESTS_TABLE)

    def reset(self) -> None:
        self._tables.clear()


# ------------------------------------------------------------
# ATTENDEE STORE
# ------------------------------------------------------------


class AttendeeStore:
    """Reads and writes registrants and guests; the only persistence API the handlers use."""

    def __init__(self, cfg: Optional[Settings] = None, connector: Optional[DataConnector] = None) -> None:
        self.settings = cfg or load_settings()
        self.connector = connector or DataConnector(self.settings)
        self._rsvp_fields = rsvps_field_map()
        self._guest_fields = guests_field_map()

    # ---------- internals ----------

    def _handle(self, kind: AttendeeKind) -> TableHandle:
        return self.connector.rsvps() if kind == AttendeeKind.RSVP else self.connector.guests()

    def _fields(self, kind: AttendeeKind) -> Dict[str, str]:
        return self._rsvp_fields if kind == AttendeeKind.RSVP else self._guest_fields

    def _to_attendee(self, kind: AttendeeKind, record: Dict[str, Any]) -> Attendee:
        f = self._fields(kind)
        data = record.get("fields", {}) or {}

        raw_status = str(data.get(f["STATUS"]) or ApprovalStatus.PENDING.value).strip().lower()
        try:
            status = ApprovalStatus(raw_status)
        except ValueError:
            status = ApprovalStatus.PENDING

        raw_reply = data.get(f["REPLY_STATUS"])
        try:
            reply = ReplyStatus(str(raw_reply).strip().lower()) if raw_reply else None
        except ValueError:
            reply = None

        rsvp_id = _first_link(data.get(f["RSVP_LINK"])) if kind == AttendeeKind.GUEST else None

        return Attendee(
            id=record["id"],
            kind=kind,
            name=str(data.get(f["NAME"]) or ""),
            phone=str(data.get(f["PHONE"]) or ""),
            status=status,
            rsvp_id=rsvp_id,
            reply_status=reply,
            reply_received_at=data.get(f["REPLY_RECEIVED_AT"]),
            reply_message=data.get(f["REPLY_MESSAGE"]),
            created_at=data.get(f["CREATED_AT"]) or record.get("createdTime"),
        )

    def _get_record(self, kind: AttendeeKind, record_id: str) -> Dict[str, Any]:
        handle = self._handle(kind)
        try:
            record = handle.table.get(record_id)
        except requests.HTTPError as exc:
            if getattr(exc.response, "status_code", None) == 404:
                raise RecordNotFound(f"{kind.value} {record_id} not found") from exc
            raise
        if not record:
            raise RecordNotFound(f"{kind.value} {record_id} not found")
        return record

    def _update(self, kind: AttendeeKind, record_id: str, payload: Dict[str, Any]) -> Attendee:
        self._get_record(kind, record_id)
        record = self._handle(kind).table.update(record_id, payload)
        return self._to_attendee(kind, record)

    def _list(self, kind: AttendeeKind, status: Optional[ApprovalStatus] = None) -> List[Attendee]:
        handle = self._handle(kind)
        if status is not None:
            formula = _eq_formula(self._fields(kind)["STATUS"], status.value)
            records = handle.table.all(formula=formula)
        else:
            records = handle.table.all()
        return [self._to_attendee(kind, rec) for rec in records]

    # ---------- public API ----------

    def create_rsvp(self, full_name: str, phone: str, status: ApprovalStatus = ApprovalStatus.PENDING) -> Attendee:
        f = self._rsvp_fields
        now = iso_now()
        record = self.connector.rsvps().table.create(
            {
                f["NAME"]: full_name,
                f["PHONE"]: phone,
                f["STATUS"]: status.value,
                f["CREATED_AT"]: now,
                f["UPDATED_AT"]: now,
            }
        )
        logger.info("📝 Created RSVP %s for %s", record["id"], full_name)
        return self._to_attendee(AttendeeKind.RSVP, record)

    def add_guest(self, rsvp_id: str, name: str, phone: str, status: ApprovalStatus = ApprovalStatus.PENDING) -> Attendee:
        self._get_record(AttendeeKind.RSVP, rsvp_id)
        f = self._guest_fields
        record = self.connector.guests().table.create(
            {
                f["RSVP_LINK"]: [rsvp_id],
                f["NAME"]: name,
                f["PHONE"]: phone,
                f["STATUS"]: status.value,
                f["CREATED_AT"]: iso_now(),
            }
        )
        logger.info("📝 Added guest %s (%s) to RSVP %s", record["id"], name, rsvp_id)
        return self._to_attendee(AttendeeKind.GUEST, record)

    def get(self, kind: AttendeeKind, record_id: str) -> Attendee:
        return self._to_attendee(kind, self._get_record(kind, record_id))

    def list_rsvps(self, status: Optional[ApprovalStatus] = None) -> List[Attendee]:
        return self._list(AttendeeKind.RSVP, status)

    def list_guests(self, status: Optional[ApprovalStatus] = None, rsvp_id: Optional[str] = None) -> List[Attendee]:
        guests = self._list(AttendeeKind.GUEST, status)
        if rsvp_id is not None:
            guests = [g for g in guests if g.rsvp_id == rsvp_id]
        return guests

    def list_approved(self, kind: AttendeeKind) -> List[Attendee]:
        return self._list(kind, ApprovalStatus.APPROVED)

    def set_status(self, kind: AttendeeKind, record_id: str, status: ApprovalStatus) -> Attendee:
        f = self._fields(kind)
        payload: Dict[str, Any] = {f["STATUS"]: status.value}
        if "UPDATED_AT" in f:
            payload[f["UPDATED_AT"]] = iso_now()
        attendee = self._update(kind, record_id, payload)
        logger.info("✅ %s %s status → %s", kind.value, record_id, status.value)
        return attendee

    def record_reply(
        self,
        kind: AttendeeKind,
        record_id: str,
        reply: ReplyStatus,
        received_at: str,
        message: str,
    ) -> Attendee:
        """Write the reply triple onto exactly one record; linked records are left alone."""
        if reply not in (ReplyStatus.YES, ReplyStatus.NO):
            raise ValueError(f"Cannot record reply {reply!r}")
        f = self._fields(kind)
        return self._update(
            kind,
            record_id,
            {
                f["REPLY_STATUS"]: reply.value,
                f["REPLY_RECEIVED_AT"]: received_at,
                f["REPLY_MESSAGE"]: message,
            },
        )
