"""
RSVP intake and admin routes.

Registrants and guests start as ``pending``; an admin approves or rejects
each one, which triggers a best-effort WhatsApp notice. Admin routes are
open when ADMIN_TOKEN is unset.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from rsvp.config import settings as load_settings
from rsvp.datastore import AttendeeStore, RecordNotFound
from rsvp.models import Attendee
from rsvp.notifications import StatusChange, notify_status_change
from rsvp.runtime import get_logger
from rsvp.schema import ApprovalStatus, AttendeeKind
from rsvp.services import get_client, get_store
from rsvp.validation import format_phone_number, phone_error_message
from rsvp.wasender_client import WasenderError

router = APIRouter()
logger = get_logger("rsvps")


# ─────────────────────────── Request models ───────────────────────────
def _clean_name(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Name is required")
    return value


def _clean_phone(value: str) -> str:
    error = phone_error_message(value)
    if error:
        raise ValueError(error)
    return format_phone_number(value)


class GuestIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    phone: str

    check_name = field_validator("name")(_clean_name)
    check_phone = field_validator("phone")(_clean_phone)


class RSVPIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str
    phone: str
    guests: List[GuestIn] = Field(default_factory=list)

    check_name = field_validator("full_name")(_clean_name)
    check_phone = field_validator("phone")(_clean_phone)


class StatusIn(BaseModel):
    status: ApprovalStatus

    @field_validator("status")
    @classmethod
    def _decided(cls, value: ApprovalStatus) -> ApprovalStatus:
        if value == ApprovalStatus.PENDING:
            raise ValueError("status must be 'approved' or 'rejected'")
        return value


# ─────────────────────────── Auth ───────────────────────────
def _extract_token(request: Request, qp_token: Optional[str], h_admin: Optional[str]) -> str:
    if qp_token:
        return qp_token
    if h_admin:
        return h_admin
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1]
    return ""


def _require_token(request: Request, qp_token: Optional[str], h_admin: Optional[str]):
    expected = load_settings().ADMIN_TOKEN
    if not expected:
        return
    if _extract_token(request, qp_token, h_admin) != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


# ─────────────────────────── Operations ───────────────────────────
def submit_rsvp(store: AttendeeStore, payload: RSVPIn) -> Dict[str, Any]:
    rsvp = store.create_rsvp(payload.full_name, payload.phone)
    guests = [store.add_guest(rsvp.id, g.name, g.phone) for g in payload.guests]
    return {"success": True, "rsvp": rsvp.to_dict(), "guests": [g.to_dict() for g in guests]}


def rsvp_overview(store: AttendeeStore) -> Dict[str, Any]:
    """Registrants (newest first) with their guests nested, plus approval counts."""
    rsvps = store.list_rsvps()
    guests = store.list_guests()
    by_parent: Dict[str, List[Attendee]] = {}
    for guest in guests:
        by_parent.setdefault(guest.rsvp_id or "", []).append(guest)

    rsvps.sort(key=lambda r: r.created_at or "", reverse=True)
    items = []
    for rsvp in rsvps:
        entry = rsvp.to_dict()
        entry["guests"] = [g.to_dict() for g in by_parent.get(rsvp.id, [])]
        items.append(entry)

    def _count(people: List[Attendee], status: ApprovalStatus) -> int:
        return sum(1 for p in people if p.status == status)

    return {
        "rsvps": items,
        "counts": {
            "total_rsvps": len(rsvps),
            "total_guests": len(guests),
            "pending_rsvps": _count(rsvps, ApprovalStatus.PENDING),
            "approved_rsvps": _count(rsvps, ApprovalStatus.APPROVED),
            "rejected_rsvps": _count(rsvps, ApprovalStatus.REJECTED),
            "pending_guests": _count(guests, ApprovalStatus.PENDING),
            "approved_guests": _count(guests, ApprovalStatus.APPROVED),
            "total_approved_people": _count(rsvps, ApprovalStatus.APPROVED) + _count(guests, ApprovalStatus.APPROVED),
        },
    }


def change_status(store: AttendeeStore, kind: AttendeeKind, record_id: str, status: ApprovalStatus) -> Dict[str, Any]:
    """Persist the new status, then notify; a failed notice never undoes the update."""
    old = store.get(kind, record_id)
    updated = store.set_status(kind, record_id, status)

    change = StatusChange(
        type=kind.value,
        id=updated.id,
        name=updated.name,
        phone=updated.phone,
        status=status.value,
        old_status=old.status.value,
    )
    notification: Dict[str, Any]
    try:
        notification = notify_status_change(get_client(), change)
    except (ValueError, WasenderError) as e:
        logger.warning("Status saved for %s %s but notification failed: %s", kind.value, record_id, e)
        notification = {"success": False, "error": str(e)}
    return {"success": True, kind.value: updated.to_dict(), "notification": notification}


# ─────────────────────────── Routes ───────────────────────────
@router.post("/rsvps")
async def create_rsvp(payload: RSVPIn):
    try:
        return await asyncio.to_thread(submit_rsvp, get_store(), payload)
    except Exception as e:
        logger.error("❌ RSVP submission failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save RSVP")


@router.get("/admin/rsvps")
async def admin_list_rsvps(
    request: Request,
    token: Optional[str] = Query(None),
    x_admin_token: Optional[str] = Header(None),
):
    _require_token(request, token, x_admin_token)
    return await asyncio.to_thread(rsvp_overview, get_store())


async def _status_route(kind: AttendeeKind, record_id: str, status: ApprovalStatus) -> Dict[str, Any]:
    try:
        return await asyncio.to_thread(change_status, get_store(), kind, record_id, status)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail=f"{kind.value} {record_id} not found")


@router.post("/admin/rsvps/{rsvp_id}/status")
async def admin_rsvp_status(
    rsvp_id: str,
    body: StatusIn,
    request: Request,
    token: Optional[str] = Query(None),
    x_admin_token: Optional[str] = Header(None),
):
    _require_token(request, token, x_admin_token)
    return await _status_route(AttendeeKind.RSVP, rsvp_id, body.status)


@router.post("/admin/guests/{guest_id}/status")
async def admin_guest_status(
    guest_id: str,
    body: StatusIn,
    request: Request,
    token: Optional[str] = Query(None),
    x_admin_token: Optional[str] = Header(None),
):
    _require_token(request, token, x_admin_token)
    return await _status_route(AttendeeKind.GUEST, guest_id, body.status)


@router.post("/admin/rsvps/{rsvp_id}/guests")
async def admin_add_guest(
    rsvp_id: str,
    guest: GuestIn,
    request: Request,
    token: Optional[str] = Query(None),
    x_admin_token: Optional[str] = Header(None),
):
    _require_token(request, token, x_admin_token)
    try:
        created = await asyncio.to_thread(get_store().add_guest, rsvp_id, guest.name, guest.phone)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail=f"rsvp {rsvp_id} not found")
    return {"success": True, "guest": created.to_dict()}
