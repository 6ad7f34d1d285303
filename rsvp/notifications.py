"""Approval / rejection notices sent when an admin changes an attendee's status."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from rsvp.runtime import get_logger
from rsvp.schema import ApprovalStatus
from rsvp.services import get_client
from rsvp.templates import status_message
from rsvp.wasender_client import WasenderClient, WasenderError

router = APIRouter()
logger = get_logger("notifications")

NOTIFIABLE = (ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value)


class StatusChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None
    old_status: Optional[str] = None


class MissingFields(ValueError):
    pass


def notify_status_change(client: WasenderClient, change: StatusChange) -> Dict[str, Any]:
    """
    Send the approval or rejection notice for one status change.

    Raises MissingFields when type/name/phone/status are absent and
    WasenderError when the provider rejects the send. Statuses other than
    approved/rejected, and unchanged statuses, are skipped.
    """
    if not (change.type and change.name and change.phone and change.status):
        raise MissingFields("Missing required fields: type, name, phone, status")

    status = change.status.strip().lower()
    if status not in NOTIFIABLE:
        return {"success": True, "skipped": True, "message": "Status is not approved or rejected, skipping notification"}
    if change.old_status and change.old_status.strip().lower() == status:
        return {"success": True, "skipped": True, "message": "Status unchanged, skipping notification"}

    text = status_message(change.name, ApprovalStatus(status))
    response = client.send_message(change.phone, text)
    logger.info("📣 %s notice sent to %s %s (%s)", status, change.type, change.id or "-", change.phone)
    return {
        "success": True,
        "message": "WhatsApp notification sent successfully",
        "providerResponse": response,
    }


@router.post("/send-whatsapp-notification")
async def send_whatsapp_notification(change: StatusChange):
    try:
        return await asyncio.to_thread(notify_status_change, get_client(), change)
    except MissingFields as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WasenderError as e:
        logger.error("❌ Failed to send WhatsApp notification: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to send WhatsApp message: {e}")
