"""
👥 WhatsApp group helper.

Creating a group with every participant at once times out on the provider
side, so the group is created with one member and the rest are added in
small batches with a pause between them.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from rsvp.config import settings as load_settings
from rsvp.runtime import get_logger, only_digits
from rsvp.services import get_client
from rsvp.wasender_client import WasenderClient, WasenderError

router = APIRouter()
log = get_logger("groups")

JID_SUFFIX = "@s.whatsapp.net"
MIN_JID_DIGITS = 10


class GroupError(RuntimeError):
    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.details = details


def to_jid(phone: str, name: Optional[str] = None) -> str:
    digits = only_digits(phone)
    if len(digits) < MIN_JID_DIGITS:
        raise ValueError(f"Invalid phone number: {phone} (name: {name or '-'})")
    return f"{digits}{JID_SUFFIX}"


def _chunks(items: List[str], size: int) -> List[List[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def _group_jid(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    data = result.get("data") if isinstance(result.get("data"), dict) else {}
    for source in (result, data):
        for key in ("id", "group_id", "jid"):
            if source.get(key):
                return str(source[key])
    return None


def create_party_group(
    client: WasenderClient,
    participants: List[Dict[str, Any]],
    group_name: Optional[str] = None,
    group_jid: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Create a group (or reuse ``group_jid``) and add ``participants`` to it.

    ``participants`` are ``{"name", "phone"}`` mappings. Raises ValueError for
    an empty list or a bad phone, WasenderError when creation is rejected and
    GroupError when the provider answers without a group id. Batch failures
    are reported in ``batches`` and do not stop later batches.
    """
    if not participants:
        raise ValueError("At least one participant is required")
    cfg = client.settings
    jids = [to_jid(str(p.get("phone") or ""), p.get("name")) for p in participants]
    name = group_name or cfg.GROUP_DEFAULT_NAME

    create_result = None
    if group_jid:
        log.info("Using existing group %s", group_jid)
        to_add = jids
    else:
        create_result = client.create_group(name, jids[:1])
        group_jid = _group_jid(create_result)
        if not group_jid:
            raise GroupError("Group created but no group ID returned", details=create_result)
        log.info("✅ Group %r created: %s", name, group_jid)
        to_add = jids[1:]

    batches = _chunks(to_add, cfg.GROUP_BATCH_SIZE)
    batch_results: List[Dict[str, Any]] = []
    for index, batch in enumerate(batches, start=1):
        if index > 1:
            sleep(cfg.GROUP_BATCH_DELAY_SEC)
        try:
            client.add_group_participants(group_jid, batch)
            batch_results.append({"batch": index, "size": len(batch), "success": True})
        except WasenderError as e:
            log.error("Failed to add batch %d/%d: %s", index, len(batches), e)
            batch_results.append({"batch": index, "size": len(batch), "success": False, "error": str(e)})

    failed = [b for b in batch_results if not b["success"]]
    if failed:
        log.warning("%d of %d participant batches failed", len(failed), len(batches))

    if create_result is None:
        message = "Participants added to existing group successfully"
        added = f"{len(to_add)} added in batches"
    else:
        message = "WhatsApp group created successfully"
        added = f"1 initially, {len(to_add)} added in batches" if to_add else f"{len(jids)} initially"

    return {
        "success": True,
        "message": message,
        "groupName": name,
        "groupId": group_jid,
        "totalParticipants": len(jids),
        "participantsAdded": added,
        "failedBatches": len(failed),
        "batches": batch_results,
        "wasenderResponse": create_result,
    }


# ─────────────────────────── Route ───────────────────────────
class Participant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    phone: str = ""


class GroupRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    participants: List[Participant] = Field(default_factory=list)
    groupName: Optional[str] = None
    groupJid: Optional[str] = None


@router.post("/create-whatsapp-group")
async def create_whatsapp_group(payload: GroupRequest):
    if not payload.participants:
        raise HTTPException(status_code=400, detail="At least one participant is required")
    cfg = load_settings()
    if not cfg.WASENDER_API_KEY and not cfg.WASENDER_DRY_RUN:
        raise HTTPException(status_code=500, detail="WasenderAPI key not configured")

    participants = [p.model_dump() for p in payload.participants]
    try:
        return await asyncio.to_thread(
            create_party_group, get_client(), participants, payload.groupName, payload.groupJid
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WasenderError as e:
        return JSONResponse(
            status_code=e.status_code or 500,
            content={"error": "Failed to create WhatsApp group", "details": e.body or str(e), "status": e.status_code},
        )
    except GroupError as e:
        return JSONResponse(status_code=500, content={"error": str(e), "details": e.details})
