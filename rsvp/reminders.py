"""
⏰ Party Reminder Dispatcher
───────────────────────────
- Approved registrants first, then approved guests
- Strictly sequential sends with a clamped pause between them
- A failed send is recorded per recipient and never stops the run
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from rsvp.config import (
    REMINDER_DELAY_DEFAULT_SEC,
    REMINDER_DELAY_MAX_SEC,
    REMINDER_DELAY_MIN_SEC,
    Settings,
    settings as load_settings,
)
from rsvp.datastore import AttendeeStore
from rsvp.models import Attendee
from rsvp.runtime import get_logger, normalize_phone, phones_match
from rsvp.schema import AttendeeKind
from rsvp.services import get_client, get_store
from rsvp.templates import reminder_message
from rsvp.wasender_client import WasenderClient, WasenderError

router = APIRouter()
log = get_logger("reminders")

TEST_USER_NAME = "Test User"


def clamp_delay(value: Any = None) -> float:
    """Seconds to wait between sends, kept within [10, 20]. Missing, zero or unparseable values mean the default."""
    try:
        delay = float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        delay = 0.0
    if not delay or delay != delay:  # unset, zero or NaN
        delay = REMINDER_DELAY_DEFAULT_SEC
    return max(REMINDER_DELAY_MIN_SEC, min(REMINDER_DELAY_MAX_SEC, delay))


class ReminderDispatcher:
    def __init__(
        self,
        cfg: Optional[Settings] = None,
        store: Optional[AttendeeStore] = None,
        client: Optional[WasenderClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = cfg or load_settings()
        self.store = store or AttendeeStore(self.settings)
        self.client = client or WasenderClient(self.settings)
        self.sleep = sleep

    # ---------- recipients ----------

    def recipients(self) -> List[Attendee]:
        approved = self.store.list_approved(AttendeeKind.RSVP) + self.store.list_approved(AttendeeKind.GUEST)
        return [a for a in approved if a.phone]

    def test_recipients(self) -> List[Attendee]:
        target = self.settings.TEST_RECIPIENT
        if not target:
            raise ValueError("TEST_RECIPIENT is not configured")
        for attendee in self.recipients():
            if phones_match(attendee.phone, target, strict=True):
                return [attendee]
        log.info("Test recipient %s not among approved attendees; using placeholder", target)
        return [Attendee(id="test", kind=AttendeeKind.RSVP, name=TEST_USER_NAME, phone=normalize_phone(target))]

    # ---------- sending ----------

    def _send_one(self, attendee: Attendee) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": attendee.name, "phone": attendee.phone, "type": attendee.kind.value}
        try:
            self.client.send_message(attendee.phone, reminder_message(attendee.name, self.settings))
            result["success"] = True
            log.info("✅ Reminder sent to %s (%s)", attendee.name, attendee.phone)
        except WasenderError as e:
            result["success"] = False
            result["error"] = str(e)
            log.error("❌ Reminder to %s (%s) failed: %s", attendee.name, attendee.phone, e)
        return result

    def run(self, test_mode: bool = False, delay: Any = None) -> Dict[str, Any]:
        pause = clamp_delay(delay or self.settings.REMINDER_DELAY_SEC)
        recipients = self.test_recipients() if test_mode else self.recipients()
        if not recipients:
            log.info("No approved attendees to remind")
            return {"success": True, "message": "No approved attendees found", "sent": 0, "failed": 0, "results": []}

        log.info("⏰ Sending reminders to %d recipient(s), %.1fs apart (test_mode=%s)", len(recipients), pause, test_mode)
        results: List[Dict[str, Any]] = []
        for index, attendee in enumerate(recipients):
            if index > 0:
                self.sleep(pause)
            results.append(self._send_one(attendee))

        sent = sum(1 for r in results if r["success"])
        failed = len(results) - sent
        log.info("📊 Reminders done: %d sent, %d failed", sent, failed)
        return {
            "success": True,
            "message": f"Reminders sent to {sent} attendee(s)",
            "sent": sent,
            "failed": failed,
            "total": len(results),
            "testMode": test_mode,
            "delayBetweenMessages": pause,
            "results": results,
        }


# ─────────────────────────── Route ───────────────────────────
class ReminderRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    testMode: bool = False
    delayBetweenMessages: Optional[float] = None


@router.post("/send-party-reminder")
async def send_party_reminder(payload: Optional[ReminderRequest] = None):
    payload = payload or ReminderRequest()
    cfg = load_settings()
    if not cfg.WASENDER_API_KEY and not cfg.WASENDER_DRY_RUN:
        raise HTTPException(status_code=500, detail="WASENDER_API_KEY not configured")

    dispatcher = ReminderDispatcher(cfg, get_store(), get_client())
    try:
        return await asyncio.to_thread(dispatcher.run, payload.testMode, payload.delayBetweenMessages)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.error("❌ send-party-reminder failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
