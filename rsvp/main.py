from __future__ import annotations

"""
Birthday Party RSVP service (FastAPI)
- WhatsApp reply webhook (always-200 contract)
- Party reminders, approval notices, group creation via WasenderAPI
- RSVP intake + admin approval over Airtable
- Calendar invite endpoints
"""

from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rsvp.config import settings
from rsvp.event_calendar import router as calendar_router
from rsvp.groups import router as groups_router
from rsvp.notifications import router as notifications_router
from rsvp.reminders import router as reminders_router
from rsvp.reply_webhook import router as webhook_router
from rsvp.rsvps import router as rsvps_router
from rsvp.runtime import get_logger
from rsvp.services import get_store

VERSION = "1.0.0"

logger = get_logger("main")

app = FastAPI(title="Party RSVP", version=VERSION)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-admin-token", "x-webhook-secret"],
)

app.include_router(webhook_router)        # → /whatsapp-webhook
app.include_router(reminders_router)      # → /send-party-reminder
app.include_router(notifications_router)  # → /send-whatsapp-notification
app.include_router(groups_router)         # → /create-whatsapp-group
app.include_router(rsvps_router)          # → /rsvps, /admin/...
app.include_router(calendar_router)       # → /calendar.ics, /calendar/google


def _iso_ts() -> str:
    return datetime.now(timezone.utc).isoformat()


def missing_config() -> list[str]:
    s = settings()
    missing: list[str] = []
    if not s.WASENDER_API_KEY and not s.WASENDER_DRY_RUN:
        missing.append("WASENDER_API_KEY")
    if not s.FORCE_IN_MEMORY:
        if not s.AIRTABLE_API_KEY:
            missing.append("AIRTABLE_API_KEY")
        if not s.RSVP_BASE:
            missing.append("RSVP_BASE|AIRTABLE_RSVP_BASE_ID")
    return missing


# ─────────────────────────── Startup checks ─────────────────────────
@app.on_event("startup")
async def startup_checks():
    s = settings()
    logger.info("✅ Environment loaded:")
    logger.info("   RSVP_BASE: %s (in-memory=%s)", s.RSVP_BASE, not s.store_configured)
    logger.info("   WASENDER_DRY_RUN=%s TEST_RECIPIENT=%s", s.WASENDER_DRY_RUN, s.TEST_RECIPIENT or "-")
    logger.info("   Webhook secret configured=%s enforced=%s", bool(s.WEBHOOK_SECRET), s.ENFORCE_WEBHOOK_SECRET)
    missing = missing_config()
    if missing:
        logger.error("🚨 Missing env vars → %s", ", ".join(missing))
    else:
        logger.info("✅ Startup checks passed")


# ─────────────────────────── Health ────────────────────────────────
@app.get("/ping")
async def ping():
    return {"ok": True, "pong": True, "time": _iso_ts()}


@app.get("/health")
async def health():
    s = settings()
    return {
        "ok": True,
        "timestamp": _iso_ts(),
        "version": VERSION,
        "store": "memory" if get_store().connector.rsvps().in_memory else "airtable",
        "messaging_configured": bool(s.WASENDER_API_KEY),
        "dry_run": s.WASENDER_DRY_RUN,
        "missing": missing_config(),
    }
