# rsvp/templates.py
from typing import Optional
from urllib.parse import quote

from rsvp.config import Settings, settings as load_settings
from rsvp.schema import ApprovalStatus, ReplyStatus

# -------------------------------
# Reply confirmations
# -------------------------------
CONFIRM_YES = (
    "Great! We've received your confirmation, {name}! 🎉\n\n"
    "See you tonight at {time} at {venue}! We're excited to celebrate with you! 🎊"
)

CONFIRM_NO = (
    "Thanks for letting us know, {name}. We've removed you from the list. "
    "We'll miss you, but hope to see you at the next celebration!"
)

# -------------------------------
# Approval notices
# -------------------------------
APPROVED = "🎉 Hello {name}! Your RSVP has been approved. We're excited to celebrate with you!"

REJECTED = (
    "Hello {name}, we're sorry to inform you that your RSVP could not be approved at this time. "
    "If you have any questions, please contact us."
)

# -------------------------------
# Party reminder
# -------------------------------
REMINDER = """🎉 *Party Reminder - Tonight!* 🎉

{greeting} Just a friendly reminder that {title} is *TONIGHT* at {time}!

📍 *Location:* {venue}
{address}

🗺️ *Get Directions:*
{maps_link}

⏰ *Time:* {time}
📅 *Date:* {date}

We're excited to celebrate with you! See you there! 🎊

Reply YES if you're coming, or NO if you can't make it."""


def _display_name(name: Optional[str]) -> str:
    return (name or "").strip() or "there"


def directions_link(cfg: Settings) -> str:
    return f"https://www.google.com/maps/dir/?api=1&destination={quote(cfg.PARTY_ADDRESS)}"


# -------------------------------
# Public API
# -------------------------------
def confirmation_message(name: str, reply: ReplyStatus, cfg: Optional[Settings] = None) -> str:
    cfg = cfg or load_settings()
    if reply == ReplyStatus.YES:
        return CONFIRM_YES.format(name=_display_name(name), time=cfg.PARTY_TIME_LABEL, venue=cfg.PARTY_VENUE)
    if reply == ReplyStatus.NO:
        return CONFIRM_NO.format(name=_display_name(name))
    raise ValueError(f"No confirmation copy for reply {reply!r}")


def status_message(name: str, status: ApprovalStatus) -> str:
    if status == ApprovalStatus.APPROVED:
        return APPROVED.format(name=_display_name(name))
    if status == ApprovalStatus.REJECTED:
        return REJECTED.format(name=_display_name(name))
    raise ValueError(f"No notice copy for status {status!r}")


def reminder_message(name: Optional[str], cfg: Optional[Settings] = None) -> str:
    """Reminder text; the greeting is personalised when a name is known."""
    cfg = cfg or load_settings()
    greeting = f"Hi {name.strip()}!" if name and name.strip() else "Hi!"
    return REMINDER.format(
        greeting=greeting,
        title=cfg.PARTY_TITLE,
        time=cfg.PARTY_TIME_LABEL,
        venue=cfg.PARTY_VENUE,
        address=cfg.PARTY_ADDRESS,
        maps_link=directions_link(cfg),
        date=cfg.PARTY_DATE_LABEL,
    )
