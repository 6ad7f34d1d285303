"""
🎉 Party RSVP package
---------------------
WhatsApp reply handling, reminders and RSVP administration for a single
event, backed by Airtable and WasenderAPI.
"""

__version__ = "1.0.0"
