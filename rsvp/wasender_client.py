# rsvp/wasender_client.py
"""
📡 WasenderAPI Client — WhatsApp transport
- JSON bodies with bearer auth against https://wasenderapi.com/api
- One outbound message, group creation and batched participant adds
- Errors surface as WasenderError with the provider's response body
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

import requests

from rsvp.config import Settings, settings as load_settings
from rsvp.runtime import get_logger, normalize_phone

logger = get_logger("wasender")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class WasenderError(RuntimeError):
    """A failed WasenderAPI call, with the HTTP status and provider body when known."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.payload = payload

    def __str__(self) -> str:
        message = super().__str__()
        extra = "" if self.body is None else str(self.body).strip()
        if extra and extra not in message:
            message = f"{message} | body={extra}"
        return message


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
def _response_body(resp: Any) -> Any:
    # JSON when the provider sent it, stripped text otherwise
    if resp is None:
        return None
    try:
        return resp.json()
    except ValueError:
        return (getattr(resp, "text", "") or "").strip() or None


def _error_summary(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("message", "error", "detail", "errors"):
            value = body.get(key)
            if value not in (None, "") and str(value).strip():
                return str(value)
        return str(body)
    return "" if body is None else str(body)


def _http_post(url: str, data: Dict[str, Any], api_key: str, timeout: float) -> Dict[str, Any]:
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    try:
        resp = requests.post(url, json=data, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise WasenderError(f"WasenderAPI request failed: {e}", payload=data) from e

    status = resp.status_code
    if status >= 400:
        body = _response_body(resp)
        logger.error("WasenderAPI %s error body: %s", status, body)
        message = f"WasenderAPI HTTP {status}"
        if status == 429:
            message += f" rate limited; retry_after={resp.headers.get('Retry-After')}"
        else:
            summary = _error_summary(body)
            if summary:
                message += f": {summary}"
        raise WasenderError(message, status_code=status, body=body, payload=data)
    try:
        return resp.json()
    except ValueError:
        return {"raw": resp.text}


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class WasenderClient:
    def __init__(self, cfg: Optional[Settings] = None) -> None:
        self.settings = cfg or load_settings()

    @property
    def configured(self) -> bool:
        return bool(self.settings.WASENDER_API_KEY)

    def _post(self, url: str, data: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        if self.settings.WASENDER_DRY_RUN:
            logger.info("[DRY RUN] POST %s data=%s", url, data)
            return {"success": True, "dry_run": True, "id": f"dry_{int(time.time())}"}
        if not self.configured:
            raise WasenderError("WASENDER_API_KEY not configured", payload=data)
        return _http_post(url, data, self.settings.WASENDER_API_KEY, timeout or self.settings.HTTP_TIMEOUT_SEC)

    def send_message(self, to: str, text: str) -> Dict[str, Any]:
        """Send one WhatsApp text. ``to`` is canonicalised to '+digits' first."""
        phone = normalize_phone(to)
        body = (text or "").strip()
        if len(phone) < 2 or not body:
            raise WasenderError("Missing recipient or text", payload={"to": phone, "text": body})
        logger.info("📤 Sending WhatsApp → %s: %s...", phone, body[:60].replace("\n", " "))
        return self._post(self.settings.send_message_url, {"to": phone, "text": body})

    def create_group(self, name: str, participants: List[str]) -> Dict[str, Any]:
        logger.info("👥 Creating group %r with %d participant(s)", name, len(participants))
        return self._post(
            self.settings.groups_url,
            {"name": name, "participants": participants},
            timeout=self.settings.GROUP_TIMEOUT_SEC,
        )

    def add_group_participants(self, group_jid: str, participants: List[str]) -> Dict[str, Any]:
        url = f"{self.settings.groups_url}/{group_jid}/participants/add"
        return self._post(url, {"participants": participants}, timeout=self.settings.GROUP_TIMEOUT_SEC)
