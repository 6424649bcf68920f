"""
Message relay for lead-capture forms and live chat.

Each form is rendered into a fixed HTML text block and posted to a Telegram
chat. The ``Session:`` line in chat messages is what the webhook later reads
to route an admin reply back to the right chat session.
"""
from __future__ import annotations

import html
import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

import httpx

from config import Settings, settings
from services.errors import RelayError

logger = logging.getLogger(__name__)

TELEGRAM_MESSAGE_LIMIT = 4096

SESSION_MARKER = re.compile(r"Session:\s*(?:</b>\s*)?([A-Za-z0-9_-]{1,64})")


class MessageRelay(Protocol):
    async def send(self, text: str) -> None: ...


class TelegramRelay:
    def __init__(
        self,
        bot_token: str | None,
        chat_id: str | None,
        *,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "TelegramRelay":
        return cls(
            cfg.telegram_bot_token,
            cfg.telegram_chat_id,
            api_base=cfg.telegram_api_base,
            timeout=cfg.relay_timeout_seconds,
        )

    async def send(self, text: str) -> None:
        if not self.bot_token or not self.chat_id:
            raise RelayError("Telegram configuration missing")
        url = f"{self.api_base}/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": str(self.chat_id),
            "text": text[:TELEGRAM_MESSAGE_LIMIT],
            "parse_mode": "HTML",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Telegram request failed: %s", e.__class__.__name__)
            raise RelayError("Failed to reach messaging service") from e

        if resp.status_code >= 400:
            logger.error("Telegram API error %s: %s", resp.status_code, resp.text[:500])
            raise RelayError(f"Telegram API error: {resp.status_code}")
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not body.get("ok", False):
            logger.error("Telegram API rejected message: %s", body.get("description"))
            raise RelayError("Telegram API error")


def _v(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None or value == "":
        return html.escape(default)
    return html.escape(str(value))


def _submitted_at(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%d/%m/%Y, %H:%M:%S UTC")


def format_contact(data: Mapping[str, Any], now: datetime | None = None) -> str:
    return (
        "🔔 <b>New Contact Form Submission</b>\n\n"
        f"👤 <b>Name:</b> {_v(data, 'name')}\n"
        f"📧 <b>Email:</b> {_v(data, 'email')}\n"
        f"📱 <b>Phone:</b> {_v(data, 'phone')}\n"
        f"🏢 <b>Service:</b> {_v(data, 'service')}\n"
        f"💬 <b>Message:</b> {_v(data, 'message')}\n\n"
        f"⏰ <b>Submitted:</b> {_submitted_at(now)}\n"
    )


def format_quote(data: Mapping[str, Any], now: datetime | None = None) -> str:
    return (
        "💰 <b>New Quote Request</b>\n\n"
        f"👤 <b>Name:</b> {_v(data, 'first_name')} {_v(data, 'last_name')}\n"
        f"📧 <b>Email:</b> {_v(data, 'email')}\n"
        f"📱 <b>Phone:</b> {_v(data, 'phone')}\n"
        f"🏢 <b>Company:</b> {_v(data, 'company')}\n\n"
        "💼 <b>Loan Details:</b>\n"
        f"• Type: {_v(data, 'loan_type')}\n"
        f"• Amount: £{_v(data, 'loan_amount')}\n"
        f"• Purpose: {_v(data, 'loan_purpose')}\n\n"
        "🏭 <b>Business Info:</b>\n"
        f"• Industry: {_v(data, 'industry')}\n"
        f"• Turnover: £{_v(data, 'annual_turnover')}\n"
        f"• Time in Business: {_v(data, 'time_in_business')}\n"
        f"• Employees: {_v(data, 'employees')}\n\n"
        f"⏰ <b>Submitted:</b> {_submitted_at(now)}\n"
    )


def format_eligibility(data: Mapping[str, Any], now: datetime | None = None) -> str:
    return (
        "✅ <b>New Eligibility Check</b>\n\n"
        "👤 <b>Personal Details:</b>\n"
        f"• Name: {_v(data, 'first_name')} {_v(data, 'last_name')}\n"
        f"• Email: {_v(data, 'email')}\n"
        f"• Phone: {_v(data, 'phone')}\n\n"
        "💼 <b>Loan Details:</b>\n"
        f"• Amount: £{_v(data, 'loan_amount')}\n"
        f"• Purpose: {_v(data, 'loan_purpose')}\n\n"
        "🏭 <b>Business Info:</b>\n"
        f"• Name: {_v(data, 'business_name')}\n"
        f"• Industry: {_v(data, 'industry')}\n"
        f"• Turnover: £{_v(data, 'annual_turnover')}\n"
        f"• Time in Business: {_v(data, 'time_in_business')}\n\n"
        f"⏰ <b>Submitted:</b> {_submitted_at(now)}\n"
    )


def format_appointment(data: Mapping[str, Any], now: datetime | None = None) -> str:
    return (
        "📅 <b>New Appointment Scheduled</b>\n\n"
        "👤 <b>Client Details:</b>\n"
        f"• Name: {_v(data, 'name')}\n"
        f"• Email: {_v(data, 'email')}\n"
        f"• Phone: {_v(data, 'phone')}\n\n"
        "📆 <b>Appointment Details:</b>\n"
        f"• Date: {_v(data, 'date')}\n"
        f"• Time: {_v(data, 'time')}\n"
        f"• Service: {_v(data, 'service', 'General Consultation')}\n"
        "• Duration: 30 minutes\n"
        "• Type: Online consultation\n\n"
        f"💬 <b>Notes:</b> {_v(data, 'message', 'No additional notes')}\n\n"
        f"⏰ <b>Scheduled:</b> {_submitted_at(now)}\n"
    )


def format_generic(data: Mapping[str, Any], now: datetime | None = None) -> str:
    lines = [
        f"<b>{html.escape(str(k))}:</b> {html.escape(str(v))}"
        for k, v in data.items()
        if k not in ("formType", "form_type")
    ]
    return (
        "🔔 <b>New Form Submission</b>\n\n"
        + "\n".join(lines)
        + f"\n\n⏰ <b>Submitted:</b> {_submitted_at(now)}\n"
    )


def format_chat(
    *,
    name: str,
    email: str,
    message: str,
    session_id: str,
    timestamp: str | None = None,
) -> str:
    data = {"name": name, "email": email, "message": message}
    return (
        "💬 <b>New Live Chat Message</b>\n\n"
        f"👤 <b>Name:</b> {_v(data, 'name')}\n"
        f"📧 <b>Email:</b> {_v(data, 'email')}\n"
        f"💬 <b>Message:</b> {_v(data, 'message')}\n\n"
        f"🕐 <b>Time:</b> {html.escape(timestamp or _submitted_at())}\n"
        f"🔗 <b>Session:</b> {html.escape(session_id)}\n\n"
        "<i>Reply to this message to respond to the customer</i>\n"
    )


def extract_session_id(text: str | None) -> str | None:
    """Find the chat session id in a relayed message's ``Session:`` line."""
    if not text:
        return None
    match = SESSION_MARKER.search(text)
    return match.group(1) if match else None


FORM_FORMATTERS = {
    "contact": format_contact,
    "quote": format_quote,
    "eligibility": format_eligibility,
    "appointment": format_appointment,
}
