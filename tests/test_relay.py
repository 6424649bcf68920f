"""
Tests for the Telegram relay: message formatting, session markers and the
HTTP call itself (via httpx.MockTransport).
"""
import json
import unittest
from datetime import datetime, timezone

import httpx

from services.chat import parse_webhook_reply
from services.errors import RelayError
from services.relay import (
    TELEGRAM_MESSAGE_LIMIT,
    TelegramRelay,
    extract_session_id,
    format_appointment,
    format_chat,
    format_generic,
    format_quote,
)

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestFormatters(unittest.TestCase):
    def test_quote_includes_loan_and_business_details(self):
        text = format_quote(
            {
                "first_name": "Ada",
                "last_name": "Lovelace",
                "email": "ada@example.com",
                "phone": "07700 900000",
                "company": "Engines Ltd",
                "loan_type": "Asset Finance",
                "loan_amount": "50,000",
                "industry": "Manufacturing",
            },
            now=NOW,
        )
        self.assertIn("New Quote Request", text)
        self.assertIn("Ada Lovelace", text)
        self.assertIn("£50,000", text)
        self.assertIn("Engines Ltd", text)
        self.assertIn("01/03/2026", text)

    def test_user_input_is_escaped(self):
        text = format_generic({"formType": "x", "note": "<script>alert(1)</script>"}, now=NOW)
        self.assertNotIn("<script>", text)
        self.assertIn("&lt;script&gt;", text)
        self.assertNotIn("formType", text)

    def test_appointment_defaults(self):
        text = format_appointment(
            {"name": "Sam", "email": "sam@example.com", "phone": "1", "date": "2026-03-02", "time": "10:00"},
            now=NOW,
        )
        self.assertIn("General Consultation", text)
        self.assertIn("No additional notes", text)

    def test_chat_message_carries_session_marker(self):
        text = format_chat(name="Sam", email="sam@example.com", message="Hi", session_id="k3j9x0abc")
        self.assertEqual(extract_session_id(text), "k3j9x0abc")


class TestWebhookParsing(unittest.TestCase):
    def test_reply_routes_to_session_of_replied_message(self):
        update = {
            "message": {
                "text": "Thanks, we will call you today",
                "from": {"first_name": "Jo", "last_name": "Broker"},
                "reply_to_message": {"text": "New Live Chat Message\n...\nSession: abc123xyz\n"},
            }
        }
        self.assertEqual(
            parse_webhook_reply(update),
            ("abc123xyz", "Thanks, we will call you today", "Jo Broker"),
        )

    def test_marker_in_own_text_is_used_as_fallback(self):
        update = {"message": {"text": "Session: s1 hello there"}}
        self.assertEqual(parse_webhook_reply(update)[0], "s1")

    def test_update_without_marker_is_ignored(self):
        self.assertIsNone(parse_webhook_reply({"message": {"text": "hello"}}))
        self.assertIsNone(parse_webhook_reply({"callback_query": {}}))


class TestTelegramRelay(unittest.IsolatedAsyncioTestCase):
    async def test_posts_to_send_message(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "result": {}})

        relay = TelegramRelay("TOKEN", 12345, api_base="https://tg.test", transport=httpx.MockTransport(handler))
        await relay.send("x" * (TELEGRAM_MESSAGE_LIMIT + 100))
        self.assertEqual(captured["url"], "https://tg.test/botTOKEN/sendMessage")
        self.assertEqual(captured["body"]["chat_id"], "12345")
        self.assertEqual(captured["body"]["parse_mode"], "HTML")
        self.assertEqual(len(captured["body"]["text"]), TELEGRAM_MESSAGE_LIMIT)

    async def test_api_error_raises(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(400, json={"ok": False, "description": "bad"}))
        relay = TelegramRelay("TOKEN", "1", transport=transport)
        with self.assertRaises(RelayError):
            await relay.send("hello")

    async def test_ok_false_raises(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"ok": False}))
        relay = TelegramRelay("TOKEN", "1", transport=transport)
        with self.assertRaises(RelayError):
            await relay.send("hello")

    async def test_missing_configuration(self):
        with self.assertRaises(RelayError) as ctx:
            await TelegramRelay(None, None).send("hello")
        self.assertIn("configuration missing", str(ctx.exception))

    async def test_network_error_raises_relay_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        relay = TelegramRelay("TOKEN", "1", transport=httpx.MockTransport(handler))
        with self.assertRaises(RelayError):
            await relay.send("hello")


if __name__ == "__main__":
    unittest.main()
