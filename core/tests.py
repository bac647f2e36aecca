from datetime import date
from decimal import Decimal
from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from .money import add_months, money, positive_money
from .telegram_notify import renewal_summary_text, tg_send


class MoneyTests(SimpleTestCase):
    def test_add_months_clamps_to_month_end(self):
        self.assertEqual(add_months(date(2025, 1, 31), 1), date(2025, 2, 28))
        self.assertEqual(add_months(date(2024, 1, 31), 1), date(2024, 2, 29))
        self.assertEqual(add_months(date(2025, 3, 31), 1), date(2025, 4, 30))
        self.assertEqual(add_months(date(2025, 12, 15), 1), date(2026, 1, 15))
        self.assertEqual(add_months(date(2025, 1, 15), 12), date(2026, 1, 15))

    def test_money_rounds_to_cents(self):
        self.assertEqual(money("10"), Decimal("10.00"))
        self.assertEqual(money(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(money(None), Decimal("0.00"))

    def test_positive_money(self):
        self.assertEqual(positive_money("150.5"), Decimal("150.50"))
        self.assertIsNone(positive_money(0))
        self.assertIsNone(positive_money("-3"))
        self.assertIsNone(positive_money(None))
        self.assertIsNone(positive_money(True))
        self.assertIsNone(positive_money("abc"))


class TelegramNotifyTests(SimpleTestCase):
    @override_settings(TELEGRAM_NOTIFICATIONS=False, TELEGRAM_BOT_TOKEN="t", TELEGRAM_CHAT_ID="1")
    def test_disabled_sends_nothing(self):
        with mock.patch("core.telegram_notify.requests.post") as post:
            tg_send("hi")
        post.assert_not_called()

    @override_settings(TELEGRAM_NOTIFICATIONS=True, TELEGRAM_BOT_TOKEN="", TELEGRAM_CHAT_ID="1")
    def test_missing_token_sends_nothing(self):
        with mock.patch("core.telegram_notify.requests.post") as post:
            tg_send("hi")
        post.assert_not_called()

    @override_settings(TELEGRAM_NOTIFICATIONS=True, TELEGRAM_BOT_TOKEN="abc", TELEGRAM_CHAT_ID="42")
    def test_sends_html_message(self):
        with mock.patch("core.telegram_notify.requests.post") as post:
            tg_send("<b>hi</b>")

        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        self.assertEqual(url, "https://api.telegram.org/botabc/sendMessage")
        self.assertEqual(payload["chat_id"], "42")
        self.assertEqual(payload["parse_mode"], "HTML")

    @override_settings(TELEGRAM_NOTIFICATIONS=True, TELEGRAM_BOT_TOKEN="abc", TELEGRAM_CHAT_ID="42")
    def test_request_error_is_logged(self):
        with mock.patch("core.telegram_notify.requests.post", side_effect=requests.ConnectionError("down")):
            with self.assertLogs("core.telegram_notify", level="WARNING"):
                tg_send("hi")

    def test_renewal_summary_text(self):
        errors = [f"Member {i} - Yoga: <fail>" for i in range(7)]
        text = renewal_summary_text(
            "Centro & Co",
            {"renewed_count": 3, "total_amount": Decimal("30000.00"), "price_update_count": 1, "errors": errors},
        )

        self.assertIn("Centro &amp; Co", text)
        self.assertIn("Продлено: <b>3</b>", text)
        self.assertIn("30000.00", text)
        self.assertIn("Ошибок: <b>7</b>", text)
        self.assertIn("&lt;fail&gt;", text)
        self.assertNotIn("Member 5", text)
        self.assertIn("и ещё 2", text)
