"""Tests for payout fee math, amount validation, and the payouts client."""

from __future__ import annotations

from decimal import Decimal
import json
import unittest

import httpx

from wingman_chat.api import ApiTransport
from wingman_chat.auth import StaticTokenProvider
from wingman_chat.exceptions import PayoutError
from wingman_chat.payouts import (
    ConnectStatus,
    PayoutsClient,
    PayoutStatus,
    compute_payout_fee,
    validate_payout_amount,
)


class FeeTests(unittest.TestCase):
    """Validate the 2.9% + $0.30 preview."""

    def test_standard_fee(self) -> None:
        quote = compute_payout_fee(100)
        self.assertEqual(quote.fee, Decimal("3.20"))
        self.assertEqual(quote.net_amount, Decimal("96.80"))

    def test_fee_never_exceeds_amount(self) -> None:
        quote = compute_payout_fee("0.25")
        self.assertEqual(quote.fee, Decimal("0.25"))
        self.assertEqual(quote.net_amount, Decimal("0.00"))

    def test_zero_amount(self) -> None:
        quote = compute_payout_fee(0)
        self.assertEqual(quote.fee, Decimal("0.00"))


class AmountValidationTests(unittest.TestCase):
    def test_valid_amount(self) -> None:
        self.assertIsNone(validate_payout_amount("25", 50.0, 10.0))

    def test_invalid_input(self) -> None:
        for raw in ("", None, "abc", "-5", "0", "nan"):
            self.assertEqual(
                validate_payout_amount(raw, 50.0, 10.0),
                "Please enter a valid payout amount",
                raw,
            )

    def test_above_balance(self) -> None:
        self.assertEqual(
            validate_payout_amount(60, 50.0, 10.0), "Amount exceeds available balance"
        )

    def test_below_minimum(self) -> None:
        self.assertEqual(
            validate_payout_amount(5, 50.0, 10.0), "Minimum payout amount is $10.00"
        )


def _client(handler) -> PayoutsClient:  # noqa: ANN001
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test/api")
    return PayoutsClient(
        ApiTransport("http://test/api", StaticTokenProvider("tok"), retries=0, client=http)
    )


class PayoutsClientTests(unittest.IsolatedAsyncioTestCase):
    """Validate endpoint paths and response parsing."""

    async def test_referral_stats(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/api/referrals/stats")
            return httpx.Response(
                200,
                json={
                    "referralCode": "ABC123",
                    "totalReferrals": 3,
                    "activeReferrals": 2,
                    "totalEarned": 30.5,
                    "availableBalance": 12.0,
                    "recentReferrals": [
                        {"email": "a@example.com", "date": "2025-03-01", "status": "active", "earned": 10}
                    ],
                },
            )

        stats = await _client(handler).get_referral_stats()
        self.assertEqual(stats.referral_code, "ABC123")
        self.assertEqual(stats.available_balance, 12.0)
        self.assertEqual(stats.recent_referrals[0].email, "a@example.com")

    async def test_connect_status_without_account(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False})

        self.assertIsNone(await _client(handler).get_connect_status())

    async def test_connect_status_with_account(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "account": {"id": "acct_1", "status": "complete", "payoutsEnabled": True},
                },
            )

        account = await _client(handler).get_connect_status()
        self.assertIs(account.status, ConnectStatus.COMPLETE)
        self.assertTrue(account.payouts_enabled)

    async def test_start_onboarding_returns_url(self) -> None:
        sent: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(200, json={"url": "https://connect.stripe.com/x"})

        url = await _client(handler).start_onboarding("me@example.com", "https://app/return")
        self.assertEqual(url, "https://connect.stripe.com/x")
        self.assertEqual(sent, [{"email": "me@example.com", "return_url": "https://app/return"}])

    async def test_request_payout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/api/stripe/payouts/request")
            self.assertEqual(json.loads(request.content), {"amount": 25.0, "instant": True})
            return httpx.Response(
                200,
                json={"success": True, "payout": {"id": "po_1", "amount": 25.0, "status": "PENDING"}},
            )

        payout = await _client(handler).request_payout(25.0, instant=True)
        self.assertEqual(payout.id, "po_1")
        self.assertIs(payout.status, PayoutStatus.PENDING)

    async def test_request_payout_failure_carries_backend_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "Insufficient balance"})

        with self.assertRaises(PayoutError) as ctx:
            await _client(handler).request_payout(500.0)
        self.assertEqual(str(ctx.exception), "Insufficient balance")

    async def test_list_payouts(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "payouts": [{"id": "po_1", "amount": 10, "status": "completed"}],
                    "availableBalance": 5,
                    "minimumPayoutAmount": 10,
                },
            )

        history = await _client(handler).list_payouts()
        self.assertEqual(len(history.payouts), 1)
        self.assertIs(history.payouts[0].status, PayoutStatus.COMPLETED)
        self.assertEqual(history.minimum_payout_amount, 10)


if __name__ == "__main__":
    unittest.main()
